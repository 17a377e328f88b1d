"""
The signature table: every method declaration and type alias of a generation run.

Declarations are collected first and validated in one pass afterwards, so a
collision is reported as an ordinary set-uniqueness failure instead of
surfacing later as a duplicate definition in generated code.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .arity import check_type_spelling, count_arity
from .errors import AliasOrderError, AliasRedefinitionError, DuplicateSymbolError, InvalidDeclarationError
from .models import CppType, Exclusion, MethodDeclaration, TypeAlias
from .utils import is_c_identifier

logger = logging.getLogger(__name__)


class SignatureTable:
    """
    Ordered collection of MethodDeclaration rows plus the aliases, includes
    and exclusion notes that travel with them.

    Usage:
        table = SignatureTable()
        table.register_alias("IntPair", "Pair<int, int>")
        table.declare("IActor", "void", "setSkin", "int")
        table.declare("IVehicle", "IntPair", "getColour")
        table.validate()
    """

    def __init__(self) -> None:
        self._declarations: List[MethodDeclaration] = []
        self._aliases: Dict[str, TypeAlias] = {}
        self.includes: List[str] = []
        self.exclusions: List[Exclusion] = []
        self.sources: List[str] = []

    # ---- Building ----

    def register_alias(self, name: str, underlying: str, origin: Optional[str] = None) -> TypeAlias:
        """
        Bind `name` to a composite type. Aliases are never redefined.
        """
        if not is_c_identifier(name):
            raise InvalidDeclarationError(f"invalid alias name '{name}'", origin)
        if name in self._aliases:
            previous = self._aliases[name]
            where = f" (first defined at {previous.origin})" if previous.origin else ""
            raise AliasRedefinitionError(f"type alias '{name}' is already defined{where}", origin)
        alias = TypeAlias(
            name=name,
            underlying=" ".join(underlying.split()),
            position=len(self._declarations),
            origin=origin,
        )
        self._aliases[name] = alias
        logger.debug("Registered alias %s = %s", alias.name, alias.underlying)
        return alias

    def add(self, declaration: MethodDeclaration) -> MethodDeclaration:
        self._declarations.append(declaration)
        return declaration

    def declare(
        self,
        subject_type: str,
        return_type: str,
        method_name: str,
        *parameters: str,
        overload_tag: str = "",
        section: str = "",
        origin: Optional[str] = None,
    ) -> MethodDeclaration:
        """
        Append a declaration; the parameter types follow the method name
        positionally, as in a table row.
        """
        return self.add(
            MethodDeclaration(
                subject_type=subject_type,
                return_type=return_type,
                method_name=method_name,
                parameters=tuple(parameters),
                overload_tag=overload_tag,
                section=section,
                origin=origin,
            )
        )

    def add_include(self, header: str) -> None:
        if header not in self.includes:
            self.includes.append(header)

    def add_exclusion(self, exclusion: Exclusion) -> None:
        self.exclusions.append(exclusion)

    def merge(self, other: SignatureTable) -> None:
        """
        Append another table's contents; aliases keep their relative order.
        """
        offset = len(self._declarations)
        for alias in other.aliases:
            if alias.name in self._aliases:
                raise AliasRedefinitionError(f"type alias '{alias.name}' is already defined", alias.origin)
            self._aliases[alias.name] = TypeAlias(
                name=alias.name,
                underlying=alias.underlying,
                position=alias.position + offset,
                origin=alias.origin,
            )
        self._declarations.extend(other.declarations)
        for inc in other.includes:
            self.add_include(inc)
        self.exclusions.extend(other.exclusions)
        self.sources.extend(other.sources)

    # ---- Access ----

    @property
    def declarations(self) -> List[MethodDeclaration]:
        return list(self._declarations)

    @property
    def aliases(self) -> List[TypeAlias]:
        return list(self._aliases.values())

    def alias(self, name: str) -> Optional[TypeAlias]:
        return self._aliases.get(name)

    def subjects(self) -> List[str]:
        seen: Dict[str, None] = {}
        for d in self._declarations:
            seen.setdefault(d.subject_name, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._declarations)

    def __iter__(self) -> Iterator[MethodDeclaration]:
        return iter(list(self._declarations))

    # ---- Validation ----

    def validate(self) -> None:
        """
        Check every declaration in a single pass:
        - names are identifiers and the derived symbol is valid;
        - arity is within the limit and no raw composite type is used;
        - aliases are registered before the first declaration using them;
        - (subject, method, tag) keys and derived symbols are unique.
        Raises the first violation found, in table order.
        """
        by_key: Dict[Tuple[str, str, str], MethodDeclaration] = {}
        by_symbol: Dict[str, MethodDeclaration] = {}

        for index, decl in enumerate(self._declarations):
            decl.check_names()
            count_arity(decl.parameters, decl.origin)
            for spelling in (decl.return_type,) + decl.parameters:
                check_type_spelling(spelling, decl.origin)
                self._check_alias_order(spelling, index, decl)

            previous = by_key.get(decl.key)
            if previous is not None:
                raise DuplicateSymbolError(decl.symbol, [previous.key, decl.key], [previous.origin, decl.origin])
            previous = by_symbol.get(decl.symbol)
            if previous is not None:
                raise DuplicateSymbolError(decl.symbol, [previous.key, decl.key], [previous.origin, decl.origin])
            by_key[decl.key] = decl
            by_symbol[decl.symbol] = decl

        logger.debug("Validated %d declaration(s) and %d alias(es)", len(self._declarations), len(self._aliases))

    def _check_alias_order(self, spelling: str, index: int, decl: MethodDeclaration) -> None:
        for ident in CppType.from_spelling(spelling).identifiers:
            alias = self._aliases.get(ident)
            if alias is not None and alias.position > index:
                where = f" (defined at {alias.origin})" if alias.origin else ""
                raise AliasOrderError(
                    f"type alias '{ident}' is used by {decl.symbol} before it is defined{where}",
                    decl.origin,
                )


def build_table(
    declarations: Iterable[MethodDeclaration],
    aliases: Iterable[Tuple[str, str]] = (),
) -> SignatureTable:
    """
    Convenience constructor: aliases first, then declarations, in order.
    """
    table = SignatureTable()
    for name, underlying in aliases:
        table.register_alias(name, underlying)
    for decl in declarations:
        table.add(decl)
    return table


__all__ = [
    "SignatureTable",
    "build_table",
]
