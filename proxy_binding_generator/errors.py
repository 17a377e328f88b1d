"""Generation-time errors raised while validating a table or synthesizing trampolines."""

from __future__ import annotations

from typing import Optional, Sequence


class GenerationError(RuntimeError):
    """Base class for every failure that aborts a generation run."""

    def __init__(self, message: str, origin: Optional[str] = None) -> None:
        self.origin = origin
        super().__init__(f"{origin}: {message}" if origin else message)


class TableSyntaxError(GenerationError):
    """A table file could not be parsed."""


class InvalidDeclarationError(GenerationError):
    """A declaration is malformed (empty names, symbol not a valid identifier)."""


class DuplicateSymbolError(GenerationError):
    """Two declarations share a key or would be emitted under the same symbol."""

    def __init__(self, symbol: str, keys: Sequence[tuple], origins: Sequence[Optional[str]] = ()) -> None:
        self.symbol = symbol
        self.keys = list(keys)
        rendered = "; ".join(
            f"({s}, {m}, {t!r})" + (f" at {o}" if o else "")
            for (s, m, t), o in zip(self.keys, list(origins) + [None] * len(self.keys))
        )
        super().__init__(f"duplicate symbol '{symbol}' declared by {rendered}")


class ArityError(GenerationError):
    """The parameter list of a declaration cannot be expanded."""


class ArityLimitError(ArityError):
    """More parameters than the expander supports."""


class ArityMismatchError(ArityError):
    """Formal and actual parameter lists disagree with the declared parameter count."""


class AliasRequiredError(ArityMismatchError):
    """A composite type with a top-level separator was used without an alias."""


class TypeAliasError(GenerationError):
    """Type alias discipline was violated."""


class AliasRedefinitionError(TypeAliasError):
    pass


class AliasOrderError(TypeAliasError):
    pass


__all__ = [
    "AliasOrderError",
    "AliasRedefinitionError",
    "AliasRequiredError",
    "ArityError",
    "ArityLimitError",
    "ArityMismatchError",
    "DuplicateSymbolError",
    "GenerationError",
    "InvalidDeclarationError",
    "TableSyntaxError",
    "TypeAliasError",
]
