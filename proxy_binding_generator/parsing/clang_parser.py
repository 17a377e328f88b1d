#!/usr/bin/env python3
"""
Clang-based discovery of interface methods in C++ headers.

This module traverses C/C++ headers using libclang and turns the public
instance methods of every class definition into MethodDeclaration rows, the
same shape the signature table uses. It is used to:

- draft table entries for interfaces that are not covered yet;
- compute which discovered methods the table does not expose.

Key features:
- Include path filters and a class exclusion regex.
- Spelled (not canonical) types, so SDK typedefs such as StringView survive.
- Variadic methods and member templates are skipped: they cannot be forwarded
  positionally.
- Overloads receive deterministic tags (_1, _2, ...); the first keeps none.
- Composite types with top-level separators are replaced by generated aliases.

Requirements:
- Python clang bindings (pip install libclang)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

try:
    from clang import cindex  # type: ignore
except Exception:  # pragma: no cover
    cindex = None  # Lazy error on use

from ..arity import has_top_level_separator
from ..models import MethodDeclaration, TypeAlias
from ..utils import alias_name_for


# --------------------------
# libclang setup
# --------------------------

def ensure_libclang_loaded() -> None:
    """
    Ensure clang.cindex is importable. This function doesn't try to set a library path,
    but provides a single point to improve discovery in future.
    """
    if cindex is None:
        raise RuntimeError(
            "libclang (clang.cindex) is not available. Install clang Python bindings "
            "(e.g., pip install libclang) and ensure libclang is discoverable."
        )


def _create_index():
    ensure_libclang_loaded()
    return cindex.Index.create()


def parse_translation_unit(header: Path, clang_args: List[str]):
    """
    Parse a single header into a TranslationUnit with options suitable for
    declaration-only traversal.
    """
    idx = _create_index()
    args = list(clang_args)
    if not any(a.startswith("-x") for a in args):
        args = ["-x", "c++"] + args
    # Silence warnings from system headers
    if not any(a.startswith("-W") for a in args):
        args.append("-Wno-everything")
    tu_cls = cindex.TranslationUnit
    return idx.parse(
        str(header),
        args=args,
        options=(
            tu_cls.PARSE_SKIP_FUNCTION_BODIES
            | tu_cls.PARSE_INCOMPLETE
        ),
    )


# --------------------------
# Helpers
# --------------------------

_SYSTEM_DIR_PREFIXES: Tuple[str, ...] = ("/usr/include", "/usr/local/include")
_CLASS_KINDS = ("CLASS_DECL", "STRUCT_DECL")


def _kind_name(node: Any) -> str:
    return getattr(getattr(node, "kind", None), "name", "")


def _is_system_location(loc: Any) -> bool:
    f = getattr(loc, "file", None)
    if f is None:
        return True
    return str(f.name).startswith(_SYSTEM_DIR_PREFIXES)


def _should_consider_location(node: Any, include_filters: Optional[List[str]]) -> bool:
    """
    Use file path filtering to decide whether to consider a node for collection.
    If filters are provided, only accept nodes whose file path starts with any filter.
    Otherwise, exclude system header locations by default.
    """
    loc = getattr(node, "location", None)
    if loc is None or getattr(loc, "file", None) is None:
        return _kind_name(node) in ("NAMESPACE", "TRANSLATION_UNIT")
    fpath = str(Path(str(loc.file.name)).resolve())

    if include_filters:
        return any(fpath.startswith(f) for f in include_filters)
    return not _is_system_location(loc)


def _qualified_name(node: Any) -> str:
    """
    Name including enclosing classes; namespaces are left out because the
    table refers to types the way the SDK headers bring them into scope.
    """
    parts = [node.spelling]
    parent = getattr(node, "semantic_parent", None)
    while parent is not None and _kind_name(parent) in _CLASS_KINDS:
        if parent.spelling:
            parts.append(parent.spelling)
        parent = getattr(parent, "semantic_parent", None)
    return "::".join(reversed(parts))


def _type_spelling(tp: Any) -> str:
    return " ".join(str(getattr(tp, "spelling", "") or "void").split())


def _is_public(node: Any) -> bool:
    acc = getattr(node, "access_specifier", None)
    return getattr(acc, "name", "PUBLIC") == "PUBLIC"


def _is_variadic(node: Any) -> bool:
    try:
        return bool(node.type.is_function_variadic())
    except Exception:
        return False


def _method_declaration(node: Any, subject: str, section: str) -> Optional[MethodDeclaration]:
    """
    Convert a CXX_METHOD cursor to a MethodDeclaration, or None when it cannot
    be forwarded (static, operator, variadic, non-public).
    """
    name = node.spelling or ""
    if not _is_public(node):
        return None
    if node.is_static_method():
        return None
    if name.startswith("operator"):
        logger.debug("Skipping operator %s::%s", subject, name)
        return None
    if _is_variadic(node):
        logger.warning("Skipping variadic method %s::%s (cannot be forwarded positionally)", subject, name)
        return None

    params = tuple(_type_spelling(a.type) for a in node.get_arguments())
    location = getattr(node, "location", None)
    origin = None
    if location is not None and getattr(location, "file", None) is not None:
        origin = f"{location.file.name}:{location.line}"

    return MethodDeclaration(
        subject_type=subject,
        return_type=_type_spelling(node.result_type),
        method_name=name,
        parameters=params,
        section=section,
        origin=origin,
    )


def _section_for(header: str, section_root: Optional[str]) -> str:
    if not header:
        return ""
    p = Path(header)
    if section_root:
        try:
            return str(p.parent.resolve().relative_to(Path(section_root).resolve()))
        except ValueError:
            pass
    return str(p.parent)


def _collect_class_methods(
    tu: Any,
    include_filters: Optional[List[str]],
    exclude_class_regex: Optional[re.Pattern],
    section_root: Optional[str],
) -> Dict[str, List[MethodDeclaration]]:
    """
    Traverse the TU and collect declarations per class, in source order.
    """
    by_class: Dict[str, List[MethodDeclaration]] = {}

    def visit(node: Any) -> None:
        if not _should_consider_location(node, include_filters):
            return

        kind_name = _kind_name(node)
        if kind_name in _CLASS_KINDS and node.is_definition() and node.spelling:
            if not _is_public(node) and _kind_name(getattr(node, "semantic_parent", None)) in _CLASS_KINDS:
                logger.info("Skipping non-public nested %s '%s'", kind_name.lower(), node.spelling)
            elif exclude_class_regex is not None and exclude_class_regex.search(node.spelling):
                logger.info("Excluding class '%s' due to exclude regex", node.spelling)
            else:
                subject = _qualified_name(node)
                section = _section_for(getattr(node.location.file, "name", ""), section_root)
                methods = by_class.setdefault(subject, [])
                for c in node.get_children():
                    ck = _kind_name(c)
                    if ck == "FUNCTION_TEMPLATE":
                        logger.warning("Skipping member template %s::%s (not supported by generator)", subject, c.spelling)
                    elif ck == "CXX_METHOD":
                        decl = _method_declaration(c, subject, section)
                        if decl is not None:
                            methods.append(decl)

        for c in node.get_children():
            visit(c)

    root = getattr(tu, "cursor", None)
    if root is not None:
        visit(root)
    return by_class


def assign_overload_tags(methods: List[MethodDeclaration]) -> List[MethodDeclaration]:
    """
    Give overloads of one class deterministic tags.

    Methods sharing a name are ordered by their parameter list; the first keeps
    the empty tag and the others get _1, _2, ... Source order is preserved.
    """
    groups: Dict[str, List[int]] = {}
    for i, m in enumerate(methods):
        groups.setdefault(m.method_name, []).append(i)

    tagged = list(methods)
    for idxs in groups.values():
        if len(idxs) <= 1:
            continue
        ordered = sorted(idxs, key=lambda j: (len(methods[j].parameters), ",".join(methods[j].parameters)))
        for order, j in enumerate(ordered):
            if order == 0:
                continue
            m = methods[j]
            tagged[j] = MethodDeclaration(
                subject_type=m.subject_type,
                return_type=m.return_type,
                method_name=m.method_name,
                parameters=m.parameters,
                overload_tag=f"_{order}",
                section=m.section,
                origin=m.origin,
            )
    return tagged


def alias_composite_types(
    declarations: Iterable[MethodDeclaration],
    existing: Iterable[TypeAlias] = (),
) -> Tuple[List[TypeAlias], List[MethodDeclaration]]:
    """
    Replace every composite type spelling that contains a top-level separator
    with a generated alias. Returns the new aliases and the rewritten declarations.
    Existing aliases are reused when their underlying spelling matches.
    """
    by_underlying: Dict[str, str] = {a.underlying: a.name for a in existing}
    used_names = set(by_underlying.values())
    created: List[TypeAlias] = []

    def alias_for(spelling: str) -> str:
        if not has_top_level_separator(spelling):
            return spelling
        # Keep the declarator and const outside the alias: 'const Pair<a, b>&' -> 'const PairAB&'
        m = re.match(r"^(const\s+)?(.*?)(\s*[&*]+)?$", spelling)
        lead, core, tail = (m.group(1) or ""), m.group(2), (m.group(3) or "").strip()
        name = by_underlying.get(core)
        if name is None:
            base = alias_name_for(core)
            name = base
            n = 2
            while name in used_names:
                name = f"{base}{n}"
                n += 1
            used_names.add(name)
            by_underlying[core] = name
            created.append(TypeAlias(name=name, underlying=core, position=0))
        return f"{lead}{name}{tail}"

    rewritten: List[MethodDeclaration] = []
    for d in declarations:
        rewritten.append(
            MethodDeclaration(
                subject_type=d.subject_type,
                return_type=alias_for(d.return_type),
                method_name=d.method_name,
                parameters=tuple(alias_for(p) for p in d.parameters),
                overload_tag=d.overload_tag,
                section=d.section,
                origin=d.origin,
            )
        )
    return created, rewritten


# --------------------------
# Public API
# --------------------------

def collect_declarations_from_headers(
    headers: Iterable[Path],
    clang_args: List[str],
    include_filters: Optional[List[str]] = None,
    exclude_class_regex: Optional[re.Pattern] = None,
    section_root: Optional[str] = None,
    emit_diagnostics: bool = True,
) -> List[MethodDeclaration]:
    """
    Parse headers and return one declaration per forwardable method.

    Parameters:
    - headers: header files to parse (directories must be expanded by the caller).
    - clang_args: command line arguments for clang (include paths, defines, -std, etc.).
    - include_filters: if provided, only classes defined under one of these prefixes are used.
    - exclude_class_regex: classes whose name matches are skipped.
    - section_root: directory that section names are made relative to.
    - emit_diagnostics: whether to log clang diagnostics.

    Classes are returned sorted by name; methods keep source order.
    """
    ensure_libclang_loaded()

    filters = [str(Path(f).resolve()) for f in (include_filters or [])]
    by_class: Dict[str, List[MethodDeclaration]] = {}

    for header in headers:
        tu = parse_translation_unit(header, clang_args)
        if emit_diagnostics:
            for diag in tu.diagnostics:
                logger.warning("[clang] %s", diag)

        found = _collect_class_methods(tu, filters or None, exclude_class_regex, section_root)
        for subject, methods in found.items():
            # The same class is seen from every header that includes it
            if subject not in by_class or (not by_class[subject] and methods):
                by_class[subject] = methods

    declarations: List[MethodDeclaration] = []
    for subject in sorted(by_class):
        declarations.extend(assign_overload_tags(by_class[subject]))
    logger.info("Discovered %d method(s) on %d class(es)", len(declarations), len(by_class))
    return declarations


__all__ = [
    "alias_composite_types",
    "assign_overload_tags",
    "collect_declarations_from_headers",
    "ensure_libclang_loaded",
    "parse_translation_unit",
]
