#!/usr/bin/env python3
"""
Data models for the proxy binding generator.

This module provides small, serializable data structures to describe:
- C++ types (spelling plus value/reference/pointer category)
- Type aliases registered for composite types
- Method declarations (one row of the signature table)
- Exclusion notes (skipped components, methods not exposed yet)
- Generation context (paths, export macro, calling convention, flags)

The models are consumed by:
- The table parser and the header scanner (to populate instances)
- The synthesizer and the emitters/templates (Jinja2) to render trampolines
- The manifest and coverage report

Spellings are always kept verbatim: the generator never rewrites a declared
type, it only classifies it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidDeclarationError
from .utils import is_c_identifier, stable_signature_hash

# --------------------------
# C++ Type model
# --------------------------

class TypeCategory(Enum):
    VALUE = "value"
    REFERENCE = "reference"
    POINTER = "pointer"


_IDENTIFIER_TOKEN = re.compile(r"[A-Za-z_]\w*")


@dataclass(frozen=True)
class CppType:
    """
    A C++ type spelling with its category.

    The category is read from the outermost declarator, so
    'const FlatHashSet<IPlayer*>&' is a reference and 'IPlayer*' a pointer.
    """
    spelling: str
    category: TypeCategory = TypeCategory.VALUE
    is_const: bool = False

    @staticmethod
    def from_spelling(spelling: str) -> CppType:
        s = " ".join((spelling or "").split())
        if s.endswith("&"):
            category = TypeCategory.REFERENCE
        elif s.endswith("*"):
            category = TypeCategory.POINTER
        else:
            category = TypeCategory.VALUE
        return CppType(
            spelling=s,
            category=category,
            is_const=re.search(r"\bconst\b", s) is not None,
        )

    @property
    def is_void(self) -> bool:
        return self.spelling == "void"

    @property
    def base_spelling(self) -> str:
        """
        Spelling without the outer declarator and leading const:
        'const FlatHashSet<IPlayer*>&' -> 'FlatHashSet<IPlayer*>'
        """
        s = self.spelling.rstrip("&*").strip()
        if s.startswith("const "):
            s = s[len("const "):].strip()
        if s.endswith(" const"):
            s = s[: -len(" const")].strip()
        return s

    @property
    def identifiers(self) -> Tuple[str, ...]:
        return tuple(_IDENTIFIER_TOKEN.findall(self.spelling))

    def to_dict(self) -> Dict:
        return {
            "spelling": self.spelling,
            "category": self.category.value,
            "is_const": self.is_const,
        }


# --------------------------
# Aliases and exclusions
# --------------------------

@dataclass(frozen=True)
class TypeAlias:
    """
    A single-token name bound once to a composite type.

    `position` is the number of declarations registered before the alias;
    a declaration at an index lower than that uses it before it exists.
    """
    name: str
    underlying: str
    position: int = 0
    origin: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "underlying": self.underlying,
            "origin": self.origin,
        }


class ExclusionKind(Enum):
    SKIP = "skip"
    TODO = "todo"


@dataclass(frozen=True)
class Exclusion:
    kind: ExclusionKind
    note: str = ""
    section: str = ""
    origin: Optional[str] = None

    @property
    def names(self) -> Tuple[str, ...]:
        """Identifiers mentioned by the note (method or interface names)."""
        return tuple(_IDENTIFIER_TOKEN.findall(self.note))

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.value,
            "note": self.note,
            "section": self.section,
            "origin": self.origin,
        }


# --------------------------
# Method declarations
# --------------------------

def symbol_name(subject_type: str, method_name: str, overload_tag: str = "") -> str:
    """
    External symbol for a declaration: '<Subject>_<method><tag>'.

    Namespace separators in the subject become underscores, the default
    empty tag is omitted and any other tag is appended verbatim.
    """
    subject = subject_type.rstrip("&*").strip().replace("::", "_")
    return f"{subject}_{method_name}{overload_tag or ''}"


@dataclass(frozen=True)
class MethodDeclaration:
    """
    One row of the signature table: a method on an interface type to expose
    as a flat forwarding symbol. Overloads are separate rows told apart by
    `overload_tag`.
    """
    subject_type: str
    return_type: str
    method_name: str
    parameters: Tuple[str, ...] = ()
    overload_tag: str = ""
    section: str = ""
    origin: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept any sequence but keep the frozen instance hashable
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.subject_name, self.method_name, self.overload_tag)

    @property
    def subject_name(self) -> str:
        return self.subject_type.rstrip("&*").strip()

    @property
    def subject_by_reference(self) -> bool:
        return self.subject_type.strip().endswith("&")

    @property
    def subject_parameter_type(self) -> str:
        return f"{self.subject_name}&" if self.subject_by_reference else f"{self.subject_name}*"

    @property
    def symbol(self) -> str:
        return symbol_name(self.subject_name, self.method_name, self.overload_tag)

    @property
    def returns(self) -> CppType:
        return CppType.from_spelling(self.return_type)

    @property
    def parameter_types(self) -> List[CppType]:
        return [CppType.from_spelling(p) for p in self.parameters]

    @property
    def cpp_signature(self) -> str:
        """
        Human-friendly signature used in diagnostics and generated docstrings.
        """
        params = ", ".join(self.parameters)
        return f"{self.return_type} {self.subject_name}::{self.method_name}({params})"

    @property
    def signature_hash(self) -> str:
        return stable_signature_hash(f"{self.symbol}|{self.return_type}|{','.join(self.parameters)}")

    def check_names(self) -> None:
        """
        Raise InvalidDeclarationError unless subject, method and symbol are identifiers.
        """
        subject = self.subject_name.replace("::", "_")
        if not is_c_identifier(subject):
            raise InvalidDeclarationError(f"invalid subject type '{self.subject_type}'", self.origin)
        if not is_c_identifier(self.method_name):
            raise InvalidDeclarationError(f"invalid method name '{self.method_name}'", self.origin)
        if not self.return_type.strip():
            raise InvalidDeclarationError(f"missing return type for {subject}::{self.method_name}", self.origin)
        if not is_c_identifier(self.symbol):
            raise InvalidDeclarationError(
                f"overload tag {self.overload_tag!r} does not produce a valid symbol ('{self.symbol}')",
                self.origin,
            )

    def to_dict(self) -> Dict:
        return {
            "subject_type": self.subject_type,
            "return_type": self.returns.to_dict(),
            "method_name": self.method_name,
            "overload_tag": self.overload_tag,
            "parameters": [p.to_dict() for p in self.parameter_types],
            "symbol": self.symbol,
            "section": self.section,
            "origin": self.origin,
        }


# --------------------------
# Generation context
# --------------------------

@dataclass
class GenerationContext:
    """
    Parameters for a single generation run.

    Paths are absolute. Emitters should rely on these rather than guessing.
    """
    output_dir: Path
    templates_dir: Optional[Path] = None
    output_stem: str = "proxies"
    export_macro: str = "SDK_EXPORT"
    calling_convention: str = "__CDECL"
    extra_includes: List[str] = field(default_factory=list)
    emit_python: bool = False
    dry_run: bool = False

    @property
    def cpp_path(self) -> Path:
        return self.output_dir / f"{self.output_stem}.cpp"

    @property
    def python_path(self) -> Path:
        return self.output_dir / f"{self.output_stem}.py"

    def to_dict(self) -> Dict:
        return {
            "output_dir": str(self.output_dir),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "output_stem": self.output_stem,
            "export_macro": self.export_macro,
            "calling_convention": self.calling_convention,
            "extra_includes": list(self.extra_includes),
            "emit_python": self.emit_python,
            "dry_run": self.dry_run,
        }


# --------------------------
# Template convenience helpers
# --------------------------

def build_template_context(
    ctx: GenerationContext,
    includes: Sequence[str],
    aliases: Iterable[TypeAlias],
    trampolines: Iterable,
) -> Dict:
    """
    Produce a flattened context dict to pass to Jinja2 templates.
    Keeps the surface small and stable across templates.
    """
    all_includes: List[str] = []
    for inc in list(includes) + list(ctx.extra_includes):
        if inc not in all_includes:
            all_includes.append(inc)
    return {
        "module_name": ctx.output_stem,
        "export_macro": ctx.export_macro,
        "calling_convention": ctx.calling_convention,
        "includes": all_includes,
        "aliases": [a.to_dict() for a in aliases],
        "trampolines": [t.to_dict() for t in trampolines],
    }


__all__ = [
    "CppType",
    "Exclusion",
    "ExclusionKind",
    "GenerationContext",
    "MethodDeclaration",
    "TypeAlias",
    "TypeCategory",
    "build_template_context",
    "symbol_name",
]
