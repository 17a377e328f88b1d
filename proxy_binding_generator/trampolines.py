"""
Trampoline synthesis: one validated declaration in, one forwarding function description out.

A Trampoline carries everything an emitter needs to render the function in a
target language: its symbol, the subject parameter, the formal list, the
actual list forwarded to the single call, and the declared return type,
which is emitted verbatim so reference returns stay references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .arity import ArityExpansion, expand_parameters
from .errors import ArityMismatchError
from .models import MethodDeclaration
from .table import SignatureTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trampoline:
    declaration: MethodDeclaration
    expansion: ArityExpansion

    @property
    def symbol(self) -> str:
        return self.declaration.symbol

    @property
    def arity(self) -> int:
        return self.expansion.arity

    @property
    def formal(self) -> Tuple[Tuple[str, str], ...]:
        return self.expansion.formal

    @property
    def actual(self) -> Tuple[str, ...]:
        return self.expansion.actual

    def to_dict(self) -> Dict:
        d = self.declaration
        return {
            "symbol": self.symbol,
            "subject_type": d.subject_name,
            "subject_parameter_type": d.subject_parameter_type,
            "subject_by_reference": d.subject_by_reference,
            "method_name": d.method_name,
            "overload_tag": d.overload_tag,
            "return_type": d.return_type,
            "return_category": d.returns.category.value,
            "returns_void": d.returns.is_void,
            "formal": [{"type": t, "name": n} for t, n in self.formal],
            "actual": list(self.actual),
            "arity": self.arity,
            "cpp_signature": d.cpp_signature,
            "signature_hash": d.signature_hash,
            "section": d.section,
            "origin": d.origin,
        }


def synthesize(declaration: MethodDeclaration) -> Trampoline:
    """
    Build the trampoline for a single declaration.

    Only the declaration itself is checked here; uniqueness across a table is
    the job of SignatureTable.validate (see synthesize_table).
    """
    declaration.check_names()
    expansion = expand_parameters(declaration.parameters, declaration.origin)
    if expansion.arity != len(declaration.parameters):
        raise ArityMismatchError(
            f"{declaration.symbol}: expanded {expansion.arity} parameter(s), declared {len(declaration.parameters)}",
            declaration.origin,
        )
    return Trampoline(declaration=declaration, expansion=expansion)


def synthesize_table(table: SignatureTable) -> List[Trampoline]:
    """
    Validate the whole table, then synthesize every declaration in table order.
    Nothing is synthesized when validation fails.
    """
    table.validate()
    trampolines = [synthesize(decl) for decl in table]
    logger.info("Synthesized %d trampoline(s) for %d subject type(s)", len(trampolines), len(table.subjects()))
    return trampolines


__all__ = [
    "Trampoline",
    "synthesize",
    "synthesize_table",
]
