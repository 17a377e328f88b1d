"""
Arity expansion for trampoline parameter lists.

Given the declared parameter types of a method (0 to MAX_ARITY of them) this
module produces the two token sequences a trampoline needs:

- the formal list, one (type, positional name) pair per parameter, used in
  the trampoline's own signature;
- the actual list, the positional names alone, forwarded to the wrapped call.

Both are in declaration order and positional names are `_1` .. `_N`.

The parameter count is recovered by padding the supplied types with the
descending marker sequence MAX_ARITY .. 0 and reading whatever lands at index
MAX_ARITY. The same call works for every count from 0 to MAX_ARITY, and a
type (instead of a marker) at that index means the limit was exceeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import AliasRequiredError, ArityLimitError, ArityMismatchError

MAX_ARITY = 10
ARITY_MARKERS: Tuple[int, ...] = tuple(range(MAX_ARITY, -1, -1))

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """
    Split at separators outside (), [] and {}, the way a C preprocessor
    splits macro arguments. Angle brackets do not nest here, so
    'Pair<int, int>' yields two pieces. Pieces are stripped.
    """
    pieces: List[str] = []
    depth: List[str] = []
    current: List[str] = []
    for ch in text:
        if ch in _OPENERS:
            depth.append(ch)
        elif ch in _CLOSERS and depth and depth[-1] == _CLOSERS[ch]:
            depth.pop()
        if ch == separator and not depth:
            pieces.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    pieces.append("".join(current).strip())
    return pieces


def has_top_level_separator(spelling: str) -> bool:
    return len(split_top_level(spelling)) > 1


def _angle_balance(spelling: str) -> int:
    depth = 0
    for ch in spelling:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth < 0:
                return depth
    return depth


def check_type_spelling(spelling: str, origin: Optional[str] = None) -> None:
    """
    Reject spellings that would break positional counting.

    A raw composite such as 'Pair<int, int>' needs an alias; a piece such as
    'Pair<int' or 'int>' is what remains of one after it was split at its
    separator, so the declared count no longer matches the real one.
    """
    if not spelling or not spelling.strip():
        raise ArityMismatchError("empty type in parameter list", origin)
    if has_top_level_separator(spelling):
        raise AliasRequiredError(
            f"composite type '{spelling}' contains a top-level separator; "
            "register it as a type alias before use",
            origin,
        )
    if _angle_balance(spelling) != 0:
        raise ArityMismatchError(
            f"type '{spelling}' has unbalanced template brackets; a composite type was split "
            "at its separator, register it as a type alias before use",
            origin,
        )


def count_arity(parameter_types: Sequence[str], origin: Optional[str] = None) -> int:
    """
    Number of supplied parameter types, read off the descending marker padding.
    """
    padded = (*parameter_types, *ARITY_MARKERS)
    marker = padded[MAX_ARITY]
    if not isinstance(marker, int):
        raise ArityLimitError(
            f"{len(parameter_types)} parameters declared; at most {MAX_ARITY} are supported",
            origin,
        )
    return marker


def positional_name(index: int) -> str:
    return f"_{index}"


@dataclass(frozen=True)
class ArityExpansion:
    formal: Tuple[Tuple[str, str], ...]
    actual: Tuple[str, ...]

    @property
    def arity(self) -> int:
        return len(self.actual)


def expand_parameters(parameter_types: Sequence[str], origin: Optional[str] = None) -> ArityExpansion:
    """
    Expand N parameter types into the formal and actual lists.

    Raises ArityLimitError above MAX_ARITY, AliasRequiredError for raw
    composites and ArityMismatchError when the lists disagree with N.
    """
    types = tuple(parameter_types)
    n = count_arity(types, origin)
    for t in types:
        check_type_spelling(t, origin)

    formal = tuple((types[i], positional_name(i + 1)) for i in range(n))
    actual = tuple(name for _, name in formal)

    if not (len(formal) == len(actual) == len(types)):
        raise ArityMismatchError(
            f"formal/actual parameter count mismatch: {len(formal)} formal, "
            f"{len(actual)} actual, {len(types)} declared",
            origin,
        )
    return ArityExpansion(formal=formal, actual=actual)


__all__ = [
    "ARITY_MARKERS",
    "ArityExpansion",
    "MAX_ARITY",
    "check_type_spelling",
    "count_arity",
    "expand_parameters",
    "has_top_level_separator",
    "positional_name",
    "split_top_level",
]
