"""
Coverage of a signature table against the methods discovered in headers.

A discovered method is covered when the table declares the same subject,
method name and parameter spellings. Uncovered methods are classified by the
table's exclusion notes: a `todo` note naming the method (or its subject)
makes it pending, a `skip` note makes it excluded, anything else is missing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Exclusion, ExclusionKind, MethodDeclaration
from .table import SignatureTable

logger = logging.getLogger(__name__)


class CoverageStatus(Enum):
    MISSING = "missing"
    PENDING = "pending"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class UncoveredMethod:
    declaration: MethodDeclaration
    status: CoverageStatus
    note: Optional[Exclusion] = None

    def to_dict(self) -> Dict:
        return {
            "subject": self.declaration.subject_name,
            "method": self.declaration.method_name,
            "signature": self.declaration.cpp_signature,
            "status": self.status.value,
            "note": self.note.note if self.note else None,
            "origin": self.declaration.origin,
        }


@dataclass
class CoverageReport:
    discovered: int = 0
    covered: int = 0
    uncovered: List[UncoveredMethod] = field(default_factory=list)
    # Table rows that no discovered method matches (renamed or removed upstream)
    stale: List[MethodDeclaration] = field(default_factory=list)

    def by_status(self, status: CoverageStatus) -> List[UncoveredMethod]:
        return [u for u in self.uncovered if u.status is status]

    @property
    def missing(self) -> List[MethodDeclaration]:
        return [u.declaration for u in self.by_status(CoverageStatus.MISSING)]

    @property
    def ratio(self) -> float:
        return self.covered / self.discovered if self.discovered else 1.0

    def to_dict(self) -> Dict:
        return {
            "discovered": self.discovered,
            "covered": self.covered,
            "ratio": round(self.ratio, 4),
            "counts": {s.value: len(self.by_status(s)) for s in CoverageStatus},
            "uncovered": [u.to_dict() for u in self.uncovered],
            "stale": [d.symbol for d in self.stale],
        }


_PUNCTUATION_SPACING = re.compile(r"\s*([&*<>,()])\s*")


def normalize_spelling(spelling: str) -> str:
    """
    Canonical spelling for comparison: libclang writes 'const AnimationData &' and
    'Pair<int, int>' where a table may write 'const AnimationData&' and 'Pair<int,int>'.
    """
    return _PUNCTUATION_SPACING.sub(r"\1", " ".join(spelling.split()))


def _match_key(decl: MethodDeclaration) -> Tuple[str, str, Tuple[str, ...]]:
    return (decl.subject_name, decl.method_name, tuple(normalize_spelling(p) for p in decl.parameters))


def _find_note(decl: MethodDeclaration, exclusions: Iterable[Exclusion]) -> Optional[Exclusion]:
    # A note naming the method wins over one naming only the subject
    by_subject: Optional[Exclusion] = None
    for ex in exclusions:
        names = ex.names
        if decl.method_name in names:
            return ex
        if by_subject is None and decl.subject_name in names:
            by_subject = ex
    return by_subject


def compute_coverage(
    table: SignatureTable,
    discovered: Iterable[MethodDeclaration],
    aliases: Optional[Dict[str, str]] = None,
) -> CoverageReport:
    """
    Compare discovered methods with the table.

    `aliases` maps composite spellings to alias names so a discovered
    'Pair<int, int>' matches a table row written with 'IntPair'. The table's
    own aliases are always used.
    """
    underlying_to_alias = {normalize_spelling(a.underlying): a.name for a in table.aliases}
    underlying_to_alias.update({normalize_spelling(k): v for k, v in (aliases or {}).items()})

    def normalize(decl: MethodDeclaration) -> Tuple[str, str, Tuple[str, ...]]:
        subject, method, params = _match_key(decl)
        return subject, method, tuple(_apply_aliases(p, underlying_to_alias) for p in params)

    declared = {_match_key(d): d for d in table}
    matched: set = set()
    report = CoverageReport()

    for decl in discovered:
        report.discovered += 1
        key = normalize(decl)
        if key in declared:
            report.covered += 1
            matched.add(key)
            continue
        note = _find_note(decl, table.exclusions)
        if note is None:
            status = CoverageStatus.MISSING
        elif note.kind is ExclusionKind.TODO:
            status = CoverageStatus.PENDING
        else:
            status = CoverageStatus.EXCLUDED
        report.uncovered.append(UncoveredMethod(declaration=decl, status=status, note=note))

    discovered_subjects = {u.declaration.subject_name for u in report.uncovered}
    discovered_subjects.update(k[0] for k in matched)
    report.stale = [d for k, d in declared.items() if k not in matched and d.subject_name in discovered_subjects]

    logger.info(
        "Coverage: %d/%d discovered method(s) declared (%d missing, %d pending, %d excluded)",
        report.covered,
        report.discovered,
        len(report.by_status(CoverageStatus.MISSING)),
        len(report.by_status(CoverageStatus.PENDING)),
        len(report.by_status(CoverageStatus.EXCLUDED)),
    )
    for d in report.stale:
        logger.debug("Declared but not discovered: %s", d.cpp_signature)
    return report


def _apply_aliases(spelling: str, underlying_to_alias: Dict[str, str]) -> str:
    for underlying, name in underlying_to_alias.items():
        if underlying in spelling:
            spelling = spelling.replace(underlying, name)
    return spelling


__all__ = [
    "CoverageReport",
    "CoverageStatus",
    "UncoveredMethod",
    "compute_coverage",
    "normalize_spelling",
]
