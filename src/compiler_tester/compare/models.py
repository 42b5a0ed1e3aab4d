import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Classification(str, Enum):
    IMPROVED = "improved"
    REGRESSED = "regressed"
    NEUTRAL = "neutral"


class DiagnosticKind(str, Enum):
    MISSING_IN_CANDIDATE = "missing_in_candidate"
    MISSING_IN_REFERENCE = "missing_in_reference"
    METRIC_MISSING = "metric_missing"
    FILTERED = "filtered"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    group: str
    side: str = ""
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "group": self.group,
            "side": self.side,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class ComparisonEntry:
    key: str
    metric: str
    reference: float
    candidate: float
    delta: float
    classification: Classification
    unit: str = ""
    reference_group: str = ""
    candidate_group: str = ""

    @property
    def sort_key(self) -> tuple[float, str, str]:
        return (-abs(self.delta), self.key, self.metric)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "metric": self.metric,
            "unit": self.unit,
            "reference": self.reference,
            "candidate": self.candidate,
            "delta": _json_number(self.delta),
            "classification": self.classification.value,
            "reference_group": self.reference_group,
            "candidate_group": self.candidate_group,
        }


@dataclass(frozen=True)
class MetricStats:
    metric: str
    count: int
    improved: int
    regressed: int
    neutral: int
    geomean: float | None
    total: float | None
    best: float | None
    worst: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "count": self.count,
            "improved": self.improved,
            "regressed": self.regressed,
            "neutral": self.neutral,
            "geomean": self.geomean,
            "total": _json_number(self.total),
            "best": _json_number(self.best),
            "worst": _json_number(self.worst),
        }


def _json_number(value: float | None) -> float | str | None:
    # JSON has no infinity
    if value is not None and math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return value


@dataclass(frozen=True)
class ComparisonReport:
    entries: tuple[ComparisonEntry, ...]
    diagnostics: tuple[Diagnostic, ...] = ()
    stats: dict[str, MetricStats] = field(default_factory=dict)
    tolerance: float = 0.0
    reference_name: str = "reference"
    candidate_name: str = "candidate"

    def sorted_entries(self, limit: int | None = None) -> list[ComparisonEntry]:
        """Largest absolute change first; ties by key, then metric."""
        ordered = sorted(self.entries, key=lambda e: e.sort_key)
        return ordered if limit is None else ordered[:limit]

    def by_classification(self, classification: Classification) -> list[ComparisonEntry]:
        return [e for e in self.entries if e.classification is classification]

    @property
    def regressions(self) -> list[ComparisonEntry]:
        return self.by_classification(Classification.REGRESSED)

    @property
    def improvements(self) -> list[ComparisonEntry]:
        return self.by_classification(Classification.IMPROVED)

    def counts(self) -> dict[str, int]:
        counts = {c.value: 0 for c in Classification}
        for entry in self.entries:
            counts[entry.classification.value] += 1
        counts["diagnostics"] = len(self.diagnostics)
        return counts

    def exceeds(self, threshold: float) -> bool:
        """True when any regression is larger than the failure threshold."""
        return any(abs(entry.delta) > threshold for entry in self.regressions)

    def to_dict(self, limit: int | None = None) -> dict[str, Any]:
        return {
            "reference": self.reference_name,
            "candidate": self.candidate_name,
            "tolerance": self.tolerance,
            "counts": self.counts(),
            "stats": [self.stats[name].to_dict() for name in sorted(self.stats)],
            "entries": [e.to_dict() for e in self.sorted_entries(limit)],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
