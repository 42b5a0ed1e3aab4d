from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..snapshot import BenchmarkRun


class ItemOutcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    INVALID = "invalid"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ItemResult:
    group: str
    path: str
    mode: str
    outcome: ItemOutcome
    metrics_count: int = 0
    duration_s: float = 0.0
    error: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data


@dataclass
class RunSummary:
    results: list[ItemResult]
    run: BenchmarkRun
    elapsed_s: float
    cancelled: bool = False
    interrupted: bool = False
    counts: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.counts:
            self.counts = {outcome.value: 0 for outcome in ItemOutcome}
            for result in self.results:
                self.counts[result.outcome.value] += 1

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return self.counts[ItemOutcome.PASSED.value]

    @property
    def failed(self) -> int:
        return self.counts[ItemOutcome.FAILED.value]

    @property
    def invalid(self) -> int:
        return self.counts[ItemOutcome.INVALID.value]

    @property
    def skipped(self) -> int:
        return self.counts[ItemOutcome.SKIPPED.value]

    @property
    def has_failures(self) -> bool:
        return self.failed > 0 or self.invalid > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            **self.counts,
            "cancelled": self.cancelled,
            "interrupted": self.interrupted,
            "elapsed_s": round(self.elapsed_s, 3),
            "groups": len(self.run),
            "results": [r.to_dict() for r in self.results],
        }
