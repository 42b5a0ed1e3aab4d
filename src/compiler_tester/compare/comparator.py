import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ..snapshot import BenchmarkRun, load_snapshot
from .models import (
    Classification,
    ComparisonEntry,
    ComparisonReport,
    Diagnostic,
    DiagnosticKind,
    MetricStats,
)
from .query import Query

logger = logging.getLogger(__name__)

REFERENCE = "reference"
CANDIDATE = "candidate"


def relative_delta(reference: float, candidate: float) -> float:
    """Relative change from reference to candidate.

    Zero when both are zero; signed infinity when only the reference is zero.
    """
    if reference == 0:
        if candidate == 0:
            return 0.0
        return math.copysign(math.inf, candidate)
    return (candidate - reference) / reference


def classify(delta: float, tolerance: float, higher_is_better: bool = False) -> Classification:
    if abs(delta) <= tolerance:
        return Classification.NEUTRAL
    worse = delta < 0 if higher_is_better else delta > 0
    return Classification.REGRESSED if worse else Classification.IMPROVED


def _index(
    run: BenchmarkRun,
    query: Query,
    side: str,
    diagnostics: list[Diagnostic],
) -> dict[str, str]:
    """Map pairing key -> group for one side, dropping filtered and ambiguous groups."""
    keys: dict[str, list[str]] = defaultdict(list)
    extract = query.reference_key if side == REFERENCE else query.candidate_key
    for group in run.group_names:
        key = extract(group)
        if key is None:
            diagnostics.append(
                Diagnostic(DiagnosticKind.FILTERED, group, side, f"{side} query does not match")
            )
            continue
        keys[key].append(group)

    index: dict[str, str] = {}
    for key, groups in keys.items():
        if len(groups) > 1:
            for group in groups:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.AMBIGUOUS,
                        group,
                        side,
                        f"key {key!r} matches {len(groups)} groups",
                    )
                )
            continue
        index[key] = groups[0]
    return index


def _stats(metric: str, entries: list[ComparisonEntry], higher_is_better: bool) -> MetricStats:
    ratios = [e.candidate / e.reference for e in entries if e.reference > 0 and e.candidate > 0]
    geomean = math.exp(sum(math.log(r) for r in ratios) / len(ratios)) if ratios else None
    reference_sum = sum(e.reference for e in entries)
    # Change of the summed metric, as in size or gas totals across a suite
    total = sum(e.candidate for e in entries) / reference_sum - 1 if reference_sum else None
    deltas = [e.delta for e in entries]
    best, worst = (max, min) if higher_is_better else (min, max)
    return MetricStats(
        metric=metric,
        count=len(entries),
        improved=sum(1 for e in entries if e.classification is Classification.IMPROVED),
        regressed=sum(1 for e in entries if e.classification is Classification.REGRESSED),
        neutral=sum(1 for e in entries if e.classification is Classification.NEUTRAL),
        geomean=geomean,
        total=total,
        best=best(deltas) if deltas else None,
        worst=worst(deltas) if deltas else None,
    )


class BenchmarkComparator:
    """Compare a candidate snapshot against a reference snapshot.

    Args:
        tolerance: Relative change treated as noise (0.05 == 5%).
        query: Optional regex pairing; by default groups pair by identity.
        higher_is_better: Metric names where an increase is an improvement.
    """

    def __init__(
        self,
        tolerance: float = 0.0,
        query: Query | None = None,
        higher_is_better: Iterable[str] = (),
    ) -> None:
        if tolerance < 0 or math.isnan(tolerance):
            raise ValueError("tolerance must be >= 0")
        self.tolerance = tolerance
        self.query = query or Query()
        self.higher_is_better = frozenset(higher_is_better)

    def compare(
        self,
        reference: BenchmarkRun,
        candidate: BenchmarkRun,
        *,
        reference_name: str = REFERENCE,
        candidate_name: str = CANDIDATE,
    ) -> ComparisonReport:
        diagnostics: list[Diagnostic] = []
        ref_index = _index(reference, self.query, REFERENCE, diagnostics)
        cand_index = _index(candidate, self.query, CANDIDATE, diagnostics)

        for key in sorted(ref_index.keys() - cand_index.keys()):
            diagnostics.append(
                Diagnostic(DiagnosticKind.MISSING_IN_CANDIDATE, ref_index[key], REFERENCE)
            )
        for key in sorted(cand_index.keys() - ref_index.keys()):
            diagnostics.append(
                Diagnostic(DiagnosticKind.MISSING_IN_REFERENCE, cand_index[key], CANDIDATE)
            )

        entries: list[ComparisonEntry] = []
        for key in sorted(ref_index.keys() & cand_index.keys()):
            ref_group, cand_group = ref_index[key], cand_index[key]
            ref_metrics = reference.metrics(ref_group)
            cand_metrics = candidate.metrics(cand_group)
            for name in sorted(ref_metrics.keys() ^ cand_metrics.keys()):
                side = REFERENCE if name in ref_metrics else CANDIDATE
                group = ref_group if side == REFERENCE else cand_group
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.METRIC_MISSING, group, side, f"only {side} has {name!r}"
                    )
                )
            for name in sorted(ref_metrics.keys() & cand_metrics.keys()):
                ref_value = float(ref_metrics[name].value)
                cand_value = float(cand_metrics[name].value)
                delta = relative_delta(ref_value, cand_value)
                entries.append(
                    ComparisonEntry(
                        key=key,
                        metric=name,
                        reference=ref_value,
                        candidate=cand_value,
                        delta=delta,
                        classification=classify(
                            delta, self.tolerance, name in self.higher_is_better
                        ),
                        unit=ref_metrics[name].unit or cand_metrics[name].unit,
                        reference_group=ref_group,
                        candidate_group=cand_group,
                    )
                )

        per_metric: dict[str, list[ComparisonEntry]] = defaultdict(list)
        for entry in entries:
            per_metric[entry.metric].append(entry)
        stats = {
            name: _stats(name, items, name in self.higher_is_better)
            for name, items in sorted(per_metric.items())
        }

        if diagnostics:
            logger.info("Comparison produced %d diagnostics", len(diagnostics))
        return ComparisonReport(
            entries=tuple(entries),
            diagnostics=tuple(diagnostics),
            stats=stats,
            tolerance=self.tolerance,
            reference_name=reference_name,
            candidate_name=candidate_name,
        )

    def compare_paths(self, reference: Path | str, candidate: Path | str) -> ComparisonReport:
        """Load both snapshots in parallel, then compare them.

        Raises:
            SnapshotIOError: Either snapshot could not be read.
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            ref_future = pool.submit(load_snapshot, reference)
            cand_future = pool.submit(load_snapshot, candidate)
            ref_run = ref_future.result()
            cand_run = cand_future.result()
        return self.compare(
            ref_run, cand_run, reference_name=str(reference), candidate_name=str(candidate)
        )
