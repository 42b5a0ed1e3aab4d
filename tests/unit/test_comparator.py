import json
import math
from pathlib import Path

import pytest

from compiler_tester.compare import (
    BenchmarkComparator,
    Classification,
    DiagnosticKind,
    Query,
    QueryError,
    classify,
    relative_delta,
)


class TestRelativeDelta:
    def test_basic(self) -> None:
        assert relative_delta(100.0, 120.0) == pytest.approx(0.2)
        assert relative_delta(100.0, 90.0) == pytest.approx(-0.1)

    def test_both_zero(self) -> None:
        assert relative_delta(0.0, 0.0) == 0.0

    def test_zero_reference(self) -> None:
        assert relative_delta(0.0, 5.0) == math.inf
        assert relative_delta(0.0, -5.0) == -math.inf

    def test_classify(self) -> None:
        assert classify(0.2, 0.05) is Classification.REGRESSED
        assert classify(-0.2, 0.05) is Classification.IMPROVED
        assert classify(0.05, 0.05) is Classification.NEUTRAL
        assert classify(0.2, 0.05, higher_is_better=True) is Classification.IMPROVED


class TestBenchmarkComparator:
    def test_self_comparison_is_neutral(self, make_run) -> None:
        run = make_run({"t1::A": {"gas": 100, "size": 10}, "t2::A": {"gas": 0}})
        report = BenchmarkComparator().compare(run, run)

        assert len(report.entries) == 3
        assert all(e.classification is Classification.NEUTRAL for e in report.entries)
        assert all(e.delta == 0 for e in report.entries)
        assert report.diagnostics == ()
        assert not report.exceeds(0.0)

    def test_regression_beyond_tolerance(self, make_run) -> None:
        reference = make_run({"t1::A": {"gas": 100}})
        candidate = make_run({"t1::A": {"gas": 120}})

        (entry,) = BenchmarkComparator(tolerance=0.05).compare(reference, candidate).entries
        assert entry.classification is Classification.REGRESSED
        assert entry.delta == pytest.approx(0.2)
        assert entry.key == "t1::A"

    def test_within_tolerance_is_neutral(self, make_run) -> None:
        reference = make_run({"g": {"gas": 100}})
        candidate = make_run({"g": {"gas": 104}})
        (entry,) = BenchmarkComparator(tolerance=0.05).compare(reference, candidate).entries
        assert entry.classification is Classification.NEUTRAL

    def test_higher_is_better(self, make_run) -> None:
        reference = make_run({"g": {"throughput": 100, "gas": 100}})
        candidate = make_run({"g": {"throughput": 120, "gas": 120}})
        report = BenchmarkComparator(higher_is_better=["throughput"]).compare(reference, candidate)
        results = {e.metric: e.classification for e in report.entries}
        assert results == {"gas": Classification.REGRESSED, "throughput": Classification.IMPROVED}

    def test_zero_reference_is_infinite_regression(self, make_run) -> None:
        reference = make_run({"g": {"gas": 0}})
        candidate = make_run({"g": {"gas": 5}})
        report = BenchmarkComparator(tolerance=0.5).compare(reference, candidate)
        assert report.entries[0].delta == math.inf
        assert report.exceeds(1000.0)

    def test_missing_groups_become_diagnostics(self, make_run) -> None:
        reference = make_run({"both": {"gas": 1}, "old": {"gas": 1}})
        candidate = make_run({"both": {"gas": 1}, "new": {"gas": 1}})
        report = BenchmarkComparator().compare(reference, candidate)

        kinds = {(d.kind, d.group) for d in report.diagnostics}
        assert kinds == {
            (DiagnosticKind.MISSING_IN_CANDIDATE, "old"),
            (DiagnosticKind.MISSING_IN_REFERENCE, "new"),
        }
        assert [e.key for e in report.entries] == ["both"]

    def test_metric_on_one_side(self, make_run) -> None:
        reference = make_run({"g": {"gas": 1, "size": 2}})
        candidate = make_run({"g": {"gas": 1}})
        report = BenchmarkComparator().compare(reference, candidate)
        (diagnostic,) = report.diagnostics
        assert diagnostic.kind is DiagnosticKind.METRIC_MISSING
        assert diagnostic.side == "reference"
        assert "size" in diagnostic.detail

    def test_exceeds_threshold(self, make_run) -> None:
        reference = make_run({"g": {"gas": 100}})
        candidate = make_run({"g": {"gas": 120}})
        report = BenchmarkComparator().compare(reference, candidate)
        assert report.exceeds(0.1)
        assert not report.exceeds(0.3)

    def test_improvements_never_exceed(self, make_run) -> None:
        reference = make_run({"g": {"gas": 100}})
        candidate = make_run({"g": {"gas": 10}})
        assert not BenchmarkComparator().compare(reference, candidate).exceeds(0.0)

    def test_negative_tolerance_rejected(self) -> None:
        with pytest.raises(ValueError):
            BenchmarkComparator(tolerance=-0.1)


class TestQueryPairing:
    def test_pairs_by_extracted_key(self, make_run) -> None:
        run = make_run({"t1::A": {"gas": 100}, "t1::B": {"gas": 100}})
        query = Query.compile(r"^(.*)::A$", r"^(.*)::B$")
        report = BenchmarkComparator(query=query).compare(run, run)

        (entry,) = report.entries
        assert entry.key == "t1"
        assert entry.reference_group == "t1::A"
        assert entry.candidate_group == "t1::B"
        assert entry.classification is Classification.NEUTRAL
        filtered = {(d.kind, d.side, d.group) for d in report.diagnostics}
        assert filtered == {
            (DiagnosticKind.FILTERED, "reference", "t1::B"),
            (DiagnosticKind.FILTERED, "candidate", "t1::A"),
        }

    def test_named_key_group(self) -> None:
        query = Query.compile(r"(?P<mode>\S+) (?P<key>\d+\.\d+\.\d+)")
        assert query.reference_key("a.sol::Y+M3B3 0.8.19") == "0.8.19"
        assert query.candidate_key("a.sol::Y+M3B3 0.8.19") == "a.sol::Y+M3B3 0.8.19"

    def test_whole_match_without_groups(self) -> None:
        assert Query.compile(r"Y\+M\dB\d").reference_key("a.sol::Y+M3B3 0.8.19") == "Y+M3B3"

    def test_ambiguous_keys_skipped(self, make_run) -> None:
        reference = make_run({"t1::A": {"gas": 1}, "t2::A": {"gas": 1}})
        candidate = make_run({"t::A": {"gas": 1}})
        query = Query.compile(r"^(t)\d?::A$", r"^(t)\d?::A$")
        report = BenchmarkComparator(query=query).compare(reference, candidate)

        assert report.entries == ()
        ambiguous = [d.group for d in report.diagnostics if d.kind is DiagnosticKind.AMBIGUOUS]
        assert sorted(ambiguous) == ["t1::A", "t2::A"]

    def test_invalid_pattern(self) -> None:
        with pytest.raises(QueryError, match="candidate"):
            Query.compile(None, "(")


class TestStatistics:
    def test_per_metric_stats(self, make_run) -> None:
        reference = make_run({"a": {"gas": 100}, "b": {"gas": 100}, "c": {"gas": 100}})
        candidate = make_run({"a": {"gas": 120}, "b": {"gas": 80}, "c": {"gas": 100}})
        stats = BenchmarkComparator(tolerance=0.01).compare(reference, candidate).stats["gas"]

        assert stats.count == 3
        assert (stats.improved, stats.regressed, stats.neutral) == (1, 1, 1)
        assert stats.geomean == pytest.approx((1.2 * 0.8) ** (1 / 3))
        assert stats.best == pytest.approx(-0.2)
        assert stats.worst == pytest.approx(0.2)
        assert stats.total == pytest.approx(0.0)

    def test_total_change_of_summed_metric(self, make_run) -> None:
        reference = make_run({"a": {"gas": 100}, "b": {"gas": 300}})
        candidate = make_run({"a": {"gas": 150}, "b": {"gas": 290}})
        stats = BenchmarkComparator().compare(reference, candidate).stats["gas"]

        assert stats.total == pytest.approx(0.1)

    def test_total_undefined_for_zero_reference_sum(self, make_run) -> None:
        reference = make_run({"a": {"gas": 0}})
        candidate = make_run({"a": {"gas": 5}})
        stats = BenchmarkComparator().compare(reference, candidate).stats["gas"]

        assert stats.total is None


class TestComparePaths:
    def test_loads_both_snapshots(self, tmp_path: Path) -> None:
        reference = tmp_path / "ref.json"
        candidate = tmp_path / "cand.json"
        reference.write_text(json.dumps({"g": [{"name": "gas", "value": 100}]}), encoding="utf-8")
        candidate.write_text(json.dumps({"g": [{"name": "gas", "value": 150}]}), encoding="utf-8")

        report = BenchmarkComparator().compare_paths(reference, candidate)
        assert report.reference_name == str(reference)
        assert report.entries[0].delta == pytest.approx(0.5)
