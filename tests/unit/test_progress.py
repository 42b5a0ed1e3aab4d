import io

from compiler_tester.run import ItemOutcome, ItemResult, ProgressReporter
from compiler_tester.run.progress import format_eta, format_progress_bar, format_result_line


def result(outcome: ItemOutcome, error: str | None = None) -> ItemResult:
    return ItemResult(
        group="a.sol::Y+M3B3 0.8.19",
        path="a.sol",
        mode="Y+M3B3 0.8.19",
        outcome=outcome,
        duration_s=0.5,
        error=error,
    )


class TestFormatting:
    def test_progress_bar(self) -> None:
        assert format_progress_bar(0, 0, width=4) == "[    ]"
        assert format_progress_bar(2, 4, width=4) == "[██░░]  50%"

    def test_eta(self) -> None:
        assert format_eta(10.0, 0, 5) == "ETA: --:--"
        assert format_eta(60.0, 1, 3) == "ETA: 02:00"

    def test_result_line_includes_first_error_line(self) -> None:
        line = format_result_line(result(ItemOutcome.FAILED, "revert\nstack trace"))
        assert line.strip().startswith("FAIL")
        assert line.endswith(": revert")


class TestProgressReporter:
    def test_verbose_prints_one_line_per_item(self) -> None:
        stream = io.StringIO()
        reporter = ProgressReporter(2, verbose=True, stream=stream)
        reporter(result(ItemOutcome.PASSED))
        reporter(result(ItemOutcome.INVALID, "syntax error"))
        reporter.finish()

        lines = stream.getvalue().splitlines()
        assert lines[0].startswith("[1/2]")
        assert "INVALID" in lines[1]
        assert reporter.failures == 1

    def test_bar_mode_counts_failures(self) -> None:
        stream = io.StringIO()
        reporter = ProgressReporter(2, stream=stream)
        reporter(result(ItemOutcome.FAILED, "trap"))
        reporter.finish()
        assert "1/2 | 1 failed" in stream.getvalue()
