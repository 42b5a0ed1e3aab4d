import sys
import time

from .models import ItemOutcome, ItemResult

_OUTCOME_MARKS = {
    ItemOutcome.PASSED: "ok",
    ItemOutcome.FAILED: "FAIL",
    ItemOutcome.INVALID: "INVALID",
    ItemOutcome.SKIPPED: "skip",
}


def format_progress_bar(current: int, total: int, width: int = 30) -> str:
    """Format a simple ASCII progress bar."""
    if total == 0:
        return "[" + " " * width + "]"
    filled = int(width * current / total)
    bar = "█" * filled + "░" * (width - filled)
    pct = current * 100 // total
    return f"[{bar}] {pct:3d}%"


def format_eta(elapsed_seconds: float, current: int, total: int) -> str:
    if current == 0:
        return "ETA: --:--"
    avg_per_item = elapsed_seconds / current
    remaining = (total - current) * avg_per_item
    mins, secs = divmod(int(remaining), 60)
    return f"ETA: {mins:02d}:{secs:02d}"


def format_result_line(result: ItemResult) -> str:
    line = f"{_OUTCOME_MARKS[result.outcome]:>7}  {result.group} ({result.duration_s:.2f}s)"
    if result.error and result.outcome is not ItemOutcome.PASSED:
        first = result.error.strip().splitlines()[0] if result.error.strip() else ""
        line += f": {first}"
    return line


class ProgressReporter:
    """Single-line progress bar, or one line per item in verbose mode."""

    def __init__(self, total: int, *, verbose: bool = False, stream=None) -> None:
        self.total = total
        self.verbose = verbose
        self.stream = stream if stream is not None else sys.stderr
        self.current = 0
        self.failures = 0
        self._started = time.monotonic()

    def __call__(self, result: ItemResult) -> None:
        self.current += 1
        if result.outcome in (ItemOutcome.FAILED, ItemOutcome.INVALID):
            self.failures += 1

        if self.verbose:
            print(f"[{self.current}/{self.total}] {format_result_line(result)}", file=self.stream)
            return

        elapsed = time.monotonic() - self._started
        line = (
            f"{format_progress_bar(self.current, self.total)} "
            f"{self.current}/{self.total} | {self.failures} failed | "
            f"{format_eta(elapsed, self.current, self.total)}"
        )
        print(f"\033[2K\r{line}", end="", file=self.stream, flush=True)

    def finish(self) -> None:
        if not self.verbose and self.total:
            print(file=self.stream, flush=True)
