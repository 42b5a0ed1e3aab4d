"""Benchmark snapshots: metrics per group and their wire formats."""

from .errors import MissingContext, SnapshotError, SnapshotIOError
from .formats import SnapshotFormat, detect_format, load_snapshot, write_snapshot
from .models import BenchmarkRun, Context, Metric

__all__ = [
    "BenchmarkRun",
    "Context",
    "Metric",
    "MissingContext",
    "SnapshotError",
    "SnapshotFormat",
    "SnapshotIOError",
    "detect_format",
    "load_snapshot",
    "write_snapshot",
]
