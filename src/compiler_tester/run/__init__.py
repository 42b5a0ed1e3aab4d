"""Batch execution: collaborator contract, aggregation and coordination."""

from .aggregator import BenchmarkAggregator
from .coordinator import ExecutionCoordinator, outcome_for
from .errors import (
    CompileError,
    ExecutionTimeout,
    ExecutionTrap,
    GroupCollision,
    ItemFailure,
    Unsupported,
)
from .executor import Executor, SubprocessExecutor
from .models import ItemOutcome, ItemResult, RunSummary
from .progress import ProgressReporter

__all__ = [
    "BenchmarkAggregator",
    "CompileError",
    "ExecutionCoordinator",
    "ExecutionTimeout",
    "ExecutionTrap",
    "Executor",
    "GroupCollision",
    "ItemFailure",
    "ItemOutcome",
    "ItemResult",
    "ProgressReporter",
    "RunSummary",
    "SubprocessExecutor",
    "Unsupported",
    "outcome_for",
]
