import os
import threading
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from compiler_tester.modes import ConcreteMode, ModeDomain, expand_mode, load_domain, parse_mode
from compiler_tester.run import ItemFailure
from compiler_tester.selection import Selection, TestDescriptor, WorkItem
from compiler_tester.snapshot import BenchmarkRun, Metric


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in list(os.environ):
        if var.startswith("COMPILER_TESTER_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def mock_log_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Auto-mock LOG_PATH and enable the event log for all tests."""
    log_file = tmp_path / "events.jsonl"
    with (
        patch("compiler_tester.config.settings.EVENT_LOGGING", True),
        patch("compiler_tester.config.settings.LOG_PATH", log_file),
    ):
        yield log_file


@pytest.fixture
def domain() -> ModeDomain:
    return load_domain()


@pytest.fixture
def yul_modes(domain: ModeDomain) -> tuple[ConcreteMode, ...]:
    """Y+M3B3 at every supported version (three modes)."""
    return expand_mode(parse_mode("Y+M3B3", domain), domain)


def _solidity_descriptor(path: str) -> TestDescriptor:
    return TestDescriptor(path=path, codegens=frozenset({"Y", "E", "I"}))


def _make_selection(paths: list[str], modes: tuple[ConcreteMode, ...]) -> Selection:
    items = [WorkItem(_solidity_descriptor(p), m) for p in paths for m in modes]
    return Selection(items=tuple(items))


def _make_run(groups: dict[str, dict[str, float]]) -> BenchmarkRun:
    return BenchmarkRun.build(
        {
            group: [Metric(name, value) for name, value in metrics.items()]
            for group, metrics in groups.items()
        }
    )


class FakeExecutor:
    """Executor returning fixed metrics, or raising per test path."""

    def __init__(
        self,
        failures: dict[str, ItemFailure] | None = None,
        metrics: list[Metric] | None = None,
    ) -> None:
        self.failures = failures or {}
        self.metrics = metrics if metrics is not None else [Metric("gas", 100.0, "gas")]
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def execute(self, descriptor: TestDescriptor, mode: ConcreteMode) -> list[Metric]:
        with self._lock:
            self.calls.append((descriptor.path, str(mode)))
        failure = self.failures.get(descriptor.path)
        if failure is not None:
            raise failure
        return list(self.metrics)


@pytest.fixture
def make_selection() -> Callable[[list[str], tuple[ConcreteMode, ...]], Selection]:
    """Build a selection of Solidity tests paired with every given mode."""
    return _make_selection


@pytest.fixture
def make_run() -> Callable[[dict[str, dict[str, float]]], BenchmarkRun]:
    """Build a snapshot from ``{group: {metric: value}}``."""
    return _make_run


@pytest.fixture
def fake_executor() -> type[FakeExecutor]:
    return FakeExecutor
