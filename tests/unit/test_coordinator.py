import time

import pytest

from compiler_tester.run import (
    CompileError,
    ExecutionCoordinator,
    ExecutionTimeout,
    ExecutionTrap,
    GroupCollision,
    ItemOutcome,
    ItemResult,
    Unsupported,
)
from compiler_tester.selection import Selection
from compiler_tester.snapshot import Context


class TestExecutionCoordinator:
    def test_all_items_pass(self, yul_modes, make_selection, fake_executor) -> None:
        selection = make_selection(["a.sol", "b.sol"], yul_modes)
        executor = fake_executor()

        summary = ExecutionCoordinator(executor, parallelism=4).run(selection)

        assert summary.total == 6
        assert summary.passed == 6
        assert not summary.has_failures
        assert len(summary.run) == 6
        assert len(executor.calls) == 6
        assert [r.group for r in summary.results] == list(selection.groups)

    def test_outcome_mapping(self, yul_modes, make_selection, fake_executor) -> None:
        selection = make_selection(
            ["ok.sol", "trap.sol", "slow.sol", "bad.sol", "nope.sol"], yul_modes[:1]
        )
        executor = fake_executor(
            failures={
                "trap.sol": ExecutionTrap("revert"),
                "slow.sol": ExecutionTimeout(5.0),
                "bad.sol": CompileError("syntax error"),
                "nope.sol": Unsupported("no such target"),
            }
        )

        summary = ExecutionCoordinator(executor, parallelism=2).run(selection)
        outcomes = {r.path: r.outcome for r in summary.results}

        assert outcomes == {
            "ok.sol": ItemOutcome.PASSED,
            "trap.sol": ItemOutcome.FAILED,
            "slow.sol": ItemOutcome.FAILED,
            "bad.sol": ItemOutcome.INVALID,
            "nope.sol": ItemOutcome.SKIPPED,
        }
        assert summary.counts == {"passed": 1, "failed": 2, "invalid": 1, "skipped": 1}
        assert summary.has_failures
        assert list(summary.run.groups) == ["ok.sol::Y+M3B3 0.8.19"]
        failed = next(r for r in summary.results if r.path == "slow.sol")
        assert failed.error_type == "ExecutionTimeout"
        assert "5s" in (failed.error or "")

    def test_cancel_skips_pending_items(self, yul_modes, make_selection, fake_executor) -> None:
        selection = make_selection(["a.sol", "b.sol"], yul_modes)
        executor = fake_executor()
        coordinator = ExecutionCoordinator(executor, parallelism=1)
        original = executor.execute

        def cancelling_execute(descriptor, mode):
            coordinator.cancel()
            return original(descriptor, mode)

        executor.execute = cancelling_execute
        summary = coordinator.run(selection)

        assert summary.cancelled
        assert summary.passed == 1
        assert summary.skipped == 5
        # The snapshot accumulated before cancellation stays usable
        assert list(summary.run.groups) == [selection.items[0].group]

    def test_interrupt_returns_partial_summary(
        self, yul_modes, make_selection, fake_executor
    ) -> None:
        selection = make_selection(["a.sol", "b.sol"], yul_modes)
        executor = fake_executor()
        original = executor.execute
        calls = []

        def interrupted_execute(descriptor, mode):
            calls.append(descriptor.path)
            if len(calls) > 1:
                raise KeyboardInterrupt
            return original(descriptor, mode)

        executor.execute = interrupted_execute
        summary = ExecutionCoordinator(executor, parallelism=1).run(selection)

        assert summary.interrupted
        assert summary.cancelled
        assert summary.total == 6
        assert summary.passed == 1
        assert summary.skipped == 5
        assert list(summary.run.groups) == [selection.items[0].group]
        assert summary.to_dict()["interrupted"] is True

    def test_fail_fast(self, yul_modes, make_selection, fake_executor) -> None:
        selection = make_selection(["bad.sol", "a.sol", "b.sol"], yul_modes[:2])
        executor = fake_executor(failures={"bad.sol": ExecutionTrap("boom")})
        coordinator = ExecutionCoordinator(executor, parallelism=1, fail_fast=2)
        original = executor.execute

        def waiting_execute(descriptor, mode):
            if descriptor.path != "bad.sol":
                deadline = time.monotonic() + 5
                while not coordinator.cancelled and time.monotonic() < deadline:
                    time.sleep(0.01)
            return original(descriptor, mode)

        executor.execute = waiting_execute
        summary = coordinator.run(selection)

        assert summary.cancelled
        assert summary.failed == 2
        # The item already running when fail-fast triggered still completes
        assert summary.passed == 1
        assert summary.skipped == 3

    def test_group_collision_is_fatal(self, yul_modes, make_selection, fake_executor) -> None:
        base = make_selection(["a.sol"], yul_modes[:1])
        selection = Selection(items=base.items + base.items)

        with pytest.raises(GroupCollision):
            ExecutionCoordinator(fake_executor(), parallelism=1).run(selection)

    def test_context_and_times_recorded(self, yul_modes, make_selection, fake_executor) -> None:
        context = Context("ci-runner", "evm", "solc")
        summary = ExecutionCoordinator(fake_executor(), parallelism=2).run(
            make_selection(["a.sol"], yul_modes), context
        )
        assert summary.run.context == context
        assert summary.run.start_time is not None
        assert summary.run.end_time is not None
        assert summary.run.start_time <= summary.run.end_time

    def test_on_result_callback(self, yul_modes, make_selection, fake_executor) -> None:
        seen: list[ItemResult] = []
        ExecutionCoordinator(fake_executor(), parallelism=3, on_result=seen.append).run(
            make_selection(["a.sol", "b.sol"], yul_modes)
        )
        assert len(seen) == 6

    def test_empty_selection(self, fake_executor) -> None:
        summary = ExecutionCoordinator(fake_executor(), parallelism=2).run(Selection(items=()))
        assert summary.total == 0
        assert len(summary.run) == 0

    def test_summary_to_dict(self, yul_modes, make_selection, fake_executor) -> None:
        summary = ExecutionCoordinator(fake_executor(), parallelism=1).run(
            make_selection(["a.sol"], yul_modes[:1])
        )
        data = summary.to_dict()
        assert data["total"] == 1
        assert data["passed"] == 1
        assert data["results"][0]["outcome"] == "passed"
        assert data["results"][0]["metrics_count"] == 1

    @pytest.mark.parametrize("kwargs", [{"parallelism": 0}, {"parallelism": 1, "fail_fast": 0}])
    def test_invalid_arguments(self, fake_executor, kwargs) -> None:
        with pytest.raises(ValueError):
            ExecutionCoordinator(fake_executor(), **kwargs)
