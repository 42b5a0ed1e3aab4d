import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import UTC, datetime

from ..observability import log_item_failure, log_run_complete, log_run_start
from ..selection import Selection, WorkItem
from ..snapshot import Context
from .aggregator import BenchmarkAggregator
from .errors import (
    CompileError,
    ExecutionTimeout,
    ExecutionTrap,
    GroupCollision,
    ItemFailure,
    Unsupported,
)
from .executor import Executor
from .models import ItemOutcome, ItemResult, RunSummary

logger = logging.getLogger(__name__)

_FAILURE_OUTCOMES: list[tuple[type[ItemFailure], ItemOutcome]] = [
    (ExecutionTrap, ItemOutcome.FAILED),
    (ExecutionTimeout, ItemOutcome.FAILED),
    (CompileError, ItemOutcome.INVALID),
    (Unsupported, ItemOutcome.SKIPPED),
]


def outcome_for(failure: ItemFailure) -> ItemOutcome:
    for failure_type, outcome in _FAILURE_OUTCOMES:
        if isinstance(failure, failure_type):
            return outcome
    return ItemOutcome.FAILED


def _drain(
    futures: dict[Future[ItemResult], int],
    results: list[ItemResult | None],
    items: tuple[WorkItem, ...],
) -> None:
    """Collect finished items after an interrupt; the rest count as cancelled."""
    for future, index in futures.items():
        if results[index] is not None:
            continue
        if future.done() and not future.cancelled():
            error = future.exception()
            if isinstance(error, GroupCollision):
                raise error
            if error is None:
                results[index] = future.result()
                continue
        item = items[index]
        results[index] = ItemResult(
            group=item.group,
            path=item.descriptor.path,
            mode=str(item.mode),
            outcome=ItemOutcome.SKIPPED,
            error="cancelled",
        )


class ExecutionCoordinator:
    """Run a selection on a fixed-size worker pool.

    Workers record passing items into a shared ``BenchmarkAggregator``. A
    per-item failure never stops the batch; ``cancel()`` (or reaching the
    fail-fast limit) makes workers skip the items they have not started yet.
    The aggregated snapshot stays valid after cancellation.
    """

    def __init__(
        self,
        executor: Executor,
        parallelism: int,
        fail_fast: int | None = None,
        on_result: Callable[[ItemResult], None] | None = None,
    ) -> None:
        if parallelism < 1:
            raise ValueError("parallelism must be >= 1")
        if fail_fast is not None and fail_fast < 1:
            raise ValueError("fail_fast must be >= 1")
        self.executor = executor
        self.parallelism = parallelism
        self.fail_fast = fail_fast
        self.on_result = on_result
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Request cooperative cancellation; running items finish normally."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _run_item(self, item: WorkItem, aggregator: BenchmarkAggregator) -> ItemResult:
        group = item.group
        base = {"group": group, "path": item.descriptor.path, "mode": str(item.mode)}
        if self._cancelled.is_set():
            return ItemResult(**base, outcome=ItemOutcome.SKIPPED, error="cancelled")

        started = time.monotonic()
        try:
            metrics = self.executor.execute(item.descriptor, item.mode)
        except ItemFailure as exc:
            return ItemResult(
                **base,
                outcome=outcome_for(exc),
                duration_s=time.monotonic() - started,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        # GroupCollision is fatal and propagates to run()
        aggregator.insert(group, metrics)
        return ItemResult(
            **base,
            outcome=ItemOutcome.PASSED,
            metrics_count=len(metrics),
            duration_s=time.monotonic() - started,
        )

    def run(self, selection: Selection, context: Context | None = None) -> RunSummary:
        """Execute every item of the selection and return the run summary.

        A KeyboardInterrupt cancels the remaining items and returns the
        partial summary, marked ``interrupted``, instead of propagating.

        Raises:
            GroupCollision: Two items recorded the same group.
        """
        self._cancelled.clear()
        items = selection.items
        aggregator = BenchmarkAggregator()
        results: list[ItemResult | None] = [None] * len(items)
        failures = 0
        interrupted = False
        start_time = datetime.now(UTC)
        started = time.monotonic()
        log_run_start(len(items), len({item.mode for item in items}), self.parallelism)

        with ThreadPoolExecutor(max_workers=self.parallelism) as pool:
            futures = {
                pool.submit(self._run_item, item, aggregator): index
                for index, item in enumerate(items)
            }
            try:
                for future in as_completed(futures):
                    result = future.result()
                    results[futures[future]] = result
                    if result.outcome is not ItemOutcome.PASSED and result.error != "cancelled":
                        log_item_failure(
                            result.group,
                            result.outcome.value,
                            result.error or "",
                            result.error_type or "",
                        )
                    if result.outcome in (ItemOutcome.FAILED, ItemOutcome.INVALID):
                        failures += 1
                        if self.fail_fast is not None and failures >= self.fail_fast:
                            if not self.cancelled:
                                logger.warning("Fail-fast triggered after %d failures", failures)
                            self.cancel()
                    if self.on_result is not None:
                        self.on_result(result)
            except KeyboardInterrupt:
                logger.warning("Interrupted, cancelling pending items")
                interrupted = True
                self.cancel()
            except BaseException:
                self.cancel()
                raise

        if interrupted:
            _drain(futures, results, items)

        summary = RunSummary(
            results=[r for r in results if r is not None],
            run=aggregator.freeze(context, start_time, datetime.now(UTC)),
            elapsed_s=time.monotonic() - started,
            cancelled=self.cancelled,
            interrupted=interrupted,
        )
        logger.info(
            "Run finished: %d passed, %d failed, %d invalid, %d skipped in %.1fs",
            summary.passed,
            summary.failed,
            summary.invalid,
            summary.skipped,
            summary.elapsed_s,
        )
        log_run_complete({k: v for k, v in summary.to_dict().items() if k != "results"})
        return summary
