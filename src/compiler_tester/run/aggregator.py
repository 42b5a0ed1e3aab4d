import threading
import zlib
from collections.abc import Sequence
from datetime import datetime

from ..snapshot import BenchmarkRun, Context, Metric
from .errors import GroupCollision

DEFAULT_STRIPES = 32


class BenchmarkAggregator:
    """Concurrent group -> metrics map guarded by striped locks.

    Each group hashes to one stripe, so inserts for different groups rarely
    contend and no lock covers the whole batch.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._shards: list[dict[str, tuple[Metric, ...]]] = [{} for _ in range(stripes)]

    def _stripe(self, group: str) -> int:
        return zlib.crc32(group.encode("utf-8")) % len(self._locks)

    def insert(self, group: str, metrics: Sequence[Metric]) -> None:
        """Record the metrics of one group.

        Raises:
            GroupCollision: The group was already recorded.
        """
        index = self._stripe(group)
        with self._locks[index]:
            shard = self._shards[index]
            if group in shard:
                raise GroupCollision(group)
            shard[group] = tuple(metrics)

    def __contains__(self, group: object) -> bool:
        if not isinstance(group, str):
            return False
        index = self._stripe(group)
        with self._locks[index]:
            return group in self._shards[index]

    def __len__(self) -> int:
        total = 0
        for lock, shard in zip(self._locks, self._shards, strict=True):
            with lock:
                total += len(shard)
        return total

    def freeze(
        self,
        context: Context | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> BenchmarkRun:
        """Return an immutable snapshot of everything recorded so far."""
        merged: dict[str, tuple[Metric, ...]] = {}
        for lock, shard in zip(self._locks, self._shards, strict=True):
            with lock:
                merged.update(shard)
        return BenchmarkRun.build(merged, context, start_time, end_time)
