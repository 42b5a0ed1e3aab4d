import threading

import pytest

from compiler_tester.run import BenchmarkAggregator, GroupCollision
from compiler_tester.snapshot import Context, Metric


class TestBenchmarkAggregator:
    def test_insert_and_freeze(self) -> None:
        aggregator = BenchmarkAggregator()
        aggregator.insert("b::Y+M3B3 0.8.19", [Metric("gas", 2.0)])
        aggregator.insert("a::Y+M3B3 0.8.19", [Metric("gas", 1.0)])

        run = aggregator.freeze(Context("m1", "evm", "solc"))
        assert run.group_names == ("a::Y+M3B3 0.8.19", "b::Y+M3B3 0.8.19")
        assert run.metrics("a::Y+M3B3 0.8.19")["gas"].value == 1.0
        assert run.context is not None and run.context.machine == "m1"

    def test_collision_raises(self) -> None:
        aggregator = BenchmarkAggregator()
        aggregator.insert("t::E+M0B0 0.8.19", [])
        with pytest.raises(GroupCollision) as exc_info:
            aggregator.insert("t::E+M0B0 0.8.19", [Metric("gas", 1.0)])
        assert exc_info.value.group == "t::E+M0B0 0.8.19"
        assert aggregator.freeze().groups["t::E+M0B0 0.8.19"] == ()

    def test_frozen_run_is_immutable(self) -> None:
        aggregator = BenchmarkAggregator()
        aggregator.insert("g", [Metric("gas", 1.0)])
        run = aggregator.freeze()
        aggregator.insert("h", [Metric("gas", 1.0)])

        assert "h" not in run
        with pytest.raises(TypeError):
            run.groups["x"] = ()  # type: ignore[index]

    def test_concurrent_inserts(self) -> None:
        aggregator = BenchmarkAggregator(stripes=4)
        threads_count = 8
        per_thread = 500
        barrier = threading.Barrier(threads_count)

        def worker(worker_id: int) -> None:
            barrier.wait()
            for i in range(per_thread):
                aggregator.insert(f"t{worker_id}-{i}", [Metric("gas", float(i))])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(aggregator) == threads_count * per_thread
        assert len(aggregator.freeze()) == threads_count * per_thread

    def test_concurrent_collision_detected_once(self) -> None:
        aggregator = BenchmarkAggregator()
        threads_count = 8
        barrier = threading.Barrier(threads_count)
        collisions: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                aggregator.insert("same", [Metric("gas", 1.0)])
            except GroupCollision as exc:
                with lock:
                    collisions.append(exc.group)

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(collisions) == threads_count - 1
        assert len(aggregator) == 1

    def test_invalid_stripes(self) -> None:
        with pytest.raises(ValueError):
            BenchmarkAggregator(stripes=0)
