"""Tests for serialized task execution."""

import asyncio

import pytest

from toolloop.errors import QueueClearedError, QueueDestroyedError
from toolloop.services.store import SerializedStore
from toolloop.services.task_queue import InFlightDeduplicator, KeyedTaskQueues, SerializedTaskQueue


class TestSerializedTaskQueue:
    """Tests for FIFO one-at-a-time execution."""

    @pytest.mark.asyncio
    async def test_results_delivered_to_each_caller(self):
        """Test that each future settles with its own operation's result."""
        queue = SerializedTaskQueue()

        async def value(v):
            return v

        futures = [queue.enqueue(lambda v=v: value(v)) for v in range(5)]
        assert await asyncio.gather(*futures) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_operations_never_overlap(self):
        """Test that an operation starts only after the previous one finished."""
        queue = SerializedTaskQueue()
        log: list[str] = []

        def make(name, delay):
            async def op():
                log.append(f"start {name}")
                await asyncio.sleep(delay)
                log.append(f"end {name}")
                return name

            return op

        futures = [queue.enqueue(make("a", 0.02)), queue.enqueue(make("b", 0)), queue.enqueue(make("c", 0.01))]
        await asyncio.gather(*futures)

        assert log == ["start a", "end a", "start b", "end b", "start c", "end c"]

    @pytest.mark.asyncio
    async def test_failure_isolated_to_its_caller(self):
        """Test that a failing operation rejects only its own future."""
        queue = SerializedTaskQueue()

        async def ok():
            return "ok"

        async def boom():
            raise RuntimeError("boom")

        first = queue.enqueue(ok)
        second = queue.enqueue(boom)
        third = queue.enqueue(ok)

        assert await first == "ok"
        with pytest.raises(RuntimeError, match="boom"):
            await second
        assert await third == "ok"

    @pytest.mark.asyncio
    async def test_enqueue_while_draining(self):
        """Test that operations added mid-drain still run in order."""
        queue = SerializedTaskQueue()
        order: list[int] = []

        async def record(n):
            order.append(n)
            if n == 1:
                queue.enqueue(lambda: record(3))
            return n

        await asyncio.gather(queue.enqueue(lambda: record(1)), queue.enqueue(lambda: record(2)))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert order == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_processing_flags(self):
        """Test pending count and processing flag through a drain."""
        queue = SerializedTaskQueue()
        release = asyncio.Event()

        async def wait():
            await release.wait()

        async def noop():
            return None

        first = queue.enqueue(wait)
        second = queue.enqueue(noop)
        await asyncio.sleep(0)

        assert queue.is_processing
        assert queue.pending_count == 1

        release.set()
        await asyncio.gather(first, second)
        await asyncio.sleep(0)

        assert not queue.is_processing
        assert queue.pending_count == 0

    @pytest.mark.asyncio
    async def test_clear_rejects_pending_but_not_current(self):
        """Test that clear() rejects queued items while the running one completes."""
        queue = SerializedTaskQueue()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "done"

        async def never():
            return "should not run"

        running = queue.enqueue(slow)
        pending = queue.enqueue(never)
        await asyncio.sleep(0)

        queue.clear()
        release.set()

        assert await running == "done"
        with pytest.raises(QueueClearedError, match="Queue cleared"):
            await pending

    @pytest.mark.asyncio
    async def test_queue_usable_after_clear(self):
        """Test that a cleared queue accepts new work."""
        queue = SerializedTaskQueue()
        queue.clear()

        async def value():
            return 42

        assert await queue.enqueue(value) == 42

    @pytest.mark.asyncio
    async def test_destroy_rejects_pending_and_future_work(self):
        """Test that destroy() rejects pending and later submissions."""
        queue = SerializedTaskQueue()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "done"

        async def value():
            return 1

        running = queue.enqueue(slow)
        pending = queue.enqueue(value)
        await asyncio.sleep(0)

        queue.destroy()
        release.set()

        assert await running == "done"
        with pytest.raises(QueueDestroyedError, match="Queue processor has been destroyed"):
            await pending
        with pytest.raises(QueueDestroyedError):
            await queue.enqueue(value)
        assert queue.is_destroyed

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self):
        """Test that destroying twice is harmless."""
        queue = SerializedTaskQueue()
        queue.destroy()
        queue.destroy()
        assert queue.is_destroyed


class TestKeyedTaskQueues:
    """Tests for per-key queue routing."""

    @pytest.mark.asyncio
    async def test_same_key_shares_queue(self):
        """Test that one key always maps to the same queue."""
        queues = KeyedTaskQueues()
        assert queues.queue_for("a") is queues.queue_for("a")
        assert queues.queue_for("a") is not queues.queue_for("b")
        assert "a" in queues
        assert len(queues) == 2

    @pytest.mark.asyncio
    async def test_different_keys_run_independently(self):
        """Test that a blocked key does not hold up another key."""
        queues = KeyedTaskQueues()
        release = asyncio.Event()

        async def blocked():
            await release.wait()
            return "a"

        async def quick():
            return "b"

        slow = queues.enqueue("a", blocked)
        fast = queues.enqueue("b", quick)

        assert await asyncio.wait_for(fast, timeout=1) == "b"
        assert not slow.done()

        release.set()
        assert await slow == "a"

    @pytest.mark.asyncio
    async def test_destroy_key(self):
        """Test destroying a single key's queue."""
        queues = KeyedTaskQueues()
        queue = queues.queue_for("a")

        assert queues.destroy("a") is True
        assert queue.is_destroyed
        assert "a" not in queues
        assert queues.destroy("a") is False

    @pytest.mark.asyncio
    async def test_destroy_all(self):
        """Test destroying every queue."""
        queues = KeyedTaskQueues()
        first = queues.queue_for("a")
        second = queues.queue_for("b")

        queues.destroy_all()

        assert first.is_destroyed and second.is_destroyed
        assert queues.keys() == []


class TestInFlightDeduplicator:
    """Tests for collapsing concurrent identical requests."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_execution(self):
        """Test that concurrent calls for one key run the factory once."""
        dedup = InFlightDeduplicator()
        calls = 0
        release = asyncio.Event()

        async def fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return "result"

        first = asyncio.ensure_future(dedup.run_once("key", fetch))
        second = asyncio.ensure_future(dedup.run_once("key", fetch))
        await asyncio.sleep(0)
        assert dedup.in_flight("key")

        release.set()
        assert await asyncio.gather(first, second) == ["result", "result"]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_entry_released_after_failure(self):
        """Test that a failed operation does not poison later calls."""
        dedup = InFlightDeduplicator()
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("first call fails")
            return "ok"

        with pytest.raises(RuntimeError):
            await dedup.run_once("key", flaky)
        await asyncio.sleep(0)

        assert not dedup.in_flight("key")
        assert await dedup.run_once("key", flaky) == "ok"


class TestSerializedStore:
    """Tests for the serialised store gateway."""

    @pytest.mark.asyncio
    async def test_mutations_applied_in_order(self):
        """Test that mutations reach the store in submission order."""

        class RecordingStore:
            def __init__(self):
                self.applied = []

            def apply(self, mutation):
                self.applied.append(mutation)

        store = RecordingStore()
        gateway = SerializedStore(store)

        await asyncio.gather(*(gateway.apply(n) for n in range(3)))

        assert store.applied == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_shares_queue_with_other_work(self):
        """Test that a shared queue orders store mutations with other operations."""
        queue = SerializedTaskQueue()
        order: list[str] = []

        class Store:
            def apply(self, mutation):
                order.append(mutation)

        gateway = SerializedStore(Store(), queue=queue)

        async def other():
            order.append("other")

        await asyncio.gather(gateway.apply("first"), queue.enqueue(other), gateway.apply("second"))

        assert order == ["first", "other", "second"]
