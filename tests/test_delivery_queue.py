import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from clusterwatch.delivery import DeliveryQueue
from clusterwatch.transport import FailoverError


class FlakyDispatcher:
    def __init__(self, failures=0):
        self.failures = failures
        self.attempts = []

    async def request(self, hosts, method, path, body=None):
        self.attempts.append((method, path, body))
        await asyncio.sleep(0)
        if self.failures > 0:
            self.failures -= 1
            raise FailoverError(path)
        return b'{"result":"created"}'


class SteppingClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


async def wait_for_attempts(dispatcher, count, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(dispatcher.attempts) < count and loop.time() < deadline:
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_enqueue_beyond_capacity_drops_newest():
    queue = DeliveryQueue(FlakyDispatcher(), ["http://dest:9200"], "metrics", queue_size=2)

    assert queue.enqueue("os_stats", b"1") is True
    assert queue.enqueue("os_stats", b"2") is True
    assert queue.enqueue("os_stats", b"3") is False

    assert queue.pending == 2
    assert queue.dropped == 1


@pytest.mark.asyncio
async def test_items_delivered_in_order():
    dispatcher = FlakyDispatcher()
    queue = DeliveryQueue(dispatcher, ["http://dest:9200"], "metrics", retry_delay=0)
    queue.enqueue("os_stats", b"a")
    queue.enqueue("jvm_stats", b"b")

    await queue.start()
    await wait_for_attempts(dispatcher, 2)
    await queue.stop()

    assert [(m, body) for m, _, body in dispatcher.attempts] == [("POST", b"a"), ("POST", b"b")]
    assert dispatcher.attempts[1][1].endswith("/jvm_stats")


@pytest.mark.asyncio
async def test_failing_destination_retries_same_item():
    dispatcher = FlakyDispatcher(failures=2)
    queue = DeliveryQueue(dispatcher, ["http://dest:9200"], "metrics", retry_delay=0)
    queue.enqueue("os_stats", b"first")
    queue.enqueue("os_stats", b"second")

    await queue.start()
    await wait_for_attempts(dispatcher, 4)
    await queue.stop()

    assert [body for _, _, body in dispatcher.attempts] == [b"first", b"first", b"first", b"second"]
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_index_date_taken_at_each_attempt():
    dispatcher = FlakyDispatcher(failures=1)
    clock = SteppingClock(datetime(2024, 3, 5, 23, 59, 30, tzinfo=timezone.utc))
    queue = DeliveryQueue(dispatcher, ["http://dest:9200"], "metrics", retry_delay=0, clock=clock)
    queue.enqueue("fs_stats", b"{}")

    await queue.start()
    await wait_for_attempts(dispatcher, 2)
    await queue.stop()

    assert [path for _, path, _ in dispatcher.attempts] == [
        "metrics-2024.03.05/fs_stats",
        "metrics-2024.03.06/fs_stats",
    ]


def test_build_path_uses_configured_timezone():
    clock = lambda: datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc)  # noqa: E731
    queue = DeliveryQueue(FlakyDispatcher(), [], "metrics", timezone="Europe/Berlin", clock=clock)

    assert queue.build_path("cluster_stats") == "metrics-2024.03.06/cluster_stats"


def test_unknown_timezone_rejected_up_front():
    with pytest.raises(ValueError):
        DeliveryQueue(FlakyDispatcher(), [], "metrics", timezone="Mars/Olympus_Mons")


@pytest.mark.asyncio
async def test_unexpected_delivery_error_keeps_worker_going():
    class BrokenOnceDispatcher(FlakyDispatcher):
        async def request(self, hosts, method, path, body=None):
            self.attempts.append((method, path, body))
            if body == b"bad":
                raise RuntimeError("serializer bug")
            return b'{"result":"created"}'

    dispatcher = BrokenOnceDispatcher()
    queue = DeliveryQueue(dispatcher, ["http://dest:9200"], "metrics", retry_delay=0)
    queue.enqueue("os_stats", b"bad")
    queue.enqueue("os_stats", b"good")

    await queue.start()
    await wait_for_attempts(dispatcher, 2)
    await queue.stop()

    assert [body for _, _, body in dispatcher.attempts] == [b"bad", b"good"]
    assert queue.pending == 0
