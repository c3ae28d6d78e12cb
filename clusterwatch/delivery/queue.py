import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..transport import FailoverDispatcher, FailoverError
from ..utils.logger import get_logger
from ..utils.time import index_date_suffix, utc_now


@dataclass
class DeliveryQueueItem:
    doc_type: str
    body: bytes


class DeliveryQueue:
    """Single-consumer FIFO that writes metric documents to the destination cluster.

    The producer never blocks: a full buffer drops the new item. The consumer
    retries the head item forever, so an unreachable destination stalls
    everything queued behind it.
    """

    def __init__(
        self,
        dispatcher: FailoverDispatcher,
        hosts: Sequence[str],
        index_prefix: str,
        queue_size: int = 100000,
        retry_delay: float = 30.0,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.logger = get_logger(__name__)
        self.dispatcher = dispatcher
        self.hosts: List[str] = list(hosts)
        self.index_prefix = index_prefix
        self.retry_delay = retry_delay

        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone for index dates: {timezone!r}") from e
        self.timezone = timezone
        self.clock = clock

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._worker_task: Optional[asyncio.Task] = None
        self._running = False
        self._dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped

    async def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._worker_task = asyncio.create_task(self._worker())
        self.logger.info(f"Delivery queue started for {len(self.hosts)} destination host(s)")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False

        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass

        if self._queue.qsize():
            self.logger.warning(f"Delivery queue stopped with {self._queue.qsize()} undelivered document(s)")
        self.logger.info("Delivery queue stopped")

    def enqueue(self, doc_type: str, body: bytes) -> bool:
        try:
            self._queue.put_nowait(DeliveryQueueItem(doc_type=doc_type, body=body))
        except asyncio.QueueFull:
            self._dropped += 1
            self.logger.warning(f"Delivery queue is full, dropping {doc_type} document")
            return False
        return True

    def build_path(self, doc_type: str) -> str:
        return f"{self.index_prefix}-{index_date_suffix(self.clock(), self.timezone)}/{doc_type}"

    async def _worker(self) -> None:
        while self._running:
            try:
                item = await self._queue.get()
                try:
                    await self._deliver(item)
                finally:
                    self._queue.task_done()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Error in delivery worker: {e}", exc_info=True)

    async def _deliver(self, item: DeliveryQueueItem) -> None:
        attempt = 0
        while True:
            # The index date follows the attempt, not the collection time.
            path = self.build_path(item.doc_type)
            try:
                await self.dispatcher.request(self.hosts, "POST", path, item.body)
                if attempt:
                    self.logger.info(f"Delivered {item.doc_type} document after {attempt} retries")
                return
            except FailoverError as e:
                attempt += 1
                self.logger.warning(
                    f"Delivery of {item.doc_type} failed (attempt {attempt}), retrying in {self.retry_delay}s: {e}"
                )
                await asyncio.sleep(self.retry_delay)
