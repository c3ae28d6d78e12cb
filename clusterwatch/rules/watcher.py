import asyncio
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from ..utils.logger import get_logger

Snapshot = Dict[str, Tuple[int, int]]


def snapshot_directory(directory: Path) -> Snapshot:
    if not directory.is_dir():
        return {}

    snapshot: Snapshot = {}
    for path in directory.iterdir():
        try:
            stat = path.stat()
        except FileNotFoundError:
            continue
        snapshot[path.name] = (stat.st_mtime_ns, stat.st_size)
    return snapshot


class RulesWatcher:
    """Polls the rules directory and calls ``on_change`` when anything in it changes.

    It never reloads by itself; the callback only raises a flag that the
    collection cycle consumes.
    """

    def __init__(self, directory: str | Path, on_change: Callable[[], None], interval: float = 5.0):
        self.directory = Path(directory)
        self.on_change = on_change
        self.interval = interval
        self.logger = get_logger(__name__)

        self._snapshot: Snapshot = {}
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self) -> None:
        if self._running:
            return

        self._snapshot = snapshot_directory(self.directory)
        self._running = True
        self._task = asyncio.create_task(self._watch())
        self.logger.info(f"Watching {self.directory} for rule changes every {self.interval}s")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def poll(self) -> bool:
        current = snapshot_directory(self.directory)
        if current == self._snapshot:
            return False

        self._snapshot = current
        self.logger.info(f"Change detected in {self.directory}, rules will reload on the next cycle")
        self.on_change()
        return True

    async def _watch(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                self.poll()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Error watching rules directory: {e}")
