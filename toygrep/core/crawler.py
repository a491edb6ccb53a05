"""Parallel directory crawler with deterministic termination."""

import asyncio
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple
from loguru import logger

from .stats import CrawlStats

WorkHandler = Callable[[Path], Awaitable[None]]

DEFAULT_WORKER_COUNT = 16


@dataclass(frozen=True)
class WorkItem:
    """A path waiting to be visited."""
    path: Path
    is_dir: bool


# Broadcast to every worker once all work is retired
_QUIT = object()


class WorkerPool:
    """
    Visits every regular file under a root exactly once using N workers.

    Termination protocol:
    - ``pending`` starts at 1, for the root.
    - A directory item adds its child count to ``pending`` before the
      children are enqueued, then subtracts 1 for itself.
    - A file item is handed to the handler, then subtracts 1.
    - Whoever brings ``pending`` to exactly 0 enqueues the quit sentinel;
      each worker that receives it puts it back and exits.

    Counter updates never straddle an ``await``, so they are atomic on the
    event loop. Idle workers park on ``queue.get()``.

    Symlinks are never followed; they are counted and skipped, as are
    entries that are neither regular files nor directories.
    """

    def __init__(self, handler: WorkHandler, worker_count: int = DEFAULT_WORKER_COUNT):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")

        self._handler = handler
        self.worker_count = worker_count

        self._queue: Optional[asyncio.Queue] = None
        self._pending = 0
        self._stats = CrawlStats()

    @property
    def pending(self) -> int:
        return self._pending

    async def run(self, root: Path) -> CrawlStats:
        """Crawl ``root`` to completion and return what was found."""
        start_time = time.perf_counter()

        self._queue = asyncio.Queue()
        self._stats = CrawlStats()
        self._pending = 1
        self._queue.put_nowait(WorkItem(path=Path(root), is_dir=True))

        workers = [
            asyncio.create_task(self._work(worker_id))
            for worker_id in range(self.worker_count)
        ]
        await asyncio.gather(*workers)

        self._stats.duration = time.perf_counter() - start_time
        logger.debug(
            f"Crawled {root}: {self._stats.files_discovered} files, "
            f"{self._stats.dirs_visited} dirs in {self._stats.duration * 1000:.1f}ms"
        )
        return self._stats

    async def _work(self, worker_id: int) -> None:
        while True:
            item = await self._queue.get()

            if item is _QUIT:
                self._queue.put_nowait(_QUIT)
                return

            try:
                if item.is_dir:
                    await self._expand(item)
                else:
                    await self._handler(item.path)
            except Exception as e:
                logger.error(f"Worker {worker_id} failed on {item.path}: {e}")
            finally:
                self._retire()

    async def _expand(self, item: WorkItem) -> None:
        try:
            children, symlinks = await asyncio.to_thread(_list_children, item.path)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {item.path}: {e}")
            self._stats.dirs_skipped += 1
            return

        self._stats.dirs_visited += 1
        self._stats.symlinks_skipped += symlinks
        self._stats.files_discovered += sum(1 for child in children if not child.is_dir)

        self._pending += len(children)
        for child in children:
            self._queue.put_nowait(child)

    def _retire(self) -> None:
        self._pending -= 1
        if self._pending == 0:
            self._queue.put_nowait(_QUIT)


def _list_children(path: Path) -> Tuple[List[WorkItem], int]:
    """Read one directory. Returns its visitable children and the symlink count."""
    children = []
    symlinks = 0

    with os.scandir(path) as entries:
        for entry in entries:
            try:
                if entry.is_symlink():
                    symlinks += 1
                elif entry.is_dir(follow_symlinks=False):
                    children.append(WorkItem(path=Path(entry.path), is_dir=True))
                elif entry.is_file(follow_symlinks=False):
                    children.append(WorkItem(path=Path(entry.path), is_dir=False))
            except OSError as e:
                # entry vanished between listing and stat
                logger.debug(f"Skipping {entry.path}: {e}")

    return children, symlinks
