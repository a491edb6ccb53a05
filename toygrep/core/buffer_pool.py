"""Pool of reusable LineBuffers shared by concurrent search tasks."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
from loguru import logger

from .errors import BufferPoolError
from .line_buffer import DEFAULT_START_SIZE_BYTES, LineBuffer

# Slack added on top of a size hint so a file fits in one read
SIZE_HINT_SLACK_BYTES = 512
DEFAULT_MAX_SIZE_BYTES = 2_000_000
DEFAULT_PREWARM = 4


class BufferPool:
    """
    Recycles LineBuffers across files to avoid repeated allocation.

    The lock only guards the free list. A checked-out buffer belongs to
    exactly one task until it is handed back, so its contents are never
    shared.
    """

    def __init__(
        self,
        start_size_bytes: int = DEFAULT_START_SIZE_BYTES,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        prewarm: int = DEFAULT_PREWARM
    ):
        self.start_size_bytes = start_size_bytes
        self.max_size_bytes = max_size_bytes

        self._pool: List[LineBuffer] = [
            self._generate_new(start_size_bytes) for _ in range(prewarm)
        ]
        self._lock = asyncio.Lock()
        self._stats = {'created': prewarm, 'reused': 0, 'returned': 0}

    @classmethod
    def from_config(cls, config) -> "BufferPool":
        """Build a pool from a ``BufferConfig``."""
        return cls(
            start_size_bytes=config.start_size_bytes,
            max_size_bytes=config.max_size_bytes,
            prewarm=config.prewarm
        )

    async def acquire(self, size_hint: Optional[int] = None) -> LineBuffer:
        """Get a buffer, either recycling an idle one or building a fresh one."""
        async with self._lock:
            buffer = self._pool.pop() if self._pool else None

        if buffer is not None:
            buffer.refresh()
            self._stats['reused'] += 1
            return buffer

        self._stats['created'] += 1
        return self._generate_new(self._size_for(size_hint))

    async def return_to_pool(self, buffer: LineBuffer) -> None:
        """Reset ``buffer`` and make it available to the next ``acquire``."""
        buffer.refresh()
        async with self._lock:
            if any(idle is buffer for idle in self._pool):
                raise BufferPoolError("Buffer was already returned to the pool")
            self._pool.append(buffer)
        self._stats['returned'] += 1

    @asynccontextmanager
    async def borrow(self, size_hint: Optional[int] = None) -> AsyncIterator[LineBuffer]:
        """Check a buffer out for the duration of the block."""
        buffer = await self.acquire(size_hint)
        try:
            yield buffer
        finally:
            await self.return_to_pool(buffer)

    async def pool_size(self) -> int:
        async with self._lock:
            return len(self._pool)

    def get_stats(self) -> dict:
        return dict(self._stats)

    def _size_for(self, size_hint: Optional[int]) -> int:
        if size_hint is None:
            return self.start_size_bytes
        return min(size_hint + SIZE_HINT_SLACK_BYTES, self.max_size_bytes)

    def _generate_new(self, size_bytes: int) -> LineBuffer:
        logger.debug(f"Allocating line buffer of {size_bytes} bytes")
        return LineBuffer(start_size_bytes=size_bytes)
