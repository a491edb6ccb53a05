"""Growable line-oriented byte buffer for streaming reads.

Strategy: fill as much as the source offers, then hand out every complete
line; repeat. When a whole line does not fit, the buffer grows. For files,
sizing the buffer to the file length up front means a single read is enough.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Protocol, Tuple

DEFAULT_START_SIZE_BYTES = 8 * 1024
MIN_GROWTH_BYTES = 4 * 1024


class ByteSource(Protocol):
    """Anything with an awaitable ``read(size)`` returning at most ``size`` bytes."""

    async def read(self, size: int) -> bytes:
        ...


@dataclass(frozen=True)
class LineResult:
    """One line read from a source, terminator included when present."""
    line_num: Optional[int]
    text: bytes


class LineBuffer:
    """
    A growable byte buffer that tracks which bytes have been consumed and
    where the known line breaks are.

    Layout, by offset into the internal buffer:

        [0, start)      consumed
        [start, end)    written but not yet consumed
        [end, capacity) writable tail

    Break offsets are absolute, strictly increasing and always inside
    ``[start, end)``. Capacity never shrinks.
    """

    def __init__(
        self,
        start_size_bytes: int = DEFAULT_START_SIZE_BYTES,
        line_break_byte: bytes = b"\n"
    ):
        if start_size_bytes < 0:
            raise ValueError("start_size_bytes must not be negative")
        if len(line_break_byte) != 1:
            raise ValueError("line_break_byte must be exactly one byte")

        self._buffer = bytearray(start_size_bytes)
        self._line_break = line_break_byte
        self._break_offsets: Deque[int] = deque()
        self._start = 0
        self._end = 0

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def line_break_offsets(self) -> Tuple[int, ...]:
        return tuple(self._break_offsets)

    @property
    def has_line(self) -> bool:
        return bool(self._break_offsets)

    @property
    def writable_len(self) -> int:
        return len(self._buffer) - self._end

    async def fill(self, source: ByteSource) -> bool:
        """
        Read once from ``source`` into the writable tail.

        Every line break byte read is recorded by absolute offset.
        Returns False when the source had nothing left.
        """
        self.ensure_capacity()
        writable = self.writable_len

        data = await source.read(writable)
        count = len(data)
        if count == 0:
            return False
        if count > writable:
            raise BufferError(
                f"Source returned {count} bytes, only {writable} were requested"
            )

        end = self._end
        self._buffer[end:end + count] = data

        pos = data.find(self._line_break)
        while pos != -1:
            self._break_offsets.append(end + pos)
            pos = data.find(self._line_break, pos + 1)

        self._end = end + count
        return True

    def consume_line(self) -> Optional[bytes]:
        """Return the next complete line (terminator included), or None."""
        if not self._break_offsets:
            return None

        line_break_pos = self._break_offsets.popleft()
        line = bytes(self._buffer[self._start:line_break_pos + 1])
        self._start = line_break_pos + 1
        return line

    def consume_remaining(self) -> Optional[bytes]:
        """Return the trailing unterminated bytes, or None if nothing is left.

        Only meaningful once the source is exhausted.
        """
        if self._start >= self._end:
            return None

        remaining = bytes(self._buffer[self._start:self._end])
        self._start = self._end
        self._break_offsets.clear()
        return remaining

    def roll_to_front(self) -> None:
        """Move the unconsumed region to offset 0, reclaiming consumed space."""
        if self._start == self._end:
            self._start = 0
            self._end = 0
            self._break_offsets.clear()
            return

        if self._start == 0:
            return

        shift = self._start
        length = self._end - shift
        self._buffer[0:length] = self._buffer[shift:self._end]

        self._end = length
        self._start = 0
        self._break_offsets = deque(idx - shift for idx in self._break_offsets)

    def ensure_capacity(self) -> None:
        """Guarantee a non-empty writable tail, doubling the buffer if needed."""
        if self.writable_len > 0:
            return

        grow_to = max(len(self._buffer) * 2, MIN_GROWTH_BYTES)
        self._buffer.extend(bytes(grow_to - len(self._buffer)))

    def refresh(self) -> None:
        """Reset cursors and break offsets so the buffer can be reused."""
        self._start = 0
        self._end = 0
        self._break_offsets.clear()

    def __repr__(self) -> str:
        return (
            f"LineBuffer(capacity={self.capacity}, start={self._start}, "
            f"end={self._end}, breaks={len(self._break_offsets)})"
        )


class LineBufferReader:
    """
    Drives a LineBuffer over a source, yielding one line at a time.

    Read loop: roll to front and fill until a full line is known or the
    source is exhausted. Once exhausted, the unterminated tail (if any) is
    returned as the last line and every later call returns None.
    """

    def __init__(self, source: ByteSource, line_buffer: LineBuffer, line_nums: bool = True):
        self._source = source
        self._line_buffer = line_buffer
        self._line_nums = line_nums
        self._lines_read = 0
        self._exhausted = False
        self.bytes_read = 0

    @property
    def lines_read(self) -> int:
        return self._lines_read

    @property
    def inner_buf_len(self) -> int:
        return self._line_buffer.capacity

    async def read_line(self) -> Optional[LineResult]:
        """Return the next line, or None when the source is finished."""
        while not self._line_buffer.has_line:
            if self._exhausted:
                remaining = self._line_buffer.consume_remaining()
                if remaining is None:
                    return None
                return self._make_result(remaining)

            self._line_buffer.roll_to_front()
            end_before = self._line_buffer.end
            if await self._line_buffer.fill(self._source):
                self.bytes_read += self._line_buffer.end - end_before
            else:
                self._exhausted = True

        return self._make_result(self._line_buffer.consume_line())

    def take_line_buffer(self) -> LineBuffer:
        """Hand the buffer back so it can be reused."""
        return self._line_buffer

    def _make_result(self, text: bytes) -> LineResult:
        self._lines_read += 1
        line_num = self._lines_read if self._line_nums else None
        return LineResult(line_num=line_num, text=text)

    def __aiter__(self) -> "LineBufferReader":
        return self

    async def __anext__(self) -> LineResult:
        line = await self.read_line()
        if line is None:
            raise StopAsyncIteration
        return line
