"""Search driver: ties targets, line buffers, the matcher and the printer together."""

import asyncio
import itertools
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import aiofiles
from aiofiles.threadpool.binary import AsyncBufferedIOBase
from loguru import logger

from .buffer_pool import BufferPool
from .config import Config
from .crawler import WorkerPool
from .errors import ReadFailure, UnreachableReason, UnreachableTarget
from .line_buffer import ByteSource, LineBuffer, LineBufferReader
from .matcher import Matcher
from .messages import EndOfReading, Printable, PrinterSender
from .stats import ReadStats, SearchReport
from .target import PathKind, Target, resolve_path

TargetOutcome = Tuple[ReadStats, Optional[UnreachableTarget]]


class _Read1Source:
    """Reads whatever is available instead of waiting for a full chunk."""

    def __init__(self, stream):
        self._stream = stream

    async def read(self, size: int) -> bytes:
        return await self._stream.read1(size)


class Searcher:
    """
    Runs a pattern over a list of targets and reports what happened.

    Every file is driven start to finish by one task: it borrows a pooled
    buffer, streams the file line by line, sends one ``Printable`` per
    matching line, then exactly one ``EndOfReading``. Statistics from every
    task are folded into a single ``SearchReport``.

    Failures never escape: binary files and unreadable directories are
    counted, and targets that cannot be searched at all are listed in
    ``SearchReport.unreachable``.

    At most ``crawl.worker_count`` files are open at once, across named
    targets and directory crawls alike.
    """

    def __init__(
        self,
        matcher: Matcher,
        sender: PrinterSender,
        config: Optional[Config] = None,
        pool: Optional[BufferPool] = None
    ):
        self.matcher = matcher
        self.sender = sender
        self.config = config or Config()
        self.pool = pool or BufferPool.from_config(self.config.buffers)

        self._open_slots = asyncio.Semaphore(self.config.crawl.worker_count)
        self._read_ids = itertools.count(1)

    async def search(self, targets: Sequence[Target]) -> SearchReport:
        """Search every target concurrently and fold the results."""
        start_time = time.perf_counter()

        outcomes = await asyncio.gather(
            *(self.search_target(target) for target in targets)
        )

        report = SearchReport(
            stats=ReadStats.fold(stats for stats, _ in outcomes),
            unreachable=[missing for _, missing in outcomes if missing is not None],
            elapsed=time.perf_counter() - start_time
        )

        logger.info(
            f"Searched {report.stats.total_files_visited} files, "
            f"{report.stats.lines_matched_count} matching lines "
            f"in {report.elapsed * 1000:.1f}ms"
        )
        return report

    async def search_target(self, target: Target) -> TargetOutcome:
        """Search one target, resolving a path to file or directory first."""
        if target.is_stdin:
            try:
                return await self.search_stdin(), None
            except ReadFailure as e:
                logger.debug(str(e))
                return e.stats, UnreachableTarget.from_os_error(Path(target.name), e.error)

        path = target.path
        try:
            kind, size_bytes = await resolve_path(path)
        except OSError as e:
            logger.debug(f"Cannot resolve target {path}: {e}")
            return ReadStats(), UnreachableTarget.from_os_error(path, e)

        if kind is PathKind.DIRECTORY:
            return await self.search_directory(path), None

        if kind is PathKind.OTHER:
            return ReadStats(), UnreachableTarget(
                path=path,
                reason=UnreachableReason.NOT_FILE_OR_DIR,
                message="not a regular file or directory"
            )

        try:
            return await self.search_file(path, size_bytes), None
        except ReadFailure as e:
            logger.debug(str(e))
            return e.stats, UnreachableTarget.from_os_error(path, e.error)
        except OSError as e:
            logger.debug(f"Cannot open target {path}: {e}")
            return ReadStats(), UnreachableTarget.from_os_error(path, e)

    async def search_stdin(self) -> ReadStats:
        """Search standard input as one virtual file, using an unpooled buffer."""
        target_name = Target.stdin().name
        read_id = next(self._read_ids)
        line_buffer = LineBuffer(start_size_bytes=self.config.buffers.start_size_bytes)
        source = _Read1Source(_open_stdin())

        try:
            return await self.search_reader(
                source,
                line_buffer,
                target_name,
                line_nums=self.config.search.stdin_line_numbers,
                read_id=read_id
            )
        finally:
            self.sender.send(EndOfReading(target=target_name, read_id=read_id))

    async def search_file(self, path: Path, size_bytes: Optional[int] = None) -> ReadStats:
        """
        Search one regular file.

        Raises OSError when the file cannot be opened; nothing has been sent
        for the file in that case. Raises ReadFailure when reading fails
        after the file was opened.
        """
        if size_bytes is None:
            _, size_bytes = await resolve_path(path)

        target_name = str(path)
        read_id = next(self._read_ids)
        async with self._open_slots:
            async with self.pool.borrow(size_bytes) as line_buffer:
                async with aiofiles.open(path, 'rb') as f:
                    try:
                        return await self.search_reader(
                            f, line_buffer, target_name, read_id=read_id
                        )
                    finally:
                        self.sender.send(EndOfReading(target=target_name, read_id=read_id))

    async def search_directory(self, path: Path) -> ReadStats:
        """Crawl ``path`` and search every file found, one worker per file at a time."""
        file_stats: List[ReadStats] = []

        async def handle_file(file_path: Path) -> None:
            try:
                file_stats.append(await self.search_file(file_path))
            except ReadFailure as e:
                logger.debug(str(e))
                file_stats.append(e.stats + ReadStats(files_unreadable=1))
            except OSError as e:
                # not requested by name, so counted rather than reported
                logger.debug(f"Skipping unreadable file {file_path}: {e}")
                file_stats.append(ReadStats(files_unreadable=1))

        pool = WorkerPool(handle_file, worker_count=self.config.crawl.worker_count)
        crawl_stats = await pool.run(path)

        return ReadStats.fold(file_stats) + crawl_stats.to_read_stats()

    async def search_reader(
        self,
        source: ByteSource,
        line_buffer: LineBuffer,
        target_name: str,
        line_nums: bool = True,
        read_id: int = 0
    ) -> ReadStats:
        """
        Drive the read-match loop over ``source``.

        While fewer than ``binary_sample_bytes`` have been consumed, each line
        must decode as UTF-8; the first one that does not ends the search of
        this source and marks it as skipped.

        An OSError from ``source`` is re-raised as ReadFailure carrying the
        statistics for the lines already searched.
        """
        sample_limit = self.config.search.binary_sample_bytes
        stats = ReadStats(total_files_visited=1)
        reader = LineBufferReader(source, line_buffer, line_nums=line_nums)
        consumed = 0

        try:
            async for line in reader:
                if consumed < sample_limit:
                    stats.bytes_sampled += len(line.text)
                    if not _is_utf8(line.text):
                        logger.debug(f"Skipping non-UTF-8 content in {target_name}")
                        stats.skipped_files_non_utf8 = 1
                        break
                consumed += len(line.text)

                if self.matcher.is_match(line.text):
                    stats.lines_matched_count += 1
                    stats.bytes_matched_count += len(line.text)
                    self.sender.send(Printable(
                        target=target_name,
                        line_num=line.line_num,
                        text=line.text,
                        read_id=read_id
                    ))
        except OSError as e:
            stats.bytes_read = reader.bytes_read
            raise ReadFailure(target_name, stats, e) from e

        stats.bytes_read = reader.bytes_read
        return stats


def _open_stdin() -> AsyncBufferedIOBase:
    # bound at call time so a replaced sys.stdin is honoured
    return AsyncBufferedIOBase(sys.stdin.buffer, loop=None, executor=None)


def _is_utf8(data: bytes) -> bool:
    try:
        data.decode('utf-8')
    except UnicodeDecodeError:
        return False
    return True
