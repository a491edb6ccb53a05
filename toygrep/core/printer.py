"""Result printer running on its own thread.

Search tasks only ever ``send`` messages; the per-target buffers and the
console belong to the printer thread alone.
"""

import queue
import threading
import time
from collections import defaultdict
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from loguru import logger
from rich.console import Console
from rich.segment import Segment, Segments
from rich.style import Style

from .config import PrinterConfig
from .errors import Utf8PrintError
from .matcher import Matcher
from .messages import Display, EndOfReading, Printable, PrintMessage
from .stats import PrintLog
from .target import Target

ReadKey = Tuple[str, int]


class PrintMode(Enum):
    """How results reach the terminal."""
    IMMEDIATE = "immediate"
    GROUPED = "grouped"

    @classmethod
    def for_targets(cls, targets: Sequence[Target]) -> "PrintMode":
        """A single file (or stdin) prints immediately; anything more is grouped."""
        if len(targets) != 1:
            return cls.GROUPED
        target = targets[0]
        if not target.is_stdin and target.path.is_dir():
            return cls.GROUPED
        return cls.IMMEDIATE

    @classmethod
    def resolve(cls, config: PrinterConfig, targets: Sequence[Target]) -> "PrintMode":
        if config.group_by_target is None:
            return cls.for_targets(targets)
        return cls.GROUPED if config.group_by_target else cls.IMMEDIATE


class PrettyPrinter:
    """
    Renders print messages, optionally grouped per target and colorized.

    In grouped mode each read of a target is held back until its
    ``EndOfReading`` arrives and then written as one block, so blocks from
    different targets, or from two reads of the same one, never interleave.
    """

    def __init__(
        self,
        console: Console,
        matcher: Optional[Matcher] = None,
        mode: PrintMode = PrintMode.GROUPED,
        config: Optional[PrinterConfig] = None
    ):
        self.console = console
        self.matcher = matcher
        self.mode = mode
        self.config = config or PrinterConfig()

        self._line_number_style = Style.parse(self.config.line_number_style)
        self._match_style = Style.parse(self.config.match_style)
        self._header_style = Style.parse(self.config.header_style)

        # keyed by (target, read_id) so two reads of one file never share a block
        self._target_to_lines: Dict[ReadKey, List[Printable]] = defaultdict(list)
        self.log = PrintLog()

    def print(self, message: PrintMessage) -> None:
        if isinstance(message, Display):
            self._write([Segment(message.text)])
        elif isinstance(message, Printable):
            if self.mode is PrintMode.GROUPED:
                self._target_to_lines[(message.target, message.read_id)].append(message)
            else:
                self._print_line(message)
        elif isinstance(message, EndOfReading):
            if self.mode is PrintMode.GROUPED:
                self._print_target_results((message.target, message.read_id))
        else:
            raise TypeError(f"Unknown print message: {message!r}")

    def finish(self) -> None:
        """Flush targets that never received an ``EndOfReading``."""
        for key in list(self._target_to_lines):
            logger.warning(f"No end-of-reading received for {key[0]}, flushing anyway")
            self._print_target_results(key)

    @property
    def pending_targets(self) -> List[str]:
        return [target for target, _ in self._target_to_lines]

    def _print_target_results(self, key: ReadKey) -> None:
        lines = self._target_to_lines.pop(key, [])
        if not lines:
            return

        target, _ = key
        self._write([
            Segment("\n"),
            Segment(target, self._header_style),
            Segment("\n"),
        ])

        for printable in lines:
            self._print_line(printable)
        self.log.blocks_flushed += 1

    def _print_line(self, printable: Printable) -> None:
        segments: List[Segment] = []

        if self.config.line_numbers and printable.line_num is not None:
            segments.append(Segment(f"{printable.line_num}:", self._line_number_style))

        text = printable.text
        had_error = False

        if self.matcher is None:
            had_error |= self._append_segment(segments, text)
        else:
            start = 0
            for match in self.matcher.find_matches(text):
                had_error |= self._append_segment(segments, text[start:match.start])
                had_error |= self._append_segment(
                    segments, text[match.start:match.stop], self._match_style
                )
                start = match.stop
            had_error |= self._append_segment(segments, text[start:])

        if not text.endswith(b"\n"):
            segments.append(Segment("\n"))

        if had_error:
            error = Utf8PrintError(printable.target, printable.line_num)
            logger.error(str(error))
            self.log.decode_errors += 1

        self._write(segments)
        self.log.lines_printed += 1

    def _write(self, segments: List[Segment]) -> None:
        # raw segments: rich leaves tabs and carriage returns untouched
        self.console.print(Segments(segments), end="", soft_wrap=True)

    @staticmethod
    def _append_segment(segments: List[Segment], chunk: bytes, style: Optional[Style] = None) -> bool:
        """Append decoded ``chunk``; returns True if it was not valid UTF-8."""
        try:
            decoded = chunk.decode('utf-8')
            failed = False
        except UnicodeDecodeError:
            decoded = chunk.decode('utf-8', errors='replace')
            failed = True

        if decoded:
            segments.append(Segment(decoded, style))
        return failed


# Marks the end of the message stream
_CLOSED = object()


class QueueSender:
    """Cloneable handle that forwards messages to a ``ThreadedPrinter``."""

    def __init__(self, message_queue: queue.Queue):
        self._queue = message_queue

    def send(self, message: PrintMessage) -> None:
        self._queue.put(message)

    def clone(self) -> "QueueSender":
        return QueueSender(self._queue)


class ThreadedPrinter:
    """
    Owns one dedicated thread that consumes print messages until closed.

    Usage:
        with ThreadedPrinter(pretty_printer) as sender:
            await searcher(sender).search(targets)
        print_log = printer.print_log
    """

    def __init__(self, printer: PrettyPrinter):
        self.printer = printer
        self.print_log: Optional[PrintLog] = None

        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def build(
        cls,
        matcher: Optional[Matcher],
        mode: PrintMode,
        config: Optional[PrinterConfig] = None,
        console: Optional[Console] = None
    ) -> "ThreadedPrinter":
        config = config or PrinterConfig()
        if console is None:
            if config.color is None:
                console = Console(highlight=False)
            else:
                console = Console(highlight=False, no_color=not config.color,
                                  force_terminal=config.color or None)
        return cls(PrettyPrinter(console, matcher=matcher, mode=mode, config=config))

    def start(self) -> QueueSender:
        """Spawn the printer thread and return a sender for it."""
        if self._thread is not None:
            raise RuntimeError("Printer already started")

        self._thread = threading.Thread(target=self._listen, name="toygrep-printer", daemon=True)
        self._thread.start()
        return QueueSender(self._queue)

    def close(self) -> PrintLog:
        """Signal end of stream, wait for the thread, and return its log."""
        if self._thread is None:
            raise RuntimeError("Printer was never started")

        self._queue.put(_CLOSED)
        self._thread.join()
        return self.print_log

    def __enter__(self) -> QueueSender:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _listen(self) -> None:
        spawned_at = time.perf_counter()
        log = self.printer.log

        while True:
            message = self._queue.get()
            if message is _CLOSED:
                break

            if log.spawn_to_first_message is None:
                log.spawn_to_first_message = time.perf_counter() - spawned_at
            log.messages_received += 1

            try:
                self.printer.print(message)
            except Exception as e:
                logger.error(f"Printer error: {e}")

        self.printer.finish()
        log.print_duration = time.perf_counter() - spawned_at
        self.print_log = log
