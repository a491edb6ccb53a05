"""Messages sent from search tasks to the printer, and the sinks that accept them."""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Union


@dataclass(frozen=True)
class Printable:
    """A matching line. ``line_num`` is None when numbering is disabled.

    ``read_id`` tells apart two reads of the same target within one run.
    """
    target: str
    line_num: Optional[int]
    text: bytes
    read_id: int = field(default=0, compare=False)


@dataclass(frozen=True)
class EndOfReading:
    """No more messages will follow for this read of ``target``."""
    target: str
    read_id: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Display:
    """Free-form text for the printer to write as-is."""
    text: str


PrintMessage = Union[Printable, EndOfReading, Display]


class PrinterSender(Protocol):
    """Anything that accepts one print message at a time."""

    def send(self, message: PrintMessage) -> None:
        ...


class NullSender:
    """Discards every message. Handy for tests and benchmarks."""

    def send(self, message: PrintMessage) -> None:
        pass


class CollectingSender:
    """Keeps every message in order, in memory."""

    def __init__(self):
        self.messages = []

    def send(self, message: PrintMessage) -> None:
        self.messages.append(message)

    def printables(self, target: Optional[str] = None):
        return [
            m for m in self.messages
            if isinstance(m, Printable) and (target is None or m.target == target)
        ]
