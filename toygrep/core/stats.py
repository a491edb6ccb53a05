"""Statistics collected while searching and printing."""

from dataclasses import dataclass, field, fields
from functools import reduce
from typing import Dict, Iterable, List, Optional

from .errors import UnreachableTarget


@dataclass
class ReadStats:
    """
    Counters describing one search task, or a fold of many.

    Folding sums every counter and keeps the longest ``walk_duration``,
    so it is associative and commutative and sibling subtrees can be
    combined in any order.
    """
    total_files_visited: int = 0
    skipped_files_non_utf8: int = 0
    files_unreadable: int = 0
    dirs_skipped: int = 0
    symlinks_skipped: int = 0
    bytes_sampled: int = 0
    bytes_read: int = 0
    lines_matched_count: int = 0
    bytes_matched_count: int = 0
    walk_duration: float = 0.0

    def __add__(self, other: "ReadStats") -> "ReadStats":
        if not isinstance(other, ReadStats):
            return NotImplemented
        merged = {
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
            if f.name != 'walk_duration'
        }
        return ReadStats(
            walk_duration=max(self.walk_duration, other.walk_duration),
            **merged
        )

    @classmethod
    def fold(cls, stats: Iterable["ReadStats"]) -> "ReadStats":
        return reduce(lambda a, b: a + b, stats, cls())

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class CrawlStats:
    """What one directory crawl discovered."""
    files_discovered: int = 0
    dirs_visited: int = 0
    dirs_skipped: int = 0
    symlinks_skipped: int = 0
    duration: float = 0.0

    def to_read_stats(self) -> ReadStats:
        return ReadStats(
            dirs_skipped=self.dirs_skipped,
            symlinks_skipped=self.symlinks_skipped,
            walk_duration=self.duration
        )


@dataclass
class PrintLog:
    """
    Timings and counters from the printer thread.

    ``spawn_to_first_message`` is the wait between the thread starting and
    the first message arriving; ``print_duration`` runs from the thread
    starting until the last message has been rendered.
    """
    messages_received: int = 0
    lines_printed: int = 0
    blocks_flushed: int = 0
    decode_errors: int = 0
    spawn_to_first_message: Optional[float] = None
    print_duration: Optional[float] = None

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class SearchReport:
    """Everything a search run hands back to its caller."""
    stats: ReadStats = field(default_factory=ReadStats)
    unreachable: List[UnreachableTarget] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def has_matches(self) -> bool:
        return self.stats.lines_matched_count > 0

    @property
    def has_errors(self) -> bool:
        return bool(self.unreachable)
