"""Search pipeline: buffering, matching, crawling, searching and printing."""

from .buffer_pool import BufferPool
from .config import Config
from .crawler import WorkerPool
from .line_buffer import LineBuffer, LineBufferReader
from .matcher import NullMatcher, RegexMatcher, RegexMatcherBuilder
from .printer import PrettyPrinter, PrintMode, ThreadedPrinter
from .searcher import Searcher
from .stats import ReadStats, SearchReport
from .target import Target

__all__ = [
    "BufferPool",
    "Config",
    "LineBuffer",
    "LineBufferReader",
    "NullMatcher",
    "PrettyPrinter",
    "PrintMode",
    "ReadStats",
    "RegexMatcher",
    "RegexMatcherBuilder",
    "SearchReport",
    "Searcher",
    "Target",
    "ThreadedPrinter",
    "WorkerPool",
]
