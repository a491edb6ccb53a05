"""Error types and failure records for the search pipeline.

Nothing raised here is meant to stop a run. Per-item failures are either
absorbed into statistics or collected as records and reported once at the end:

- target resolution failures become ``UnreachableTarget`` entries
- binary files are counted in ``ReadStats``
- unreadable directories are skipped and counted by the crawler
- a file that fails mid-read keeps the statistics gathered so far
- print-time decode failures are logged and counted by the printer
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class ToygrepError(Exception):
    """Base class for toygrep errors."""


class PatternError(ToygrepError, ValueError):
    """Raised when a search pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid search expression {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class BufferPoolError(ToygrepError, ValueError):
    """Raised when a buffer is handed back to a pool that already holds it."""


class ReadFailure(ToygrepError):
    """A file failed partway through being read.

    Carries the statistics gathered before the failure. Matching lines up
    to that point have already been sent to the printer.
    """

    def __init__(self, target_name: str, stats, error: OSError):
        super().__init__(f"Read failed for {target_name}: {error}")
        self.target_name = target_name
        self.stats = stats
        self.error = error


class Utf8PrintError(ToygrepError):
    """A line could not be decoded as UTF-8 while printing."""

    def __init__(self, target_name: str, line_num: Optional[int] = None):
        location = target_name if line_num is None else f"{target_name}:{line_num}"
        super().__init__(f"Utf8 parsing error for target: {location}")
        self.target_name = target_name
        self.line_num = line_num


class UnreachableReason(Enum):
    """Why a requested target could not be searched."""
    NOT_FOUND = "not_found"
    NOT_FILE_OR_DIR = "not_file_or_dir"
    PERMISSION_DENIED = "permission_denied"
    READ_FAILED = "read_failed"


@dataclass(frozen=True)
class UnreachableTarget:
    """A target the user asked for that could not be searched."""
    path: Path
    reason: UnreachableReason
    message: str = ""

    @classmethod
    def from_os_error(cls, path: Path, error: OSError) -> "UnreachableTarget":
        if isinstance(error, FileNotFoundError):
            reason = UnreachableReason.NOT_FOUND
        elif isinstance(error, PermissionError):
            reason = UnreachableReason.PERMISSION_DENIED
        else:
            reason = UnreachableReason.READ_FAILED
        return cls(path=path, reason=reason, message=error.strerror or str(error))

    def to_dict(self) -> Dict:
        return {
            'path': str(self.path),
            'reason': self.reason.value,
            'message': self.message
        }

    def __str__(self) -> str:
        detail = f" ({self.message})" if self.message else ""
        return f"{self.path}: {self.reason.value.replace('_', ' ')}{detail}"
