"""Search targets: standard input or a filesystem path."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union
import stat
import aiofiles.os

STDIN_NAME = "(standard input)"


class TargetKind(Enum):
    STDIN = "stdin"
    PATH = "path"


class PathKind(Enum):
    """What a path target turned out to be when it was visited."""
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True)
class Target:
    """One search source. Paths are resolved lazily, at traversal time."""
    kind: TargetKind
    path: Optional[Path] = None

    @classmethod
    def stdin(cls) -> "Target":
        return cls(kind=TargetKind.STDIN)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Target":
        return cls(kind=TargetKind.PATH, path=Path(path))

    @property
    def is_stdin(self) -> bool:
        return self.kind is TargetKind.STDIN

    @property
    def name(self) -> str:
        if self.is_stdin:
            return STDIN_NAME
        return str(self.path)

    def __str__(self) -> str:
        return self.name


async def resolve_path(path: Path) -> Tuple[PathKind, int]:
    """Classify ``path`` and return its size in bytes.

    Symlinks named explicitly by the caller are followed. Raises OSError
    (e.g. FileNotFoundError) when the path cannot be stat'ed.
    """
    stat_result = await aiofiles.os.stat(path)
    mode = stat_result.st_mode
    if stat.S_ISREG(mode):
        return PathKind.FILE, stat_result.st_size
    if stat.S_ISDIR(mode):
        return PathKind.DIRECTORY, stat_result.st_size
    return PathKind.OTHER, stat_result.st_size
