"""Pattern matching over raw line bytes."""

import re
from dataclasses import dataclass
from typing import List, Protocol, Tuple

from .errors import PatternError


@dataclass(frozen=True)
class Match:
    """A single pattern occurrence, as byte offsets into a line."""
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start


class Matcher(Protocol):
    """Anything that can test a byte slice and locate matches in it."""

    def is_match(self, data: bytes) -> bool:
        ...

    def find_matches(self, data: bytes) -> List[Match]:
        ...


class RegexMatcher:
    """
    A compiled Unicode regex applied to raw line bytes.

    Lines are decoded as UTF-8 with ``surrogateescape`` so case folding
    and word characters follow Unicode while invalid bytes still round-trip.
    Reported spans are byte offsets into the original line.

    Immutable once built, so one instance is shared by every search task and
    by the printer thread. Zero-width matches are never reported, which keeps
    ``is_match(b) == bool(find_matches(b))`` for every pattern.
    """

    __slots__ = ("_regex", "pattern", "case_insensitive", "whole_word")

    def __init__(self, regex: "re.Pattern[str]", pattern: str = "",
                 case_insensitive: bool = False, whole_word: bool = False):
        self._regex = regex
        self.pattern = pattern
        self.case_insensitive = case_insensitive
        self.whole_word = whole_word

    def is_match(self, data: bytes) -> bool:
        found = self._regex.search(_decode(data))
        if found is None:
            return False
        if found.end() > found.start():
            return True
        # first hit was empty; a later non-empty hit may still exist
        return bool(self.find_matches(data))

    def find_matches(self, data: bytes) -> List[Match]:
        text = _decode(data)
        spans = [
            found.span()
            for found in self._regex.finditer(text)
            if found.end() > found.start()
        ]
        if data.isascii():
            return [Match(start, stop) for start, stop in spans]
        return _to_byte_spans(text, spans)

    def __repr__(self) -> str:
        return (
            f"RegexMatcher(pattern={self.pattern!r}, "
            f"case_insensitive={self.case_insensitive}, whole_word={self.whole_word})"
        )


class NullMatcher:
    """Never matches anything. Useful for benchmarking the pipeline."""

    def is_match(self, data: bytes) -> bool:
        return False

    def find_matches(self, data: bytes) -> List[Match]:
        return []


class RegexMatcherBuilder:
    """Resolves case sensitivity and whole-word semantics once, at build time."""

    def __init__(self, pattern: str = ""):
        self._pattern = pattern
        self._case_insensitive = False
        self._whole_word = False

    def for_pattern(self, pattern: str) -> "RegexMatcherBuilder":
        self._pattern = pattern
        return self

    def case_insensitive(self, enabled: bool) -> "RegexMatcherBuilder":
        self._case_insensitive = enabled
        return self

    def match_whole_word(self, enabled: bool) -> "RegexMatcherBuilder":
        self._whole_word = enabled
        return self

    def build(self) -> RegexMatcher:
        source = format_word_match(self._pattern) if self._whole_word else self._pattern
        flags = re.IGNORECASE if self._case_insensitive else 0

        try:
            regex = re.compile(source, flags)
        except re.error as e:
            raise PatternError(self._pattern, str(e)) from e

        return RegexMatcher(
            regex,
            pattern=self._pattern,
            case_insensitive=self._case_insensitive,
            whole_word=self._whole_word
        )


def _decode(data: bytes) -> str:
    return data.decode('utf-8', errors='surrogateescape')


def _utf8_len(text: str) -> int:
    return len(text.encode('utf-8', errors='surrogateescape'))


def _to_byte_spans(text: str, spans: List[Tuple[int, int]]) -> List[Match]:
    """Convert ascending character spans over ``text`` into byte spans."""
    matches = []
    char_pos = 0
    byte_pos = 0
    for start, stop in spans:
        byte_pos += _utf8_len(text[char_pos:start])
        byte_start = byte_pos
        byte_pos += _utf8_len(text[start:stop])
        char_pos = stop
        matches.append(Match(byte_start, byte_pos))
    return matches


def format_word_match(pattern: str) -> str:
    """Wrap ``pattern`` in word-boundary assertions."""
    return rf"(?<!\w)(?:{pattern})(?!\w)"
