"""Tests for pattern matching."""

import pytest

from toygrep.core.errors import PatternError
from toygrep.core.matcher import (
    Match,
    NullMatcher,
    RegexMatcherBuilder,
    format_word_match,
)


def build(pattern: str, ignore_case: bool = False, whole_word: bool = False):
    return (
        RegexMatcherBuilder(pattern)
        .case_insensitive(ignore_case)
        .match_whole_word(whole_word)
        .build()
    )


def test_simple_match():
    matcher = build("beta")

    assert matcher.is_match(b"alpha beta gamma\n")
    assert not matcher.is_match(b"alpha gamma\n")
    assert matcher.find_matches(b"alpha beta gamma\n") == [Match(6, 10)]


def test_multiple_matches_are_ordered():
    matcher = build("ab")

    assert matcher.find_matches(b"ab xx ab ab") == [Match(0, 2), Match(6, 8), Match(9, 11)]


def test_case_sensitivity_is_resolved_at_build():
    assert not build("beta").is_match(b"BETA\n")
    assert build("beta", ignore_case=True).is_match(b"BETA\n")


def test_whole_word():
    matcher = build("cat", whole_word=True)

    assert not matcher.is_match(b"concatenate\n")
    assert not matcher.is_match(b"cats\n")
    assert matcher.is_match(b"the cat sat\n")
    assert matcher.is_match(b"cat.\n")
    assert matcher.find_matches(b"cat cat") == [Match(0, 3), Match(4, 7)]


def test_whole_word_wraps_alternation():
    matcher = build("cat|dog", whole_word=True)

    assert matcher.is_match(b"a dog barks")
    assert not matcher.is_match(b"catalog dogma")


def test_whole_word_uses_boundary_assertions():
    assert format_word_match("x") == r"(?<!\w)(?:x)(?!\w)"


def test_zero_width_matches_are_not_reported():
    matcher = build("x*")

    assert matcher.find_matches(b"abc") == []
    assert not matcher.is_match(b"abc")
    assert matcher.find_matches(b"axxb") == [Match(1, 3)]
    assert matcher.is_match(b"axxb")


def test_matches_non_utf8_bytes():
    matcher = build("needle")

    assert matcher.is_match(b"\xff\xfe needle \x00")


def test_match_range_law():
    """Ranges are ascending, non-overlapping, and agree with is_match."""
    patterns = ["a", "a+", "b*", "[0-9]+", "(ab|a)", "\\s", "^", "$", "foo|o"]
    samples = [b"", b"aaa", b"abab", b"a1b22c333", b"foo boo", b"\n", b"xyz\n", b"  a  ", "é a é".encode("utf-8"), b"\xffa\xfe"]

    for pattern in patterns:
        matcher = build(pattern)
        for sample in samples:
            found = matcher.find_matches(sample)
            for match in found:
                assert 0 <= match.start < match.stop <= len(sample)
            for previous, current in zip(found, found[1:]):
                assert previous.stop <= current.start
            assert matcher.is_match(sample) == bool(found), (pattern, sample)


def test_invalid_pattern_raises():
    with pytest.raises(PatternError) as exc_info:
        build("(")

    assert exc_info.value.pattern == "("


def test_null_matcher_never_matches():
    matcher = NullMatcher()

    assert not matcher.is_match(b"anything")
    assert matcher.find_matches(b"anything") == []


def test_match_length():
    assert len(Match(2, 7)) == 5


def test_case_insensitive_beyond_ascii():
    matcher = build("ÉCOLE", ignore_case=True)
    line = "l'école\n".encode("utf-8")

    assert matcher.is_match(line)
    assert matcher.find_matches(line) == [Match(2, 8)]


def test_whole_word_beyond_ascii():
    assert not build("caf", whole_word=True).is_match("café au lait\n".encode("utf-8"))
    assert build("café", whole_word=True).find_matches("un café, merci".encode("utf-8")) == [Match(3, 8)]


def test_spans_are_byte_offsets():
    matcher = build("x")

    assert matcher.find_matches("ü x ü x".encode("utf-8")) == [Match(3, 4), Match(8, 9)]
    assert build("ab").find_matches(b"\xff\xfeab") == [Match(2, 4)]
