"""Unit tests for word-bounded filtering and auto-relax"""

import pytest
from thought_gateway.domain.models import FilterMode, WordRange
from thought_gateway.domain.word_filter import (
    DEFAULT_EMOJI,
    count_words,
    ensure_single_ending_emoji,
    filter_with_auto_relax,
    normalize_lines,
    relaxed_ranges,
    strip_line_prefix,
)
from tests.fakes import make_lines


FREE_RANGE = WordRange(5, 15)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1. I am the king of this sofa", "I am the king of this sofa"),
        ("  - Biscuits are a human right", "Biscuits are a human right"),
        ("• 2) Nap time again", "Nap time again"),
        ("   plain line   ", "plain line"),
    ],
)
def test_strip_line_prefix(raw, expected):
    """Test bullets and numbering are removed"""
    assert strip_line_prefix(raw) == expected


def test_count_words_ignores_emoji_tokens():
    """Test trailing emoji do not count as words"""
    assert count_words("I deserve more treats 🐶") == 4
    assert count_words("I deserve more treats") == 4
    assert count_words("") == 0


def test_normalize_lines_drops_out_of_range_lines():
    """Test lines outside the range are dropped, not truncated"""
    text = "one two three\none two three four five\n" + " ".join(["w"] * 16)
    assert normalize_lines(text, FREE_RANGE) == ["one two three four five"]


def test_relaxed_ranges_clamp_bounds():
    """Test lower bound clamps at 1 and upper never below original min"""
    r1, r2 = relaxed_ranges(WordRange(5, 15), (2, 4), (3, 8))
    assert r1 == WordRange(3, 19)
    assert r2 == WordRange(2, 23)

    r1, r2 = relaxed_ranges(WordRange(2, 3), (5, -10), (5, -10))
    assert r1.min_words == 1
    assert r1.max_words == 2


def test_scenario_a_strict_mode():
    """Test 20 valid lines plus 5 over-long lines yields the 20 in strict mode"""
    valid = "\n".join(make_lines(4, words, prefix=f"dog{words}x") for words in range(6, 11))
    too_long = make_lines(5, 20, prefix="long")
    result = filter_with_auto_relax(valid + "\n" + too_long, FREE_RANGE, label_for_logs="dog")

    assert result.mode is FilterMode.STRICT
    assert len(result.lines) == 20
    assert all(6 <= line.word_count <= 10 for line in result.lines)


def test_relax1_used_when_strict_is_short():
    """Test relax1 kicks in when only relaxed lines reach the threshold"""
    text = make_lines(3, 8) + "\n" + make_lines(6, 17, prefix="long")
    result = filter_with_auto_relax(text, FREE_RANGE)

    assert result.mode is FilterMode.RELAX1
    assert len(result.lines) == 9
    assert result.word_range == WordRange(3, 19)


def test_relax2_used_when_relax1_is_short():
    """Test relax2 kicks in for lines only the widest range accepts"""
    text = make_lines(8, 22)
    result = filter_with_auto_relax(text, FREE_RANGE)

    assert result.mode is FilterMode.RELAX2
    assert len(result.lines) == 8
    assert all(2 <= line.word_count <= 23 for line in result.lines)


def test_largest_non_empty_result_when_threshold_never_met():
    """Test the biggest pass wins when no pass reaches the threshold"""
    text = make_lines(2, 8) + "\n" + make_lines(1, 18, prefix="long")
    result = filter_with_auto_relax(text, FREE_RANGE)

    assert result.mode is FilterMode.RELAX1
    assert len(result.lines) == 3


def test_exhausted_when_nothing_fits():
    """Test empty or unusable text reports EXHAUSTED"""
    result = filter_with_auto_relax("\n\n" + make_lines(3, 40), FREE_RANGE)
    assert result.mode is FilterMode.EXHAUSTED
    assert result.lines == []

    assert filter_with_auto_relax("", FREE_RANGE).mode is FilterMode.EXHAUSTED


def test_lines_never_exceed_widest_range():
    """Test no returned line falls outside the widest relaxed range"""
    text = "\n".join(make_lines(2, words, prefix=f"w{words}x") for words in range(1, 40))
    result = filter_with_auto_relax(text, FREE_RANGE)
    _, widest = relaxed_ranges(FREE_RANGE)

    assert result.lines
    assert all(result.word_range.contains(line.word_count) for line in result.lines)
    assert all(widest.contains(line.word_count) for line in result.lines)


def test_filter_is_idempotent():
    """Test filtering the same text twice yields identical output"""
    text = make_lines(5, 7) + "\n" + make_lines(5, 18, prefix="long")
    assert filter_with_auto_relax(text, FREE_RANGE) == filter_with_auto_relax(text, FREE_RANGE)


def test_accepted_lines_end_in_exactly_one_emoji():
    """Test default emoji is appended once and existing emoji are kept"""
    text = "I own this garden now 🌻\nThe postman fears me and rightly so\n" + make_lines(8, 6)
    result = filter_with_auto_relax(text, FREE_RANGE)

    assert result.texts[0] == "I own this garden now 🌻"
    assert result.texts[1] == f"The postman fears me and rightly so {DEFAULT_EMOJI}"
    assert all(ensure_single_ending_emoji(t) == t for t in result.texts)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Nap time", f"Nap time {DEFAULT_EMOJI}"),
        ("Nap time 😴", "Nap time 😴"),
        ("Nap time 😴😴", "Nap time 😴"),
        ("Nap time 😴 🐱", "Nap time 🐱"),
        ("Love you \u2764\ufe0f", "Love you \u2764\ufe0f"),
        ("Thumbs \U0001F44D\U0001F3FB", "Thumbs \U0001F44D\U0001F3FB"),
        ("", ""),
    ],
)
def test_ensure_single_ending_emoji(raw, expected):
    """Test emoji normalization yields exactly one trailing emoji"""
    assert ensure_single_ending_emoji(raw) == expected


@pytest.mark.parametrize(
    "emoji",
    [
        "⏰",  # alarm clock
        "⌛",  # hourglass
        "\U0001F1EB\U0001F1F7",  # flag: France
        "⬆\ufe0f",  # up arrow
        "\U0001F468\u200d\U0001F469\u200d\U0001F467",  # family ZWJ sequence
        "\U0001FA80",  # yo-yo
        "‼\ufe0f",  # double exclamation
        "3\ufe0f\u20e3",  # keycap three
    ],
)
def test_existing_ending_emoji_is_recognized(emoji):
    """Test any trailing emoji counts as the ending emoji and never as a word"""
    line = f"Time to wake up the humans now {emoji}"

    assert ensure_single_ending_emoji(line) == line
    assert count_words(line) == 7
    assert ensure_single_ending_emoji(f"{line}{DEFAULT_EMOJI}") == f"Time to wake up the humans now {DEFAULT_EMOJI}"


def test_ensure_single_ending_emoji_twice_never_adds_second():
    """Test normalizer is idempotent"""
    once = ensure_single_ending_emoji("Treats please")
    assert ensure_single_ending_emoji(once) == once
    assert once.count(DEFAULT_EMOJI) == 1
