"""Word-bounded filtering of generated text with staged auto-relax"""

import logging
import re
from typing import List, Optional, Tuple

import regex

from thought_gateway.domain.models import ContentLine, FilterMode, FilterResult, WordRange

logger = logging.getLogger(__name__)

# A batch with fewer usable lines than this is treated as a shortfall
ACCEPT_THRESHOLD = 8

DEFAULT_EMOJI = "\U0001F642"  # slightly smiling face

_LINE_PREFIX_RE = re.compile(r"^[-•\d.)\s]+")

# One pictograph with optional skin tone / presentation selector
_PICTOGRAPH = "\\p{Extended_Pictographic}[\U0001F3FB-\U0001F3FF]?[\uFE0E\uFE0F]?"
_EMOJI_SEQ = (
    "(?:"
    "[\U0001F1E6-\U0001F1FF]{2}"  # flag: regional indicator pair
    "|[0-9#*]\uFE0F?\u20E3"  # keycap
    f"|{_PICTOGRAPH}(?:\u200D{_PICTOGRAPH})*"  # ZWJ sequence
    ")"
)
_EMOJI_SEQ_RE = regex.compile(_EMOJI_SEQ)
_EMOJI_ONLY_RE = regex.compile(f"(?:{_EMOJI_SEQ})+")
_TRAILING_EMOJI_RE = regex.compile(f"(?:\\s*{_EMOJI_SEQ})+\\s*$")


def strip_line_prefix(text: str) -> str:
    """Remove bullets, numbering and surrounding whitespace"""
    return _LINE_PREFIX_RE.sub("", str(text or "")).strip()


def count_words(text: str) -> int:
    """Whitespace-separated tokens, ignoring tokens made only of emoji"""
    return sum(1 for token in str(text or "").split() if not _EMOJI_ONLY_RE.fullmatch(token))


def ensure_single_ending_emoji(text: str, default: str = DEFAULT_EMOJI) -> str:
    """
    Normalize a line to end in exactly one emoji.

    Appends the default when no emoji ends the line; a trailing run of
    several emoji collapses to the last one. Idempotent.
    """
    t = str(text or "").strip()
    if not t:
        return t

    match = _TRAILING_EMOJI_RE.search(t)
    if match is None:
        return f"{t} {default}"

    sequences = _EMOJI_SEQ_RE.findall(match.group(0))
    if len(sequences) == 1:
        return t

    head = t[: match.start()].rstrip()
    return f"{head} {sequences[-1]}" if head else sequences[-1]


def normalize_lines(text: str, word_range: WordRange) -> List[str]:
    """Split raw text into stripped lines whose word count fits the range; misfits are dropped"""
    lines = []
    for raw in str(text or "").split("\n"):
        line = strip_line_prefix(raw)
        if line and word_range.contains(count_words(line)):
            lines.append(line)
    return lines


def relaxed_ranges(
    word_range: WordRange,
    relax1: Tuple[int, int] = (2, 4),
    relax2: Tuple[int, int] = (3, 8),
) -> Tuple[WordRange, WordRange]:
    """
    Widen a range twice by (delta_min, delta_max).

    The lower bound never drops below 1 and the upper bound never falls
    below the original minimum.
    """

    def widen(delta: Tuple[int, int]) -> WordRange:
        delta_min, delta_max = delta
        return WordRange(
            min_words=max(1, word_range.min_words - delta_min),
            max_words=max(word_range.min_words, word_range.max_words + delta_max),
        )

    return widen(relax1), widen(relax2)


def filter_with_auto_relax(
    text: str,
    word_range: WordRange,
    relax1: Tuple[int, int] = (2, 4),
    relax2: Tuple[int, int] = (3, 8),
    threshold: int = ACCEPT_THRESHOLD,
    label_for_logs: Optional[str] = None,
) -> FilterResult:
    """
    Filter generated text into content lines, relaxing the word range when short.

    Tries strict -> relax1 -> relax2 and returns the first pass yielding at
    least `threshold` lines. When none does, the largest non-empty pass wins
    (ties go to the stricter range); when every pass is empty the mode is
    EXHAUSTED. Accepted lines are normalized to end in one emoji.
    """
    r1, r2 = relaxed_ranges(word_range, relax1, relax2)
    passes = [
        (FilterMode.STRICT, word_range),
        (FilterMode.RELAX1, r1),
        (FilterMode.RELAX2, r2),
    ]

    best: Optional[Tuple[FilterMode, WordRange, List[str]]] = None
    chosen = None
    for mode, candidate_range in passes:
        lines = normalize_lines(text, candidate_range)
        if len(lines) >= threshold:
            chosen = (mode, candidate_range, lines)
            break
        if lines and (best is None or len(lines) > len(best[2])):
            best = (mode, candidate_range, lines)

    if chosen is None:
        chosen = best
    if chosen is None:
        return FilterResult(lines=[], mode=FilterMode.EXHAUSTED, word_range=word_range)

    mode, used_range, lines = chosen
    if mode is not FilterMode.STRICT:
        logger.warning(
            f"Auto-relax ({mode.value}) used for '{label_for_logs or 'unknown'}' batch: "
            f"{word_range.min_words}-{word_range.max_words} -> {used_range.min_words}-{used_range.max_words}",
            extra={"label": label_for_logs, "filter_mode": mode.value, "line_count": len(lines)},
        )

    content = []
    for line in lines:
        normalized = ensure_single_ending_emoji(line)
        content.append(ContentLine(text=normalized, word_count=count_words(normalized)))
    return FilterResult(lines=content, mode=mode, word_range=used_range)
