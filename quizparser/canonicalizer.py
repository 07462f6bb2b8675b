"""
Text Canonicalizer
==================
Normalizes raw extracted exam text into one predictable line-oriented form:

    Câu 1: <prompt>
    A. <option>
    B. <option>
    Câu 2: ...

The work is an explicit, ordered pipeline of named passes. Each pass is a
plain ``str -> str`` function and can be tested on its own. Later passes rely
on the output of earlier ones, so the order of ``CANONICAL_PASSES`` is part
of the behavior (the punctuated option pass must run before the tolerant
one, otherwise "a) 3" would be read as option "A" with text ") 3").

One run of the pipeline can leave option markers that only become visible
after an earlier letter was split off ("x a b c"), so ``canonicalize`` repeats
the pipeline until the text stops changing.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

QUESTION_MARKER = "Câu"
OPTION_LETTERS = "ABCD"

# ─── Patterns ─────────────────────────────────────────────────────────────────

LINE_BREAK_PATTERN = re.compile(r"\r\n?")

# "[<br>]", "[ <BR> ]"
BREAK_TOKEN_PATTERN = re.compile(r"\[\s*<br>\s*\]", re.IGNORECASE)

# "C.âu", "C - âu", "c,âu" -> "Câu"
SPLIT_MARKER_PATTERN = re.compile(r"C\s*[.,:\-]\s*âu", re.IGNORECASE)

HORIZONTAL_SPACE_PATTERN = re.compile(r"[^\S\n]+")
BLANK_RUN_PATTERN = re.compile(r"\n{3,}")

# "Câu 12:", "cau 3.", "CÂU 004 -", "Cau1" anywhere in the text, also glued to
# a preceding number ("4Câu 2"), but never inside a word ("Macau 2019")
QUESTION_MARKER_PATTERN = re.compile(
    r"\s*(?<![^\W\d_])C[âa]u\s*(\d+)\s*[:.\-]?\s*", re.IGNORECASE
)

# "a)", "B.", "c:", "d -" followed by content
PUNCTUATED_OPTION_PATTERN = re.compile(
    r"(?:^|[\n ]+)([a-d])\s*[).:\-]\s*(?=\S)", re.IGNORECASE
)

# "b Ship it": letter, whitespace, content
TOLERANT_OPTION_PATTERN = re.compile(
    r"(?:^|[\n ]+)([a-d])\s+(?=\S)", re.IGNORECASE
)

# Chapter / section headings that carry no question content
HEADING_PATTERNS = [
    re.compile(r"^CHƯƠNG\s*\d+", re.IGNORECASE),
    re.compile(r"^Phần\s+", re.IGNORECASE),
]

MULTI_NEWLINE_PATTERN = re.compile(r"\n{2,}")


# ─── Passes ───────────────────────────────────────────────────────────────────


def normalize_unicode(text: str) -> str:
    """Compose decomposed diacritics (a + U+0302 -> â)."""
    return unicodedata.normalize("NFC", text)


def normalize_line_breaks(text: str) -> str:
    return LINE_BREAK_PATTERN.sub("\n", text)


def expand_break_tokens(text: str) -> str:
    return BREAK_TOKEN_PATTERN.sub("\n", text)


def repair_split_markers(text: str) -> str:
    return SPLIT_MARKER_PATTERN.sub(QUESTION_MARKER, text)


def collapse_whitespace(text: str) -> str:
    text = HORIZONTAL_SPACE_PATTERN.sub(" ", text)
    return BLANK_RUN_PATTERN.sub("\n\n", text)


def break_question_markers(text: str) -> str:
    """Start every question marker on its own line as ``Câu <N>: ``."""
    return QUESTION_MARKER_PATTERN.sub(
        lambda m: f"\n{QUESTION_MARKER} {int(m.group(1))}: ", text
    )


def break_punctuated_options(text: str) -> str:
    return PUNCTUATED_OPTION_PATTERN.sub(
        lambda m: f"\n{m.group(1).upper()}. ", text
    )


def break_tolerant_options(text: str) -> str:
    return TOLERANT_OPTION_PATTERN.sub(
        lambda m: f"\n{m.group(1).upper()}. ", text
    )


def is_heading(line: str) -> bool:
    return any(p.match(line) for p in HEADING_PATTERNS)


def drop_noise_lines(text: str) -> str:
    """Trim every line; drop blank lines and chapter/section headings."""
    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(
        line for line in lines
        if line and not is_heading(line)
    )


def squeeze_newlines(text: str) -> str:
    return MULTI_NEWLINE_PATTERN.sub("\n", text).strip()


Pass = Callable[[str], str]

CANONICAL_PASSES: tuple[Pass, ...] = (
    normalize_unicode,
    normalize_line_breaks,
    expand_break_tokens,
    repair_split_markers,
    collapse_whitespace,
    break_question_markers,
    break_punctuated_options,
    break_tolerant_options,
    drop_noise_lines,
    squeeze_newlines,
)


# Upper bound on pipeline repetitions; real documents settle in one or two
MAX_CANONICAL_ROUNDS = 10


def _run_passes(text: str, passes: tuple[Pass, ...]) -> str:
    for step in passes:
        text = step(text)
        logger.debug(f"{step.__name__}: {len(text)} chars")
    return text


def canonicalize(raw: str, passes: Iterable[Pass] = CANONICAL_PASSES) -> str:
    """
    Run ``raw`` through every canonicalization pass in order, repeating the
    whole pipeline until its output is a fixed point.

    Never raises on text input; ``None`` is treated as empty text.
    """
    text = raw if isinstance(raw, str) else ("" if raw is None else str(raw))
    passes = tuple(passes)

    for round_no in range(1, MAX_CANONICAL_ROUNDS + 1):
        result = _run_passes(text, passes)
        if result == text:
            return result
        text = result
        logger.debug(f"Canonical round {round_no}: {len(text)} chars")

    logger.warning(
        f"Canonical form did not settle after {MAX_CANONICAL_ROUNDS} rounds"
    )
    return text
