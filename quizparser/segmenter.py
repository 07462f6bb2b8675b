"""
Question Segmenter
==================
Splits canonical text into question blocks and extracts the prompt and the
ordered options of each question.

Input must already be canonical (see ``canonicalizer.canonicalize``): every
question starts a line with ``Câu <N>: `` and every option starts a line with
``<LETTER>. ``. Parsing never fails; degraded blocks come back with an empty
option list or the placeholder prompt.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from .models import Option, Question

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = "(Không tách được đề câu hỏi)"

# ─── Patterns ─────────────────────────────────────────────────────────────────

# Zero-width split point in front of every "Câu N:" line
BLOCK_SPLIT_PATTERN = re.compile(
    r"(?=^Câu\s*\d+:(?:\s|$))", re.IGNORECASE | re.MULTILINE
)

# "Câu 12: body..." (body may span many lines)
HEADER_PATTERN = re.compile(
    r"^Câu\s*(\d+):\s*(.*)$", re.IGNORECASE | re.DOTALL
)

# "A. text"
OPTION_LINE_PATTERN = re.compile(r"^([A-D])\.\s*(.+)$", re.IGNORECASE)


class SegmenterState(Enum):
    """Where non-option lines of a block are being accumulated."""
    PROMPT = "PROMPT"
    OPTIONS = "OPTIONS"


class QuestionSegmenter:
    """
    Walks each question block line by line. Non-option lines belong to the
    prompt until the first option is seen; afterwards they continue the most
    recently opened option (wrapped option text).
    """

    def __init__(self):
        self.state = SegmenterState.PROMPT
        self.prompt_lines: list[str] = []
        self.options: list[Option] = []

    def reset(self):
        self.state = SegmenterState.PROMPT
        self.prompt_lines = []
        self.options = []

    def parse(self, canonical: str) -> list[Question]:
        """Parse canonical text into questions, in document order."""
        questions: list[Question] = []

        for block_raw in BLOCK_SPLIT_PATTERN.split(canonical or ""):
            block = block_raw.strip()
            if not block:
                continue

            question = self._parse_block(block)
            if question is None:
                logger.debug(f"Skipping preamble block: {block[:40]!r}")
                continue

            questions.append(question)

        logger.debug(f"Segmented {len(questions)} questions")
        return questions

    def _parse_block(self, block: str) -> Optional[Question]:
        header = HEADER_PATTERN.match(block)
        if not header:
            return None

        number = int(header.group(1))
        body = header.group(2).strip()

        self.reset()
        for line in body.split("\n"):
            line = line.strip()
            if line:
                self._process_line(line)

        prompt = " ".join(self.prompt_lines).strip() or PROMPT_PLACEHOLDER

        return Question(
            id=str(number),
            number=number,
            prompt=prompt,
            options=list(self.options),
        )

    def _process_line(self, line: str):
        opt_match = OPTION_LINE_PATTERN.match(line)
        if opt_match:
            # Every option line opens a new option, even a repeated letter
            self.state = SegmenterState.OPTIONS
            self.options.append(Option(
                key=opt_match.group(1).upper(),
                text=opt_match.group(2).strip(),
            ))
            return

        if self.state == SegmenterState.PROMPT:
            self.prompt_lines.append(line)
        elif self.options:
            current = self.options[-1]
            current.text = f"{current.text} {line}".strip()


def parse_questions(canonical: str) -> list[Question]:
    """Parse canonical text into an ordered list of questions."""
    return QuestionSegmenter().parse(canonical)
