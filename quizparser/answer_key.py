"""
Answer-Key Import / Export
==========================
Maps an external answer-key document onto question ids.

Accepted documents (JSON text, bytes, or an already-decoded value):
    {"1": "A", "2": "C"}
    [{"number": 1, "answer": "A"}, {"number": 2, "answer": "C"}]

Invalid entries (non-integer numeral, choice outside A-E, unknown question)
are skipped. Only a document that is not JSON at all, or whose top level is
neither an object nor an array, fails the import.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any, Iterable, Optional

from .models import Question

logger = logging.getLogger(__name__)

# Keys may reference a fifth option even though the parser only knows A-D
VALID_CHOICE_PATTERN = re.compile(r"^[A-E]$", re.IGNORECASE)


class MalformedKeyDocument(ValueError):
    """The answer-key payload is not a usable document at all."""


def is_valid_choice(value: Any) -> bool:
    return isinstance(value, str) and bool(
        VALID_CHOICE_PATTERN.match(value.strip())
    )


def parse_numeral(value: Any) -> Optional[int]:
    """Return the integer a key numeral stands for, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def question_number(question: Question, position: int) -> int:
    """Question number, falling back to its 1-based position."""
    return question.number if question.number is not None else position


def build_number_lookup(questions: Iterable[Question]) -> dict[int, str]:
    """
    Map question numbers to ids. When a number repeats, the later question
    wins; the earlier one can no longer be reached through the key.
    """
    lookup: dict[int, str] = {}
    for idx, q in enumerate(questions, start=1):
        num = question_number(q, idx)
        if num in lookup and lookup[num] != q.id:
            logger.warning(
                f"Duplicate question number {num}: answer key entries "
                f"will apply to question id {q.id!r} only"
            )
        lookup[num] = q.id
    return lookup


def load_key_document(document: Any) -> Any:
    """Decode a JSON payload; already-decoded values pass through."""
    if isinstance(document, (bytes, bytearray)):
        try:
            document = document.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedKeyDocument(
                f"Answer key is not valid UTF-8: {e}"
            ) from e

    if isinstance(document, str):
        try:
            return json.loads(document)
        except json.JSONDecodeError as e:
            raise MalformedKeyDocument(
                f"Answer key is not valid JSON: {e}"
            ) from e

    return document


def _iter_entries(data: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(data, Mapping):
        return data.items()

    if isinstance(data, Sequence) and not isinstance(data, str):
        return (
            (item.get("number"), item.get("answer"))
            for item in data
            if isinstance(item, Mapping)
        )

    raise MalformedKeyDocument(
        "Answer key must be an object {\"1\": \"A\"} or an array "
        "[{\"number\": 1, \"answer\": \"A\"}], "
        f"got {type(data).__name__}"
    )


def import_answer_key(
    document: Any,
    questions: Sequence[Question],
) -> dict[str, str]:
    """
    Import an answer key for ``questions``.

    Args:
        document: JSON text/bytes, or a decoded dict / list of records.
        questions: The current ordered question list.

    Returns:
        Mapping of question id to uppercase letter, valid entries only.

    Raises:
        MalformedKeyDocument: If the payload is not JSON or has the wrong
            top-level shape.
    """
    data = load_key_document(document)
    entries = _iter_entries(data)

    lookup = build_number_lookup(questions)
    key_by_id: dict[str, str] = {}
    skipped = 0

    for raw_number, raw_answer in entries:
        num = parse_numeral(raw_number)
        if num is None or not is_valid_choice(raw_answer):
            skipped += 1
            continue

        qid = lookup.get(num)
        if qid is None:
            skipped += 1
            continue

        key_by_id[qid] = raw_answer.strip().upper()

    logger.info(
        f"Imported answer key: {len(key_by_id)} accepted, {skipped} skipped"
    )
    return key_by_id


def export_answer_key(
    answer_key: Mapping[str, str],
    questions: Sequence[Question],
) -> dict[str, str]:
    """
    Flat ``{"<number>": "<LETTER>"}`` export in question order, holding only
    keyed questions. Importing the result against the same questions gives
    back the same mapping.
    """
    out: dict[str, str] = {}
    for idx, q in enumerate(questions, start=1):
        ans = (answer_key.get(q.id) or "").strip().upper()
        if ans:
            out[str(question_number(q, idx))] = ans
    return out


def dumps_answer_key(exported: Mapping[str, str]) -> str:
    return json.dumps(exported, indent=2, ensure_ascii=False)
