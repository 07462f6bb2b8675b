"""
Quiz Session
============
In-progress state for one exam document: the parsed questions, the user's
answers, the answer key and the submitted flag.

Loading a new document discards previous answers and key, then restores
whatever was autosaved for that file name. Every mutation autosaves.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from pydantic import ValidationError

from .answer_key import export_answer_key, import_answer_key
from .canonicalizer import canonicalize
from .models import (
    GradeReport,
    Question,
    QuestionStatus,
    QuizMode,
    ScoreResult,
    SessionState,
)
from .scoring import compute_score, grade, normalize_choice, status_of
from .segmenter import parse_questions
from .storage import KeyValueStore, session_key

logger = logging.getLogger(__name__)


def load_session_state(blob: Optional[str]) -> Optional[SessionState]:
    """Decode a stored blob; anything unreadable counts as no saved state."""
    if not blob:
        return None
    try:
        return SessionState.model_validate(json.loads(blob))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable saved session: {e}")
        return None


class QuizSession:
    """One user working through one document."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store
        self.file_name = ""
        self.canonical_text = ""
        self.questions: list[Question] = []
        self.answers: dict[str, str] = {}
        self.answer_key: dict[str, str] = {}
        self.mode = QuizMode.QUIZ
        self.submitted = False

    # ─── Document lifecycle ───────────────────────────────────────────────

    def load_document(self, file_name: str, raw_text: str) -> list[Question]:
        """Replace the question list and restore saved state for the file."""
        self.submitted = False
        self.answers = {}
        self.answer_key = {}
        self.file_name = file_name

        self.canonical_text = canonicalize(raw_text)
        self.questions = parse_questions(self.canonical_text)
        self.mode = QuizMode.QUIZ
        logger.info(
            f"Loaded {file_name or '(unnamed)'}: "
            f"{len(self.questions)} questions"
        )

        self._restore()
        return self.questions

    def _restore(self):
        if not self.store or not self.file_name:
            return
        saved = load_session_state(self.store.get(session_key(self.file_name)))
        if saved is None:
            self._autosave()
            return

        self.answers = dict(saved.answers)
        self.answer_key = dict(saved.answer_key)
        self.mode = saved.mode
        self.submitted = saved.submitted
        logger.info(
            f"Restored session for {self.file_name}: "
            f"{len(self.answers)} answers, {len(self.answer_key)} keys"
        )

    def snapshot(self) -> SessionState:
        return SessionState(
            answers=dict(self.answers),
            answer_key=dict(self.answer_key),
            mode=self.mode,
            submitted=self.submitted,
            ts=int(time.time() * 1000),
        )

    def _autosave(self):
        if not self.store or not self.file_name:
            return
        self.store.set(
            session_key(self.file_name),
            self.snapshot().model_dump_json(),
        )

    # ─── Mutations ────────────────────────────────────────────────────────

    def set_choice(self, qid: str, choice: str):
        self.answers[qid] = choice
        self._autosave()

    def set_key_choice(self, qid: str, choice: Optional[str]):
        """Set one key entry; an empty choice removes it."""
        if not choice:
            self.answer_key.pop(qid, None)
        else:
            self.answer_key[qid] = choice
        self._autosave()

    def import_key(self, document: Any) -> int:
        """
        Replace the whole answer key from a key document.

        Returns the number of accepted entries. Raises MalformedKeyDocument
        without touching the current key.
        """
        imported = import_answer_key(document, self.questions)
        self.answer_key = imported
        self.submitted = False
        self._autosave()
        return len(imported)

    def export_key(self) -> dict[str, str]:
        return export_answer_key(self.answer_key, self.questions)

    def set_mode(self, mode: QuizMode):
        self.mode = QuizMode(mode)
        self._autosave()

    def submit(self):
        self.submitted = True
        self._autosave()

    def reset_quiz(self):
        """Clear the user's answers; the key is kept."""
        self.submitted = False
        self.answers = {}
        self._autosave()

    # ─── Derived ──────────────────────────────────────────────────────────

    @property
    def answered_count(self) -> int:
        return sum(
            1 for q in self.questions
            if normalize_choice(self.answers.get(q.id))
        )

    @property
    def keyed_count(self) -> int:
        return sum(1 for q in self.questions if self.answer_key.get(q.id))

    @property
    def can_score(self) -> bool:
        return self.keyed_count > 0

    @property
    def progress_pct(self) -> int:
        if not self.questions:
            return 0
        return round(self.answered_count / len(self.questions) * 100)

    def status_of(self, question: Question) -> QuestionStatus:
        return status_of(
            question, self.answers, self.answer_key, self.submitted
        )

    def statuses(self) -> dict[str, QuestionStatus]:
        return {q.id: self.status_of(q) for q in self.questions}

    def score(self) -> Optional[ScoreResult]:
        """Score once submitted and at least one question is keyed."""
        if not self.submitted or not self.can_score:
            return None
        return compute_score(self.questions, self.answers, self.answer_key)

    def report(self) -> GradeReport:
        report = grade(
            self.questions, self.answers, self.answer_key, self.submitted
        )
        report.score = self.score()
        return report
