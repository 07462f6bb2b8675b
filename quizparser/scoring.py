"""
Reconciliation & Scoring
========================
Compares submitted answers with the answer key.

Before submission only answered / unanswered is meaningful. After
submission every question gets one of: correct, wrong, unanswered_keyed,
nokey, answered_nokey. Questions without a key entry never count towards
the score. Comparison ignores case and surrounding whitespace.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional, Sequence

from .models import GradeReport, Question, QuestionStatus, ScoreResult


def normalize_choice(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def status_of(
    question: Question,
    answers: Mapping[str, str],
    answer_key: Mapping[str, str],
    submitted: bool = True,
) -> QuestionStatus:
    """Classify one question. Defined for every presence combination."""
    selected = normalize_choice(answers.get(question.id))
    key = normalize_choice(answer_key.get(question.id))

    if not submitted:
        if selected:
            return QuestionStatus.ANSWERED
        return QuestionStatus.UNANSWERED

    if not key:
        if selected:
            return QuestionStatus.ANSWERED_NOKEY
        return QuestionStatus.NOKEY

    if not selected:
        return QuestionStatus.UNANSWERED_KEYED

    if selected == key:
        return QuestionStatus.CORRECT
    return QuestionStatus.WRONG


def compute_score(
    questions: Sequence[Question],
    answers: Mapping[str, str],
    answer_key: Mapping[str, str],
) -> ScoreResult:
    """Aggregate correct / wrong / keyed counts over ``questions``."""
    score = ScoreResult()

    for q in questions:
        key = normalize_choice(answer_key.get(q.id))
        if not key:
            continue
        score.total_keyed += 1

        selected = normalize_choice(answers.get(q.id))
        if not selected:
            continue

        if selected == key:
            score.correct_count += 1
        else:
            score.wrong_count += 1

    return score


def grade(
    questions: Sequence[Question],
    answers: Mapping[str, str],
    answer_key: Mapping[str, str],
    submitted: bool = True,
) -> GradeReport:
    """Statuses for every question, plus the score once submitted."""
    return GradeReport(
        submitted=submitted,
        statuses={
            q.id: status_of(q, answers, answer_key, submitted)
            for q in questions
        },
        score=compute_score(questions, answers, answer_key) if submitted else None,
    )
