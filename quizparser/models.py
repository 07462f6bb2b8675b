"""
Data Models
===========
Pydantic models for parsed quizzes, answer keys, grading and saved sessions.
All models are serializable to JSON for the CLI and the HTTP API.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class QuestionStatus(str, Enum):
    """Per-question reconciliation status."""
    # Before submission
    ANSWERED = "answered"
    UNANSWERED = "unanswered"
    # After submission
    CORRECT = "correct"
    WRONG = "wrong"
    UNANSWERED_KEYED = "unanswered_keyed"
    NOKEY = "nokey"
    ANSWERED_NOKEY = "answered_nokey"


class QuizMode(str, Enum):
    """What the user is currently editing: their answers or the key."""
    QUIZ = "quiz"
    KEY = "key"


class AnomalyType(str, Enum):
    """Types of structural anomalies detected after parsing."""
    MISSING_OPTIONS = "missing_options"
    MISSING_PROMPT = "missing_prompt"
    DUPLICATE_QUESTION_NUMBER = "duplicate_question_number"
    SINGLE_OPTION = "single_option"
    REPEATED_OPTION_KEY = "repeated_option_key"


# ─── Question Models ──────────────────────────────────────────────────────────


class Option(BaseModel):
    """A single labeled answer option."""
    key: str = Field(pattern=r"^[A-D]$")
    text: str = ""


class Question(BaseModel):
    """
    A parsed multiple-choice question.

    ``id`` is the stringified question number, so re-parsing the same
    document yields the same ids. ``number`` may be absent for questions
    built by hand; key import then falls back to the 1-based position.
    """
    id: str
    number: Optional[int] = None
    prompt: str
    options: list[Option] = Field(default_factory=list)

    @computed_field
    @property
    def has_options(self) -> bool:
        return bool(self.options)

    @property
    def option_keys(self) -> list[str]:
        return [opt.key for opt in self.options]


# ─── Anomaly / Validation ─────────────────────────────────────────────────────


class Anomaly(BaseModel):
    """A structural anomaly detected in a question."""
    type: AnomalyType
    question_id: str
    severity: int = Field(
        ge=0, le=100,
        description="Severity score 0-100"
    )
    message: str


class ValidationReport(BaseModel):
    """Post-parse validation report."""
    total_questions_detected: int = 0
    questions_with_options: int = 0
    questions_without_options: list[int] = Field(default_factory=list)
    placeholder_prompts: list[int] = Field(default_factory=list)
    duplicate_question_numbers: list[int] = Field(default_factory=list)
    repeated_option_keys: list[int] = Field(default_factory=list)
    missing_question_numbers: list[int] = Field(default_factory=list)
    option_count_breakdown: dict[int, int] = Field(default_factory=dict)
    anomalies: list[Anomaly] = Field(default_factory=list)
    anomaly_breakdown: dict[str, int] = Field(default_factory=dict)
    structured_successfully: int = 0

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.total_questions_detected == 0:
            return 0.0
        return round(
            self.structured_successfully / self.total_questions_detected * 100,
            2
        )


# ─── Scoring ──────────────────────────────────────────────────────────────────


class ScoreResult(BaseModel):
    """Aggregate score. Derived on demand, never stored."""
    correct_count: int = 0
    wrong_count: int = 0
    total_keyed: int = 0

    @computed_field
    @property
    def unanswered_keyed(self) -> int:
        return self.total_keyed - self.correct_count - self.wrong_count


class GradeReport(BaseModel):
    """Status of every question plus the aggregate score (when submitted)."""
    submitted: bool = False
    statuses: dict[str, QuestionStatus] = Field(default_factory=dict)
    score: Optional[ScoreResult] = None


# ─── Parse Result ─────────────────────────────────────────────────────────────


class ParseVersion(BaseModel):
    """Version tracking for a parse run."""
    parser_version: str = "1.0.0"
    parse_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    raw_char_count: int = 0
    canonical_line_count: int = 0
    structured_question_count: int = 0


class QuizDocument(BaseModel):
    """
    Complete output of a parse run: the canonical text, the ordered
    questions and the validation report.
    """
    source_name: str = ""
    canonical_text: str = ""
    questions: list[Question] = Field(default_factory=list)
    validation: ValidationReport = Field(default_factory=ValidationReport)
    parse_version: ParseVersion = Field(default_factory=ParseVersion)


# ─── Session ──────────────────────────────────────────────────────────────────


class SessionState(BaseModel):
    """Autosaved in-progress state for one document."""
    answers: dict[str, str] = Field(default_factory=dict)
    answer_key: dict[str, str] = Field(default_factory=dict)
    mode: QuizMode = QuizMode.QUIZ
    submitted: bool = False
    ts: int = 0
