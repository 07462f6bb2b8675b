"""
Test Suite for Answer Keys, Scoring and Sessions
================================================
"""

from __future__ import annotations

import json
from itertools import product

import pytest

from quizparser.answer_key import (
    MalformedKeyDocument,
    build_number_lookup,
    dumps_answer_key,
    export_answer_key,
    import_answer_key,
    parse_numeral,
)
from quizparser.models import (
    Option,
    Question,
    QuestionStatus,
    QuizMode,
    ScoreResult,
    SessionState,
)
from quizparser.scoring import compute_score, grade, status_of
from quizparser.session import QuizSession, load_session_state
from quizparser.storage import JsonFileStore, MemoryStore, session_key


def _questions(*numbers):
    return [
        Question(
            id=str(n),
            number=n,
            prompt=f"Question {n}",
            options=[Option(key=k, text=k.lower()) for k in "ABCD"],
        )
        for n in numbers
    ]


EXAM_TEXT = (
    "Câu 1: First? a) w b) x c) y d) z\n"
    "Câu 2: Second? a) w b) x\n"
    "Câu 3: Third? a) w b) x\n"
)


# ═══════════════════════════════════════════════════════════════════════════════
# ANSWER KEY IMPORT TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestAnswerKeyImport:
    """Test answer-key import."""

    def test_flat_object_unknown_number_dropped(self):
        key = import_answer_key('{"1":"A","5":"z"}', _questions(1, 2))
        assert key == {"1": "A"}

    def test_bare_string_is_malformed(self):
        with pytest.raises(MalformedKeyDocument):
            import_answer_key('"A,B,C"', _questions(1, 2))

    def test_invalid_json_is_malformed(self):
        with pytest.raises(MalformedKeyDocument):
            import_answer_key("{1: A", _questions(1))

    @pytest.mark.parametrize("payload", ["42", "null", "true", 3.5, None])
    def test_wrong_top_level_is_malformed(self, payload):
        with pytest.raises(MalformedKeyDocument):
            import_answer_key(payload, _questions(1))

    def test_records(self):
        payload = json.dumps([
            {"number": 1, "answer": " b "},
            {"number": "2", "answer": "E"},
            {"number": "x", "answer": "A"},
            {"answer": "A"},
            {"number": 3, "answer": "AB"},
            "junk",
        ])
        key = import_answer_key(payload, _questions(1, 2, 3))
        assert key == {"1": "B", "2": "E"}

    def test_decoded_and_bytes_payloads(self):
        questions = _questions(1, 2)
        assert import_answer_key({"2": "c"}, questions) == {"2": "C"}
        assert import_answer_key(
            '\ufeff{"1": "d"}'.encode("utf-8"), questions
        ) == {"1": "D"}

    def test_invalid_entries_skipped(self):
        key = import_answer_key(
            {"1": "F", "2": 3, "x": "A", " 3 ": "a", "4": ""},
            _questions(1, 2, 3, 4),
        )
        assert key == {"3": "A"}

    def test_empty_document(self):
        assert import_answer_key("{}", _questions(1)) == {}
        assert import_answer_key("[]", _questions(1)) == {}

    def test_position_fallback(self):
        questions = [
            Question(id="q-a", prompt="a"),
            Question(id="q-b", prompt="b"),
        ]
        assert import_answer_key({"2": "C"}, questions) == {"q-b": "C"}

    def test_duplicate_number_later_wins(self):
        questions = [
            Question(id="first", number=1, prompt="a"),
            Question(id="second", number=1, prompt="b"),
        ]
        assert build_number_lookup(questions) == {1: "second"}
        assert import_answer_key({"1": "A"}, questions) == {"second": "A"}

    def test_parse_numeral(self):
        assert parse_numeral("07") == 7
        assert parse_numeral(3) == 3
        assert parse_numeral(2.0) == 2
        assert parse_numeral(2.5) is None
        assert parse_numeral(True) is None
        assert parse_numeral("") is None
        assert parse_numeral(None) is None


class TestAnswerKeyExport:
    """Test answer-key export."""

    def test_export_only_keyed_in_order(self):
        exported = export_answer_key({"3": "d", "1": "a"}, _questions(1, 2, 3))

        assert exported == {"1": "A", "3": "D"}
        assert list(exported) == ["1", "3"]

    def test_reimport_is_lossless(self):
        questions = _questions(4, 7, 9)
        key = {"4": "B", "9": "E"}

        exported = export_answer_key(key, questions)
        assert import_answer_key(dumps_answer_key(exported), questions) == key

    def test_export_position_fallback(self):
        questions = [Question(id="x", prompt="a"), Question(id="y", prompt="b")]
        assert export_answer_key({"y": "B"}, questions) == {"2": "B"}


# ═══════════════════════════════════════════════════════════════════════════════
# SCORING TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestScoring:
    """Test reconciliation and scoring."""

    def test_score_example(self):
        questions = _questions(1, 2, 3)
        answers = {"1": "A", "2": "B"}
        key = {"1": "A", "2": "C", "3": "D"}

        score = compute_score(questions, answers, key)
        assert score == ScoreResult(correct_count=1, wrong_count=1, total_keyed=3)
        assert score.unanswered_keyed == 1
        assert status_of(questions[2], answers, key) == QuestionStatus.UNANSWERED_KEYED

    def test_case_and_whitespace_ignored(self):
        q = _questions(1)[0]
        assert status_of(q, {"1": " a "}, {"1": "A"}) == QuestionStatus.CORRECT

    def test_after_submission_statuses(self):
        q = _questions(1)[0]
        assert status_of(q, {"1": "B"}, {"1": "A"}) == QuestionStatus.WRONG
        assert status_of(q, {}, {}) == QuestionStatus.NOKEY
        assert status_of(q, {"1": "B"}, {}) == QuestionStatus.ANSWERED_NOKEY
        assert status_of(q, {"1": "  "}, {"1": "A"}) == QuestionStatus.UNANSWERED_KEYED

    def test_before_submission_statuses(self):
        q = _questions(1)[0]
        assert status_of(q, {"1": "B"}, {"1": "A"}, submitted=False) == QuestionStatus.ANSWERED
        assert status_of(q, {}, {"1": "A"}, submitted=False) == QuestionStatus.UNANSWERED

    @pytest.mark.parametrize(
        "answered,keyed,submitted", list(product([True, False], repeat=3))
    )
    def test_status_always_defined(self, answered, keyed, submitted):
        q = _questions(1)[0]
        answers = {"1": "A"} if answered else {}
        key = {"1": "B"} if keyed else {}

        assert isinstance(
            status_of(q, answers, key, submitted), QuestionStatus
        )

    def test_score_bounds(self):
        questions = _questions(1, 2, 3, 4, 5)
        key = {"1": "A", "2": "B", "3": "C"}

        partial = compute_score(questions, {"1": "A", "5": "D"}, key)
        assert partial.correct_count + partial.wrong_count < partial.total_keyed
        assert partial.total_keyed <= len(questions)

        full = compute_score(questions, {"1": "A", "2": "A", "3": "C"}, key)
        assert full.correct_count + full.wrong_count == full.total_keyed

    def test_unkeyed_questions_never_count(self):
        score = compute_score(_questions(1, 2), {"1": "A", "2": "B"}, {"2": ""})
        assert score == ScoreResult()

    def test_grade_report(self):
        questions = _questions(1, 2)
        report = grade(questions, {"1": "A"}, {"1": "A"})

        assert report.statuses == {
            "1": QuestionStatus.CORRECT,
            "2": QuestionStatus.NOKEY,
        }
        assert report.score.correct_count == 1

        pending = grade(questions, {"1": "A"}, {"1": "A"}, submitted=False)
        assert pending.score is None
        assert pending.statuses["2"] == QuestionStatus.UNANSWERED


# ═══════════════════════════════════════════════════════════════════════════════
# STORAGE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestStorage:
    """Test key-value session stores."""

    def test_session_key(self):
        assert session_key("exam.pdf") == "pdf-quiz:v1:exam.pdf"
        assert session_key("") == ""

    def test_memory_store(self):
        store = MemoryStore()
        assert store.get("k") is None
        store.set("k", "v")
        store.set("k", "w")
        assert store.get("k") == "w"
        assert len(store) == 1

    def test_json_file_store(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "sessions"))
        key = session_key("đề thi/01.pdf")

        assert store.get(key) is None
        store.set(key, '{"answers": {}}')
        assert store.get(key) == '{"answers": {}}'
        assert store.path_for(key).parent == tmp_path / "sessions"

        assert store.delete(key) is True
        assert store.get(key) is None

    def test_unreadable_state_ignored(self):
        assert load_session_state(None) is None
        assert load_session_state("not json") is None
        assert load_session_state('{"mode": "exam"}') is None
        assert load_session_state('{"answers": {"1": "A"}}').answers == {"1": "A"}


# ═══════════════════════════════════════════════════════════════════════════════
# SESSION TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestQuizSession:
    """Test the autosaved quiz session."""

    def test_load_document(self):
        session = QuizSession()
        questions = session.load_document("exam.pdf", EXAM_TEXT)

        assert [q.id for q in questions] == ["1", "2", "3"]
        assert session.mode == QuizMode.QUIZ
        assert session.progress_pct == 0

    def test_submit_and_score(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.import_key({"1": "A", "2": "C", "3": "D"})
        session.set_choice("1", "A")
        session.set_choice("2", "B")

        assert session.score() is None
        assert session.status_of(session.questions[0]) == QuestionStatus.ANSWERED

        session.submit()
        assert session.score() == ScoreResult(
            correct_count=1, wrong_count=1, total_keyed=3
        )
        assert session.statuses()["3"] == QuestionStatus.UNANSWERED_KEYED
        assert session.answered_count == 2
        assert session.progress_pct == 67

    def test_no_score_without_key(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_choice("1", "A")
        session.submit()

        assert session.can_score is False
        assert session.score() is None
        assert session.report().statuses["1"] == QuestionStatus.ANSWERED_NOKEY

    def test_import_replaces_key_and_clears_submitted(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_key_choice("3", "B")
        session.submit()

        accepted = session.import_key('[{"number": 1, "answer": "c"}]')

        assert accepted == 1
        assert session.answer_key == {"1": "C"}
        assert session.submitted is False

    def test_malformed_import_keeps_key(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_key_choice("1", "A")

        with pytest.raises(MalformedKeyDocument):
            session.import_key("oops")
        assert session.answer_key == {"1": "A"}

    def test_set_key_choice_clears(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_key_choice("1", "A")
        session.set_key_choice("2", "B")
        session.set_key_choice("1", None)

        assert session.answer_key == {"2": "B"}
        assert session.keyed_count == 1
        assert session.export_key() == {"2": "B"}

    def test_reset_quiz_keeps_key(self):
        session = QuizSession()
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_key_choice("1", "A")
        session.set_choice("1", "A")
        session.submit()
        session.reset_quiz()

        assert session.answers == {}
        assert session.submitted is False
        assert session.answer_key == {"1": "A"}

    def test_autosave_and_restore(self):
        store = MemoryStore()
        session = QuizSession(store)
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_choice("2", "B")
        session.set_key_choice("2", "B")
        session.set_mode(QuizMode.KEY)
        session.submit()

        saved = SessionState.model_validate_json(store.get(session_key("exam.pdf")))
        assert saved.answers == {"2": "B"}
        assert saved.ts > 0

        restored = QuizSession(store)
        restored.load_document("exam.pdf", EXAM_TEXT)
        assert restored.answers == {"2": "B"}
        assert restored.answer_key == {"2": "B"}
        assert restored.mode == QuizMode.KEY
        assert restored.submitted is True

        other = QuizSession(store)
        other.load_document("other.pdf", EXAM_TEXT)
        assert other.answers == {}
        assert other.submitted is False

    def test_new_document_discards_state(self):
        session = QuizSession(MemoryStore())
        session.load_document("a.pdf", EXAM_TEXT)
        session.set_choice("1", "A")
        session.set_key_choice("1", "A")

        session.load_document("b.pdf", "Câu 9: Only? a) x b) y")
        assert [q.id for q in session.questions] == ["9"]
        assert session.answers == {}
        assert session.answer_key == {}

    def test_corrupt_saved_state_ignored(self):
        store = MemoryStore()
        store.set(session_key("exam.pdf"), "{broken")

        session = QuizSession(store)
        session.load_document("exam.pdf", EXAM_TEXT)
        assert session.answers == {}
        assert len(session.questions) == 3

    def test_file_store_session(self, tmp_path):
        store = JsonFileStore(str(tmp_path))
        session = QuizSession(store)
        session.load_document("exam.pdf", EXAM_TEXT)
        session.set_choice("1", "D")

        restored = QuizSession(JsonFileStore(str(tmp_path)))
        restored.load_document("exam.pdf", EXAM_TEXT)
        assert restored.answers == {"1": "D"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
