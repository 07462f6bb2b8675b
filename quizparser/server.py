"""
HTTP Microservice
=================
Flask-based HTTP API for the quiz parser engine.

Endpoints:
    GET    /api/health               → Health check
    GET    /api/info                 → Parser version info
    POST   /api/canonicalize         → Canonical form of raw text
    POST   /api/parse                → Parse an upload or raw text
    POST   /api/key/import           → Map a key document onto questions
    POST   /api/key/export           → Flat key for download
    POST   /api/grade                → Statuses + score
    GET    /api/session/<file_name>  → Saved session state
    PUT    /api/session/<file_name>  → Save session state
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import TypeAdapter, ValidationError

from . import __version__
from .answer_key import MalformedKeyDocument, export_answer_key, import_answer_key
from .canonicalizer import canonicalize
from .engine import QuizConfig, QuizEngine
from .models import Question, SessionState
from .scoring import grade
from .session import load_session_state
from .storage import JsonFileStore, session_key

logger = logging.getLogger(__name__)

_pkg_dir = Path(__file__).parent
app = Flask(__name__)
CORS(app)


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    # Project root is one level up from the /quizparser/ package dir
    project_root = _pkg_dir.parent.absolute()

    app.config.setdefault("UPLOAD_DIR", str(project_root / "uploads"))
    app.config.setdefault("SESSION_DIR", str(project_root / "sessions"))
    app.config.setdefault("LOG_LEVEL", "INFO")
    app.config.setdefault("MAX_CONTENT_LENGTH", 100 * 1024 * 1024)  # 100MB

    Path(app.config["UPLOAD_DIR"]).mkdir(parents=True, exist_ok=True)
    Path(app.config["SESSION_DIR"]).mkdir(parents=True, exist_ok=True)

    return app


def _engine() -> QuizEngine:
    return QuizEngine(QuizConfig(log_level=app.config.get("LOG_LEVEL", "INFO")))


def _session_store() -> JsonFileStore:
    return JsonFileStore(app.config["SESSION_DIR"])


def _questions_from(data: dict) -> list[Question]:
    return [Question.model_validate(q) for q in data.get("questions") or []]


# "answers" / "answer_key": question id -> letter
ChoiceMap = TypeAdapter(dict[str, str])


def _choices_from(data: dict, field: str) -> dict[str, str]:
    return ChoiceMap.validate_python(data.get(field) or {})


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _invalid(what: str, error: ValidationError):
    return jsonify({
        "error": f"Invalid {what}",
        "details": error.errors(include_url=False, include_context=False),
    }), 400


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "quiz-parser",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Parser version and capability info."""
    return jsonify({
        "version": __version__,
        "engine": "PyMuPDF",
        "capabilities": [
            "text_extraction",
            "canonicalization",
            "question_segmentation",
            "answer_key_import",
            "scoring",
        ],
        "supported_formats": ["pdf", "txt"],
        "option_letters": ["A", "B", "C", "D"],
        "key_letters": ["A", "B", "C", "D", "E"],
    })


# ─── Parsing ──────────────────────────────────────────────────────────────────


@app.route("/api/canonicalize", methods=["POST"])
def canonicalize_text():
    """Return the canonical form of ``{"text": ...}``."""
    data = _json_body()
    return jsonify({"canonical_text": canonicalize(data.get("text", ""))})


@app.route("/api/parse", methods=["POST"])
def parse_document():
    """
    Parse an exam document synchronously.

    Accepts either:
        - A file upload (multipart/form-data, PDF or UTF-8 text)
        - A JSON body with ``text`` and optional ``source_name``
    """
    engine = _engine()

    if "file" in request.files:
        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file selected"}), 400

        upload_dir = Path(app.config["UPLOAD_DIR"])
        saved_path = upload_dir / f"{uuid.uuid4()}_{os.path.basename(file.filename)}"
        file.save(str(saved_path))

        try:
            document = engine.parse_file(str(saved_path))
        except RuntimeError as e:
            return jsonify({"error": str(e)}), 422
        finally:
            if saved_path.exists():
                saved_path.unlink()

        document.source_name = file.filename
        return jsonify(document.model_dump(mode="json")), 200

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "text" not in data:
        return jsonify({
            "error": "Provide a file upload or JSON with text"
        }), 400

    document = engine.parse_text(
        data.get("text") or "",
        source_name=data.get("source_name", ""),
    )
    return jsonify(document.model_dump(mode="json")), 200


# ─── Answer Key ───────────────────────────────────────────────────────────────


@app.route("/api/key/import", methods=["POST"])
def key_import():
    """
    Map ``key`` (object, array of records, or JSON text) onto ``questions``.
    """
    data = _json_body()
    try:
        questions = _questions_from(data)
        answer_key = import_answer_key(data.get("key"), questions)
    except ValidationError as e:
        return _invalid("questions", e)
    except MalformedKeyDocument as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "answer_key": answer_key,
        "accepted": len(answer_key),
    })


@app.route("/api/key/export", methods=["POST"])
def key_export():
    """Flat ``{"<number>": "<LETTER>"}`` key for ``questions``."""
    data = _json_body()
    try:
        questions = _questions_from(data)
    except ValidationError as e:
        return _invalid("questions", e)
    try:
        answer_key = _choices_from(data, "answer_key")
    except ValidationError as e:
        return _invalid("answer_key", e)

    return jsonify(export_answer_key(answer_key, questions))


# ─── Grading ──────────────────────────────────────────────────────────────────


@app.route("/api/grade", methods=["POST"])
def grade_answers():
    """Per-question status and score for submitted answers."""
    data = _json_body()
    try:
        questions = _questions_from(data)
    except ValidationError as e:
        return _invalid("questions", e)
    try:
        answers = _choices_from(data, "answers")
    except ValidationError as e:
        return _invalid("answers", e)
    try:
        answer_key = _choices_from(data, "answer_key")
    except ValidationError as e:
        return _invalid("answer_key", e)

    report = grade(
        questions,
        answers,
        answer_key,
        submitted=bool(data.get("submitted", True)),
    )
    return jsonify(report.model_dump(mode="json"))


# ─── Sessions ─────────────────────────────────────────────────────────────────


@app.route("/api/session/<path:file_name>", methods=["GET"])
def get_session(file_name: str):
    """Saved session state for a document."""
    state = load_session_state(_session_store().get(session_key(file_name)))
    if state is None:
        return jsonify({"error": "No saved session", "file_name": file_name}), 404
    return jsonify(state.model_dump(mode="json"))


@app.route("/api/session/<path:file_name>", methods=["PUT"])
def put_session(file_name: str):
    """Replace the saved session state for a document."""
    try:
        state = SessionState.model_validate(_json_body())
    except ValidationError as e:
        return _invalid("session", e)

    _session_store().set(session_key(file_name), state.model_dump_json())
    logger.info(f"Session saved for {file_name}")
    return jsonify({"success": True, "file_name": file_name})


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
