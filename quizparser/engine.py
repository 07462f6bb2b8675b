"""
Quiz Parser Engine
==================
Main orchestrator that combines text extraction, canonicalization,
segmentation and validation into a complete parsing pipeline.

Usage:
    engine = QuizEngine(config)
    document = engine.parse_file("path/to/exam.pdf")
    # document is a QuizDocument with questions + validation report

Architecture:
    PDF/text → extractor → raw text → canonicalizer → canonical text →
    segmenter → Questions → ValidationEngine → QuizDocument (JSON)
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__
from .canonicalizer import canonicalize
from .extractor import load_source_text
from .models import ParseVersion, QuizDocument
from .segmenter import parse_questions
from .session import QuizSession
from .storage import JsonFileStore, MemoryStore
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class QuizConfig:
    """Configuration for the quiz engine."""

    # Output settings
    output_dir: Optional[str] = None

    # Autosaved sessions (in memory when unset)
    session_dir: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class QuizEngine:
    """
    Main parsing engine.

    Orchestrates the full pipeline:
        1. Text extraction
        2. Canonicalization
        3. Segmentation
        4. Validation
        5. Output formatting

    Holds no per-document state, so one engine can parse many documents.
    """

    def __init__(self, config: Optional[QuizConfig] = None):
        self.config = config or QuizConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("quizparser")
        package_logger.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(console)
        else:
            for handler in package_logger.handlers:
                handler.setLevel(log_level)

        # File handler, once per file
        if self.config.log_file and not _has_file_handler(
            package_logger, self.config.log_file
        ):
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(file_handler)

    def parse_text(self, raw_text: str, source_name: str = "") -> QuizDocument:
        """
        Parse already-extracted text into a QuizDocument.

        Never raises on malformed text; degraded questions show up in the
        validation report.
        """
        start_time = time.time()

        canonical = canonicalize(raw_text)
        questions = parse_questions(canonical)
        validation = ValidationEngine().validate(questions)

        document = QuizDocument(
            source_name=source_name,
            canonical_text=canonical,
            questions=questions,
            validation=validation,
            parse_version=ParseVersion(
                parser_version=__version__,
                raw_char_count=len(raw_text or ""),
                canonical_line_count=len(canonical.splitlines()),
                structured_question_count=len(questions),
            ),
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Parse complete in {elapsed:.2f}s — "
            f"{len(questions)} questions extracted"
        )

        if self.config.output_dir:
            self.save_document(document)

        return document

    def parse_file(self, path: str) -> QuizDocument:
        """
        Extract and parse a PDF or text file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            RuntimeError: If the PDF cannot be opened.
        """
        logger.info(f"Starting parse of: {path}")
        raw_text = load_source_text(path)
        return self.parse_text(raw_text, source_name=Path(path).name)

    def new_session(self) -> QuizSession:
        """A session backed by the configured session store."""
        if self.config.session_dir:
            store = JsonFileStore(self.config.session_dir)
        else:
            store = MemoryStore()
        return QuizSession(store=store)

    def save_document(self, document: QuizDocument) -> Path:
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        output_file = output_dir / f"{_document_id(document.source_name)}_quiz.json"
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(
                document.model_dump(mode="json"),
                f, indent=2, ensure_ascii=False,
            )
        logger.info(f"Saved JSON output: {output_file}")
        return output_file


def _has_file_handler(package_logger: logging.Logger, log_file: str) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == target
        for h in package_logger.handlers
    )


def _document_id(source_name: str) -> str:
    """Filesystem-safe id from the source file name."""
    name = Path(source_name).stem or "document"
    clean_name = "".join(
        c if c.isalnum() or c in "-_" else "_"
        for c in name
    )
    return clean_name[:50]
