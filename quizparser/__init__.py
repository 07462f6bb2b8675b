"""
Quiz Parser Engine
==================
Turns text extracted from multiple-choice exam documents into structured
questions, then grades submitted answers against an answer key.

Architecture:
    - Canonicalizer: Normalizes malformed text into one line-oriented form
    - Segmenter: Splits canonical text into questions with ordered options
    - Answer Key: Imports/exports keys keyed by question number
    - Scoring: Per-question status and aggregate score
    - Session: Autosaved answers and key per document

Version: 1.0.0
"""

__version__ = "1.0.0"
