"""
Session Storage
===============
Key-value stores for autosaved quiz sessions.

A store only needs ``get(key) -> Optional[str]`` and ``set(key, blob)``.
Sessions are saved under ``pdf-quiz:v1:<file name>``.

Directory Layout (JsonFileStore):
    <directory>/
    └── pdf-quiz_v1_<file name>.json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "pdf-quiz:v1:"


def session_key(file_name: str) -> str:
    return f"{SESSION_KEY_PREFIX}{file_name}" if file_name else ""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, blob: str) -> None:
        ...


class MemoryStore:
    """In-process store; lost when the process exits."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, blob: str) -> None:
        self._data[key] = blob

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """One file per key inside ``directory``."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Session storage initialized: {self.directory}")

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_sanitize_name(key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, blob: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(blob, encoding="utf-8")
        tmp.replace(path)
        logger.debug(f"Session saved: {path.name}")

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted session: {path.name}")
            return True
        return False


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _sanitize_name(name: str) -> str:
    """Sanitize a name for filesystem use."""
    return "".join(
        c if c.isalnum() or c in "-_. " else "_"
        for c in name
    ).strip().replace(" ", "_")[:150]
