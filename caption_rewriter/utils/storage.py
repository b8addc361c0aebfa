from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from caption_rewriter.config import HISTORY_FILENAME, HISTORY_LIMIT, HISTORY_STORAGE_KEY
from caption_rewriter.exceptions import InputValidationError, StorageError
from caption_rewriter.models import CaptionRow, HistorySession, ProcessingStats
from caption_rewriter.state import reset_interrupted, strip_image

logger = logging.getLogger(__name__)

_SESSIONS = TypeAdapter(List[HistorySession])


def get_storage_dir(root: str | Path | None = None) -> Path:
    """Return the persistent storage directory, creating it if missing."""
    d = Path(root or os.getenv("APP_STORAGE_DIR", "./storage"))
    d.mkdir(parents=True, exist_ok=True)
    return d


def session_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Session {now.month}/{now.day} {now:%H:%M}"


class JsonKeyValueStore:
    """Tiny key-value store persisted as one JSON object on disk."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        try:
            data = self._read()
        except ValueError:
            data = {}
        data[key] = value
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)


class HistoryStore:
    """Saved sessions, most recent first, capped at ``limit`` entries."""

    def __init__(self, root: str | Path | None = None, limit: int = HISTORY_LIMIT):
        self.kv = JsonKeyValueStore(get_storage_dir(root) / HISTORY_FILENAME)
        self.limit = limit

    def get_sessions(self) -> List[HistorySession]:
        try:
            raw = self.kv.get(HISTORY_STORAGE_KEY)
            return _SESSIONS.validate_python(raw) if raw else []
        except (OSError, ValueError, ValidationError) as exc:
            logger.error("Failed to load history: %s", exc)
            return []

    def _write(self, sessions: Sequence[HistorySession]) -> None:
        self.kv.set(HISTORY_STORAGE_KEY, _SESSIONS.dump_python(list(sessions), mode="json"))

    def save_session(
        self,
        rows: Sequence[CaptionRow],
        stats: ProcessingStats,
        *,
        now: Optional[datetime] = None,
    ) -> HistorySession:
        now = now or datetime.now()
        session = HistorySession(
            timestamp=int(now.timestamp() * 1000),
            name=session_name(now),
            stats=stats,
            # image payloads are too large to keep around
            data=[strip_image(r) for r in rows],
        )
        sessions = [session, *self.get_sessions()][: self.limit]
        try:
            self._write(sessions)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to save history: %s", exc)
            raise StorageError("Failed to save history. The storage may be full.") from exc
        logger.info("Saved session %s (%d rows)", session.name, len(session.data))
        return session

    def delete_session(self, session_id: str) -> List[HistorySession]:
        sessions = [s for s in self.get_sessions() if s.id != session_id]
        try:
            self._write(sessions)
        except OSError as exc:
            logger.error("Failed to delete session %s: %s", session_id, exc)
            raise StorageError("Failed to update history.") from exc
        return sessions

    @staticmethod
    def load_session(session: HistorySession) -> List[CaptionRow]:
        """Rows of a saved session as a fresh list; empty sessions are refused."""
        if not session.data:
            raise InputValidationError("This history entry is empty or malformed and cannot be loaded.")
        return reset_interrupted(session.data)


__all__ = ["HistoryStore", "JsonKeyValueStore", "get_storage_dir", "session_name"]
