"""
Session state for rule matching.

The only state matching depends on is the set of skills already used in the
current session. It is modelled as an explicit SessionContext handed to every
match call, never as module-level state, so several sessions can be served by
one process without interfering.

Hook processes live for a single event, so SessionStore persists a context
between events as `<state_dir>/<session_id>.json`.
"""

import json
import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

__all__ = [
    "SessionContext",
    "SessionRegistry",
    "SessionStore",
]

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class SessionContext:
    """Per-session state. used_skills and edited_files only ever grow."""

    session_id: str
    used_skills: set[str] = field(default_factory=set)
    edited_files: list[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def has_used(self, skill_name: str) -> bool:
        return skill_name in self.used_skills

    def record_used(self, skill_name: str) -> None:
        if skill_name not in self.used_skills:
            self.used_skills.add(skill_name)
            self.updated_at = time.time()

    def record_edit(self, file_path: str) -> None:
        if file_path not in self.edited_files:
            self.edited_files.append(file_path)
            self.updated_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "used_skills": sorted(self.used_skills),
            "edited_files": list(self.edited_files),
            "started_at": self.started_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionContext":
        return cls(
            session_id=str(data["session_id"]),
            used_skills=set(data.get("used_skills", [])),
            edited_files=list(data.get("edited_files", [])),
            started_at=float(data.get("started_at", time.time())),
            updated_at=float(data.get("updated_at", time.time())),
        )


class SessionRegistry:
    """In-process sessions, isolated by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionContext:
        """Return the context for session_id, creating it on first use."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = SessionContext(session_id=session_id)
                self._sessions[session_id] = session
            return session

    def end(self, session_id: str) -> None:
        """Discard a session. Its used skills are forgotten."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class SessionStore:
    """Persists SessionContext objects as JSON files for hook processes."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    def _path(self, session_id: str) -> Path:
        safe_id = _UNSAFE_ID_CHARS.sub("_", session_id) or "default"
        return self.state_dir / f"{safe_id}.json"

    def load(self, session_id: str) -> SessionContext:
        """Load a session, or a fresh one if nothing usable is stored."""
        path = self._path(session_id)
        if not path.exists():
            return SessionContext(session_id=session_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return SessionContext.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("session.corrupt", session_id=session_id, error=str(e))
            return SessionContext(session_id=session_id)

    def save(self, session: SessionContext) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(session.session_id)
        path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        logger.debug(
            "session.saved",
            session_id=session.session_id,
            used_skills=len(session.used_skills),
            edited_files=len(session.edited_files),
        )

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_sessions(self) -> list[SessionContext]:
        """All stored sessions, most recently updated first."""
        if not self.state_dir.exists():
            return []
        sessions: list[SessionContext] = []
        for path in self.state_dir.glob("*.json"):
            try:
                sessions.append(SessionContext.from_dict(json.loads(path.read_text(encoding="utf-8"))))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                logger.warning("session.corrupt", path=str(path))
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    def cleanup(self, older_than_days: int = 7) -> int:
        """Delete sessions not updated in older_than_days. Returns how many."""
        if not self.state_dir.exists():
            return 0
        cutoff = time.time() - older_than_days * 86400
        removed = 0
        for path in self.state_dir.glob("*.json"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning("session.cleanup_failed", path=str(path), error=str(e))
        logger.info("session.cleanup", removed=removed, older_than_days=older_than_days)
        return removed
