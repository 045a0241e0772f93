"""
File-backed session store: one JSON document per session under the sessions directory.

Session ids are random url-safe tokens, so they double as file names.
Writes go through a temp file + os.replace; a missing file means "no session".
"""

import json
import os
import re
import secrets
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from filedeck.models.user import Identity, Session
from filedeck.utils.exceptions import ConfigError
from filedeck.utils.logger import get_logger

logger = get_logger(__name__)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


class FileSessionStore:
    """Owns session records; callers only ever hold the session id."""

    def __init__(
        self,
        sessions_dir: Path,
        max_age_seconds: int = 12 * 60 * 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.sessions_dir = Path(sessions_dir)
        self.max_age_seconds = max_age_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def create(self, identity: Identity) -> Session:
        """Create and persist a new session bound to `identity`"""
        now = self.clock()
        session = Session(
            id=secrets.token_urlsafe(32),
            user=identity,
            created_at=now,
            expires_at=now + timedelta(seconds=self.max_age_seconds),
        )
        self._write(session)
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Return the live session for `session_id`; expired sessions are removed"""
        path = self._path_for(session_id)
        if path is None:
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                session = Session(**json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable session", error=str(e))
            self.destroy(session_id)
            return None

        if session.id != session_id or session.is_expired(self.clock()):
            self.destroy(session_id)
            return None
        return session

    def destroy(self, session_id: Optional[str]) -> None:
        """Remove a session (idempotent)"""
        path = self._path_for(session_id)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def purge_expired(self) -> int:
        """Remove every expired or unreadable session file. Returns the count removed."""
        if not self.sessions_dir.is_dir():
            return 0

        removed = 0
        now = self.clock()
        for path in self.sessions_dir.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    session = Session(**json.load(f))
                expired = session.is_expired(now)
            except FileNotFoundError:
                continue
            except (OSError, json.JSONDecodeError, TypeError, ValueError):
                expired = True
            if expired:
                try:
                    path.unlink()
                    removed += 1
                except FileNotFoundError:
                    pass

        if removed:
            logger.info("Expired sessions purged", count=removed)
        return removed

    def _path_for(self, session_id: Optional[str]) -> Optional[Path]:
        if not session_id or not _SESSION_ID_RE.match(session_id):
            return None
        return self.sessions_dir / f"{session_id}.json"

    def _write(self, session: Session) -> None:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        payload = session.model_dump(mode="json", by_alias=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=self.sessions_dir, delete=False, encoding="utf-8", suffix=".tmp"
        ) as tf:
            json.dump(payload, tf, indent=2)
            temp_path = Path(tf.name)

        try:
            os.replace(temp_path, self._path_for(session.id))
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save session: {str(e)}")
