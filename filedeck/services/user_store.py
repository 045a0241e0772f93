"""
User storage service with JSON-based persistence.
Handles user lookups, password changes and creates the bootstrap admin on first run.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from filedeck.models.user import User
from filedeck.utils.exceptions import ConfigError, NotFoundError
from filedeck.utils.logger import get_logger

logger = get_logger(__name__)


class UserStore:
    """User document manager. One instance per users file."""

    def __init__(self, users_path: Path, bcrypt_rounds: int = 12):
        self.users_path = Path(users_path)
        self.bcrypt_rounds = bcrypt_rounds
        # Serialises read-modify-write on the whole document
        self._lock = threading.RLock()

    def _load_records(self) -> Optional[List[Any]]:
        """Raw user records, or None when the document is missing or unreadable"""
        if not self.users_path.exists():
            return None

        try:
            with open(self.users_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to read users file", path=str(self.users_path), error=str(e))
            return None

        records = data.get("users") if isinstance(data, dict) else None
        if not isinstance(records, list):
            logger.warning("Users file has no users list", path=str(self.users_path))
            return None
        return records

    def load(self) -> List[User]:
        """Load all valid users. Records that fail validation are skipped, not dropped from disk."""
        users = []
        for record in self._load_records() or []:
            try:
                users.append(User(**record))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping invalid user record", path=str(self.users_path), error=str(e))
        return users

    def save(self, users: List[User]) -> None:
        """Atomically save users to JSON"""
        users_data = {"users": [user.model_dump(mode="json", by_alias=True) for user in users]}
        with self._lock:
            self._atomic_write(self.users_path, users_data)

    def find_by_username(self, username: str) -> Optional[User]:
        """Find user by exact username"""
        for user in self.load():
            if user.username == username:
                return user
        return None

    def update_password(self, username: str, password_hash: str) -> User:
        """Replace a user's password hash"""
        with self._lock:
            records = self._load_records() or []
            for i, record in enumerate(records):
                try:
                    user = User(**record)
                except (TypeError, ValueError):
                    continue
                if user.username == username:
                    updated_user = user.model_copy(update={"password_hash": password_hash})
                    # Other records are written back untouched
                    records[i] = updated_user.model_dump(mode="json", by_alias=True)
                    self._atomic_write(self.users_path, {"users": records})
                    return updated_user

        raise NotFoundError("User not found")

    def ensure_initial_admin(self, username: str, password: str) -> bool:
        """
        Create the bootstrap admin when the store has no users.

        Returns True when a user was created. Never touches a store that
        already holds at least one record, valid or not.

        Raises:
            ConfigError: the password is too long for bcrypt, or the document
                holds records of which none is a valid user
        """
        # Lazy import to avoid circular dependency
        from filedeck.auth.user_auth import MAX_PASSWORD_BYTES, hash_password

        with self._lock:
            records = self._load_records()
            if records:
                if not self.load():
                    raise ConfigError(
                        f"Users file {self.users_path} has {len(records)} record(s) but no valid user; "
                        "fix or remove it"
                    )
                return False

            if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
                raise ConfigError(f"ADMIN_PASS must be at most {MAX_PASSWORD_BYTES} bytes")

            admin_user = User(
                username=username,
                password_hash=hash_password(password, rounds=self.bcrypt_rounds),
                role="admin",
            )
            self.save([admin_user])

        logger.info("Bootstrap admin created", username=username, path=str(self.users_path))
        return True

    def _atomic_write(self, path: Path, data: Dict[str, Any]) -> None:
        """Write JSON file atomically"""
        dir_path = path.parent
        dir_path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, delete=False, encoding="utf-8", suffix=".tmp"
        ) as tf:
            json.dump(data, tf, indent=2, ensure_ascii=False)
            tf.flush()
            os.fsync(tf.fileno())
            temp_path = Path(tf.name)

        try:
            # Atomic replace
            os.replace(temp_path, path)
        except OSError as e:
            # Clean up temp file if replace failed
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save users to {path}: {str(e)}")
