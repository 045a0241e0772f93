"""
User authentication service with password hashing and session management.
"""

import hashlib
import hmac
from typing import Optional

import bcrypt

from filedeck.auth.session_store import FileSessionStore
from filedeck.models.user import Identity, Session
from filedeck.safety.rate_limiter import AttemptLimiter
from filedeck.services.audit_log import AuditLog
from filedeck.services.user_store import UserStore
from filedeck.utils.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from filedeck.utils.logger import get_logger

logger = get_logger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class AuthService:
    """Login, logout, password change and the session check behind every protected route."""

    def __init__(
        self,
        user_store: UserStore,
        session_store: FileSessionStore,
        audit_log: AuditLog,
        login_limiter: AttemptLimiter,
        session_secret: str,
        bcrypt_rounds: int = 12,
    ):
        self.user_store = user_store
        self.session_store = session_store
        self.audit_log = audit_log
        self.login_limiter = login_limiter
        self._secret = session_secret.encode("utf-8")
        self.bcrypt_rounds = bcrypt_rounds
        # Compared against when the username is unknown so both failure paths cost a bcrypt check
        self._dummy_hash = hash_password("filedeck-unknown-user", rounds=bcrypt_rounds)

    # --- cookie signing ---

    def sign_session_id(self, session_id: str) -> str:
        signature = hmac.new(self._secret, session_id.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"{session_id}.{signature}"

    def unsign_session_id(self, cookie_value: Optional[str]) -> Optional[str]:
        """Return the session id if the cookie signature is valid, else None"""
        if not cookie_value or "." not in cookie_value:
            return None
        session_id, signature = cookie_value.rsplit(".", 1)
        expected = hmac.new(self._secret, session_id.encode("utf-8"), hashlib.sha256).hexdigest()
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            return None
        return session_id

    # --- flows ---

    def check_login_rate(self, source: str) -> None:
        """Count a login attempt from `source`; raises RateLimitError when over budget"""
        self.login_limiter.hit(source or "unknown")

    def login(self, username: str, password: str) -> Session:
        """Verify credentials and open a session"""
        if not username or not password:
            raise ValidationError("Missing credentials")

        user = self.user_store.find_by_username(username)
        if user is None:
            verify_password(password, self._dummy_hash)
            logger.info("Login failed", reason="invalid_credentials")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.info("Login failed", reason="invalid_credentials")
            raise InvalidCredentialsError()

        session = self.session_store.create(user.identity)
        self.audit_log.record(user.username, "login", "-")
        logger.info("Login succeeded", username=user.username)
        return session

    def validate_session(self, session_id: Optional[str]) -> Optional[Identity]:
        """Return the identity bound to a live session, or None"""
        session = self.session_store.get(session_id)
        if session is None:
            return None
        return session.user

    def logout(self, session_id: Optional[str], identity: Identity) -> None:
        """Destroy the server-side session"""
        self.session_store.destroy(session_id)
        self.audit_log.record(identity.username, "logout", "-")

    def change_password(self, identity: Identity, current_password: str, new_password: str) -> None:
        """Replace the caller's password after re-checking the current one"""
        if not current_password or not new_password:
            raise ValidationError("Missing fields")
        if len(new_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"New password must be at most {MAX_PASSWORD_BYTES} bytes")

        user = self.user_store.find_by_username(identity.username)
        if user is None:
            raise NotFoundError("User not found")

        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password incorrect")

        self.user_store.update_password(user.username, hash_password(new_password, rounds=self.bcrypt_rounds))
        self.audit_log.record(user.username, "change_password", "-")
        logger.info("Password changed", username=user.username)
