"""Application container: builds every component from one Settings instance"""

from typing import Optional

from .auth.session_store import FileSessionStore
from .auth.user_auth import AuthService
from .safety.rate_limiter import AttemptLimiter
from .services.audit_log import AuditLog
from .services.file_service import FileService
from .services.user_store import UserStore
from .utils.config import DEFAULT_ADMIN_PASSWORD, Settings, load_settings
from .utils.exceptions import ConfigError
from .utils.logger import get_logger

logger = get_logger(__name__)


class FileDeckApp:
    """Main application class for the file manager"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self.user_store: Optional[UserStore] = None
        self.session_store: Optional[FileSessionStore] = None
        self.audit_log: Optional[AuditLog] = None
        self.login_limiter: Optional[AttemptLimiter] = None
        self.auth_service: Optional[AuthService] = None
        self.file_service: Optional[FileService] = None
        self._initialized = False

    def initialize(self) -> "FileDeckApp":
        """Create directories, wire services and bootstrap the admin user"""
        if self._initialized:
            return self

        settings = self.settings
        logger.info(
            "Initializing FileDeck",
            root=str(settings.root_path),
            data_dir=str(settings.data_dir),
            admin_path=settings.admin_path,
        )

        for directory in (settings.root_path, settings.data_dir, settings.sessions_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigError(f"Cannot create directory {directory}: {e}")

        self.user_store = UserStore(settings.users_file, bcrypt_rounds=settings.bcrypt_rounds)
        self.session_store = FileSessionStore(
            settings.sessions_dir, max_age_seconds=settings.session_max_age_seconds
        )
        self.audit_log = AuditLog(settings.audit_log_file)
        self.login_limiter = AttemptLimiter(
            max_attempts=settings.login_max_attempts,
            window_seconds=settings.login_window_seconds,
        )
        self.auth_service = AuthService(
            user_store=self.user_store,
            session_store=self.session_store,
            audit_log=self.audit_log,
            login_limiter=self.login_limiter,
            session_secret=settings.session_secret,
            bcrypt_rounds=settings.bcrypt_rounds,
        )
        self.file_service = FileService(
            settings.root_path, self.audit_log, max_text_bytes=settings.max_text_bytes
        )

        created = self.user_store.ensure_initial_admin(settings.admin_user, settings.admin_pass)
        if created and settings.admin_pass == DEFAULT_ADMIN_PASSWORD:
            logger.warning("Bootstrap admin uses the default password; set ADMIN_PASS", username=settings.admin_user)

        self.session_store.purge_expired()
        self._initialized = True
        logger.info("FileDeck initialized")
        return self
