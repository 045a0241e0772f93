"""
Configuration management with schema validation.
Settings are built once at startup and handed to every component.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path("config") / "settings.yaml"
DEFAULT_SESSION_SECRET = "change-me-in-env"
DEFAULT_ADMIN_PASSWORD = "admin123"

# Environment variable -> settings key ("section.key" for nested sections)
ENV_OVERRIDES = {
    "ENVIRONMENT": "environment",
    "HOST": "host",
    "PORT": "port",
    "ADMIN_PATH": "admin_path",
    "ROOT_PATH": "root_path",
    "DATA_DIR": "data_dir",
    "PUBLIC_DIR": "public_dir",
    "ADMIN_USER": "admin_user",
    "ADMIN_PASS": "admin_pass",
    "SESSION_SECRET": "session_secret",
    "SESSION_MAX_AGE_HOURS": "session_max_age_hours",
    "MAX_TEXT_BYTES": "max_text_bytes",
    "LOGIN_MAX_ATTEMPTS": "login_max_attempts",
    "LOGIN_WINDOW_SECONDS": "login_window_seconds",
    "BCRYPT_ROUNDS": "bcrypt_rounds",
    "LOG_LEVEL": "logging.level",
    "LOG_FORMAT": "logging.format",
    "LOG_FILE": "logging.file_path",
}


def _default_data_dir() -> Path:
    if sys.platform.startswith("linux"):
        return Path("/tmp/filedeck")
    return Path.cwd() / "data"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class Settings(BaseModel):
    """Process-wide configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3097
    admin_path: str = "/admin"
    root_path: Path = Field(default_factory=Path.cwd)
    data_dir: Path = Field(default_factory=_default_data_dir)
    public_dir: Path = Field(default_factory=lambda: Path.cwd() / "public")
    admin_user: str = "admin"
    admin_pass: str = DEFAULT_ADMIN_PASSWORD
    session_secret: str = DEFAULT_SESSION_SECRET
    session_max_age_hours: float = Field(default=12, gt=0)
    max_text_bytes: int = Field(default=2 * 1024 * 1024, gt=0)
    login_max_attempts: int = Field(default=20, gt=0)
    login_window_seconds: float = Field(default=600, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("admin_path")
    @classmethod
    def normalize_admin_path(cls, value: str) -> str:
        trimmed = (value or "").strip().strip("/")
        return f"/{trimmed or 'admin'}"

    @field_validator("root_path", "data_dir", "public_dir")
    @classmethod
    def make_absolute(cls, value: Path) -> Path:
        return Path(os.path.abspath(os.path.expanduser(str(value))))

    @property
    def users_file(self) -> Path:
        return self.data_dir / "users.json"

    @property
    def audit_log_file(self) -> Path:
        return self.data_dir / "audit.log"

    @property
    def sessions_dir(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def session_max_age_seconds(self) -> int:
        return int(self.session_max_age_hours * 3600)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} / ${VAR:default} placeholders"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            env_value = os.getenv(var_expr)
            if env_value is None:
                raise ConfigError(f"Environment variable {var_expr} not found")
            return env_value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _set_dotted(data: Dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build Settings from (lowest to highest precedence):
    the YAML file, environment variables, then explicit keyword overrides.
    """
    load_dotenv()

    path = Path(config_path or os.getenv("FILEDECK_CONFIG") or DEFAULT_CONFIG_FILE)
    raw: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}")
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        raw = _substitute_env_vars(raw)

    for env_name, key in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value is not None and env_value != "":
            _set_dotted(raw, key, env_value)

    for key, value in overrides.items():
        raw[key] = value

    try:
        settings = Settings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")

    if settings.session_secret == DEFAULT_SESSION_SECRET:
        logger.warning("SESSION_SECRET not set; using the built-in default secret")
    return settings
