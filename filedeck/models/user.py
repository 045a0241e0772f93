"""User and session data models for authentication"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Timestamps written without an offset are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Identity(BaseModel):
    """Who is making a request; what a session carries"""

    model_config = ConfigDict(frozen=True)

    username: str
    role: Literal["admin"] = "admin"


class User(BaseModel):
    """Persisted user record. On disk keys are camelCase (passwordHash, createdAt)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    username: str
    password_hash: str = Field(alias="passwordHash")
    role: Literal["admin"] = "admin"
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def identity(self) -> Identity:
        return Identity(username=self.username, role=self.role)


class Session(BaseModel):
    """Server-side session record"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    user: Identity
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")

    @field_validator("created_at", "expires_at")
    @classmethod
    def times_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
