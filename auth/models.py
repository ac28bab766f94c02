"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; stores and the service do the work.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.config import Settings


@dataclass
class User:
    """A stored identity record.

    id and created_at are assigned by the store at insert time. password_hash
    is a bcrypt digest and never leaves the auth/ package -- every outward
    view goes through UserProfile.
    """

    username: str
    full_name: str
    password_hash: str
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Public projection of a User: what register() and me() return."""

    id: str
    username: str
    full_name: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> UserProfile:
        return cls(
            id=user.id or "",
            username=user.username,
            full_name=user.full_name,
            created_at=user.created_at or "",
        )

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        """Rebuild a profile from its to_dict() form (profile cache entries)."""
        return cls(
            id=data["id"],
            username=data["username"],
            full_name=data["fullName"],
            created_at=data["createdAt"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "fullName": self.full_name,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    expires_in: int


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of an access token.

    subject is the user id. Timestamps are POSIX seconds.
    """

    subject: str
    username: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthConfig:
    """Immutable auth policy handed to component constructors.

    Built once at process assembly from Settings. Request-handling code reads
    these values and never consults the environment.
    """

    fail_max: int = 5
    lock_seconds: int = 300
    me_cache_seconds: int = 30
    token_expire_seconds: int = 900
    bcrypt_rounds: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            fail_max=settings.login_fail_max,
            lock_seconds=settings.login_lock_seconds,
            me_cache_seconds=settings.me_cache_seconds,
            token_expire_seconds=settings.token_expire_seconds,
            bcrypt_rounds=settings.bcrypt_rounds,
        )
