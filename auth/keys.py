"""
auth/keys.py -- Ephemeral-store key names and TTL policy.

The key namespace is part of the service's external contract (operators and
tests inspect these keys directly), so every key the service touches is built
here and nowhere else:

    auth:fail:<username>   failed-login counter   TTL = lock_seconds from first failure
    auth:lock:<username>   lockout flag ("1")     TTL = lock_seconds
    auth:me:<user_id>      profile cache (JSON)   TTL = me_cache_seconds

Failure state is keyed by the submitted username, not the user id, so that
attempts against usernames that do not exist are counted too.
"""

from __future__ import annotations

from auth.models import AuthConfig

LOCK_FLAG = "1"


class AuthKeys:
    """Standard key templates for the auth namespace."""

    FAIL = "auth:fail:{username}"
    LOCK = "auth:lock:{username}"
    ME = "auth:me:{user_id}"

    @classmethod
    def fail(cls, username: str) -> str:
        return cls.FAIL.format(username=username)

    @classmethod
    def lock(cls, username: str) -> str:
        return cls.LOCK.format(username=username)

    @classmethod
    def me(cls, user_id: str) -> str:
        return cls.ME.format(user_id=user_id)


class AuthTTL:
    """TTL policy derived from an AuthConfig.

    The failure window and the lock duration share lock_seconds: a counter
    lives for lock_seconds after its first failure, and a lock engaged by that
    counter lasts lock_seconds from the moment it is set.
    """

    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    @property
    def fail_window(self) -> int:
        return self._config.lock_seconds

    @property
    def lock(self) -> int:
        return self._config.lock_seconds

    @property
    def profile(self) -> int:
        return self._config.me_cache_seconds
