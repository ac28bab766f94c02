"""
auth/service.py -- Registration, brute-force-protected login and cached profile reads.

AuthService is a stateless orchestrator: it holds only the collaborators and
policy handed to its constructor, so one instance is shared by every request
worker without locking.

Login is a chain of short-circuit gates, strictly in this order:
  1. lock flag present            -> AccountLocked (no further reads, no counter change)
  2. username unknown             -> bump counter, InvalidCredentials
  3. password mismatch            -> bump counter, InvalidCredentials
  4. success                      -> clear counter + lock flag, issue token

Profile reads are cache-aside over auth:me:<user_id>. Misses are never cached.

Collaborator I/O failures (CollaboratorUnavailable) propagate untouched; they
are never converted into InvalidCredentials or AccountLocked.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy.exc import IntegrityError

from auth.exceptions import AccountLocked, DuplicateIdentity, IdentityNotFound, InvalidCredentials
from auth.keys import LOCK_FLAG, AuthKeys, AuthTTL
from auth.models import AuthConfig, LoginResult, UserProfile
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenIssuer
from cache.store import KeyValueStore

logger = logging.getLogger("authgate.auth")


class AuthService:
    def __init__(
        self,
        users: UserStore,
        kv: KeyValueStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        config: AuthConfig,
    ) -> None:
        self._users = users
        self._kv = kv
        self._issuer = issuer
        self._hasher = hasher
        self._config = config
        self._ttl = AuthTTL(config)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, full_name: str) -> UserProfile:
        """Create a user and return its public projection.

        The lookup is a fast path only; the UNIQUE constraint is what actually
        prevents duplicates, and its IntegrityError maps to the same error.
        """
        if self._users.get_by_username(username) is not None:
            raise DuplicateIdentity()

        password_hash = self._hasher.hash(password)
        try:
            user = self._users.create_user(username, full_name, password_hash)
        except IntegrityError as exc:
            logger.info("Registration raced on username %r", username)
            raise DuplicateIdentity() from exc

        logger.info("Registered user %s (%s)", user.id, user.username)
        return UserProfile.from_user(user)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        if self._kv.get(AuthKeys.lock(username)).found:
            logger.warning("Login rejected for locked username %r", username)
            raise AccountLocked(retry_after=self._ttl.lock)

        user = self._users.get_by_username(username)
        if user is None:
            # Pay the bcrypt cost anyway so response time does not reveal
            # whether the username exists.
            self._hasher.verify_dummy(password)
            self._bump_fail(username)
            raise InvalidCredentials()

        if not self._hasher.verify(password, user.password_hash):
            self._bump_fail(username)
            raise InvalidCredentials()

        self._kv.delete(AuthKeys.fail(username), AuthKeys.lock(username))
        token = self._issuer.issue_access_token(user)
        logger.info("Login succeeded for %s", user.id)
        return LoginResult(access_token=token, expires_in=self._issuer.expire_seconds)

    def _bump_fail(self, username: str) -> int:
        """Count one failed login for username; engage the lock at fail_max.

        INCR is the single atomic step, so concurrent failures never lose an
        update. The first failure of a fresh window starts the window's TTL;
        the lock SET is idempotent and safe to race.
        """
        key = AuthKeys.fail(username)
        count = self._kv.incr(key)
        if count == 1:
            self._kv.expire(key, self._ttl.fail_window)
        logger.warning("Failed login %d/%d for username %r", count, self._config.fail_max, username)
        if count >= self._config.fail_max:
            self._kv.set(AuthKeys.lock(username), LOCK_FLAG, ttl=self._ttl.lock)
            logger.warning("Locked username %r for %ds", username, self._ttl.lock)
        return count

    # ------------------------------------------------------------------
    # Profile ("me")
    # ------------------------------------------------------------------

    def me(self, user_id: str) -> UserProfile:
        key = AuthKeys.me(user_id)
        cached = self._kv.get(key)
        if cached.found:
            profile = self._decode_profile(user_id, cached.value)
            if profile is not None:
                return profile

        user = self._users.get_by_id(user_id)
        if user is None:
            raise IdentityNotFound()

        profile = UserProfile.from_user(user)
        self._kv.set(key, json.dumps(profile.to_dict()), ttl=self._ttl.profile)
        logger.debug("Profile cache filled for %s", user_id)
        return profile

    @staticmethod
    def _decode_profile(user_id: str, raw: str) -> UserProfile | None:
        """Decode a profile cache entry; None for an empty or corrupt entry.

        A bad entry is a miss: the caller re-reads storage and overwrites it.
        """
        if not raw:
            return None
        try:
            return UserProfile.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.debug("Discarding unreadable profile cache entry for %s", user_id)
            return None
