"""
auth/tokens.py -- Password hashing and access-token issue/verify.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide
       JWT_SECRET and carry sub (user id), username, iat and exp. They are
       never stored or revoked; validity is signature + timestamp only.
       verify() raises InvalidToken for every failure reason so the caller
       cannot tell a forged token from an expired one.

  Passwords: bcrypt used directly. The cost factor is a constructor argument
       (BCRYPT_ROUNDS) so it can be tuned against request concurrency. The
       dummy hash enables timing equalization in the login path: an unknown
       username still pays for one bcrypt comparison.

Layer rule: no imports from api/ or cache/. Secrets and durations arrive
through constructors, never from get_settings().
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.exceptions import InvalidToken
from auth.models import TokenClaims, User

logger = logging.getLogger("authgate.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


class PasswordHasher:
    """Salted one-way password hashing with a configurable bcrypt cost."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Computed once so the first unknown-username login is not measurably
        # slower than later ones.
        self._dummy_hash = self.hash("authgate_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        bcrypt rejects input longer than 72 UTF-8 bytes with ValueError; the
        API layer refuses such passwords before they get here.
        """
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash or over-long input: a mismatch, not a server error.
            return False

    def verify_dummy(self, plain: str) -> None:
        """Spend one bcrypt comparison without a real hash to compare against."""
        self.verify(plain, self._dummy_hash)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies stateless bearer tokens.

    Usage:
        issuer = TokenIssuer(secret="...", expire_seconds=900)
        token = issuer.issue({"sub": user_id, "username": "alice"})
        claims = issuer.verify(token)   # TokenClaims or raises InvalidToken
    """

    def __init__(self, secret: str, expire_seconds: int = 900, algorithm: str = _ALGORITHM) -> None:
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.expire_seconds = expire_seconds

    def issue(self, claims: dict, ttl: int | None = None) -> str:
        """Encode claims plus iat/exp into a signed token.

        ttl defaults to the issuer's expire_seconds. exp is absolute, so the
        token expires at the same instant wherever it is verified.
        """
        duration = self.expire_seconds if ttl is None else ttl
        now = datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int((now + timedelta(seconds=duration)).timestamp())
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_access_token(self, user: User) -> str:
        return self.issue({"sub": user.id, "username": user.username})

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a token. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require_exp": True},
            )
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            raise InvalidToken() from exc
        subject = payload.get("sub")
        username = payload.get("username")
        if not isinstance(subject, str) or not subject or not isinstance(username, str):
            raise InvalidToken()
        return TokenClaims(
            subject=subject,
            username=username,
            issued_at=int(payload.get("iat", 0)),
            expires_at=int(payload["exp"]),
        )
