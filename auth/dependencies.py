"""
auth/dependencies.py -- Access control gate and its FastAPI Depends() helper.

The gate accepts exactly one credential form: an Authorization header of the
shape "Bearer <token>" (scheme case-sensitive). Anything else -- no header,
another scheme, an empty token -- fails with MissingToken before the token
issuer is consulted. A present token that fails verification for any reason
fails with InvalidToken.

On success the verified identity travels as an AuthContext value returned by
get_auth_context(); routes take it as a Depends() parameter.

Layer rule: this is the only auth/ module that imports fastapi.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from auth.exceptions import MissingToken
from auth.models import TokenClaims
from auth.tokens import TokenIssuer

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    """Immutable identity of the caller of a protected route."""

    user_id: str
    username: str
    expires_at: int

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthContext:
        return cls(user_id=claims.subject, username=claims.username, expires_at=claims.expires_at)


def extract_bearer_token(header: str | None) -> str:
    """Return the token from an Authorization header value or raise MissingToken."""
    if not header or not header.startswith(_BEARER_PREFIX):
        raise MissingToken()
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise MissingToken()
    return token


class AccessGate:
    """Turns an Authorization header into an AuthContext."""

    def __init__(self, issuer: TokenIssuer) -> None:
        self._issuer = issuer

    def authorize(self, header: str | None) -> AuthContext:
        token = extract_bearer_token(header)
        # verify() raises InvalidToken for bad signature, bad shape and expiry alike.
        return AuthContext.from_claims(self._issuer.verify(token))


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid bearer token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    gate: AccessGate = request.app.state.gate
    return gate.authorize(request.headers.get("Authorization"))
