"""
auth/exceptions.py -- Error taxonomy for the auth service.

Every failure the service can report is an AuthError subclass carrying a
stable machine code, the HTTP status it maps to, and a message that is safe
to show a client. api/main.py renders all of them through one exception
handler, so clients branch on error.code, never on message text.

Layer rule: stdlib only. cache/ and auth/ raise these; api/ renders them.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all auth service errors."""

    code = "auth_error"
    status_code = 401
    default_message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateIdentity(AuthError):
    """Registration conflict: the username is already taken."""

    code = "duplicate_identity"
    status_code = 400
    default_message = "Username already exists."


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. The two cases are deliberately identical."""

    code = "invalid_credentials"
    default_message = "Invalid username or password."


class AccountLocked(AuthError):
    """Too many failed logins for this username; rejected before any credential check."""

    code = "account_locked"
    default_message = "Account temporarily locked."

    def __init__(self, message: str | None = None, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class MissingToken(AuthError):
    code = "missing_token"
    default_message = "Missing access token."


class InvalidToken(AuthError):
    """Bad signature, malformed token or expired token -- never distinguished to the caller."""

    code = "invalid_token"
    default_message = "Invalid or expired access token."


class IdentityNotFound(AuthError):
    """A valid token whose subject no longer exists in the credential store."""

    code = "identity_not_found"
    default_message = "User not found."


class CollaboratorUnavailable(AuthError):
    """The credential store or the ephemeral store failed at the I/O level.

    Raised with ``from exc`` so the original driver error stays on __cause__
    for server-side logs; only the safe message reaches the client.
    """

    code = "service_unavailable"
    status_code = 503
    default_message = "A backing service is unavailable."
