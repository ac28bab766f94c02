"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. This per-IP limit sits in front of the per-username lockout
in auth/service.py; it throttles one client spraying many usernames, which
the lockout alone cannot see.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

LOGIN_RATE_LIMIT = _settings.login_rate_limit

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
