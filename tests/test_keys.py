"""Unit tests for auth/keys.py -- the ephemeral-store key namespace and TTL policy."""

from auth.keys import AuthKeys, AuthTTL
from auth.models import AuthConfig


def test_key_namespace():
    assert AuthKeys.fail("alice") == "auth:fail:alice"
    assert AuthKeys.lock("alice") == "auth:lock:alice"
    assert AuthKeys.me("5d0c8a6e-0000-4000-8000-000000000000") == "auth:me:5d0c8a6e-0000-4000-8000-000000000000"


def test_fail_window_and_lock_share_one_duration():
    ttl = AuthTTL(AuthConfig(lock_seconds=120, me_cache_seconds=15))
    assert ttl.fail_window == ttl.lock == 120
    assert ttl.profile == 15
