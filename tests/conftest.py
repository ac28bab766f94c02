"""
tests/conftest.py -- Shared test fixtures for authgate tests.

This module provides:
  - FakeClock / MemoryKV: an in-process KeyValueStore with TTL semantics driven
    by a manual clock, so expiry is tested by advancing time, not sleeping
  - unit fixtures: config, hasher, issuer, user_store, kv, service
  - api_client: TestClient running the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG and LOGIN_RATE_LIMIT must be set before any api/ or core/ import so
get_settings() auto-generates JWT_SECRET and the per-IP limiter stays out of
the way of the lockout tests.
"""

from __future__ import annotations

import os
import threading
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_auth
from auth.models import AuthConfig
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenIssuer
from cache.store import MISS, Lookup

TEST_SECRET = "test-secret-0123456789abcdef"

# bcrypt's minimum cost keeps the suite fast; production default is 10.
TEST_CONFIG = AuthConfig(
    fail_max=3,
    lock_seconds=60,
    me_cache_seconds=30,
    token_expire_seconds=900,
    bcrypt_rounds=4,
)


# ---------------------------------------------------------------------------
# Ephemeral store test double
# ---------------------------------------------------------------------------


@dataclass
class FakeClock:
    now: float = 1_000_000.0

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryKV:
    """KeyValueStore with Redis-like TTL semantics on a FakeClock.

    Records every call in ``calls`` as (method, *args) so tests can assert the
    exact sequence of store primitives the service issued.
    """

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()
        self.calls: list[tuple] = []

    def _live(self, key: str) -> tuple[str, float | None] | None:
        item = self._data.get(key)
        if item is None:
            return None
        _value, expires_at = item
        if expires_at is not None and expires_at <= self._clock.now:
            del self._data[key]
            return None
        return item

    def get(self, key: str) -> Lookup:
        with self._lock:
            self.calls.append(("get", key))
            item = self._live(key)
        return MISS if item is None else Lookup(found=True, value=item[0])

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self.calls.append(("set", key, value, ttl))
            self._data[key] = (value, self._clock.now + ttl)

    def delete(self, *keys: str) -> int:
        with self._lock:
            self.calls.append(("delete", *keys))
            removed = 0
            for key in keys:
                if self._live(key) is not None:
                    del self._data[key]
                    removed += 1
        return removed

    def incr(self, key: str) -> int:
        with self._lock:
            self.calls.append(("incr", key))
            item = self._live(key)
            count = int(item[0]) + 1 if item else 1
            self._data[key] = (str(count), item[1] if item else None)
        return count

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            self.calls.append(("expire", key, seconds))
            item = self._live(key)
            if item is None:
                return False
            self._data[key] = (item[0], self._clock.now + seconds)
        return True

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass

    # -- test helpers -------------------------------------------------------

    def ttl(self, key: str) -> float | None:
        item = self._live(key)
        if item is None or item[1] is None:
            return None
        return item[1] - self._clock.now


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> AuthConfig:
    return TEST_CONFIG


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_CONFIG.bcrypt_rounds)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, expire_seconds=TEST_CONFIG.token_expire_seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> MemoryKV:
    return MemoryKV(clock)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def service(
    user_store: UserStore,
    kv: MemoryKV,
    issuer: TokenIssuer,
    hasher: PasswordHasher,
    config: AuthConfig,
) -> AuthService:
    return AuthService(users=user_store, kv=kv, issuer=issuer, hasher=hasher, config=config)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    kv: MemoryKV
    clock: FakeClock
    user_store: UserStore
    issuer: TokenIssuer


def _patch_lifespan(user_store: UserStore, kv: MemoryKV):
    """Return an async context manager that replaces the real lifespan.

    Wires the test stores into app.state through the same wire_auth() the
    real lifespan uses, so routes see the production service graph on top of
    isolated stores.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_auth(app, user_store, kv, TEST_CONFIG, TEST_SECRET)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness backed by a fresh shared-memory DB and MemoryKV.

    Module-scoped: tests inside one module share state, so each test uses
    its own usernames.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    clock = FakeClock()
    kv = MemoryKV(clock)

    app.router.lifespan_context = _patch_lifespan(user_store, kv)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            kv=kv,
            clock=clock,
            user_store=user_store,
            issuer=TokenIssuer(TEST_SECRET, expire_seconds=TEST_CONFIG.token_expire_seconds),
        )

    user_store.close()
