"""
cache/store.py -- Redis-backed ephemeral key-value store.

Holds the short-lived auth state: login failure counters, lockout flags and
profile cache entries. Everything stored here is TTL-bound and disposable --
losing the whole store only resets counters and empties the profile cache.

Every method maps to exactly one Redis command, so each call is atomic at the
store level. Callers compose them without client-side transactions.

Absent vs. empty:
  get() returns a Lookup rather than Optional[str]. Lookup(found=True, value="")
  is a stored empty string; MISS is "no such key".

Usage:
    kv = RedisStore.from_url("redis://localhost:6379/0")
    kv.set("auth:me:42", '{"id": "42"}', ttl=30)
    entry = kv.get("auth:me:42")
    if entry.found:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

import redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from auth.exceptions import CollaboratorUnavailable

logger = logging.getLogger("authgate.cache")


@dataclass(frozen=True)
class Lookup:
    """Result of a key read: found distinguishes a miss from an empty value."""

    found: bool
    value: str = ""


MISS = Lookup(found=False)


class KeyValueStore(Protocol):
    """The ephemeral-store operations the auth service relies on."""

    def get(self, key: str) -> Lookup: ...

    def set(self, key: str, value: str, ttl: int) -> None: ...

    def delete(self, *keys: str) -> int: ...

    def incr(self, key: str) -> int: ...

    def expire(self, key: str, seconds: int) -> bool: ...

    def ping(self) -> bool: ...


@contextmanager
def _redis_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        logger.error("Ephemeral store %s failed: %s", operation, exc.__class__.__name__)
        raise CollaboratorUnavailable() from exc


class RedisStore:
    """KeyValueStore over a redis-py client created with decode_responses=True."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2.0, max_retries: int = 2) -> RedisStore:
        """Build a client with a bounded timeout and transparent retry policy.

        Retries cover connection and timeout errors only. Once they are
        exhausted the error surfaces as CollaboratorUnavailable.
        """
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry=Retry(ExponentialBackoff(), max_retries),
            retry_on_error=[redis.ConnectionError, redis.TimeoutError],
        )
        return cls(client)

    def get(self, key: str) -> Lookup:
        with _redis_errors("get"):
            value = self._client.get(key)
        if value is None:
            return MISS
        return Lookup(found=True, value=value)

    def set(self, key: str, value: str, ttl: int) -> None:
        """SET key value EX ttl -- value and expiry in one command."""
        with _redis_errors("set"):
            self._client.set(key, value, ex=ttl)

    def delete(self, *keys: str) -> int:
        """Delete keys; missing keys are ignored. Returns the number removed."""
        if not keys:
            return 0
        with _redis_errors("delete"):
            return int(self._client.delete(*keys))

    def incr(self, key: str) -> int:
        """Atomically increment a counter, creating it at 1 if absent."""
        with _redis_errors("incr"):
            return int(self._client.incr(key))

    def expire(self, key: str, seconds: int) -> bool:
        with _redis_errors("expire"):
            return bool(self._client.expire(key, seconds))

    def ping(self) -> bool:
        """Return True if Redis answers PING. Used by /health; never raises."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    def close(self) -> None:
        self._client.close()
