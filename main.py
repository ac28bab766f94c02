#!/usr/bin/env python3
"""
authgate -- operator command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py lock-status alice
  python main.py unlock alice

Environment variables are the same as for the API (see core/config.py):
  REDIS_URL       Ephemeral store holding failure counters and lock flags.
  JWT_SECRET      Required unless DEBUG=true.
"""

import argparse
import sys

from auth.keys import AuthKeys
from cache.store import RedisStore
from core.config import get_settings


def _redis_store() -> RedisStore:
    settings = get_settings()
    return RedisStore.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout,
        max_retries=settings.redis_max_retries,
    )


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_lock_status(args: argparse.Namespace) -> int:
    """Print the lock flag and failure count for a username."""
    kv = _redis_store()
    try:
        locked = kv.get(AuthKeys.lock(args.username)).found
        failures = kv.get(AuthKeys.fail(args.username))
    finally:
        kv.close()
    count = int(failures.value) if failures.found and failures.value else 0
    print(f"  {args.username}: {'LOCKED' if locked else 'not locked'}, {count} failed attempt(s) in window")
    return 0


def cmd_unlock(args: argparse.Namespace) -> int:
    """Clear the failure counter and lock flag for a username."""
    kv = _redis_store()
    try:
        removed = kv.delete(AuthKeys.fail(args.username), AuthKeys.lock(args.username))
    finally:
        kv.close()
    if removed:
        print(f"  [+] Cleared lockout state for '{args.username}'.")
    else:
        print(f"  [*] No lockout state for '{args.username}'.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="authgate -- user authentication service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    status = sub.add_parser("lock-status", help="Show failed-login state for a username")
    status.add_argument("username")
    status.set_defaults(func=cmd_lock_status)

    unlock = sub.add_parser("unlock", help="Clear failed-login state for a username")
    unlock.add_argument("username")
    unlock.set_defaults(func=cmd_unlock)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
