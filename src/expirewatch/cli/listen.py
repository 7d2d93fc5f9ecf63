"""
CLI: ``expirewatch listen`` / ``demo`` — run the expiration listener.
"""

from __future__ import annotations

import json
import time

import typer
from structlog.contextvars import bound_contextvars

from expirewatch.cli.utils import cli_errors, console, redis_client
from expirewatch.listener import ExpirationListener
from expirewatch.logging import get_logger
from expirewatch.settings import get_settings

logger = get_logger(__name__)

# (key, value, ttl_seconds)
DEMO_KEYS = [
    ("session:user123", "sessiondata", 5),
    ("cache:product456", "cachedata", 7),
    ("lock:resource789", "lockdata", 10),
]


def _wait(duration: float | None) -> None:
    """Sleep for *duration* seconds, or until Ctrl-C when ``None``."""
    deadline = None if duration is None else time.monotonic() + duration
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.2)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted.[/dim]")


def listen(
    duration: float | None = typer.Option(
        None, "--duration", "-d", help="Stop after this many seconds (default: until Ctrl-C)"
    ),
    json_out: bool = typer.Option(False, "--json", help="Print one JSON object per expired key"),
) -> None:
    """Print every key Redis expires."""

    def _print(key: str) -> None:
        if json_out:
            console.print_json(json.dumps({"expired": key, "at": time.time()}))
        else:
            console.print(f"[yellow]expired[/yellow] {key}")

    settings = get_settings()
    with cli_errors(), redis_client() as client:
        listener = ExpirationListener.from_settings(client, settings).on_key_expire(_print)
        with listener:
            console.print(f"[dim]Listening on {listener.pattern}[/dim]")
            _wait(duration)


def classify_expired_key(key: str) -> str:
    """Name the kind of resource an expired key stood for, by prefix."""
    if key.startswith("session:"):
        return "session"
    if key.startswith("cache:"):
        return "cache"
    if key.startswith("lock:"):
        return "lock"
    return "other"


def log_expired_key(key: str) -> str:
    """Log *key* under its resource kind and return the kind.

    Runs on the listener thread, which does not inherit context bound on the
    main thread, so the ``command`` field is bound here.
    """
    kind = classify_expired_key(key)
    with bound_contextvars(command="demo"):
        if kind == "session":
            logger.info("session_expired", key=key)
        elif kind == "cache":
            logger.info("cache_entry_expired", key=key)
        elif kind == "lock":
            logger.info("lock_released", key=key)
    return kind


def demo(
    wait: float = typer.Option(12.0, "--wait", "-w", help="Seconds to wait for the keys to expire"),
) -> None:
    """Set session/cache/lock keys with different TTLs and report their expiry."""
    seen: list[str] = []

    def _handle(key: str) -> None:
        seen.append(key)
        kind = log_expired_key(key)
        console.print(f"[yellow]expired[/yellow] {key} ({kind})")

    settings = get_settings()
    with bound_contextvars(command="demo"), cli_errors(), redis_client() as client:
        listener = ExpirationListener.from_settings(client, settings).on_key_expire(_handle)
        with listener:
            for key, value, ttl in DEMO_KEYS:
                listener.set_with_expiration(key, value, ttl)
            console.print(f"Keys set with TTL. Waiting {wait:g}s for expirations...")
            _wait(wait)

    console.print(f"[green]Seen {len(seen)} of {len(DEMO_KEYS)} keys[/green]: {', '.join(seen)}")
