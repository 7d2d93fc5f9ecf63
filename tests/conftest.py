"""
Shared pytest fixtures for expirewatch tests.

Provides an in-process Redis double that understands the handful of
commands the listener uses (CONFIG GET/SET, SET EX, PSUBSCRIBE) and
publishes ``__keyevent@0__:expired`` messages when a key's TTL elapses,
but only while ``notify-keyspace-events`` enables expired keyevents,
as a real server does.
"""

from __future__ import annotations

import queue
import sys
import threading
import time
from pathlib import Path
from typing import Any

import pytest
import structlog

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# =============================================================================
# Redis double
# =============================================================================


class FakePubSub:
    def __init__(self, server: FakeRedis, ignore_subscribe_messages: bool = False) -> None:
        self._server = server
        self._ignore_subscribe_messages = ignore_subscribe_messages
        self._queue: queue.Queue[dict[str, Any]] = queue.Queue()
        self.patterns: list[str] = []
        self.closed = False

    def psubscribe(self, *patterns: str) -> None:
        self.patterns.extend(patterns)
        if not self._ignore_subscribe_messages:
            for p in patterns:
                self._queue.put({"type": "psubscribe", "pattern": None, "channel": p, "data": 1})

    def push(self, message: dict[str, Any]) -> None:
        self._queue.put(message)

    def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        deadline = time.monotonic() + timeout
        while True:
            self._server.expire_due()
            try:
                return self._queue.get_nowait()
            except queue.Empty:
                pass
            if time.monotonic() >= deadline:
                return None
            time.sleep(0.01)

    def close(self) -> None:
        self.closed = True
        if self in self._server.pubsubs:
            self._server.pubsubs.remove(self)


class FakeRedis:
    """Thread-safe stand-in for ``redis.Redis`` with expiry notifications."""

    def __init__(self, notify_flags: str = "") -> None:
        self.config = {"notify-keyspace-events": notify_flags}
        self.data: dict[str, str] = {}
        self.commands: list[str] = []
        self.pubsubs: list[FakePubSub] = []
        self._expiries: dict[str, float] = {}
        self._lock = threading.Lock()

    # ── commands ────────────────────────────────────────────────

    def config_get(self, name: str) -> dict[str, str]:
        self.commands.append("CONFIG GET")
        return {name: self.config.get(name, "")}

    def config_set(self, name: str, value: str) -> bool:
        self.commands.append("CONFIG SET")
        self.config[name] = value
        return True

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.commands.append("SET")
        with self._lock:
            self.data[key] = value
            if ex is not None:
                self._expiries[key] = time.monotonic() + ex
        return True

    def get(self, key: str) -> str | None:
        self.expire_due()
        return self.data.get(key)

    def pubsub(self, ignore_subscribe_messages: bool = False) -> FakePubSub:
        self.commands.append("PSUBSCRIBE")
        ps = FakePubSub(self, ignore_subscribe_messages)
        self.pubsubs.append(ps)
        return ps

    # ── expiry ──────────────────────────────────────────────────

    def _publishes_expired(self) -> bool:
        flags = self.config["notify-keyspace-events"]
        return "E" in flags and ("x" in flags or "A" in flags)

    def expire_due(self) -> None:
        now = time.monotonic()
        with self._lock:
            due = sorted((t, k) for k, t in self._expiries.items() if t <= now)
            for _, key in due:
                del self._expiries[key]
                self.data.pop(key, None)
        if not due or not self._publishes_expired():
            return
        for _, key in due:
            for ps in list(self.pubsubs):
                ps.push({
                    "type": "pmessage",
                    "pattern": "__keyevent@*__:expired",
                    "channel": "__keyevent@0__:expired",
                    "data": key,
                })


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Send unconfigured log output to stderr; undo any ``configure_logging()``."""
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))
    yield
    structlog.reset_defaults()


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll *predicate* until it is true or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_for():
    return wait_until
