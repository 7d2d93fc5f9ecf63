"""Redis key-expiration listener.

Bridges Redis expired-key notifications to a single application callback.
The pattern subscription runs on a daemon thread so ``start()`` never blocks
the caller.

┌──────────────────────────────────────────────────────────────────────────────┐
│  EXPIRATION LISTENER                                                          │
│                                                                               │
│   on_key_expire(cb)      register callback (chainable)                        │
│                                                                               │
│   start()                                                                     │
│      │  ensure_expired_notifications(client)   CONFIG GET / SET  "Ex"        │
│      ▼                                                                        │
│   ┌─────────────────────────────────────────────────────────┐                │
│   │              Daemon Thread                              │                │
│   │                                                         │                │
│   │   pubsub.psubscribe("__keyevent@*__:expired")           │                │
│   │   while not stop_event.is_set():                        │                │
│   │       msg = pubsub.get_message(timeout=poll_interval)   │                │
│   │       callback(msg["data"])   ◄── errors logged only    │                │
│   │   pubsub.close()                                        │                │
│   └─────────────────────────────────────────────────────────┘                │
│                                                                               │
│   stop()                                                                      │
│      stop_event.set()                                                         │
│      thread.join(timeout=join_timeout)                                        │
│                                                                               │
│  States: Idle ──start()──► Running ──stop() / subscription failure──► Idle   │
└──────────────────────────────────────────────────────────────────────────────┘

Each ``start()`` gets its own stop event, so a thread from a previous cycle
can never be revived by a later ``start()``. A subscription that dies on its
own (connection dropped, server restarted) logs an error, records it in
``health()`` and returns the listener to Idle; ``start()`` may be called again
directly.

Example:
    >>> listener = ExpirationListener(client)
    >>> listener.on_key_expire(lambda key: print("expired", key)).start()
    >>> listener.set_with_expiration("session:user123", "sessiondata", 5)
    >>> # ... later ...
    >>> listener.stop()
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import redis

from expirewatch.errors import (
    CallbackError,
    ErrorContext,
    MissingConfigError,
    StoreCommunicationError,
    ValidationError,
)
from expirewatch.logging import get_logger
from expirewatch.notifications import EXPIRED_EVENT_PATTERN, ensure_expired_notifications

logger = get_logger(__name__)

ExpirationCallback = Callable[[str], None]


class ExpirationListener:
    """Invoke a callback for every key Redis expires.

    Args:
        client: Connected ``redis.Redis`` client. The listener takes one
            dedicated connection from its pool for the subscription.
        pattern: Pub/sub pattern to subscribe to.
        poll_interval: Seconds the background loop waits for a message
            before re-checking whether it was asked to stop.
        join_timeout: Seconds ``stop()`` waits for the background thread.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        pattern: str = EXPIRED_EVENT_PATTERN,
        poll_interval: float = 1.0,
        join_timeout: float = 5.0,
    ) -> None:
        self._client = client
        self._pattern = pattern
        self._poll_interval = poll_interval
        self._join_timeout = join_timeout

        self._callback: ExpirationCallback | None = None
        self._running = False
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

        self._received = 0
        self._callback_errors = 0
        self._last_error: str | None = None
        self._last_callback_error: dict[str, Any] | None = None

    @classmethod
    def from_settings(cls, client: redis.Redis, settings: Any) -> ExpirationListener:
        """Build a listener using the ``listener_*`` fields of *settings*."""
        return cls(
            client,
            pattern=settings.listener_pattern,
            poll_interval=settings.listener_poll_interval,
            join_timeout=settings.listener_join_timeout,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    def on_key_expire(self, callback: ExpirationCallback) -> ExpirationListener:
        """Set the callback to run with each expired key name."""
        self._callback = callback
        return self

    def start(self) -> None:
        """Enable expired-key notifications and start listening in a daemon thread.

        Returns as soon as the thread is started.

        Raises:
            MissingConfigError: No callback was registered.
            StoreCommunicationError: The notification settings could not be
                read or written.
        """
        with self._lock:
            if self._running:
                logger.warning("expiration_listener_already_running", pattern=self._pattern)
                return

            if self._callback is None:
                raise MissingConfigError(
                    "expiration_callback",
                    "No expiration callback configured. Call on_key_expire() first.",
                )

            ensure_expired_notifications(self._client)

            stop_event = threading.Event()
            self._stop_event = stop_event
            self._running = True
            self._last_error = None
            self._thread = threading.Thread(
                target=self._listen,
                args=(stop_event, self._callback),
                daemon=True,
                name="expirewatch-listener",
            )
            self._thread.start()

    def stop(self) -> None:
        """Stop listening. Safe to call when not running.

        Waits up to ``join_timeout`` seconds for an in-flight callback to
        return before giving up on the thread.
        """
        with self._lock:
            was_running = self._running
            thread, stop_event = self._thread, self._stop_event
            self._running = False
            self._thread = None
            self._stop_event = None

        if stop_event is not None:
            stop_event.set()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                logger.warning(
                    "expiration_listener_stop_timeout",
                    pattern=self._pattern,
                    join_timeout=self._join_timeout,
                )

        if was_running:
            logger.info("expiration_listener_shutdown", pattern=self._pattern)

    def __enter__(self) -> ExpirationListener:
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()

    # ── Background loop ──────────────────────────────────────────

    def _listen(self, stop_event: threading.Event, callback: ExpirationCallback) -> None:
        pubsub = None
        try:
            pubsub = self._client.pubsub(ignore_subscribe_messages=True)
            pubsub.psubscribe(self._pattern)
            logger.info("expiration_listener_started", pattern=self._pattern)

            while not stop_event.is_set():
                message = pubsub.get_message(timeout=self._poll_interval)
                if message is None or message.get("type") != "pmessage":
                    continue
                self._deliver(callback, message)

        except Exception as e:
            if stop_event.is_set():
                logger.info("expiration_listener_stopped", pattern=self._pattern, reason=str(e))
            else:
                logger.error(
                    "expiration_listener_error",
                    pattern=self._pattern,
                    error=str(e),
                    exc_info=True,
                )
                with self._lock:
                    if self._stop_event is stop_event:
                        self._last_error = str(e)
                        self._running = False
        else:
            logger.info("expiration_listener_stopped", pattern=self._pattern)
        finally:
            if pubsub is not None:
                pubsub.close()

    def _deliver(self, callback: ExpirationCallback, message: dict[str, Any]) -> None:
        key = message["data"]
        if isinstance(key, bytes):
            key = key.decode(errors="backslashreplace")
        self._received += 1
        logger.debug("key_expired", key=key, channel=message.get("channel"))

        try:
            callback(key)
        except Exception as e:
            self._callback_errors += 1
            self._last_callback_error = CallbackError(key, e).to_dict()
            logger.error("expiration_callback_error", key=key, error=str(e), exc_info=True)

    # ── Store helpers ────────────────────────────────────────────

    def set_with_expiration(self, key: str, value: str, ttl_seconds: int) -> None:
        """``SET key value EX ttl_seconds``.

        Raises:
            ValidationError: ``ttl_seconds`` is not a positive integer.
            StoreCommunicationError: Redis rejected or dropped the write.
        """
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
            raise ValidationError(
                "ttl_seconds must be a positive integer",
                field="ttl_seconds",
                value=ttl_seconds,
            )

        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            logger.error("set_with_expiration_failed", key=key, ttl_seconds=ttl_seconds, error=str(e))
            raise StoreCommunicationError(
                "Could not set key with expiration",
                context=ErrorContext(key=key, operation="set_with_expiration"),
                cause=e,
            ) from e

        logger.debug("key_set_with_expiration", key=key, ttl_seconds=ttl_seconds)

    # ── Introspection ────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        """Whether the listener is in the Running state."""
        return self._running

    @property
    def pattern(self) -> str:
        return self._pattern

    def health(self) -> dict[str, Any]:
        """Return listener status.

        Returns:
            dict with running, pattern, thread_alive, received,
            callback_errors, last_error, last_callback_error
        """
        thread = self._thread
        return {
            "running": self._running,
            "pattern": self._pattern,
            "thread_alive": thread is not None and thread.is_alive(),
            "received": self._received,
            "callback_errors": self._callback_errors,
            "last_error": self._last_error,
            "last_callback_error": self._last_callback_error,
        }


__all__ = ["ExpirationCallback", "ExpirationListener"]
