"""
Keyspace notification flag reconciliation.

Redis only publishes expired-key events when ``notify-keyspace-events``
contains ``E`` (keyevent channels) and ``x`` (expired events). The setting is
server-wide and other applications may depend on flags already present, so
reconciliation appends what is missing and never rewrites the rest.

Flag reference:
    ``K`` keyspace channels, ``E`` keyevent channels, ``x`` expired events,
    ``A`` alias for ``g$lshzxetd`` (includes ``x``).

Examples:
    >>> merge_notify_flags("")
    'Ex'
    >>> merge_notify_flags("Kg")
    'KgEx'
    >>> merge_notify_flags("AKE")
    'AKE'

Tags:
    redis, keyspace-notifications, configuration, idempotent, expirewatch
"""

from __future__ import annotations

from typing import Any

import redis

from expirewatch.errors import ErrorContext, StoreCommunicationError
from expirewatch.logging import get_logger

logger = get_logger(__name__)

NOTIFY_CONFIG_KEY = "notify-keyspace-events"

# One channel per logical database: __keyevent@0__:expired, __keyevent@1__:expired, ...
EXPIRED_EVENT_PATTERN = "__keyevent@*__:expired"


def missing_notify_flags(current: str) -> str:
    """Return the flags ``current`` lacks for expired-key events, in ``E``, ``x`` order."""
    missing = ""
    if "E" not in current:
        missing += "E"
    if "x" not in current and "A" not in current:
        missing += "x"
    return missing


def merge_notify_flags(current: str) -> str:
    """Append the missing expired-event flags to ``current``.

    Returns ``current`` unchanged when nothing is missing.
    """
    return current + missing_notify_flags(current)


def read_notify_flags(client: redis.Redis) -> str:
    """Read ``notify-keyspace-events`` from the server."""
    try:
        reply: dict[str, Any] = client.config_get(NOTIFY_CONFIG_KEY)
    except redis.RedisError as e:
        raise StoreCommunicationError(
            "Could not read Redis keyspace notification settings",
            context=ErrorContext(operation="config_get"),
            cause=e,
        ) from e

    value = reply.get(NOTIFY_CONFIG_KEY, "")
    if isinstance(value, bytes):
        value = value.decode()
    return value or ""


def ensure_expired_notifications(client: redis.Redis) -> str:
    """Make sure the server publishes expired-key events.

    Writes the merged flag string only when a required flag is missing.

    Returns:
        The effective flag string after reconciliation.

    Raises:
        StoreCommunicationError: The CONFIG GET or CONFIG SET call failed.
    """
    current = read_notify_flags(client)
    merged = merge_notify_flags(current)
    if merged == current:
        logger.debug("keyspace_notifications_ok", flags=current)
        return current

    try:
        client.config_set(NOTIFY_CONFIG_KEY, merged)
    except redis.RedisError as e:
        logger.error("keyspace_notifications_failed", flags=merged, error=str(e))
        raise StoreCommunicationError(
            "Could not configure Redis for expiration events",
            context=ErrorContext(operation="config_set", metadata={"flags": merged}),
            cause=e,
        ) from e

    logger.info("keyspace_notifications_enabled", previous=current, flags=merged)
    return merged


__all__ = [
    "NOTIFY_CONFIG_KEY",
    "EXPIRED_EVENT_PATTERN",
    "missing_notify_flags",
    "merge_notify_flags",
    "read_notify_flags",
    "ensure_expired_notifications",
]
