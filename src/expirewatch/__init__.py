"""
expirewatch - React to Redis key expirations.

Subscribes to Redis expired-key notifications on a background thread and
hands each expired key name to an application callback.

Example:
    >>> from expirewatch import ExpirationListener, ExpireWatchSettings, create_redis_client
    >>> client = create_redis_client(ExpireWatchSettings())
    >>> listener = ExpirationListener(client).on_key_expire(print)
    >>> listener.start()
"""

__version__ = "0.1.0"

from expirewatch.connection import check_redis, close_redis_client, create_redis_client
from expirewatch.errors import (
    ConfigError,
    ExpireWatchError,
    MissingConfigError,
    StoreCommunicationError,
    StoreConnectionError,
    ValidationError,
)
from expirewatch.listener import ExpirationCallback, ExpirationListener
from expirewatch.logging import configure_logging, get_logger
from expirewatch.notifications import (
    EXPIRED_EVENT_PATTERN,
    NOTIFY_CONFIG_KEY,
    ensure_expired_notifications,
    merge_notify_flags,
)
from expirewatch.settings import ExpireWatchSettings, get_settings

__all__ = [
    "__version__",
    "ExpirationCallback",
    "ExpirationListener",
    "ExpireWatchSettings",
    "get_settings",
    "create_redis_client",
    "check_redis",
    "close_redis_client",
    "configure_logging",
    "get_logger",
    "EXPIRED_EVENT_PATTERN",
    "NOTIFY_CONFIG_KEY",
    "ensure_expired_notifications",
    "merge_notify_flags",
    "ExpireWatchError",
    "ConfigError",
    "MissingConfigError",
    "StoreCommunicationError",
    "StoreConnectionError",
    "ValidationError",
]
