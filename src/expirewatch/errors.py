"""
Structured error types for expirewatch.

Every failure the listener can surface carries a category, a retry hint and
a small structured context, so callers and log pipelines can tell a missing
callback apart from a Redis outage without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** Configuration, validation and store failures
      are distinct types
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the key, channel or pattern involved
    - **Error Chaining:** The redis-py exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     ExpireWatchError                         │
        │  (category, retryable, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  TransientError          ConfigError         ValidationError │
        │  (retryable=True)        (CONFIG)            (VALIDATION)    │
        │       │                      │                               │
        │  StoreConnectionError    MissingConfigError  CallbackError   │
        │  StoreCommunicationError                     (CALLBACK)      │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = StoreCommunicationError("CONFIG GET failed")
    >>> error.retryable
    True
    >>> StoreCommunicationError("SET failed", context=ErrorContext(key="k")).to_dict()["context"]
    {'key': 'k'}

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context,
    expirewatch

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection refused, DNS, socket timeouts
        STORE: Redis replied with an error or dropped mid-command
        CONFIG: Missing or invalid listener configuration
        VALIDATION: Bad arguments passed by the caller
        CALLBACK: Failure raised by user expiration callback
        INTERNAL: Bugs, unexpected state
    """

    NETWORK = "NETWORK"           # Connection, timeout, DNS
    STORE = "STORE"               # Redis command failures

    CONFIG = "CONFIG"             # Missing callback, invalid settings
    VALIDATION = "VALIDATION"     # Bad TTL, empty key

    CALLBACK = "CALLBACK"         # User callback raised

    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Only fields that are set end up in ``to_dict()``; anything without a
    dedicated field goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(key="session:user123", operation="set_with_expiration")
        >>> ctx.to_dict()
        {'key': 'session:user123', 'operation': 'set_with_expiration'}

    Attributes:
        key: Redis key involved
        channel: Pub/sub channel a message arrived on
        pattern: Pub/sub pattern subscribed to
        operation: Listener operation that failed
        metadata: Additional key-value pairs
    """

    key: str | None = None
    channel: str | None = None
    pattern: str | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["key", "channel", "pattern", "operation"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ExpireWatchError(Exception):
    """
    Base exception for all expirewatch errors.

    Subclasses set ``default_category`` and ``default_retryable`` so most
    call sites only pass a message and, when wrapping, ``cause=``.

    Examples:
        >>> error = ExpireWatchError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False

        >>> try:
        ...     raise ConnectionError("connection refused")
        ... except ConnectionError as e:
        ...     error = ExpireWatchError("Redis down", cause=e)
        >>> error.cause
        ConnectionError('connection refused')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(ExpireWatchError):
    """
    Temporary error that may succeed on retry.

    Redis restarts, failovers and dropped sockets all land here.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class StoreConnectionError(TransientError):
    """Redis could not be reached or the connection pool could not be built."""

    default_category = ErrorCategory.NETWORK


class StoreCommunicationError(TransientError):
    """A Redis command (CONFIG, SET, PSUBSCRIBE) failed."""

    default_category = ErrorCategory.STORE


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(ExpireWatchError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


# =============================================================================
# VALIDATION / CALLBACK ERRORS
# =============================================================================


class ValidationError(ExpireWatchError):
    """
    Invalid argument passed to a listener operation.

    Never retryable - the call must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class CallbackError(ExpireWatchError):
    """The expiration callback raised while handling a key."""

    default_category = ErrorCategory.CALLBACK
    default_retryable = False

    def __init__(self, key: str, cause: Exception):
        super().__init__(
            f"Expiration callback failed for key {key!r}: {cause}",
            context=ErrorContext(key=key),
            cause=cause,
        )
        self.key = key


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ExpireWatchError",
    "TransientError",
    "StoreConnectionError",
    "StoreCommunicationError",
    "ConfigError",
    "MissingConfigError",
    "ValidationError",
    "CallbackError",
]
