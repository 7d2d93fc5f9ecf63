"""Tests for expirewatch.notifications — notify-keyspace-events reconciliation."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import redis

from expirewatch.errors import StoreCommunicationError
from expirewatch.notifications import (
    NOTIFY_CONFIG_KEY,
    ensure_expired_notifications,
    merge_notify_flags,
    missing_notify_flags,
    read_notify_flags,
)


class TestMergeNotifyFlags:
    @pytest.mark.parametrize(
        "current, expected",
        [
            ("", "Ex"),
            ("Ex", "Ex"),
            ("xE", "xE"),
            ("KEA", "KEA"),
            ("Kg", "KgEx"),
            ("E", "Ex"),
            ("x", "xE"),
            ("Kx", "KxE"),
            ("A", "AE"),
            ("Elg", "Elgx"),
        ],
    )
    def test_merge(self, current, expected):
        assert merge_notify_flags(current) == expected

    def test_never_drops_existing_flags(self):
        merged = merge_notify_flags("Kgl$")
        assert merged.startswith("Kgl$")
        assert set("Kgl$") <= set(merged)

    def test_missing_flags(self):
        assert missing_notify_flags("") == "Ex"
        assert missing_notify_flags("Ex") == ""
        assert missing_notify_flags("KA") == "E"


class TestReadNotifyFlags:
    def test_reads_value(self):
        client = MagicMock()
        client.config_get.return_value = {NOTIFY_CONFIG_KEY: "Kg"}
        assert read_notify_flags(client) == "Kg"
        client.config_get.assert_called_once_with(NOTIFY_CONFIG_KEY)

    def test_decodes_bytes(self):
        client = MagicMock()
        client.config_get.return_value = {NOTIFY_CONFIG_KEY: b"Ex"}
        assert read_notify_flags(client) == "Ex"

    def test_missing_entry_is_empty(self):
        client = MagicMock()
        client.config_get.return_value = {}
        assert read_notify_flags(client) == ""

    def test_wraps_redis_error(self):
        client = MagicMock()
        client.config_get.side_effect = redis.ResponseError("unknown command 'CONFIG'")
        with pytest.raises(StoreCommunicationError) as exc_info:
            read_notify_flags(client)
        assert exc_info.value.context.operation == "config_get"
        assert exc_info.value.retryable is True


class TestEnsureExpiredNotifications:
    def test_empty_flags_writes_exactly_required(self, fake_redis):
        result = ensure_expired_notifications(fake_redis)
        assert result == "Ex"
        assert fake_redis.config[NOTIFY_CONFIG_KEY] == "Ex"
        assert fake_redis.commands == ["CONFIG GET", "CONFIG SET"]

    def test_already_configured_performs_no_write(self, fake_redis):
        fake_redis.config[NOTIFY_CONFIG_KEY] = "KEx"
        assert ensure_expired_notifications(fake_redis) == "KEx"
        assert fake_redis.commands == ["CONFIG GET"]

    def test_unrelated_flags_preserved(self, fake_redis):
        fake_redis.config[NOTIFY_CONFIG_KEY] = "Kg$"
        assert ensure_expired_notifications(fake_redis) == "Kg$Ex"
        assert fake_redis.config[NOTIFY_CONFIG_KEY] == "Kg$Ex"

    def test_idempotent(self, fake_redis):
        ensure_expired_notifications(fake_redis)
        ensure_expired_notifications(fake_redis)
        assert fake_redis.commands.count("CONFIG SET") == 1

    def test_write_failure_raises(self):
        client = MagicMock()
        client.config_get.return_value = {NOTIFY_CONFIG_KEY: ""}
        client.config_set.side_effect = redis.ResponseError("CONFIG SET is disabled")
        with pytest.raises(StoreCommunicationError, match="Could not configure Redis"):
            ensure_expired_notifications(client)
