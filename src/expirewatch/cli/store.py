"""
CLI: ``expirewatch set`` / ``notify`` / ``health`` — one-shot Redis commands.
"""

from __future__ import annotations

import typer

from expirewatch.cli.utils import cli_errors, console, output_dict, redis_client
from expirewatch.connection import check_redis
from expirewatch.listener import ExpirationListener
from expirewatch.notifications import (
    ensure_expired_notifications,
    missing_notify_flags,
    read_notify_flags,
)


def set_key(
    key: str = typer.Argument(..., help="Key to write"),
    value: str = typer.Argument(..., help="String value"),
    ttl: int = typer.Option(..., "--ttl", "-t", help="Time-to-live in seconds"),
) -> None:
    """Set a key that expires after --ttl seconds."""
    with cli_errors(), redis_client() as client:
        ExpirationListener(client).set_with_expiration(key, value, ttl)
    console.print(f"[green]Set[/green] {key} (expires in {ttl}s)")


def notify(
    ensure: bool = typer.Option(False, "--ensure", help="Append missing flags on the server"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the server's keyspace notification flags."""
    with cli_errors(), redis_client() as client:
        current = read_notify_flags(client)
        info = {"flags": current, "missing": missing_notify_flags(current)}
        if ensure:
            info["flags"] = ensure_expired_notifications(client)
            info["missing"] = missing_notify_flags(info["flags"])
            info["updated"] = info["flags"] != current

    output_dict(info, as_json=json_out, title="Keyspace notifications")


def health(
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """PING Redis."""
    with cli_errors(), redis_client() as client:
        check_redis(client)
    output_dict({"redis": "ok"}, as_json=json_out, title="Health")
