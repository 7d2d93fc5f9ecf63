"""
CLI utility helpers — output formatting and connection management.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis
import typer
from rich.console import Console

from expirewatch.connection import close_redis_client, create_redis_client
from expirewatch.errors import ExpireWatchError
from expirewatch.settings import get_settings

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


@contextmanager
def redis_client() -> Iterator[redis.Redis]:
    """Yield a client built from the environment settings; close it afterwards."""
    client = create_redis_client(get_settings())
    try:
        yield client
    finally:
        close_redis_client(client)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn ``ExpireWatchError`` into a red message and exit code 1."""
    try:
        yield
    except ExpireWatchError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def output_dict(data: dict[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a dict as JSON or as key-value pairs."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
