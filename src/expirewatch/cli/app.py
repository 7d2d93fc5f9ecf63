"""
Root Typer application for the expirewatch CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from expirewatch.logging import configure_logging
from expirewatch.settings import get_settings

app = Typer(
    name="expirewatch",
    help="expirewatch — react to Redis key expirations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("expirewatch")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"expirewatch {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    """expirewatch CLI — listen for expired keys, set keys with TTLs."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.json_logs,
    )


# ── Command registration ─────────────────────────────────────────────────

from expirewatch.cli.listen import demo, listen  # noqa: E402
from expirewatch.cli.store import health, notify, set_key  # noqa: E402

app.command("listen")(listen)
app.command("demo")(demo)
app.command("set")(set_key)
app.command("notify")(notify)
app.command("health")(health)
