"""
CLI layer for expirewatch.

Provides a Typer application whose commands drive
:class:`~expirewatch.listener.ExpirationListener`. This package handles only
terminal transport: argument parsing and coloured output.

Entry point::

    expirewatch --help
"""

from expirewatch.cli.app import app

__all__ = ["app"]
