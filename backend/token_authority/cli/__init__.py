"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .tokens import principals_cli, tokens_cli


def init_app(app: Flask) -> None:
    """Register the ``tokens`` and ``principals`` command groups."""
    app.cli.add_command(tokens_cli)
    app.cli.add_command(principals_cli)
