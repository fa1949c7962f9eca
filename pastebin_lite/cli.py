from __future__ import annotations

import click
from flask import Flask, current_app

from pastebin_lite.db import get_database
from pastebin_lite.services.paste_store import paste_store_for


def register_cli(app: Flask) -> None:
    """Attach maintenance commands to ``flask --app pastebin_lite``."""

    @app.cli.command("init-db")
    def init_db_command() -> None:  # type: ignore[unused-variable]
        """Create the pastes table if it does not exist."""
        get_database(current_app).create_all()
        click.echo("Database schema created.")

    @app.cli.command("reap")
    def reap_command() -> None:  # type: ignore[unused-variable]
        """Delete every paste that is no longer live."""
        removed = paste_store_for(current_app).delete_expired()
        click.echo(f"Removed {removed} expired paste(s).")

    @app.cli.command("stats")
    def stats_command() -> None:  # type: ignore[unused-variable]
        """Print total and live paste counts."""
        counts = paste_store_for(current_app).stats()
        click.echo(f"total={counts['total']} active={counts['active']}")
