"""CLI commands for the database."""

from __future__ import annotations

import click

from marketplace.infrastructure.cli.runner import run
from marketplace.infrastructure.config import Settings


@click.command("init")
@click.pass_obj
def db_init(settings: Settings) -> None:
    """Create the tables if they do not exist yet."""

    async def _init(db, relay) -> str:
        return db.url

    url = run(settings, _init, deliver=False)
    click.echo(f"Database ready: {url}")
