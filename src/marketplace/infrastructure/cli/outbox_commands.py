"""CLI commands for the notification outbox."""

from __future__ import annotations

import asyncio

import click

from marketplace.infrastructure.cli.runner import run
from marketplace.infrastructure.config import Settings


@click.command("drain")
@click.pass_obj
def outbox_drain(settings: Settings) -> None:
    """Deliver every pending notification once."""

    async def _drain(db, relay) -> int:
        return await relay.drain()

    published = run(settings, _drain, deliver=False)
    click.echo(f"Delivered {published} event(s).")


@click.command("run")
@click.option("--interval", default=1.0, show_default=True, type=float, help="Poll interval in seconds.")
@click.pass_obj
def outbox_run(settings: Settings, interval: float) -> None:
    """Keep delivering notifications until interrupted."""

    async def _loop(db, relay) -> None:
        await relay.run(asyncio.Event(), interval=interval)

    try:
        run(settings, _loop, deliver=False)
    except KeyboardInterrupt:
        click.echo("Relay stopped.")
