"""Glue between synchronous click commands and the async use cases."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from marketplace.domain.exceptions import DomainException
from marketplace.domain.model.actor import Actor, Role
from marketplace.infrastructure import bootstrap
from marketplace.infrastructure.config import Settings
from marketplace.infrastructure.notifications.outbox_relay import OutboxRelay
from marketplace.infrastructure.persistence.database import Database

T = TypeVar("T")

Command = Callable[[Database, OutboxRelay], Awaitable[T]]


def actor_options(default_role: Role):
    """Add ``--user`` and ``--role`` options identifying the acting user."""

    def decorator(f):
        f = click.option(
            "--role",
            type=click.Choice([r.value for r in Role]),
            default=default_role.value,
            show_default=True,
            help="Role of the acting user.",
        )(f)
        f = click.option("--user", "user_id", required=True, help="Acting user id.")(f)
        return f

    return decorator


def actor(user_id: str, role: str) -> Actor:
    try:
        return Actor.of(user_id, role)
    except DomainException as exc:
        raise click.BadParameter(str(exc), param_hint="--user")


def run(settings: Settings, command: Command[T], deliver: bool = True) -> T:
    """Run *command* against a freshly opened database.

    Pending notifications are delivered before the database is closed.
    Domain errors become click errors.
    """
    try:
        return asyncio.run(_run(settings, command, deliver))
    except DomainException as exc:
        raise click.ClickException(str(exc))


async def _run(settings: Settings, command: Command[T], deliver: bool) -> T:
    async with bootstrap.open_database(settings) as db:
        relay = bootstrap.outbox_relay(db, settings)
        result = await command(db, relay)
        if deliver:
            await relay.drain()
        return result
