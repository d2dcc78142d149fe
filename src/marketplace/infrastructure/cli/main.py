import click

from marketplace.infrastructure.cli.db_commands import db_init
from marketplace.infrastructure.cli.order_commands import (
    order_cancel,
    order_confirm_payment,
    order_list,
    order_place,
    order_show,
    order_status,
)
from marketplace.infrastructure.cli.outbox_commands import outbox_drain, outbox_run
from marketplace.infrastructure.cli.product_commands import (
    product_add,
    product_delete,
    product_list,
    product_update,
)
from marketplace.infrastructure.config import Settings
from marketplace.infrastructure.logging_config import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Marketplace: farmers' marketplace order core"""
    settings = Settings.from_env()
    configure_logging(settings.log_level, json=settings.log_json)
    ctx.obj = settings


@cli.group()
def db() -> None:
    """Manage the database."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def outbox() -> None:
    """Deliver lifecycle notifications."""


# Register subcommands
db.add_command(db_init)
order.add_command(order_cancel)
order.add_command(order_confirm_payment)
order.add_command(order_list)
order.add_command(order_place)
order.add_command(order_show)
order.add_command(order_status)
product.add_command(product_add)
product.add_command(product_delete)
product.add_command(product_list)
product.add_command(product_update)
outbox.add_command(outbox_drain)
outbox.add_command(outbox_run)
