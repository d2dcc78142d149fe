"""CLI commands for the Product aggregate."""

from __future__ import annotations

import click

from marketplace.application.add_product import AddProductHandler
from marketplace.application.delete_product import DeleteProductHandler
from marketplace.application.list_products import ListProductsHandler
from marketplace.application.update_product import UpdateProductHandler
from marketplace.domain.model.actor import Role
from marketplace.infrastructure.cli.runner import actor, actor_options, run
from marketplace.infrastructure.config import Settings


@click.command("add")
@actor_options(Role.FARMER)
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Unit price (e.g. 35.00).")
@click.option("--quantity", required=True, type=int, help="Units in stock.")
@click.pass_obj
def product_add(settings: Settings, user_id: str, role: str, name: str, price: str, quantity: int) -> None:
    """List a new product in the catalog."""
    seller = actor(user_id, role)

    async def _add(db, relay):
        return await AddProductHandler(db.unit_of_work).handle(
            seller, name=name, price=price, quantity=quantity
        )

    product = run(settings, _add, deliver=False)
    click.echo(f"Product {product.id} '{product.name}' added at {product.price} ({product.quantity} in stock)")


@click.command("list")
@click.option("--seller", "seller_id", default=None, help="Only this farmer's listings.")
@click.option("--all", "include_deleted", is_flag=True, default=False, help="Include deleted listings.")
@click.pass_obj
def product_list(settings: Settings, seller_id: str | None, include_deleted: bool) -> None:
    """List products in the catalog."""

    async def _list(db, relay):
        return await ListProductsHandler(db.unit_of_work).handle(
            seller_id=seller_id, include_deleted=include_deleted
        )

    products = run(settings, _list, deliver=False)
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<38} {'Name':<20} {'Price':>12} {'Qty':>6}  {'Status':<10} Seller")
    click.echo("-" * 100)
    for p in products:
        click.echo(f"{p.id:<38} {p.name:<20} {p.price:>12} {p.quantity:>6}  {p.status:<10} {p.seller_id}")


@click.command("update")
@actor_options(Role.FARMER)
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--price", default=None, help="New unit price (e.g. 29.99).")
@click.option("--quantity", default=None, type=int, help="New stock level.")
@click.pass_obj
def product_update(
    settings: Settings,
    user_id: str,
    role: str,
    product_id: str,
    price: str | None,
    quantity: int | None,
) -> None:
    """Change a product's price and/or stock level."""
    requester = actor(user_id, role)

    async def _update(db, relay):
        return await UpdateProductHandler(db.unit_of_work).handle(
            requester, product_id, new_price=price, new_quantity=quantity
        )

    product = run(settings, _update, deliver=False)
    click.echo(f"Product {product.id} now {product.price}, {product.quantity} in stock ({product.status})")


@click.command("delete")
@actor_options(Role.FARMER)
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def product_delete(settings: Settings, user_id: str, role: str, product_id: str) -> None:
    """Withdraw a listing (refused while orders are in flight)."""
    requester = actor(user_id, role)

    async def _delete(db, relay):
        await DeleteProductHandler(db.unit_of_work).handle(requester, product_id)

    run(settings, _delete, deliver=False)
    click.echo(f"Product {product_id} deleted.")
