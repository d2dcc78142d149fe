"""CLI commands for the Order aggregate."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import click
import httpx

from marketplace.application.cancel_order import CancelOrderHandler
from marketplace.application.confirm_payment import ConfirmPaymentHandler
from marketplace.application.dto import OrderDTO
from marketplace.application.list_orders import ListBuyerOrdersHandler, ListSellerOrdersHandler
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.show_order import ShowOrderHandler
from marketplace.application.update_order_status import UpdateOrderStatusHandler
from marketplace.domain.exceptions import ConcurrentModificationError
from marketplace.domain.model.actor import Role
from marketplace.domain.model.order import OrderStatus, PaymentMethod
from marketplace.domain.model.value_objects import CartLine, DeliveryAddress
from marketplace.domain.port.payment_gateway import GatewayAssertion
from marketplace.infrastructure import bootstrap
from marketplace.infrastructure.cli.runner import actor, actor_options, run
from marketplace.infrastructure.config import Settings

logger = logging.getLogger(__name__)


def _parse_items(raw: str) -> list[CartLine]:
    """Parse 'p-1:3,p-2:5' into CartLine list."""
    lines: list[CartLine] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        lines.append(CartLine(product_id=product_id.strip(), quantity=qty))
    return lines


def _parse_address(raw: str) -> DeliveryAddress:
    """Parse 'Bagmati,Kathmandu,Thamel Marg 4' (the street may contain commas)."""
    parts = [part.strip() for part in raw.split(",", 2)]
    if len(parts) != 3:
        raise click.BadParameter(
            f"Invalid address '{raw}'. Expected 'Region,City,Street'.", param_hint="--address"
        )
    return DeliveryAddress(region=parts[0], city=parts[1], street=parts[2])


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id}  (status={dto.status}, payment={dto.payment_method}/{dto.payment_status})")
    click.echo(f"Buyer:    {dto.buyer_id}")
    click.echo(f"Deliver:  {dto.delivery_address}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.transaction_id:
        click.echo(f"Txn ref:  {dto.transaction_id}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>12} {'Total':>12}")
    click.echo(f"  {'-'*51}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>12} {item.line_total:>12}"
        )
    click.echo(f"  {'-'*51}")
    if dto.seller_total is not None:
        click.echo(f"  {'Your lines':<27} {dto.seller_total:>24}")
    click.echo(f"  {'Order Total':<27} {dto.total:>24}")


@click.command("place")
@actor_options(Role.CUSTOMER)
@click.option("--items", required=True, help="Items as 'ProductId:Qty,ProductId:Qty'.")
@click.option("--address", required=True, help="Delivery address as 'Region,City,Street'.")
@click.option(
    "--payment",
    type=click.Choice([m.value for m in PaymentMethod]),
    default=PaymentMethod.CASH_ON_DELIVERY.value,
    show_default=True,
    help="Payment method.",
)
@click.option("--attempts", default=1, show_default=True, type=click.IntRange(min=1), help="Tries when losing a stock race.")
@click.pass_obj
def order_place(
    settings: Settings,
    user_id: str,
    role: str,
    items: str,
    address: str,
    payment: str,
    attempts: int,
) -> None:
    """Place an order for a cart of products."""
    buyer = actor(user_id, role)
    cart = _parse_items(items)
    delivery_address = _parse_address(address)

    async def _place(db, relay) -> OrderDTO:
        handler = PlaceOrderHandler(db.unit_of_work, after_commit=relay.wake)
        for attempt in range(1, attempts + 1):
            try:
                return await handler.handle(
                    buyer, cart, delivery_address, PaymentMethod(payment)
                )
            except ConcurrentModificationError:
                if attempt == attempts:
                    raise
                logger.warning("retrying order placement", extra={"attempt": attempt})

    dto = run(settings, _place)
    click.echo("Order placed.")
    _display_order(dto)


@click.command("cancel")
@actor_options(Role.CUSTOMER)
@click.option("--id", "order_id", required=True, help="Order ID to cancel.")
@click.pass_obj
def order_cancel(settings: Settings, user_id: str, role: str, order_id: str) -> None:
    """Cancel a pending order (restores any reserved stock)."""
    requester = actor(user_id, role)

    async def _cancel(db, relay):
        handler = CancelOrderHandler(db.unit_of_work, after_commit=relay.wake)
        return await handler.handle(order_id, requester)

    result = run(settings, _cancel)
    click.echo(f"Order #{result.order_id} cancelled.")


@click.command("status")
@actor_options(Role.FARMER)
@click.option("--id", "order_id", required=True, help="Order ID to update.")
@click.option(
    "--status",
    "new_status",
    required=True,
    type=click.Choice([s.value for s in OrderStatus]),
    help="New lifecycle status.",
)
@click.pass_obj
def order_status(settings: Settings, user_id: str, role: str, order_id: str, new_status: str) -> None:
    """Move an order along its lifecycle."""
    requester = actor(user_id, role)

    async def _update(db, relay):
        handler = UpdateOrderStatusHandler(db.unit_of_work, after_commit=relay.wake)
        return await handler.handle(order_id, new_status, requester)

    result = run(settings, _update)
    click.echo(f"Order #{result.order_id} is now {result.status} (payment={result.payment_status}).")


@click.command("confirm-payment")
@click.option("--id", "order_id", required=True, help="Order ID being paid.")
@click.option("--token", required=True, help="Token returned by the payment gateway.")
@click.option("--amount", required=True, help="Amount the gateway says was paid.")
@click.pass_obj
def order_confirm_payment(settings: Settings, order_id: str, token: str, amount: str) -> None:
    """Verify a gateway payment and confirm the order."""
    try:
        assertion = GatewayAssertion(token=token, amount=Decimal(amount))
    except InvalidOperation:
        raise click.BadParameter(f"Invalid amount '{amount}'.", param_hint="--amount")
    try:
        gateway = bootstrap.payment_gateway(settings)
    except RuntimeError as exc:
        raise click.ClickException(str(exc))

    async def _confirm(db, relay):
        handler = ConfirmPaymentHandler(db.unit_of_work, gateway, after_commit=relay.wake)
        return await handler.handle(order_id, assertion)

    try:
        result = run(settings, _confirm)
    except httpx.HTTPError as exc:
        raise click.ClickException(f"Payment gateway error: {exc}")
    click.echo(f"Payment confirmed: order #{result.order_id} is {result.status}.")


@click.command("show")
@actor_options(Role.CUSTOMER)
@click.option("--id", "order_id", required=True, help="Order ID to display.")
@click.pass_obj
def order_show(settings: Settings, user_id: str, role: str, order_id: str) -> None:
    """Show details of an existing order."""
    viewer = actor(user_id, role)

    async def _show(db, relay):
        return await ShowOrderHandler(db.unit_of_work).handle(order_id, viewer)

    _display_order(run(settings, _show, deliver=False))


@click.command("list")
@actor_options(Role.CUSTOMER)
@click.pass_obj
def order_list(settings: Settings, user_id: str, role: str) -> None:
    """List your orders (as a buyer) or orders for your products (as a farmer)."""
    viewer = actor(user_id, role)
    if viewer.role is Role.ADMIN:
        raise click.ClickException("Admins look up orders with 'order show --id'.")

    async def _list(db, relay):
        if viewer.role is Role.FARMER:
            return await ListSellerOrdersHandler(db.unit_of_work).handle(viewer)
        return await ListBuyerOrdersHandler(db.unit_of_work).handle(viewer)

    orders = run(settings, _list, deliver=False)
    if not orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'ID':<38} {'Status':<11} {'Payment':<10} {'Total':>14}  Created")
    click.echo("-" * 96)
    for dto in orders:
        total = dto.seller_total if dto.seller_total is not None else dto.total
        click.echo(f"{dto.id:<38} {dto.status:<11} {dto.payment_status:<10} {total:>14}  {dto.created_at}")
