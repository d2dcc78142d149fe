"""Integration tests for the catalog use cases (add, update, delete, list)."""

import asyncio

import pytest

from marketplace.application.add_product import AddProductHandler
from marketplace.application.cancel_order import CancelOrderHandler
from marketplace.application.delete_product import DeleteProductHandler
from marketplace.application.list_products import ListProductsHandler
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.update_product import UpdateProductHandler
from marketplace.domain.exceptions import (
    ConcurrentModificationError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.domain.model.actor import Actor, Role
from marketplace.domain.model.product import ProductStatus
from marketplace.domain.model.value_objects import CartLine, DeliveryAddress, Money
from tests.fakes import FakeStore, make_product

FARMER = Actor("farmer-1", Role.FARMER)
OTHER_FARMER = Actor("farmer-2", Role.FARMER)
ADMIN = Actor("admin-1", Role.ADMIN)
BUYER = Actor("buyer-1", Role.CUSTOMER)
ADDRESS = DeliveryAddress("Bagmati", "Kathmandu", "Thamel Marg 4")


def _setup() -> FakeStore:
    return FakeStore([
        make_product("p-1", "Tomatoes", "35.00", 10, seller_id="farmer-1"),
        make_product("p-2", "Honey", "500.00", 2, seller_id="farmer-2"),
    ])


def _order_before_next_write(store: FakeStore, quantity: int) -> list:
    """Have a buyer order p-1 and commit right before the next write."""
    placed = []

    async def buy():
        placed.append(
            await PlaceOrderHandler(store.uow).handle(BUYER, [CartLine("p-1", quantity)], ADDRESS)
        )

    store.before_write.append(buy)
    return placed


class TestAddProduct:

    def test_farmer_lists_product(self):
        store = _setup()
        dto = asyncio.run(AddProductHandler(store.uow).handle(FARMER, " Carrots ", "12.50", 30))

        assert dto.name == "Carrots"
        assert dto.price == "NPR 12.50"
        assert dto.status == "available"
        assert store.product(dto.id).seller_id == "farmer-1"

    def test_zero_stock_listing_is_sold_out(self):
        store = _setup()
        dto = asyncio.run(AddProductHandler(store.uow).handle(FARMER, "Carrots", "12.50", 0))
        assert dto.status == "sold out"

    def test_customer_cannot_list(self):
        store = _setup()
        with pytest.raises(PermissionDeniedError):
            asyncio.run(AddProductHandler(store.uow).handle(BUYER, "Carrots", "12.50", 3))

    @pytest.mark.parametrize("name,price,quantity", [("", "1.00", 1), ("Carrots", "0", 1), ("Carrots", "1.00", -1)])
    def test_invalid_listing(self, name, price, quantity):
        store = _setup()
        with pytest.raises(ValidationError):
            asyncio.run(AddProductHandler(store.uow).handle(FARMER, name, price, quantity))


class TestUpdateProduct:

    def test_reprice(self):
        store = _setup()
        dto = asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_price="40.00"))
        assert dto.price == "NPR 40.00"
        assert store.product("p-1").price == Money.of("40.00")

    def test_restock_sold_out_product(self):
        store = _setup()
        store.set_quantity("p-1", 0)
        dto = asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_quantity=6))
        assert dto.status == "available"
        assert store.product("p-1").quantity == 6

    def test_set_quantity_to_zero(self):
        store = _setup()
        asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_quantity=0))
        assert store.product("p-1").status is ProductStatus.SOLD_OUT

    def test_nothing_to_update(self):
        store = _setup()
        with pytest.raises(ValidationError, match="Nothing to update"):
            asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1"))

    def test_cannot_edit_someone_elses_product(self):
        store = _setup()
        with pytest.raises(PermissionDeniedError, match="your own products"):
            asyncio.run(UpdateProductHandler(store.uow).handle(OTHER_FARMER, "p-1", new_price="1.00"))

    def test_admin_may_edit_any_product(self):
        store = _setup()
        asyncio.run(UpdateProductHandler(store.uow).handle(ADMIN, "p-2", new_quantity=5))
        assert store.product("p-2").quantity == 5

    def test_unknown_product(self):
        store = _setup()
        with pytest.raises(NotFoundError):
            asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-9", new_price="1.00"))


class TestUpdateProductRaces:

    def test_reprice_keeps_stock_sold_after_the_read(self):
        store = _setup()
        placed = _order_before_next_write(store, 10)

        dto = asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_price="40.00"))

        assert placed
        product = store.product("p-1")
        assert product.quantity == 0
        assert product.status is ProductStatus.SOLD_OUT
        assert product.price == Money.of("40.00")
        assert (dto.quantity, dto.status) == (0, "sold out")

    def test_restock_refused_when_stock_moved_after_the_read(self):
        store = _setup()
        _order_before_next_write(store, 3)

        with pytest.raises(ConcurrentModificationError, match="please retry"):
            asyncio.run(UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_quantity=20))
        assert store.product("p-1").quantity == 7

    def test_price_and_quantity_are_written_together(self):
        store = _setup()
        _order_before_next_write(store, 3)

        with pytest.raises(ConcurrentModificationError):
            asyncio.run(
                UpdateProductHandler(store.uow).handle(FARMER, "p-1", new_price="40.00", new_quantity=20)
            )
        assert store.product("p-1").price == Money.of("35.00")


class TestDeleteProduct:

    def test_soft_deletes(self):
        store = _setup()
        asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))
        assert store.product("p-1").status is ProductStatus.DELETED

    def test_refused_while_order_in_flight(self):
        store = _setup()
        asyncio.run(PlaceOrderHandler(store.uow).handle(BUYER, [CartLine("p-1", 1)], ADDRESS))

        with pytest.raises(InvalidStateError, match="active orders"):
            asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))
        assert store.product("p-1").status is ProductStatus.AVAILABLE

    def test_allowed_once_orders_are_finished(self):
        store = _setup()
        placed = asyncio.run(
            PlaceOrderHandler(store.uow).handle(BUYER, [CartLine("p-1", 1)], ADDRESS)
        )
        asyncio.run(CancelOrderHandler(store.uow).handle(placed.id, BUYER))

        asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))
        assert store.product("p-1").is_deleted

    def test_refused_when_an_order_lands_after_the_read(self):
        store = _setup()
        placed = _order_before_next_write(store, 1)

        with pytest.raises(InvalidStateError, match="active orders"):
            asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))

        assert placed
        assert store.product("p-1").status is ProductStatus.AVAILABLE
        assert store.product("p-1").quantity == 9

    def test_deleted_product_is_gone_for_edits(self):
        store = _setup()
        asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))
        with pytest.raises(NotFoundError):
            asyncio.run(DeleteProductHandler(store.uow).handle(FARMER, "p-1"))


class TestListProducts:

    def test_hides_deleted_by_default(self):
        store = _setup()
        store.product("p-2").delete()

        listed = asyncio.run(ListProductsHandler(store.uow).handle())
        assert [p.id for p in listed] == ["p-1"]

        everything = asyncio.run(ListProductsHandler(store.uow).handle(include_deleted=True))
        assert {p.id for p in everything} == {"p-1", "p-2"}

    def test_filters_by_seller(self):
        store = _setup()
        listed = asyncio.run(ListProductsHandler(store.uow).handle(seller_id="farmer-2"))
        assert [p.name for p in listed] == ["Honey"]
