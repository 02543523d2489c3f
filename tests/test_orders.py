"""
Тесты резервирования остатков и жизненного цикла заказа.
"""

import re
import uuid

import pytest

from boutique_admin.core.errors import (
    InsufficientStock,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from boutique_admin.db.models import Order, OrderItem, SizeStock
from boutique_admin.services.order_service import normalize_order_id
from conftest import order_form, product_form


@pytest.fixture
def red_m(red_dress):
    return red_dress.variants[0].size_stocks[0]


@pytest.fixture
def blue_m(catalog, dresses):
    product = catalog.create_product(
        product_form("Blue Dress", dresses.id, [("M", 3)], color="Blue", hex_value="#0000FF")
    )
    return product.variants[0].size_stocks[0]


def test_normalize_order_id():
    value = str(uuid.uuid4())
    assert normalize_order_id(value) == value
    assert normalize_order_id("{" + value.upper() + "}") == value
    with pytest.raises(NotFoundError):
        normalize_order_id("not-a-uuid")


def test_reserve_whole_stock_then_insufficient(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 5)))

    size_stock = db.get(SizeStock, red_m.id)
    assert order.status == "pending"
    assert order.stock_reserved and not order.stock_reduced
    assert size_stock.stock == 5
    assert size_stock.reserved_stock == 5
    assert size_stock.available_stock == 0

    with pytest.raises(InsufficientStock) as exc_info:
        orders.create_order(order_form((red_m.id, 1)))
    assert exc_info.value.requested == 1
    assert exc_info.value.available == 0
    assert "Red Dress (Red, M)" in exc_info.value.message
    assert db.query(Order).count() == 1


def test_approve_converts_reservation(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 5)))

    approved = orders.approve_order(order.id)

    size_stock = db.get(SizeStock, red_m.id)
    assert approved.status == "confirmed"
    assert approved.stock_reduced
    assert not approved.stock_reserved
    assert approved.confirmed_at is not None
    assert size_stock.stock == 0
    assert size_stock.reserved_stock == 0


def test_approve_only_pending(orders, red_m):
    order = orders.create_order(order_form((red_m.id, 1)))
    orders.approve_order(order.id)

    with pytest.raises(InvariantViolation, match="Only pending orders"):
        orders.approve_order(order.id)


def test_approve_missing_order(orders):
    with pytest.raises(NotFoundError, match="Order not found"):
        orders.approve_order(str(uuid.uuid4()))


def test_failed_order_leaves_no_rows(orders, db, red_m, blue_m):
    with pytest.raises(InsufficientStock):
        orders.create_order(order_form((red_m.id, 1), (blue_m.id, 4)))

    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert db.get(SizeStock, red_m.id).reserved_stock == 0
    assert db.get(SizeStock, blue_m.id).reserved_stock == 0


def test_unknown_size_stock(orders, db, red_m):
    with pytest.raises(NotFoundError, match="Unknown size stock ID"):
        orders.create_order(order_form((red_m.id, 1), (9999, 1)))
    assert db.get(SizeStock, red_m.id).reserved_stock == 0


def test_order_requires_items(orders):
    with pytest.raises(ValidationError):
        orders.create_order(order_form())


def test_duplicate_lines_are_merged(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 2), (red_m.id, 3)))

    [item] = order.items
    assert item.quantity == 5
    assert db.get(SizeStock, red_m.id).reserved_stock == 5


def test_price_snapshot_and_totals(orders, catalog, db, dresses):
    product = catalog.create_product(
        product_form("Satin Robe", dresses.id, [("L", 10)], price_cents=20000, discount_percentage=25)
    )
    size_stock = product.variants[0].size_stocks[0]

    order = orders.create_order(order_form((size_stock.id, 2)))
    catalog.update_stock(size_stock.id, 30)

    view = orders.get_order(order.id)
    assert re.fullmatch(r"ORD-[0-9A-F]{8}", view.ref_id)
    assert view.items[0].price_at_purchase_cents == 15000
    assert view.items[0].line_total_cents == 30000
    assert view.subtotal_cents == 30000
    assert view.total_cents == 33000
    assert view.items[0].size_label == "L"
    assert view.items[0].color_name == "Red"


def test_cancel_pending_releases_reservation(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 3)))

    cancelled = orders.update_order_status(order.id, "cancelled")

    size_stock = db.get(SizeStock, red_m.id)
    assert cancelled.status == "cancelled"
    assert not cancelled.stock_reserved
    assert size_stock.reserved_stock == 0
    assert size_stock.stock == 5


def test_cancel_confirmed_restocks(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 3)))
    orders.approve_order(order.id)
    assert db.get(SizeStock, red_m.id).stock == 2

    orders.update_order_status(order.id, "cancelled")

    size_stock = db.get(SizeStock, red_m.id)
    assert size_stock.stock == 5
    assert size_stock.reserved_stock == 0


def test_status_update_to_confirmed_approves(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 2)))

    confirmed = orders.update_order_status(order.id, "confirmed")

    assert confirmed.status == "confirmed"
    assert confirmed.stock_reduced
    assert db.get(SizeStock, red_m.id).stock == 3


def test_shipping_flow_and_illegal_transitions(orders, red_m):
    order = orders.create_order(order_form((red_m.id, 1)))

    with pytest.raises(InvariantViolation, match="from pending to shipped"):
        orders.update_order_status(order.id, "shipped")

    orders.approve_order(order.id)
    orders.update_order_status(order.id, "shipped")
    delivered = orders.update_order_status(order.id, "delivered")
    assert delivered.status == "delivered"

    with pytest.raises(InvariantViolation):
        orders.update_order_status(order.id, "cancelled")
    with pytest.raises(ValidationError, match="Invalid status"):
        orders.update_order_status(order.id, "lost")


def test_delete_pending_order_releases_reservation(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 4)))

    orders.delete_order(order.id)

    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert db.get(SizeStock, red_m.id).reserved_stock == 0


def test_delete_shipped_order_keeps_stock(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 2)))
    orders.approve_order(order.id)
    orders.update_order_status(order.id, "shipped")

    orders.delete_order(order.id)

    assert db.get(SizeStock, red_m.id).stock == 3


def test_list_orders(orders, red_m, blue_m):
    first = orders.create_order(order_form((red_m.id, 1), name="Salma", phone="0611"))
    orders.create_order(order_form((blue_m.id, 1), name="Yasmine", phone="0622"))
    orders.create_order(order_form((blue_m.id, 1), name="Nadia", phone="0633"))
    orders.approve_order(first.id)

    result = orders.list_orders()
    assert result.meta.total == 3
    assert len(result.items) == 3

    assert [o.customer_name for o in orders.list_orders(status="confirmed").items] == ["Salma"]
    assert [o.customer_name for o in orders.list_orders(q="yasm").items] == ["Yasmine"]
    assert [o.ref_id for o in orders.list_orders(q=first.ref_id).items] == [first.ref_id]

    page = orders.list_orders(page=2, page_size=2)
    assert len(page.items) == 1
    assert page.meta.total_pages == 2


def test_get_order_missing(orders):
    with pytest.raises(NotFoundError):
        orders.get_order(str(uuid.uuid4()))


def test_list_orders_empty_page(orders):
    page = orders.list_orders(page=3, page_size=10)

    assert page.items == []
    assert page.meta.total == 0
    assert page.meta.total_pages == 1
    assert page.meta.page == 3


def test_delete_confirmed_order_restocks(orders, db, red_m):
    order = orders.create_order(order_form((red_m.id, 3)))
    orders.approve_order(order.id)
    assert db.get(SizeStock, red_m.id).stock == 2

    orders.delete_order(order.id)

    size_stock = db.get(SizeStock, red_m.id)
    assert size_stock.stock == 5
    assert size_stock.reserved_stock == 0
    assert db.query(Order).count() == 0
