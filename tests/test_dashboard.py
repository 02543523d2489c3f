"""
Тесты агрегатов дашборда.
"""

import pytest

from boutique_admin.db.models.base import utcnow
from boutique_admin.services.dashboard_service import DashboardService
from conftest import order_form, product_form


@pytest.fixture
def dashboard(db):
    return DashboardService(db)


@pytest.fixture
def shop(catalog, orders, red_dress, dresses):
    """Два товара и три заказа, один из которых доставлен."""
    blue = catalog.create_product(
        product_form("Blue Dress", dresses.id, [("M", 3)], color="Blue", hex_value="#0000FF")
    )
    red_m = red_dress.variants[0].size_stocks[0]
    blue_m = blue.variants[0].size_stocks[0]

    delivered = orders.create_order(order_form((red_m.id, 1), session="guest-1"))
    orders.create_order(order_form((blue_m.id, 1), session="guest-1"))
    orders.create_order(order_form((blue_m.id, 1), phone="0633"))

    orders.approve_order(delivered.id)
    orders.update_order_status(delivered.id, "shipped")
    orders.update_order_status(delivered.id, "delivered")
    return delivered


def test_stats_empty(dashboard):
    stats = dashboard.stats()
    assert stats.total_products == 0
    assert stats.total_orders == 0
    assert stats.total_customers == 0
    assert stats.revenue_cents == 0


def test_stats(dashboard, shop):
    stats = dashboard.stats()

    assert stats.total_products == 2
    assert stats.total_orders == 3
    assert stats.total_customers == 2
    assert stats.revenue_cents == 10000
    assert stats.low_stock_items == 2
    assert stats.pending_orders == 2


def test_recent_activity(dashboard, shop):
    activity = dashboard.recent_activity()

    assert len(activity) == 6
    assert [entry.type for entry in activity[:2]] == ["alert", "alert"]
    assert activity[0].description == "Blue Dress - Size M running low (3 left)"
    assert [entry.time for entry in activity] == sorted((entry.time for entry in activity), reverse=True)
    assert {entry.type for entry in activity} == {"alert", "order", "product"}


def test_sales_by_day(dashboard, shop):
    points = dashboard.sales_by_day(7)

    assert len(points) == 7
    assert points[-1].day == utcnow().date()
    assert points[-1].revenue_cents == 10000
    assert points[-1].orders == 1
    assert sum(point.revenue_cents for point in points[:-1]) == 0
