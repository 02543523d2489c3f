"""
Общие фикстуры тестов: SQLite в памяти, сервисы и тестовый клиент API.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from boutique_admin.core.auth import get_current_session
from boutique_admin.core.ratelimit import limiter
from boutique_admin.db.database import Database
from boutique_admin.main import create_app
from boutique_admin.schemas.auth import SessionUser
from boutique_admin.schemas.catalog import ColorIn, ProductIn, SizeStockIn, VariantIn
from boutique_admin.schemas.order import CustomerIn, OrderCreate, OrderItemIn
from boutique_admin.services.catalog_service import CatalogService
from boutique_admin.services.category_service import CategoryService
from boutique_admin.services.order_service import OrderService
from boutique_admin.services.storage_service import LocalStorageProvider, get_storage


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def database():
    database = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def categories(db):
    return CategoryService(db)


@pytest.fixture
def catalog(db):
    return CatalogService(db)


@pytest.fixture
def orders(db):
    return OrderService(db)


def product_form(
    name, category_id, sizes, color="Red", hex_value="#FF0000", price_cents=10000, **fields
):
    """Форма товара с одним цветом; sizes - пары (размер, остаток)."""
    return ProductIn(
        name=name,
        category_id=category_id,
        colors=[
            VariantIn(
                new_color=ColorIn(name=color, hex=hex_value),
                sizes=[
                    SizeStockIn(size_label=label, stock=stock, price_cents=price_cents)
                    for label, stock in sizes
                ],
            )
        ],
        **fields,
    )


def order_form(*items, name="Amina", phone="+212600000000", session=None):
    """Заказ из пар (size_stock_id, количество)."""
    return OrderCreate(
        customer=CustomerIn(name=name, phone=phone, city="Casablanca", guest_session_id=session),
        items=[OrderItemIn(size_stock_id=ss_id, quantity=qty) for ss_id, qty in items],
        shipping_cost_cents=3000,
        shipping_option="standard",
    )


@pytest.fixture
def dresses(categories):
    return categories.create("Dresses", "dresses")


@pytest.fixture
def red_dress(catalog, dresses):
    """Red Dress: цвет Red, размер M, цена 100, остаток 5."""
    return catalog.create_product(product_form("Red Dress", dresses.id, [("M", 5)]))


@pytest.fixture
def app(database, tmp_path):
    app = create_app(database)
    app.dependency_overrides[get_current_session] = lambda: SessionUser(
        user_id=1, name="Admin", email="admin@example.com"
    )
    app.dependency_overrides[get_storage] = lambda: LocalStorageProvider(str(tmp_path), "/static")
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
