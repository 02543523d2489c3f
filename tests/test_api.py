"""
Тесты HTTP API: формат ответов, коды ошибок и сквозные сценарии.
"""

import pytest

from boutique_admin.core.errors import PersistenceError
from boutique_admin.services.catalog_service import CatalogService
from conftest import order_form

API = "/api/v1"


def product_payload(category_id, stock=5):
    return {
        "name": "Red Dress",
        "description": "Satin midi dress",
        "category_id": category_id,
        "colors": [
            {
                "new_color": {"name": "Red", "hex": "#FF0000"},
                "sizes": [{"size_label": "M", "stock": stock, "price_cents": 10000}],
            }
        ],
    }


def order_payload(size_stock_id, quantity):
    return order_form((size_stock_id, quantity)).model_dump()


@pytest.fixture
def category_id(client):
    response = client.post(f"{API}/admin/categories", json={"name": "Dresses", "slug": "dresses"})
    assert response.status_code == 201
    return response.json()["category"]["id"]


@pytest.fixture
def product(client, category_id):
    response = client.post(f"{API}/admin/products", json=product_payload(category_id))
    assert response.status_code == 201
    return response.json()["product"]


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_route(client):
    response = client.get(f"{API}/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found", "code": "http_error"}


def test_admin_requires_session(app, client):
    app.dependency_overrides.clear()

    response = client.get(f"{API}/admin/categories")

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["error"] == "Could not validate credentials"


def test_category_endpoints(client, category_id):
    duplicate = client.post(f"{API}/admin/categories", json={"name": "Robes", "slug": "dresses"})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"success": False, "error": "Slug already exists", "code": "conflict"}

    child = client.post(
        f"{API}/admin/categories",
        json={"name": "Evening", "slug": "dresses-evening", "parent_id": category_id},
    )
    assert child.status_code == 201
    child_id = child.json()["category"]["id"]

    cycle = client.put(
        f"{API}/admin/categories/{category_id}",
        json={"name": "Dresses", "slug": "dresses", "parent_id": child_id},
    )
    assert cycle.status_code == 400
    assert cycle.json()["error"] == "Cannot create circular reference"

    tree = client.get(f"{API}/categories").json()
    assert tree == [
        {
            "id": category_id,
            "name": "Dresses",
            "slug": "dresses",
            "children": [{"id": child_id, "name": "Evening", "slug": "dresses-evening"}],
        }
    ]

    blocked = client.delete(f"{API}/admin/categories/{category_id}")
    assert blocked.status_code == 400
    assert client.delete(f"{API}/admin/categories/{child_id}").json() == {"success": True}

    flat = client.get(f"{API}/admin/categories").json()
    assert [row["slug"] for row in flat] == ["dresses"]


def test_request_validation_error(client):
    response = client.post(f"{API}/admin/categories", json={"slug": "no-name"})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["error"].startswith("name")


def test_product_read_model(client, product):
    assert product["total_stock"] == 5
    assert product["status"] == "low_stock"

    fetched = client.get(f"{API}/admin/products/{product['id']}").json()
    assert fetched["variants"][0]["size_stocks"][0]["size"]["label"] == "M"

    listed = client.get(f"{API}/admin/products", params={"status": "low_stock"}).json()
    assert [item["id"] for item in listed] == [product["id"]]

    missing = client.get(f"{API}/admin/products/999")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_product_without_colors(client, category_id):
    payload = product_payload(category_id)
    payload["colors"] = []

    response = client.post(f"{API}/admin/products", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "Product must have at least one color"


def test_order_lifecycle(client, product):
    size_stock_id = product["variants"][0]["size_stocks"][0]["id"]

    created = client.post(f"{API}/orders", json=order_payload(size_stock_id, 5))
    assert created.status_code == 201
    order = created.json()["order"]
    assert order["status"] == "pending"

    rejected = client.post(f"{API}/orders", json=order_payload(size_stock_id, 1))
    assert rejected.status_code == 409
    assert rejected.json()["code"] == "insufficient_stock"

    inventory = client.get(f"{API}/admin/inventory").json()
    assert inventory[0]["reserved_stock"] == 5
    assert inventory[0]["available_stock"] == 0

    approved = client.post(f"{API}/admin/orders/{order['id']}/approve")
    assert approved.status_code == 200
    assert approved.json()["order"]["status"] == "confirmed"

    inventory = client.get(f"{API}/admin/inventory").json()
    assert inventory[0]["stock"] == 0
    assert inventory[0]["reserved_stock"] == 0

    again = client.post(f"{API}/admin/orders/{order['id']}/approve")
    assert again.status_code == 400
    assert again.json()["code"] == "invariant_violation"

    shipped = client.put(f"{API}/admin/orders/{order['id']}/status", json={"status": "shipped"})
    assert shipped.json()["order"]["status"] == "shipped"

    listing = client.get(f"{API}/admin/orders", params={"status": "shipped"}).json()
    assert listing["meta"]["total"] == 1
    assert listing["items"][0]["ref_id"] == order["ref_id"]

    assert client.get(f"{API}/admin/orders/{order['id']}").json()["status"] == "shipped"


def test_order_status_validation(client, product):
    size_stock_id = product["variants"][0]["size_stocks"][0]["id"]
    order = client.post(f"{API}/orders", json=order_payload(size_stock_id, 1)).json()["order"]

    response = client.put(f"{API}/admin/orders/{order['id']}/status", json={"status": "lost"})
    assert response.status_code == 422

    missing = client.get(f"{API}/admin/orders/not-a-uuid")
    assert missing.status_code == 404


def test_stock_update_below_reserved(client, product):
    size_stock_id = product["variants"][0]["size_stocks"][0]["id"]
    client.post(f"{API}/orders", json=order_payload(size_stock_id, 3))

    response = client.put(f"{API}/admin/inventory/{size_stock_id}", json={"stock": 2})
    assert response.status_code == 400
    assert response.json()["error"] == "Stock cannot be lower than reserved quantity (3)"

    response = client.put(f"{API}/admin/inventory/{size_stock_id}", json={"stock": 8})
    assert response.json()["size_stock"]["available_stock"] == 5


def test_colors_and_sizes(client):
    assert client.post(f"{API}/admin/colors", json={"name": "Ivory", "hex": "#FFFFF0"}).status_code == 201
    assert client.post(f"{API}/admin/colors", json={"name": "ivory"}).status_code == 409
    assert client.post(f"{API}/admin/sizes", json={"label": "XS"}).status_code == 201

    assert [color["name"] for color in client.get(f"{API}/admin/colors").json()] == ["Ivory"]
    assert [size["label"] for size in client.get(f"{API}/admin/sizes").json()] == ["XS"]


def test_image_upload_and_delete(client, product, tmp_path):
    variant_id = product["variants"][0]["id"]
    url = f"{API}/admin/products/{product['id']}/variants/{variant_id}/images/upload"

    response = client.post(url, files={"file": ("front.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")})
    assert response.status_code == 201
    body = response.json()
    assert body["url"].startswith(f"/static/products/{product['id']}/{variant_id}/")

    stored = tmp_path / body["url"][len("/static/"):]
    assert stored.exists()

    fetched = client.get(f"{API}/admin/products/{product['id']}").json()
    assert fetched["variants"][0]["primary_image_url"] == body["url"]

    deleted = client.delete(f"{API}/admin/products/{product['id']}/images/{body['image_id']}")
    assert deleted.json() == {"success": True}
    assert not stored.exists()


def test_image_upload_rejects_type(client, product):
    variant_id = product["variants"][0]["id"]
    url = f"{API}/admin/products/{product['id']}/variants/{variant_id}/images/upload"

    response = client.post(url, files={"file": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 422
    assert "Unsupported image type" in response.json()["error"]


def test_dashboard_endpoints(client, product):
    size_stock_id = product["variants"][0]["size_stocks"][0]["id"]
    client.post(f"{API}/orders", json=order_payload(size_stock_id, 1))

    stats = client.get(f"{API}/admin/dashboard/stats").json()
    assert stats["total_products"] == 1
    assert stats["pending_orders"] == 1

    activity = client.get(f"{API}/admin/dashboard/activity").json()
    assert {entry["type"] for entry in activity} == {"order", "product"}

    sales = client.get(f"{API}/admin/dashboard/sales", params={"days": 3}).json()
    assert len(sales) == 3


def test_image_delete_does_not_leave_storage_root(client, product, tmp_path):
    outside = tmp_path.parent / f"{tmp_path.name}-outside.txt"
    outside.write_text("keep")
    variant_id = product["variants"][0]["id"]

    added = client.post(
        f"{API}/admin/products/{product['id']}/variants/{variant_id}/images",
        json={"url": f"/static/../{outside.name}"},
    )
    assert added.status_code == 201

    deleted = client.delete(f"{API}/admin/products/{product['id']}/images/{added.json()['image_id']}")

    assert deleted.status_code == 200
    assert outside.exists()


def test_image_upload_too_large(client, product, tmp_path, monkeypatch):
    monkeypatch.setattr("boutique_admin.core.config.settings.MAX_IMAGE_SIZE", 16)
    variant_id = product["variants"][0]["id"]
    url = f"{API}/admin/products/{product['id']}/variants/{variant_id}/images/upload"

    response = client.post(url, files={"file": ("big.jpg", b"x" * 64, "image/jpeg")})

    assert response.status_code == 422
    assert response.json()["error"].startswith("File too large")
    assert list(tmp_path.rglob("*.jpg")) == []


def test_image_upload_removes_file_when_save_fails(client, product, tmp_path, monkeypatch):
    def fail(self, product_id, variant_id, url):
        raise PersistenceError("Failed to add image")

    monkeypatch.setattr(CatalogService, "add_variant_image", fail)
    variant_id = product["variants"][0]["id"]
    url = f"{API}/admin/products/{product['id']}/variants/{variant_id}/images/upload"

    response = client.post(url, files={"file": ("front.jpg", b"\xff\xd8\xff jpeg", "image/jpeg")})

    assert response.status_code == 500
    assert response.json()["code"] == "persistence_error"
    assert list(tmp_path.rglob("*.jpg")) == []
