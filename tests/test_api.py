from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api_server import create_app
from flashkart_pricing.service import PriceComparisonService


@pytest.fixture
def client(service: PriceComparisonService) -> TestClient:
    return TestClient(create_app(service))


def test_health(client: TestClient) -> None:
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["stats"]["product_count"] == 42


def test_stores(client: TestClient) -> None:
    stores = client.get("/api/stores").json()["stores"]
    assert stores[0] == {
        "storeId": "dmart",
        "displayName": "D-Mart",
        "logoGlyph": "🏪",
        "minDiscount": 0.08,
        "maxDiscount": 0.20,
        "availabilityProbability": 0.95,
    }


def test_live_prices(client: TestClient) -> None:
    resp = client.get("/api/live-prices", params={"category": "dairy", "storeId": "dmart"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["meta"]["totalProducts"] == 6
    assert all(len(product["quotes"]) == 1 for product in body["products"])


@pytest.mark.parametrize(
    ("params", "status"),
    [({"category": "x" * 101}, 400), ({"storeId": "walmart"}, 400), ({"productId": "zz"}, 404)],
)
def test_live_prices_errors(client: TestClient, params: dict, status: int) -> None:
    assert client.get("/api/live-prices", params=params).status_code == status


def test_product(client: TestClient) -> None:
    body = client.get("/api/products/v1").json()
    assert body["bestPrice"] == 40
    assert body["bestStoreId"] == "dmart"
    assert client.get("/api/products/zz").status_code == 404


def test_compare_cart(client: TestClient) -> None:
    resp = client.post(
        "/api/cart/compare",
        json={"items": [{"product_id": "v1", "quantity": 2}, {"product_id": "v2"}]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["bestStoreId"] == "dmart"
    assert body["mrpTotal"] == 125
    assert body["grandTotal"] == 142


def test_compare_cart_errors(client: TestClient) -> None:
    assert client.post("/api/cart/compare", json={"items": []}).status_code == 422
    assert client.post("/api/cart/compare", json={"items": [{"product_id": "zz"}]}).status_code == 404


def test_live_prices_store_filter_names_that_store(client: TestClient) -> None:
    body = client.get("/api/live-prices", params={"storeId": "star"}).json()
    for product in body["products"]:
        assert product["bestStoreId"] in [quote["storeId"] for quote in product["quotes"]]
