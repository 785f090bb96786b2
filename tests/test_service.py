from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from flashkart_pricing.comparison import CartLine
from flashkart_pricing.service import PriceComparisonService, PricingConfig


def test_live_prices_full_catalog(service: PriceComparisonService) -> None:
    payload = service.live_prices()

    assert payload["meta"]["totalProducts"] == 42
    assert payload["meta"]["totalStores"] == 6
    assert payload["meta"]["algorithm"] == "v1"
    assert [store["id"] for store in payload["stores"]] == [p.store_id for p in service.policies]
    first = payload["products"][0]
    assert first["id"] == "v1"
    assert [quote["price"] for quote in first["quotes"]] == [40, 42, 41, 40, 41, 40]


@pytest.mark.parametrize(("category", "expected"), [("vegetables", 8), ("Fruits", 8), ("all", 42), ("", 42)])
def test_live_prices_category_filter(service: PriceComparisonService, category: str, expected: int) -> None:
    assert service.live_prices(category=category)["meta"]["totalProducts"] == expected


def test_live_prices_store_filter(service: PriceComparisonService) -> None:
    payload = service.live_prices(store_id="star")

    assert payload["meta"]["totalStores"] == 1
    assert all([quote["storeId"] for quote in product["quotes"]] == ["star"] for product in payload["products"])
    assert [store["id"] for store in payload["stores"]] == ["star"]


def test_live_prices_rejects_bad_parameters(service: PriceComparisonService) -> None:
    with pytest.raises(ValueError):
        service.live_prices(category="x" * 101)
    with pytest.raises(ValueError):
        service.live_prices(store_id="walmart")
    with pytest.raises(KeyError):
        service.live_prices(product_id="zz")


def test_get_product_and_cart(service: PriceComparisonService) -> None:
    assert service.get_product("v2")["bestPrice"] == 32
    with pytest.raises(KeyError):
        service.get_product("zz")

    comparison = service.compare_cart([CartLine("v1", 2), CartLine("v2", 1)])
    assert comparison.best_store.store_id == "dmart"
    assert comparison.grand_total == 142


def test_stats(service: PriceComparisonService) -> None:
    stats = service.stats()
    assert stats["product_count"] == 42
    assert stats["store_count"] == 6
    assert stats["algorithm"] == "v1"
    assert "vegetables" in stats["categories"]


def test_refresh_replaces_previous_catalog(tmp_path: Path) -> None:
    db_path = tmp_path / "prices.db"
    PriceComparisonService(root_dir=tmp_path, config=PricingConfig(db_path=db_path))

    catalog_path = tmp_path / "catalog.json"
    catalog_path.write_text(
        json.dumps([{"id": "x1", "name": "Jaggery", "category": "essentials", "unit": "1 kg", "mrp": 90}]),
        encoding="utf-8",
    )
    custom = PriceComparisonService(
        root_dir=tmp_path,
        config=PricingConfig(catalog_path=catalog_path, db_path=db_path, algorithm="v2"),
    )

    payload = custom.live_prices()
    assert [product["id"] for product in payload["products"]] == ["x1"]
    assert payload["products"][0]["algorithm"] == "v2"


def test_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("FK_PRICING_ALGORITHM", "V2")
    monkeypatch.setenv("FK_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.delenv("FK_CATALOG_PATH", raising=False)

    cfg = PricingConfig.from_env()
    assert cfg.algorithm == "v2"
    assert cfg.db_path == tmp_path / "env.db"
    assert cfg.catalog_path is None

    monkeypatch.setenv("FK_PRICING_ALGORITHM", "fancy")
    with caplog.at_level(logging.WARNING):
        assert PricingConfig.from_env().algorithm == "v1"
    assert "FK_PRICING_ALGORITHM" in caplog.text


@pytest.mark.parametrize("store_id", ["dmart", "star"])
def test_store_filter_keeps_best_price_consistent(service: PriceComparisonService, store_id: str) -> None:
    for product in service.live_prices(store_id=store_id)["products"]:
        assert [quote["storeId"] for quote in product["quotes"]] == [store_id]
        assert product["bestStoreId"] == store_id
        assert product["bestPrice"] == product["quotes"][0]["price"]
        assert product["availableStores"] == int(product["quotes"][0]["available"])
        assert product["priceRange"] == {"min": product["bestPrice"], "max": product["bestPrice"]}


def test_stored_products_serialize_like_fresh_synthesis(service: PriceComparisonService, tomatoes, policies) -> None:
    from flashkart_pricing.synthesizer import synthesize

    stored = service.get_product("v1")
    assert json.dumps(stored, sort_keys=True) == json.dumps(synthesize(tomatoes, policies).as_dict(), sort_keys=True)
    assert isinstance(stored["mrp"], int)
