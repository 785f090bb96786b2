from __future__ import annotations

import sqlite3
from pathlib import Path

from flashkart_pricing.catalog import DEFAULT_CATALOG
from flashkart_pricing.db import PriceBookDB
from flashkart_pricing.synthesizer import synthesize_catalog


def test_price_book_persists_quotes_in_order(tmp_path: Path, policies) -> None:
    db = PriceBookDB(tmp_path / "nested" / "prices.db")
    priced = synthesize_catalog(DEFAULT_CATALOG, policies)

    assert db.upsert_priced_products(priced) == 42

    assert db.load_priced_products() == priced
    assert [p.id for p in db.load_priced_products(category="Dairy")] == ["d1", "d2", "d3", "d4", "d5", "d6"]
    assert db.get_product("v1") == priced[0]
    assert db.get_product("missing") is None


def test_price_book_stats_and_prune(tmp_path: Path, policies) -> None:
    db = PriceBookDB(tmp_path / "prices.db")
    db.upsert_priced_products(synthesize_catalog(DEFAULT_CATALOG, policies))

    stats = db.stats()
    assert stats["product_count"] == 42
    assert stats["quote_count"] == 42 * 6
    assert stats["last_updated"]

    db.upsert_priced_products(synthesize_catalog(DEFAULT_CATALOG[:3], policies), prune=True)
    assert db.stats()["product_count"] == 3
    assert db.stats()["quote_count"] == 18


class _TrackingConnection(sqlite3.Connection):
    closed_count = 0

    def close(self) -> None:
        type(self).closed_count += 1
        super().close()


def test_price_book_closes_every_connection(tmp_path: Path, policies, monkeypatch) -> None:
    opened: list[sqlite3.Connection] = []
    real_connect = sqlite3.connect

    def tracking_connect(*args, **kwargs):
        conn = real_connect(*args, factory=_TrackingConnection, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr("flashkart_pricing.db.sqlite3.connect", tracking_connect)
    _TrackingConnection.closed_count = 0

    db = PriceBookDB(tmp_path / "prices.db")
    db.upsert_priced_products(synthesize_catalog(DEFAULT_CATALOG[:2], policies))
    db.load_priced_products()
    db.stats()

    assert len(opened) == 4
    assert _TrackingConnection.closed_count == 4
