from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from flashkart_pricing.synthesizer import PricedProduct, StoreQuote

_LOGGER = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PriceBookDB:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            # Commits on success, rolls back on error.
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    unit TEXT NOT NULL,
                    mrp REAL NOT NULL,
                    image TEXT,
                    best_price INTEGER NOT NULL,
                    best_store_id TEXT NOT NULL,
                    algorithm TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);

                CREATE TABLE IF NOT EXISTS store_quotes (
                    product_id TEXT NOT NULL,
                    store_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    price INTEGER NOT NULL,
                    available INTEGER NOT NULL,
                    PRIMARY KEY (product_id, store_id),
                    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_store_quotes_store ON store_quotes(store_id);
                """
            )

    def upsert_priced_products(self, products: Iterable[PricedProduct], *, prune: bool = False) -> int:
        timestamp = _utc_now()
        product_rows: list[tuple[Any, ...]] = []
        quote_rows: list[tuple[Any, ...]] = []
        for position, product in enumerate(products):
            product_rows.append(
                (
                    product.id,
                    position,
                    product.name,
                    product.category,
                    product.unit,
                    product.mrp,
                    product.image,
                    product.best_price,
                    product.best_store_id,
                    product.algorithm,
                    timestamp,
                )
            )
            for quote_position, quote in enumerate(product.quotes):
                quote_rows.append(
                    (product.id, quote.store_id, quote_position, quote.price, int(quote.available))
                )

        with self._connect() as conn:
            if prune:
                conn.execute("DELETE FROM products")
            conn.executemany(
                """
                INSERT INTO products (
                    id, position, name, category, unit, mrp, image,
                    best_price, best_store_id, algorithm, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    position=excluded.position,
                    name=excluded.name,
                    category=excluded.category,
                    unit=excluded.unit,
                    mrp=excluded.mrp,
                    image=excluded.image,
                    best_price=excluded.best_price,
                    best_store_id=excluded.best_store_id,
                    algorithm=excluded.algorithm,
                    updated_at=excluded.updated_at
                """,
                product_rows,
            )
            conn.executemany(
                "DELETE FROM store_quotes WHERE product_id = ?",
                [(row[0],) for row in product_rows],
            )
            conn.executemany(
                """
                INSERT INTO store_quotes (product_id, store_id, position, price, available)
                VALUES (?, ?, ?, ?, ?)
                """,
                quote_rows,
            )
        _LOGGER.info("Stored %d priced products in %s", len(product_rows), self.db_path)
        return len(product_rows)

    def load_priced_products(
        self,
        *,
        category: str | None = None,
        product_id: str | None = None,
    ) -> list[PricedProduct]:
        clauses: list[str] = []
        params: list[Any] = []
        if category:
            clauses.append("lower(p.category) = lower(?)")
            params.append(category)
        if product_id:
            clauses.append("p.id = ?")
            params.append(product_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT p.id, p.name, p.category, p.unit, p.mrp, p.image,
                       p.best_price, p.best_store_id, p.algorithm,
                       q.store_id, q.price, q.available
                FROM products p
                JOIN store_quotes q ON q.product_id = p.id
                {where}
                ORDER BY p.position ASC, q.position ASC
                """,
                params,
            ).fetchall()

        grouped: dict[str, list[sqlite3.Row]] = {}
        for row in rows:
            grouped.setdefault(row["id"], []).append(row)

        products: list[PricedProduct] = []
        for quote_rows in grouped.values():
            head = quote_rows[0]
            products.append(
                PricedProduct(
                    id=head["id"],
                    name=head["name"],
                    category=head["category"],
                    unit=head["unit"],
                    mrp=head["mrp"],
                    quotes=tuple(
                        StoreQuote(store_id=row["store_id"], price=int(row["price"]), available=bool(row["available"]))
                        for row in quote_rows
                    ),
                    best_price=int(head["best_price"]),
                    best_store_id=head["best_store_id"],
                    algorithm=head["algorithm"],
                    image=head["image"],
                )
            )
        return products

    def get_product(self, product_id: str) -> PricedProduct | None:
        products = self.load_priced_products(product_id=product_id)
        return products[0] if products else None

    def stats(self) -> dict[str, Any]:
        with self._connect() as conn:
            counts = conn.execute(
                """
                SELECT
                  (SELECT COUNT(*) FROM products) AS product_count,
                  (SELECT COUNT(*) FROM store_quotes) AS quote_count,
                  (SELECT COUNT(*) FROM store_quotes WHERE available = 1) AS available_quote_count,
                  (SELECT MAX(updated_at) FROM products) AS last_updated
                """
            ).fetchone()
        if not counts:
            return {"product_count": 0, "quote_count": 0, "available_quote_count": 0, "last_updated": None}
        return dict(counts)
