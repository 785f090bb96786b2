from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from flashkart_pricing.catalog import CATEGORIES, DEFAULT_CATALOG, CatalogEntry, load_catalog, unique_categories
from flashkart_pricing.comparison import CartComparison, CartLine, compare_cart, summarize_stores
from flashkart_pricing.db import PriceBookDB
from flashkart_pricing.stores import DEFAULT_STORE_POLICIES, StorePolicy, load_store_policies
from flashkart_pricing.synthesizer import ALGORITHM_V1, ALGORITHMS, PricedProduct, synthesize_catalog

_LOGGER = logging.getLogger(__name__)
MAX_CATEGORY_LENGTH = 100


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return Path(os.path.expanduser(raw.strip()))


@dataclass(frozen=True)
class PricingConfig:
    algorithm: str = ALGORITHM_V1
    catalog_path: Path | None = None
    stores_path: Path | None = None
    db_path: Path | None = None

    @classmethod
    def from_env(cls) -> "PricingConfig":
        algorithm = (os.getenv("FK_PRICING_ALGORITHM") or ALGORITHM_V1).strip().lower()
        if algorithm not in ALGORITHMS:
            _LOGGER.warning(
                "Unknown FK_PRICING_ALGORITHM %r, falling back to %s.", algorithm, ALGORITHM_V1
            )
            algorithm = ALGORITHM_V1
        return cls(
            algorithm=algorithm,
            catalog_path=_env_path("FK_CATALOG_PATH"),
            stores_path=_env_path("FK_STORES_PATH"),
            db_path=_env_path("FK_DB_PATH"),
        )


class PriceComparisonService:
    def __init__(self, root_dir: Path | None = None, config: PricingConfig | None = None) -> None:
        self.root_dir = root_dir or Path(__file__).resolve().parents[2]
        self.cfg = config or PricingConfig.from_env()
        self.db = PriceBookDB(self.cfg.db_path or self.root_dir / "data" / "flashkart_prices.db")

        self.policies: tuple[StorePolicy, ...] = (
            load_store_policies(self.cfg.stores_path) if self.cfg.stores_path else DEFAULT_STORE_POLICIES
        )
        self.catalog: tuple[CatalogEntry, ...] = (
            load_catalog(self.cfg.catalog_path) if self.cfg.catalog_path else DEFAULT_CATALOG
        )
        self.categories = unique_categories(self.catalog)
        self._policy_by_id = {policy.store_id: policy for policy in self.policies}
        _LOGGER.info(
            "Loaded %d catalog entries across %d stores (algorithm %s).",
            len(self.catalog),
            len(self.policies),
            self.cfg.algorithm,
        )
        self.refresh()

    @property
    def algorithm(self) -> str:
        return self.cfg.algorithm

    def refresh(self) -> int:
        priced = synthesize_catalog(self.catalog, self.policies, algorithm=self.cfg.algorithm)
        return self.db.upsert_priced_products(priced, prune=True)

    @staticmethod
    def _normalize_category(category: str | None) -> str | None:
        cleaned = (category or "").strip()
        if not cleaned:
            return None
        if len(cleaned) > MAX_CATEGORY_LENGTH:
            raise ValueError("Invalid category parameter")
        if cleaned.lower() == CATEGORIES[0]:
            return None
        return cleaned

    def _policy(self, store_id: str) -> StorePolicy:
        policy = self._policy_by_id.get(store_id)
        if policy is None:
            raise ValueError(f"Unknown store id: {store_id}")
        return policy

    def priced_products(self) -> list[PricedProduct]:
        return self.db.load_priced_products()

    def live_prices(
        self,
        *,
        category: str | None = None,
        store_id: str | None = None,
        product_id: str | None = None,
    ) -> dict[str, Any]:
        normalized_category = self._normalize_category(category)
        policies: Sequence[StorePolicy] = self.policies
        if store_id:
            policies = [self._policy(store_id)]

        products = self.db.load_priced_products(category=normalized_category, product_id=product_id)
        if product_id and not products:
            raise KeyError(f"Product not found: {product_id}")

        summaries = summarize_stores(products, policies)
        if store_id:
            products = [product.restricted_to(store_id) for product in products]
        payload = [product.as_dict() for product in products]

        return {
            "products": payload,
            "stores": [summary.as_dict() for summary in summaries],
            "meta": {
                "totalProducts": len(payload),
                "totalStores": len(policies),
                "algorithm": self.cfg.algorithm,
                "lastUpdated": self.db.stats().get("last_updated"),
            },
        }

    def get_product(self, product_id: str) -> dict[str, Any]:
        product = self.db.get_product(product_id)
        if product is None:
            raise KeyError(f"Product not found: {product_id}")
        return product.as_dict()

    def store_directory(self) -> list[dict[str, Any]]:
        return [policy.as_dict() for policy in self.policies]

    def compare_cart(self, lines: Sequence[CartLine]) -> CartComparison:
        return compare_cart(self.priced_products(), lines, self.policies)

    def stats(self) -> dict[str, Any]:
        details = self.db.stats()
        details["algorithm"] = self.cfg.algorithm
        details["store_count"] = len(self.policies)
        details["catalog_entries_in_memory"] = len(self.catalog)
        details["categories"] = self.categories
        return details
