from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

from flashkart_pricing.catalog import DEFAULT_CATALOG, CatalogEntry
from flashkart_pricing.service import PriceComparisonService, PricingConfig
from flashkart_pricing.stores import DEFAULT_STORE_POLICIES, StorePolicy


def pytest_configure(config: pytest.Config) -> None:
    # app/api_server.py builds a service at import time; keep its price book out of the repo.
    os.environ.setdefault("FK_DB_PATH", str(Path(tempfile.mkdtemp(prefix="flashkart-")) / "prices.db"))


@pytest.fixture
def policies() -> tuple[StorePolicy, ...]:
    return DEFAULT_STORE_POLICIES


@pytest.fixture
def tomatoes() -> CatalogEntry:
    return DEFAULT_CATALOG[0]


@pytest.fixture
def onions() -> CatalogEntry:
    return DEFAULT_CATALOG[1]


@pytest.fixture
def service(tmp_path: Path) -> PriceComparisonService:
    return PriceComparisonService(root_dir=tmp_path, config=PricingConfig(db_path=tmp_path / "prices.db"))
