from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from flashkart_pricing.catalog import CatalogEntry, extract_seed, json_number, validate_mrp
from flashkart_pricing.errors import InvalidInputError
from flashkart_pricing.stores import StorePolicy, validate_policies

ALGORITHM_V1 = "v1"
ALGORITHM_V2 = "v2"
ALGORITHMS = (ALGORITHM_V1, ALGORITHM_V2)

# Offset between the discount draw and the availability draw of one store.
_AVAILABILITY_OFFSET = 50


@dataclass(frozen=True)
class StoreQuote:
    store_id: str
    price: int
    available: bool

    def as_dict(self) -> dict[str, Any]:
        return {"storeId": self.store_id, "price": self.price, "available": self.available}


@dataclass(frozen=True)
class PricedProduct:
    id: str
    name: str
    category: str
    unit: str
    mrp: float
    quotes: tuple[StoreQuote, ...]
    best_price: int
    best_store_id: str
    algorithm: str = ALGORITHM_V1
    image: str | None = None

    @property
    def available_stores(self) -> int:
        return sum(1 for quote in self.quotes if quote.available)

    @property
    def has_available_offer(self) -> bool:
        return self.available_stores > 0

    @property
    def price_range(self) -> tuple[int, int]:
        prices = [quote.price for quote in self.quotes]
        return min(prices), max(prices)

    def quote_for(self, store_id: str) -> StoreQuote | None:
        for quote in self.quotes:
            if quote.store_id == store_id:
                return quote
        return None

    def restricted_to(self, store_id: str) -> "PricedProduct":
        """Same product seen through a single store; best price and counts describe that store only."""
        quote = self.quote_for(store_id)
        if quote is None:
            raise KeyError(f"{self.id} has no quote from store {store_id}")
        return replace(self, quotes=(quote,), best_price=quote.price, best_store_id=quote.store_id)

    def as_dict(self) -> dict[str, Any]:
        low, high = self.price_range
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "mrp": json_number(self.mrp),
            "quotes": [quote.as_dict() for quote in self.quotes],
            "bestPrice": self.best_price,
            "bestStoreId": self.best_store_id,
            "availableStores": self.available_stores,
            "priceRange": {"min": low, "max": high},
            "algorithm": self.algorithm,
        }
        if self.image is not None:
            out["image"] = self.image
        return out


def pseudo_random(seed: int) -> float:
    """Fractional part of sin(seed) * 10000, in [0, 1)."""
    x = math.sin(seed) * 10000
    return x - math.floor(x)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going away from zero."""
    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def _hashed_sub_seed(seed: int, store_id: str) -> int:
    try:
        key = f"{seed}:{store_id}"
    except ValueError as exc:
        raise InvalidInputError("Explicit seed has too many digits to hash") from exc
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def _require_float_range(entry: CatalogEntry, sub_seeds: list[int]) -> list[int]:
    # sin() needs a float argument; ids with hundreds of digits overflow it.
    try:
        float(max(sub_seeds) + _AVAILABILITY_OFFSET)
    except OverflowError as exc:
        raise InvalidInputError(f"Seed for {entry.id[:40]!r} is too large to price") from exc
    return sub_seeds


def _sub_seeds(entry: CatalogEntry, policies: Sequence[StorePolicy], algorithm: str) -> list[int]:
    if algorithm == ALGORITHM_V1:
        # Legacy: digits of the id, store position folded in.
        seed = extract_seed(entry.id)
        return _require_float_range(entry, [seed * 100 + i for i in range(len(policies))])
    if algorithm == ALGORITHM_V2:
        seed = entry.resolved_seed
        return [_hashed_sub_seed(seed, policy.store_id) for policy in policies]
    raise InvalidInputError(f"Unknown pricing algorithm: {algorithm!r} (expected one of {ALGORITHMS})")


def quote_store(mrp: float, policy: StorePolicy, sub_seed: int) -> StoreQuote:
    spread = policy.max_discount - policy.min_discount
    discount = policy.min_discount + pseudo_random(sub_seed) * spread
    price = round_half_up(mrp * (1 - discount))
    available = pseudo_random(sub_seed + _AVAILABILITY_OFFSET) < policy.availability_probability
    return StoreQuote(store_id=policy.store_id, price=price, available=available)


def select_best(quotes: Sequence[StoreQuote]) -> StoreQuote:
    """Cheapest available quote, first one wins ties; quotes[0] when nothing is in stock."""
    best: StoreQuote | None = None
    for quote in quotes:
        if quote.available and (best is None or quote.price < best.price):
            best = quote
    return best if best is not None else quotes[0]


def synthesize(
    entry: CatalogEntry,
    policies: Sequence[StorePolicy],
    *,
    algorithm: str = ALGORITHM_V1,
) -> PricedProduct:
    mrp = validate_mrp(entry.mrp)
    validate_policies(policies)
    sub_seeds = _sub_seeds(entry, policies, algorithm)

    quotes = tuple(quote_store(mrp, policy, sub_seed) for policy, sub_seed in zip(policies, sub_seeds))
    best = select_best(quotes)

    return PricedProduct(
        id=entry.id,
        name=entry.name,
        category=entry.category,
        unit=entry.unit,
        mrp=entry.mrp,
        quotes=quotes,
        best_price=best.price,
        best_store_id=best.store_id,
        algorithm=algorithm,
        image=entry.image,
    )


def synthesize_catalog(
    entries: Iterable[CatalogEntry],
    policies: Sequence[StorePolicy],
    *,
    algorithm: str = ALGORITHM_V1,
) -> list[PricedProduct]:
    return [synthesize(entry, policies, algorithm=algorithm) for entry in entries]
