from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from flashkart_pricing.errors import InvalidInputError


@dataclass(frozen=True)
class StorePolicy:
    store_id: str
    display_name: str
    logo_glyph: str
    min_discount: float
    max_discount: float
    availability_probability: float

    def __post_init__(self) -> None:
        if not isinstance(self.store_id, str) or not self.store_id:
            raise InvalidInputError("store_id must be a non-empty string")
        for name in ("min_discount", "max_discount", "availability_probability"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(f"{self.store_id}: {name} must be a number (got {value!r})")
        if not 0.0 <= self.min_discount < self.max_discount < 1.0:
            raise InvalidInputError(
                f"{self.store_id}: discount range must satisfy 0 <= min < max < 1 "
                f"(got {self.min_discount}, {self.max_discount})"
            )
        if not 0.0 <= self.availability_probability <= 1.0:
            raise InvalidInputError(
                f"{self.store_id}: availability probability must be within [0, 1] "
                f"(got {self.availability_probability})"
            )

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "StorePolicy":
        try:
            return cls(
                store_id=str(raw["storeId"]),
                display_name=str(raw.get("displayName") or raw["storeId"]),
                logo_glyph=str(raw.get("logoGlyph") or ""),
                min_discount=float(raw["minDiscount"]),
                max_discount=float(raw["maxDiscount"]),
                availability_probability=float(raw["availabilityProbability"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"Malformed store policy: {raw!r}") from exc

    def as_dict(self) -> dict[str, Any]:
        return {
            "storeId": self.store_id,
            "displayName": self.display_name,
            "logoGlyph": self.logo_glyph,
            "minDiscount": self.min_discount,
            "maxDiscount": self.max_discount,
            "availabilityProbability": self.availability_probability,
        }


# Order matters: the v1 price derivation seeds each store by its position.
DEFAULT_STORE_POLICIES: tuple[StorePolicy, ...] = (
    StorePolicy("dmart", "D-Mart", "🏪", 0.08, 0.20, 0.95),
    StorePolicy("reliance", "Reliance Fresh", "🛒", 0.05, 0.15, 0.90),
    StorePolicy("bigbazaar", "Big Bazaar", "🏬", 0.06, 0.18, 0.85),
    StorePolicy("more", "More Supermarket", "🛍️", 0.03, 0.12, 0.80),
    StorePolicy("spencers", "Spencer's", "🏢", 0.02, 0.10, 0.88),
    StorePolicy("star", "Star Bazaar", "⭐", 0.04, 0.14, 0.82),
)


def validate_policies(policies: list[StorePolicy] | tuple[StorePolicy, ...]) -> None:
    if not policies:
        raise InvalidInputError("At least one store policy is required")
    seen: set[str] = set()
    for policy in policies:
        if policy.store_id in seen:
            raise InvalidInputError(f"Duplicate store id: {policy.store_id}")
        seen.add(policy.store_id)


def load_store_policies(path: Path) -> tuple[StorePolicy, ...]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise InvalidInputError(f"{path} must contain a JSON array of store policies")

    policies = tuple(StorePolicy.from_dict(item) for item in raw)
    validate_policies(policies)
    return policies
