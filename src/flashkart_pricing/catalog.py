from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from flashkart_pricing.errors import InvalidInputError

_NON_DIGITS = re.compile(r"\D")

CATEGORIES: tuple[str, ...] = (
    "all",
    "vegetables",
    "fruits",
    "dairy",
    "grains",
    "snacks",
    "beverages",
    "essentials",
)


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    category: str
    unit: str
    mrp: float
    image: str | None = None
    seed: int | None = None

    @property
    def resolved_seed(self) -> int:
        if self.seed is not None:
            return self.seed
        return extract_seed(self.id)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CatalogEntry":
        try:
            seed = raw.get("seed")
            return cls(
                id=str(raw["id"]),
                name=str(raw["name"]),
                category=str(raw.get("category") or ""),
                unit=str(raw.get("unit") or ""),
                mrp=validate_mrp(raw["mrp"]),
                image=raw.get("image"),
                seed=validate_seed(seed) if seed is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"Malformed catalog entry: {raw!r}") from exc

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "mrp": json_number(self.mrp),
        }
        if self.image is not None:
            out["image"] = self.image
        if self.seed is not None:
            out["seed"] = self.seed
        return out


def extract_seed(product_id: str) -> int:
    """Parse every decimal digit in the id as one base-10 integer; 1 when there are none."""
    digits = _NON_DIGITS.sub("", product_id)
    try:
        return int(digits or "1")
    except ValueError as exc:
        # Interpreter limit on int string conversion.
        raise InvalidInputError(f"Product id carries too many digits to seed: {product_id[:40]!r}...") from exc


def validate_seed(seed: Any) -> int:
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise InvalidInputError(f"seed must be an integer (got {seed!r})")
    return seed


def validate_mrp(mrp: Any) -> float:
    if isinstance(mrp, bool) or not isinstance(mrp, (int, float)):
        raise InvalidInputError(f"mrp must be a number (got {mrp!r})")
    if not math.isfinite(mrp) or mrp <= 0:
        raise InvalidInputError(f"mrp must be a finite positive number (got {mrp!r})")
    return float(mrp)


def json_number(value: float) -> float | int:
    """Integral floats serialize as ints, so 45 and 45.0 produce the same JSON."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _entry(product_id: str, name: str, category: str, image_id: str, unit: str, mrp: float) -> CatalogEntry:
    return CatalogEntry(
        id=product_id,
        name=name,
        category=category,
        unit=unit,
        mrp=mrp,
        image=f"https://images.unsplash.com/{image_id}?w=200",
    )


DEFAULT_CATALOG: tuple[CatalogEntry, ...] = (
    _entry("v1", "Fresh Tomatoes", "vegetables", "photo-1546470427-227c7e61c738", "1 kg", 45),
    _entry("v2", "Onions", "vegetables", "photo-1618512496248-a07fe83aa8cb", "1 kg", 35),
    _entry("v3", "Potatoes", "vegetables", "photo-1518977676601-b53f82bbe9e8", "1 kg", 30),
    _entry("v4", "Green Capsicum", "vegetables", "photo-1563565375-f3fdfdbefa83", "500 g", 80),
    _entry("v5", "Carrots", "vegetables", "photo-1598170845058-32b9d6a5da37", "500 g", 50),
    _entry("v6", "Cauliflower", "vegetables", "photo-1568584711075-3d021a7c3ca3", "piece", 40),
    _entry("v7", "Fresh Spinach", "vegetables", "photo-1576045057995-568f588f82fb", "250 g", 25),
    _entry("v8", "Brinjal", "vegetables", "photo-1604977042946-1eecc30f269e", "500 g", 45),
    _entry("f1", "Fresh Bananas", "fruits", "photo-1571771894821-ce9b6c11b08e", "1 dozen", 50),
    _entry("f2", "Red Apples (Shimla)", "fruits", "photo-1560806887-1e4cd0b6cbd6", "1 kg", 180),
    _entry("f3", "Fresh Oranges", "fruits", "photo-1547514701-42782101795e", "1 kg", 80),
    _entry("f4", "Alphonso Mangoes", "fruits", "photo-1553279768-865429fa0078", "1 kg", 350),
    _entry("f5", "Grapes", "fruits", "photo-1537640538966-79f369143f8f", "500 g", 120),
    _entry("f6", "Pomegranate", "fruits", "photo-1541344999736-4a22b0eb5e86", "1 kg", 160),
    _entry("f7", "Papaya", "fruits", "photo-1517282009859-f000ec3b26fe", "1 kg", 50),
    _entry("f8", "Watermelon", "fruits", "photo-1587049352846-4a222e784d38", "1 kg", 25),
    _entry("d1", "Amul Taaza Milk", "dairy", "photo-1563636619-e9143da7973b", "500 ml", 28),
    _entry("d2", "Fresh Paneer", "dairy", "photo-1631452180519-c014fe946bc7", "200 g", 90),
    _entry("d3", "Amul Butter", "dairy", "photo-1589985270826-4b7bb135bc9d", "100 g", 56),
    _entry("d4", "Greek Yogurt", "dairy", "photo-1488477181946-6428a0291777", "400 g", 95),
    _entry("d5", "Cheese Slices", "dairy", "photo-1486297678162-eb2a19b0a32d", "200 g", 150),
    _entry("d6", "Amul Ghee", "dairy", "photo-1631331607912-c76d9a3db315", "500 ml", 350),
    _entry("g1", "Basmati Rice", "grains", "photo-1586201375761-83865001e31c", "1 kg", 180),
    _entry("g2", "Whole Wheat Atta", "grains", "photo-1574323347407-f5e1ad6d020b", "5 kg", 250),
    _entry("g3", "Toor Dal", "grains", "photo-1585996746257-dc58166c7e1b", "1 kg", 160),
    _entry("g4", "Chana Dal", "grains", "photo-1613758235402-745466bb7efe", "1 kg", 120),
    _entry("g5", "Moong Dal", "grains", "photo-1612257416648-ee7a6c533549", "1 kg", 140),
    _entry("g6", "Masoor Dal", "grains", "photo-1596560548464-f010549b84d7", "1 kg", 110),
    _entry("s1", "Lays Classic Chips", "snacks", "photo-1566478989037-eec170784d0b", "52 g", 20),
    _entry("s2", "Parle-G Biscuits", "snacks", "photo-1558961363-fa8fdf82db35", "800 g", 80),
    _entry("s3", "Mixed Dry Fruits", "snacks", "photo-1508061253366-f7da158b6d46", "500 g", 550),
    _entry("s4", "Maggi Noodles", "snacks", "photo-1612929633738-8fe44f7ec841", "4 pack", 56),
    _entry("b1", "Tata Tea Gold", "beverages", "photo-1564890369478-c89ca6d9cde9", "500 g", 280),
    _entry("b2", "Nescafe Classic", "beverages", "photo-1559056199-641a0ac8b55e", "100 g", 220),
    _entry("b3", "Real Fruit Juice", "beverages", "photo-1600271886742-f049cd451bba", "1 L", 99),
    _entry("b4", "Coca Cola", "beverages", "photo-1554866585-cd94860890b7", "2 L", 95),
    _entry("e1", "Saffola Gold Oil", "essentials", "photo-1474979266404-7eaacbcd87c5", "1 L", 175),
    _entry("e2", "Tata Salt", "essentials", "photo-1518110925495-5fe2fda0442c", "1 kg", 24),
    _entry("e3", "MDH Garam Masala", "essentials", "photo-1596040033229-a9821ebd058d", "100 g", 85),
    _entry("e4", "Sugar", "essentials", "photo-1558642452-9d2a7deb7f62", "1 kg", 55),
    _entry("e5", "Turmeric Powder", "essentials", "photo-1615485500704-8e990f9900f7", "200 g", 60),
    _entry("e6", "Red Chilli Powder", "essentials", "photo-1596040033229-a9821ebd058d", "200 g", 70),
)


def load_catalog(path: Path) -> tuple[CatalogEntry, ...]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise InvalidInputError(f"{path} must contain a JSON array of catalog entries")

    entries: list[CatalogEntry] = []
    seen: set[str] = set()
    for item in raw:
        entry = CatalogEntry.from_dict(item)
        if entry.id in seen:
            raise InvalidInputError(f"Duplicate catalog id: {entry.id}")
        seen.add(entry.id)
        entries.append(entry)
    return tuple(entries)


def unique_categories(entries: Iterable[CatalogEntry]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for entry in entries:
        if entry.category and entry.category not in seen:
            seen.add(entry.category)
            out.append(entry.category)
    return sorted(out)
