from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from flashkart_pricing.catalog import DEFAULT_CATALOG, load_catalog
from flashkart_pricing.stores import DEFAULT_STORE_POLICIES, load_store_policies
from flashkart_pricing.synthesizer import ALGORITHM_V1, ALGORITHMS, synthesize_catalog


def build_fixture(catalog_path: Path | None, stores_path: Path | None, algorithm: str) -> dict[str, Any]:
    entries = load_catalog(catalog_path) if catalog_path else DEFAULT_CATALOG
    policies = load_store_policies(stores_path) if stores_path else DEFAULT_STORE_POLICIES
    priced = synthesize_catalog(entries, policies, algorithm=algorithm)
    return {
        "algorithm": algorithm,
        "policies": [policy.as_dict() for policy in policies],
        "catalog": [entry.as_dict() for entry in entries],
        "products": [product.as_dict() for product in priced],
    }


def _resolve(raw: str | None) -> Path | None:
    if not raw:
        return None
    return Path(os.path.expanduser(raw)).resolve()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Write the synthesized price book as a JSON fixture for cross-language parity checks."
    )
    parser.add_argument("--catalog", help="JSON catalog file (defaults to the built-in demo catalog)")
    parser.add_argument("--stores", help="JSON store policy file (defaults to the built-in partner stores)")
    parser.add_argument("--algorithm", choices=ALGORITHMS, default=ALGORITHM_V1)
    parser.add_argument(
        "--dest",
        default=str(ROOT_DIR / "data" / "price_book_fixture.json"),
        help="Destination JSON file",
    )
    args = parser.parse_args()

    fixture = build_fixture(_resolve(args.catalog), _resolve(args.stores), args.algorithm)
    dest = Path(os.path.expanduser(args.dest)).resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    with dest.open("w", encoding="utf-8") as f:
        json.dump(fixture, f, ensure_ascii=False, indent=2)
    print(f"Wrote {len(fixture['products'])} priced products -> {dest}")


if __name__ == "__main__":
    main()
