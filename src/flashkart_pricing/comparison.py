from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from flashkart_pricing.errors import InvalidInputError
from flashkart_pricing.stores import StorePolicy
from flashkart_pricing.synthesizer import PricedProduct, StoreQuote, round_half_up

FREE_DELIVERY_THRESHOLD = 500
DELIVERY_FEE = 30


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidInputError(f"{self.product_id}: quantity must be a positive integer")


@dataclass(frozen=True)
class StoreCartTotal:
    store_id: str
    display_name: str
    total: int
    available_items: int
    unavailable_items: tuple[str, ...] = field(default_factory=tuple)

    @property
    def all_available(self) -> bool:
        return not self.unavailable_items

    def as_dict(self) -> dict[str, Any]:
        return {
            "storeId": self.store_id,
            "displayName": self.display_name,
            "total": self.total,
            "availableItems": self.available_items,
            "unavailableItems": list(self.unavailable_items),
            "allAvailable": self.all_available,
        }


@dataclass(frozen=True)
class CartComparison:
    stores: tuple[StoreCartTotal, ...]
    mrp_total: int
    best_price_subtotal: int
    delivery_fee: int

    @property
    def best_store(self) -> StoreCartTotal:
        return self.stores[0]

    @property
    def savings(self) -> int:
        return self.mrp_total - self.best_store.total

    @property
    def grand_total(self) -> int:
        return self.best_price_subtotal + self.delivery_fee

    def as_dict(self) -> dict[str, Any]:
        return {
            "stores": [store.as_dict() for store in self.stores],
            "bestStoreId": self.best_store.store_id,
            "mrpTotal": self.mrp_total,
            "savings": self.savings,
            "bestPriceSubtotal": self.best_price_subtotal,
            "deliveryFee": self.delivery_fee,
            "grandTotal": self.grand_total,
        }


@dataclass(frozen=True)
class StoreSummary:
    store_id: str
    display_name: str
    logo_glyph: str
    available_products: int
    total_products: int
    avg_discount: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.store_id,
            "name": self.display_name,
            "logo": self.logo_glyph,
            "availableProducts": self.available_products,
            "totalProducts": self.total_products,
            "avgDiscount": self.avg_discount,
        }


def delivery_fee_for(subtotal: float) -> int:
    return 0 if subtotal > FREE_DELIVERY_THRESHOLD else DELIVERY_FEE


def _resolve_lines(
    products: Sequence[PricedProduct],
    lines: Sequence[CartLine],
) -> list[tuple[PricedProduct, int]]:
    if not lines:
        raise InvalidInputError("Cart is empty")
    by_id = {product.id: product for product in products}
    resolved: list[tuple[PricedProduct, int]] = []
    for line in lines:
        product = by_id.get(line.product_id)
        if product is None:
            raise KeyError(f"Product not found: {line.product_id}")
        resolved.append((product, line.quantity))
    return resolved


def _store_total(policy: StorePolicy, cart: list[tuple[PricedProduct, int]]) -> StoreCartTotal:
    total = 0
    available_items = 0
    unavailable: list[str] = []
    for product, quantity in cart:
        quote = product.quote_for(policy.store_id)
        if quote is None:
            continue
        if quote.available:
            total += quote.price * quantity
            available_items += 1
        else:
            unavailable.append(product.name)
    return StoreCartTotal(
        store_id=policy.store_id,
        display_name=policy.display_name,
        total=round_half_up(total),
        available_items=available_items,
        unavailable_items=tuple(unavailable),
    )


def compare_cart(
    products: Sequence[PricedProduct],
    lines: Sequence[CartLine],
    policies: Sequence[StorePolicy],
) -> CartComparison:
    """Price a cart at every store; stores stocking the whole cart rank first, then by total."""
    cart = _resolve_lines(products, lines)
    totals = [_store_total(policy, cart) for policy in policies]
    # sorted() is stable, so equal stores keep policy order.
    ranked = sorted(totals, key=lambda store: (not store.all_available, store.total))

    mrp_total = round_half_up(sum(product.mrp * quantity for product, quantity in cart))
    subtotal = sum(product.best_price * quantity for product, quantity in cart)
    return CartComparison(
        stores=tuple(ranked),
        mrp_total=mrp_total,
        best_price_subtotal=subtotal,
        delivery_fee=delivery_fee_for(subtotal),
    )


def summarize_stores(
    products: Sequence[PricedProduct],
    policies: Sequence[StorePolicy],
) -> list[StoreSummary]:
    summaries: list[StoreSummary] = []
    for policy in policies:
        quotes: list[tuple[float, StoreQuote]] = []
        for product in products:
            quote = product.quote_for(policy.store_id)
            if quote is not None:
                quotes.append((product.mrp, quote))
        discounts = [(mrp - quote.price) / mrp * 100 for mrp, quote in quotes]
        avg_discount = sum(discounts) / len(discounts) if discounts else 0.0
        summaries.append(
            StoreSummary(
                store_id=policy.store_id,
                display_name=policy.display_name,
                logo_glyph=policy.logo_glyph,
                available_products=sum(1 for _, quote in quotes if quote.available),
                total_products=len(quotes),
                avg_discount=round_half_up(avg_discount * 10) / 10,
            )
        )
    return summaries
