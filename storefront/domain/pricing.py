"""Derived cart totals.

Totals are always recomputed from the full item list, never patched.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from storefront.domain.money import ZERO, round2, to_decimal
from storefront.utils import settings


@dataclass(frozen=True)
class PriceSummary:
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal

    def as_dict(self) -> dict:
        return {
            "items_price": self.items_price,
            "shipping_price": self.shipping_price,
            "tax_price": self.tax_price,
            "total_price": self.total_price,
        }


def calc_price(
    items: Iterable,
    free_shipping_threshold: Decimal | None = None,
    shipping_price: Decimal | None = None,
    tax_rate: Decimal | None = None,
) -> PriceSummary:
    threshold = settings.FREE_SHIPPING_THRESHOLD if free_shipping_threshold is None else free_shipping_threshold
    flat_fee = settings.SHIPPING_PRICE if shipping_price is None else shipping_price
    rate = settings.TAX_RATE if tax_rate is None else tax_rate

    items_price = round2(sum((to_decimal(item.price) * item.qty for item in items), ZERO))
    # an empty cart still pays the flat fee: 0 is not above the threshold
    shipping = round2(ZERO if items_price > threshold else flat_fee)
    tax = round2(rate * items_price)
    total = round2(items_price + shipping + tax)

    return PriceSummary(
        items_price=items_price,
        shipping_price=shipping,
        tax_price=tax,
        total_price=total,
    )
