"""Pure item-list transforms behind add-to-cart and remove-from-cart.

Every function returns a new tuple of items; the input is never mutated.
"""

from enum import Enum
from typing import Sequence, Tuple

from storefront.domain.errors import NotFound, OutOfStock
from storefront.domain.schemas import CartItem


class MergeOutcome(str, Enum):
    ADDED = "added"
    UPDATED = "updated"


def find_item(items: Sequence[CartItem], product_id: str) -> CartItem | None:
    return next((i for i in items if i.product_id == product_id), None)


def new_line(incoming: CartItem) -> CartItem:
    # a request always puts exactly one unit in the cart, whatever its qty says
    return incoming.model_copy(update={"qty": 1})


def merge_line_item(
    items: Sequence[CartItem],
    incoming: CartItem,
    stock: int,
) -> Tuple[Tuple[CartItem, ...], MergeOutcome]:
    existing = find_item(items, incoming.product_id)

    if existing:
        if stock < existing.qty + 1:
            raise OutOfStock("Not enough in stock")
        merged = tuple(
            i.model_copy(update={"qty": i.qty + 1}) if i.product_id == incoming.product_id else i
            for i in items
        )
        return merged, MergeOutcome.UPDATED

    if stock < 1:
        raise OutOfStock("Not in stock")
    return tuple(items) + (new_line(incoming),), MergeOutcome.ADDED


def remove_line_item(items: Sequence[CartItem], product_id: str) -> Tuple[CartItem, ...]:
    existing = find_item(items, product_id)
    if existing is None:
        raise NotFound("Item not found")

    if existing.qty == 1:
        return tuple(i for i in items if i.product_id != product_id)
    return tuple(
        i.model_copy(update={"qty": i.qty - 1}) if i.product_id == product_id else i
        for i in items
    )
