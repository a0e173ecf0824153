# Overview: Transient shopping cart; consolidates product lines and prices them.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from ..validation import ValidationError, coerce_int
from . import pricing_service
from .pricing_service import BillableItem


@dataclass
class CartLine:
    product: object
    quantity: int

    @property
    def product_id(self) -> int:
        return self.product.id


class Cart:
    """
    Session-scoped cart: at most one line per product, every quantity > 0.

    Lines keep insertion order so billable items come out in the order the
    cashier added them.
    """

    def __init__(self):
        self._lines: dict[int, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self._lines.values())

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def quantity_of(self, product_id: int) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    def add(self, product, quantity: int) -> CartLine:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero", field="quantity")

        line = self._lines.get(product.id)
        if line is None:
            line = CartLine(product=product, quantity=quantity)
            self._lines[product.id] = line
        else:
            line.quantity += quantity
        return line

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def set_quantity(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        line = self._lines.get(product_id)
        if line is None:
            raise ValidationError("Product is not in the cart", field="product_id")
        line.quantity = quantity

    def items(self) -> list[BillableItem]:
        return pricing_service.resolve_lines(self._lines.values())

    def total(self) -> int:
        return pricing_service.items_total(self.items())


def build_cart(entries: Iterable[dict], *, session=None) -> Cart:
    """
    Build a cart from [{"product_id": .., "quantity": ..}, ...].

    Product ids are resolved through the catalog first, so an unknown id
    raises NotFoundError and never reaches the cart.
    """
    from .catalog_service import get_product

    cart = Cart()
    for index, entry in enumerate(entries or []):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object", field="items")
        product_id = coerce_int(entry.get("product_id"), f"items[{index}].product_id")
        quantity = coerce_int(entry.get("quantity"), f"items[{index}].quantity", minimum=1)
        cart.add(get_product(product_id, session=session), quantity)
    return cart
