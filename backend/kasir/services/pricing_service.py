# Overview: Service-layer pricing rules; expands a product quantity into billable items.

"""
Package vs unit pricing.

A product may sell package_qty units for package_price. The package price is
a bulk-discount mechanism and is NOT derived from the unit price, so a
quantity is billed as whole packages first and the remainder at unit price.

Example: package_qty=5, package_price=40, price=10, quantity=12
    -> 10 units @ 8.00 (subtotal 80) + 2 units @ 10 (subtotal 20)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

TWOPLACES = Decimal("0.01")

PRICING_PACKAGE = "package"
PRICING_UNIT = "unit"


@dataclass(frozen=True)
class BillableItem:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: int
    pricing: str = PRICING_UNIT

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "subtotal": self.subtotal,
            "pricing": self.pricing,
        }


def _money(value) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def resolve(product, quantity: int) -> list[BillableItem]:
    """
    Split a quantity of one product into billable items.

    Returns an empty list for quantity 0 (the cart never lets one through).
    """
    if quantity < 0:
        raise ValueError("quantity must not be negative")
    if quantity == 0:
        return []

    package_qty = product.package_qty or 0
    package_price = product.package_price

    if package_qty > 0 and package_price is not None:
        num_packages, remainder = divmod(quantity, package_qty)
        items = []
        if num_packages > 0:
            items.append(BillableItem(
                product_id=product.id,
                product_name=product.name,
                quantity=num_packages * package_qty,
                unit_price=_money(Decimal(package_price) / package_qty),
                subtotal=num_packages * package_price,
                pricing=PRICING_PACKAGE,
            ))
        if remainder > 0:
            items.append(BillableItem(
                product_id=product.id,
                product_name=product.name,
                quantity=remainder,
                unit_price=_money(product.price),
                subtotal=remainder * product.price,
                pricing=PRICING_UNIT,
            ))
        return items

    return [BillableItem(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        unit_price=_money(product.price),
        subtotal=quantity * product.price,
        pricing=PRICING_UNIT,
    )]


def resolve_lines(lines: Iterable) -> list[BillableItem]:
    """Flatten (product, quantity) lines into billable items, preserving order."""
    items: list[BillableItem] = []
    for line in lines:
        items.extend(resolve(line.product, line.quantity))
    return items


def items_total(items: Iterable[BillableItem]) -> int:
    return sum(item.subtotal for item in items)
