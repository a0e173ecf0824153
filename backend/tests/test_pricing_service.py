from decimal import Decimal
from types import SimpleNamespace

import pytest

from kasir.services import pricing_service
from kasir.services.pricing_service import resolve, PRICING_PACKAGE, PRICING_UNIT


def product(price=10, package_qty=None, package_price=None, pid=1, name="Gula"):
    return SimpleNamespace(id=pid, name=name, price=price, package_qty=package_qty, package_price=package_price)


class TestResolve:

    def test_package_and_remainder_split(self):
        items = resolve(product(price=10, package_qty=5, package_price=40), 12)

        assert len(items) == 2
        package, unit = items
        assert (package.quantity, package.unit_price, package.subtotal) == (10, Decimal("8.00"), 80)
        assert package.pricing == PRICING_PACKAGE
        assert (unit.quantity, unit.unit_price, unit.subtotal) == (2, Decimal("10.00"), 20)
        assert unit.pricing == PRICING_UNIT

    @pytest.mark.parametrize("quantity", [5, 10, 25])
    def test_exact_multiple_of_package_is_single_item(self, quantity):
        items = resolve(product(price=10, package_qty=5, package_price=40), quantity)

        assert len(items) == 1
        assert items[0].quantity == quantity
        assert items[0].subtotal == (quantity // 5) * 40

    def test_below_package_size_is_unit_priced(self):
        items = resolve(product(price=10, package_qty=5, package_price=40), 3)

        assert len(items) == 1
        assert items[0].pricing == PRICING_UNIT
        assert items[0].subtotal == 30

    def test_without_package_pricing(self):
        items = resolve(product(price=2500), 7)

        assert len(items) == 1
        assert items[0].quantity == 7
        assert items[0].subtotal == 17500

    def test_package_qty_without_price_is_ignored(self):
        items = resolve(product(price=10, package_qty=5, package_price=None), 12)

        assert len(items) == 1
        assert items[0].subtotal == 120

    def test_package_price_is_not_derived_from_unit_price(self):
        # A package costing more than its units is still billed as configured.
        items = resolve(product(price=10, package_qty=5, package_price=60), 5)

        assert items[0].subtotal == 60

    def test_fractional_effective_unit_price(self):
        items = resolve(product(price=4000, package_qty=3, package_price=10000), 3)

        assert items[0].unit_price == Decimal("3333.33")
        # Subtotal stays exact: it comes from the package price, not qty * unit price.
        assert items[0].subtotal == 10000

    def test_zero_quantity_yields_nothing(self):
        assert resolve(product(price=10, package_qty=5, package_price=40), 0) == []

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError):
            resolve(product(), -1)


def test_resolve_lines_and_total():
    gula = product(price=10, package_qty=5, package_price=40, pid=1)
    kopi = product(price=3000, pid=2, name="Kopi")
    lines = [SimpleNamespace(product=gula, quantity=12), SimpleNamespace(product=kopi, quantity=2)]

    items = pricing_service.resolve_lines(lines)

    assert [i.product_id for i in items] == [1, 1, 2]
    assert pricing_service.items_total(items) == 80 + 20 + 6000
