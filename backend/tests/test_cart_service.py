from types import SimpleNamespace

import pytest

from kasir.services.cart_service import Cart, build_cart
from kasir.validation import ValidationError, NotFoundError


def product(pid, price=10, package_qty=None, package_price=None):
    return SimpleNamespace(id=pid, name=f"Item {pid}", price=price, package_qty=package_qty, package_price=package_price)


class TestCart:

    def test_add_consolidates_lines(self):
        cart = Cart()
        p = product(1)
        cart.add(p, 2)
        cart.add(p, 3)

        assert len(cart) == 1
        assert cart.quantity_of(1) == 5

    def test_add_rejects_non_positive_quantity(self):
        cart = Cart()
        with pytest.raises(ValidationError):
            cart.add(product(1), 0)
        with pytest.raises(ValidationError):
            cart.add(product(1), -2)
        assert cart.is_empty

    def test_set_quantity_replaces(self):
        cart = Cart()
        cart.add(product(1), 2)
        cart.set_quantity(1, 7)

        assert cart.quantity_of(1) == 7

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_set_quantity_non_positive_removes_line(self, quantity):
        cart = Cart()
        cart.add(product(1), 2)
        cart.add(product(2), 1)
        cart.set_quantity(1, quantity)

        assert [line.product_id for line in cart] == [2]

    def test_set_quantity_unknown_product(self):
        cart = Cart()
        with pytest.raises(ValidationError):
            cart.set_quantity(9, 3)

    def test_remove(self):
        cart = Cart()
        cart.add(product(1), 2)
        cart.remove(1)
        cart.remove(1)  # no-op when absent

        assert cart.is_empty

    def test_total_uses_package_pricing(self):
        cart = Cart()
        cart.add(product(1, price=10, package_qty=5, package_price=40), 12)
        cart.add(product(2, price=2500), 2)

        assert cart.total() == 80 + 20 + 5000
        assert len(cart.items()) == 3

    def test_lines_keep_insertion_order(self):
        cart = Cart()
        for pid in (3, 1, 2):
            cart.add(product(pid), 1)
        cart.add(product(3), 1)

        assert [line.product_id for line in cart.lines] == [3, 1, 2]


class TestBuildCart:

    def test_builds_from_catalog(self, make_product):
        p = make_product("Teh", price=5000, stock=10)

        cart = build_cart([{"product_id": p.id, "quantity": 2}, {"product_id": str(p.id), "quantity": "1"}])

        assert cart.quantity_of(p.id) == 3
        assert cart.total() == 15000

    def test_unknown_product_rejected_before_cart(self, db_session):
        with pytest.raises(NotFoundError):
            build_cart([{"product_id": 999, "quantity": 1}])

    def test_invalid_quantity(self, make_product):
        p = make_product()
        with pytest.raises(ValidationError):
            build_cart([{"product_id": p.id, "quantity": 0}])
        with pytest.raises(ValidationError):
            build_cart([{"product_id": p.id, "quantity": 1.5}])
