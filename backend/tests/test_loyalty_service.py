from types import SimpleNamespace

import pytest

from kasir.extensions import db
from kasir.models import CustomerPointsHistory
from kasir.services import loyalty_service
from kasir.services.loyalty_service import EARN_RATE
from kasir.validation import ConsistencyError


def test_earn_rate_is_one_point_per_thousand():
    assert EARN_RATE == 1000
    assert loyalty_service.points_earned(0) == 0
    assert loyalty_service.points_earned(999) == 0
    assert loyalty_service.points_earned(1000) == 1
    assert loyalty_service.points_earned(7000) == 7
    assert loyalty_service.points_earned(12999) == 12


class TestRedeemableAmount:

    def test_capped_by_points(self):
        assert loyalty_service.redeemable_amount(3000, 10000, True) == 3000

    def test_capped_by_cart_total(self):
        assert loyalty_service.redeemable_amount(25000, 10000, True) == 10000

    def test_not_requested(self):
        assert loyalty_service.redeemable_amount(3000, 10000, False) == 0

    def test_no_customer_is_silently_zero(self):
        assert loyalty_service.redeemable_amount(None, 10000, True) == 0


def test_points_available_for_edit_reverses_previous_effect():
    customer = SimpleNamespace(id=1, points=50)
    previous = SimpleNamespace(customer_id=1, points_earned=7, points_redeemed=3000)

    assert loyalty_service.points_available_for_edit(customer, previous) == 50 - 7 + 3000
    other = SimpleNamespace(customer_id=2, points_earned=7, points_redeemed=3000)
    assert loyalty_service.points_available_for_edit(customer, other) == 50
    assert loyalty_service.points_available_for_edit(None, previous) is None


def test_reversal_shortfall():
    previous = SimpleNamespace(customer_id=1, points_earned=10, points_redeemed=0)

    assert loyalty_service.reversal_shortfall(SimpleNamespace(points=10), previous) == 0
    assert loyalty_service.reversal_shortfall(SimpleNamespace(points=4), previous) == 6


def test_loyalty_switch(app, db_session):
    assert loyalty_service.loyalty_enabled() is True
    app.config["LOYALTY_ENABLED"] = False
    assert loyalty_service.loyalty_enabled() is False


class TestPointMutations:

    def test_apply_and_reverse_log_history(self, make_customer, db_session):
        customer = make_customer(points=100)

        loyalty_service.apply_sale_points(db_session, customer.id, earned=5, redeemed=40, sale_id=None)
        db_session.commit()
        assert customer.points == 65

        loyalty_service.reverse_sale_points(db_session, customer.id, earned=5, redeemed=40, sale_id=None, reason="Test")
        db_session.commit()
        assert customer.points == 100

        types = [h.type for h in db.session.query(CustomerPointsHistory).order_by(CustomerPointsHistory.id)]
        assert types == ["REDEEMED", "EARNED", "ADJUSTMENT", "ADJUSTMENT"]

    def test_balance_never_negative(self, make_customer, db_session):
        customer = make_customer(points=3)

        with pytest.raises(ConsistencyError):
            loyalty_service.apply_sale_points(db_session, customer.id, earned=0, redeemed=4, sale_id=None)
        db_session.rollback()
        assert customer.points == 3
