# Overview: Loyalty ledger; points earned per sale and point redemption against a customer balance.

"""
Loyalty rules

- Earning: one point per EARN_RATE currency units of the final total
  (after redemption), rounded down.
- Redemption: one point pays one currency unit, capped at the cart total.
  The earn/redeem asymmetry is the shop's existing rule and is kept as is.
- Redemption without a customer is silently zero.
- The LOYALTY_ENABLED config switch turns both earning and redemption off.
"""

from __future__ import annotations

from flask import current_app, has_app_context

from .customer_service import adjust_points, POINTS_EARNED, POINTS_REDEEMED, POINTS_ADJUSTMENT

EARN_RATE = 1000


def loyalty_enabled() -> bool:
    if not has_app_context():
        return True
    return bool(current_app.config.get("LOYALTY_ENABLED", True))


def points_earned(final_total: int) -> int:
    if final_total <= 0:
        return 0
    return final_total // EARN_RATE


def redeemable_amount(points_available: int | None, cart_total: int, requested: bool = True) -> int:
    """
    Currency amount covered by points.

    points_available is None when no customer is attached.
    """
    if not requested or points_available is None:
        return 0
    return max(0, min(points_available, cart_total))


def points_available_for_edit(customer, previous_sale=None) -> int | None:
    """
    Balance a customer could redeem from, as if the previous version of the
    sale had never happened. None without a customer.
    """
    if customer is None:
        return None
    balance = customer.points or 0
    if previous_sale is not None and previous_sale.customer_id == customer.id:
        balance += (previous_sale.points_redeemed or 0) - (previous_sale.points_earned or 0)
    return balance


def reversal_shortfall(customer, previous_sale) -> int:
    """
    Points missing to reverse a sale's earlier effect on its customer.

    Positive when the customer already spent points this sale earned them.
    """
    if customer is None or previous_sale is None:
        return 0
    after = (customer.points or 0) + (previous_sale.points_redeemed or 0) - (previous_sale.points_earned or 0)
    return -after if after < 0 else 0


def apply_sale_points(session, customer_id: int, *, earned: int, redeemed: int, sale_id: int) -> None:
    """Spend redeemed points, then credit earned points, for one committed sale."""
    if redeemed:
        adjust_points(
            session, customer_id, -redeemed,
            history_type=POINTS_REDEEMED, sale_id=sale_id,
            notes=f"Redeemed on sale {sale_id}",
        )
    if earned:
        adjust_points(
            session, customer_id, earned,
            history_type=POINTS_EARNED, sale_id=sale_id,
            notes=f"Earned on sale {sale_id}",
        )


def reverse_sale_points(session, customer_id: int, *, earned: int, redeemed: int, sale_id: int, reason: str) -> None:
    """Undo a previously committed sale's point effects (refund redemption first)."""
    if redeemed:
        adjust_points(
            session, customer_id, redeemed,
            history_type=POINTS_ADJUSTMENT, sale_id=sale_id,
            notes=f"{reason}: redeemed points returned",
        )
    if earned:
        adjust_points(
            session, customer_id, -earned,
            history_type=POINTS_ADJUSTMENT, sale_id=sale_id,
            notes=f"{reason}: earned points withdrawn",
        )
