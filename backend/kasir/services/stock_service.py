# Overview: Stock reconciler; applies sale stock deltas and reverses them when a sale is edited or cancelled.

"""
Stock reconciliation invariants (authoritative)

- Product.stock always reflects only the latest committed version of each sale.
- Create: apply -qty for every billable item of the sale.
- Edit: apply +qty for every line of the previous version (full reversal),
  THEN -qty for every item of the new version. The net result equals
  new - old per product, but it is never computed as a diff.
- Every applied delta re-reads the product row (locked where the database
  supports it) and refuses to leave stock negative; that check happens
  inside the caller's unit of work, right before the write.
- Each applied delta appends one StockMovement row in the same transaction.
"""

from __future__ import annotations

from typing import Iterable

from ..models import Product, StockMovement
from ..validation import ConsistencyError
from .concurrency import lock_for_update

MOVEMENT_SALE = "SALE"
MOVEMENT_SALE_REVERSAL = "SALE_REVERSAL"


def committed_quantities(lines: Iterable) -> dict[int, int]:
    """Total quantity per product for persisted sale lines (qty attribute)."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.qty
    return totals


def compute_deltas(items: Iterable) -> dict[int, int]:
    """Stock consumed by billable items: product_id -> negative quantity."""
    deltas: dict[int, int] = {}
    for item in items:
        deltas[item.product_id] = deltas.get(item.product_id, 0) - item.quantity
    return deltas


def reversal_deltas(lines: Iterable) -> dict[int, int]:
    """Stock restored when a committed version is withdrawn: product_id -> positive quantity."""
    return dict(committed_quantities(lines))


def apply_deltas(
    session,
    deltas: dict[int, int],
    *,
    movement_type: str,
    sale_id: int | None = None,
    note: str | None = None,
) -> list[StockMovement]:
    """
    Apply signed stock deltas inside the caller's unit of work.

    Raises ConsistencyError when a product vanished or would go negative;
    the caller must roll back everything.
    """
    movements = []
    for product_id in sorted(deltas):
        delta = deltas[product_id]
        if delta == 0:
            continue

        product = lock_for_update(session.query(Product).filter_by(id=product_id)).populate_existing().first()
        if product is None:
            raise ConsistencyError(f"Product {product_id} disappeared during commit")

        new_stock = (product.stock or 0) + delta
        if new_stock < 0:
            raise ConsistencyError(
                f"Insufficient stock for {product.name} at commit: "
                f"stock {product.stock}, change {delta}"
            )

        product.stock = new_stock
        movement = StockMovement(
            product_id=product_id,
            sale_id=sale_id,
            movement_type=movement_type,
            quantity_delta=delta,
            stock_after=new_stock,
            note=note,
        )
        session.add(movement)
        movements.append(movement)
    return movements


def reconcile_sale_stock(
    session,
    *,
    sale_id: int,
    new_items: Iterable = (),
    previous_lines: Iterable = (),
) -> None:
    """
    Bring stock in line with a sale's new version.

    previous_lines are the lines committed before this change (empty on
    create); new_items are the billable items now being committed (empty on
    cancel).
    """
    restore = reversal_deltas(previous_lines)
    if restore:
        apply_deltas(
            session, restore,
            movement_type=MOVEMENT_SALE_REVERSAL, sale_id=sale_id,
            note=f"Reverse previous version of sale {sale_id}",
        )

    consume = compute_deltas(new_items)
    if consume:
        apply_deltas(
            session, consume,
            movement_type=MOVEMENT_SALE, sale_id=sale_id,
            note=f"Sale {sale_id}",
        )
