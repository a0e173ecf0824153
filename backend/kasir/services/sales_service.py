# Overview: Sale transaction orchestrator; validates a cart checkout and commits every ledger mutation atomically.

"""
Sale transaction lifecycle

    DRAFT -> VALIDATING -> COMMITTING -> COMMITTED
               |              |
               +--> DRAFT <---+   (validation failure / aborted commit)

VALIDATING only reads. COMMITTING runs in a single unit of work and writes,
in order: customer (free-text debt customer), sale header, sale lines
(full replace), receivable (full replace), stock (reverse previous version,
apply new one), points (reverse previous effect, redeem, earn). Any failure
there rolls everything back and surfaces as ConsistencyError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..models import Sale, SaleLine, Customer
from ..validation import ValidationError, ConsistencyError, NotFoundError
from kasir.time_utils import utcnow, coerce_transaction_date
from . import loyalty_service, receivable_service, stock_service
from .cart_service import Cart
from .catalog_service import get_product
from .concurrency import resolve_session, unit_of_work
from .customer_service import add_customer, find_customer_by_name
from .payment_method_service import get_payment_method, is_debt_method
from .pricing_service import BillableItem, items_total

STATE_DRAFT = "DRAFT"
STATE_VALIDATING = "VALIDATING"
STATE_COMMITTING = "COMMITTING"
STATE_COMMITTED = "COMMITTED"

TERMINAL_STATES = {STATE_COMMITTED}

ALLOWED_TRANSITIONS = {
    STATE_DRAFT: {STATE_VALIDATING},
    STATE_VALIDATING: {STATE_DRAFT, STATE_COMMITTING},
    STATE_COMMITTING: {STATE_DRAFT, STATE_COMMITTED},
}


class SaleStateError(RuntimeError):
    """Raised when the transaction is driven through an illegal transition."""


def can_transition(*, from_state: str, to_state: str) -> bool:
    if from_state in TERMINAL_STATES:
        return False
    return to_state in ALLOWED_TRANSITIONS.get(from_state, set())


@dataclass
class SaleInput:
    """Everything collected at checkout (the Draft)."""
    cart: Cart
    payment_method_id: int | None = None
    paid: int = 0
    transaction_date: object = None
    customer_id: int | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    redeem_points: bool = False


@dataclass
class CommitPlan:
    """Validated, fully priced outcome of a draft, ready to be written."""
    items: list[BillableItem]
    points_redeemed: int
    final_total: int
    points_earned: int
    payment_method_id: int
    transaction_date: datetime
    paid: int
    change: int
    tendered: int
    customer: Customer | None = None
    new_customer_name: str | None = None
    previous_sale: Sale | None = None
    previous_lines: list = field(default_factory=list)


class SaleTransaction:
    """
    One create or edit of a sale, driven through the lifecycle states.

    The session is an explicit handle; nothing here touches module-level
    connection state.
    """

    def __init__(self, data: SaleInput, *, sale_id: int | None = None, session=None):
        self.data = data
        self.sale_id = sale_id
        self.session = resolve_session(session)
        self.state = STATE_DRAFT
        self.plan: CommitPlan | None = None

    @property
    def is_edit(self) -> bool:
        return self.sale_id is not None

    def _transition(self, to_state: str) -> None:
        if not can_transition(from_state=self.state, to_state=to_state):
            raise SaleStateError(f"Sale transaction cannot move from {self.state} to {to_state}")
        self.state = to_state

    # ------------------------------------------------------------------
    # VALIDATING
    # ------------------------------------------------------------------

    def validate(self) -> CommitPlan:
        self._transition(STATE_VALIDATING)
        try:
            self.plan = self._build_plan()
        except Exception:
            self._transition(STATE_DRAFT)
            raise
        return self.plan

    def _load_previous(self) -> Sale | None:
        if not self.is_edit:
            return None
        sale = self.session.get(Sale, self.sale_id)
        if sale is None:
            raise NotFoundError(f"Sale {self.sale_id} not found", entity="sale", entity_id=self.sale_id)
        if sale.status == Sale.STATUS_CANCELLED:
            raise ValidationError("Cancelled sales cannot be edited", field="sale_id")
        return sale

    def _check_stock(self, previous_lines: list) -> None:
        # On edit the stock held by the previous version comes back first.
        held = stock_service.committed_quantities(previous_lines)
        for line in self.data.cart:
            product = get_product(line.product_id, session=self.session)
            available = (product.stock or 0) + held.get(product.id, 0)
            if line.quantity > available:
                raise ValidationError(
                    f"Insufficient stock for {product.name}: requested {line.quantity}, available {available}",
                    field="items",
                )

    def _resolve_transaction_date(self) -> datetime:
        raw = self.data.transaction_date
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise ValidationError("Transaction date is required", field="transaction_date")
        try:
            parsed = coerce_transaction_date(raw)
        except ValueError:
            raise ValidationError("Transaction date is not a valid date", field="transaction_date")
        if parsed is None:
            raise ValidationError("Transaction date is required", field="transaction_date")
        return parsed

    def _resolve_payment_method(self):
        if self.data.payment_method_id is None:
            raise ValidationError("Payment method is required", field="payment_method_id")
        try:
            return get_payment_method(self.data.payment_method_id, session=self.session)
        except NotFoundError:
            raise ValidationError("Payment method not found", field="payment_method_id")

    def _resolve_customer(self) -> Customer | None:
        if self.data.customer_id is None:
            return None
        customer = self.session.get(Customer, self.data.customer_id)
        if customer is None:
            raise ValidationError("Customer not found", field="customer_id")
        return customer

    def _build_plan(self) -> CommitPlan:
        data = self.data
        previous = self._load_previous()
        previous_lines = list(previous.lines) if previous is not None else []

        if data.cart.is_empty:
            raise ValidationError("Cart is empty", field="items")

        self._check_stock(previous_lines)
        transaction_date = self._resolve_transaction_date()
        method = self._resolve_payment_method()
        debt = is_debt_method(method)
        customer = self._resolve_customer()

        new_customer_name = None
        if debt and customer is None:
            if data.customer_name is None:
                raise ValidationError("Customer is required for debt payment", field="customer_id")
            if not data.customer_name.strip():
                raise ValidationError("Customer name must not be blank", field="customer_name")
            new_customer_name = data.customer_name.strip()

        paid = data.paid or 0
        if paid < 0:
            raise ValidationError("Paid amount must not be negative", field="paid")

        items = data.cart.items()
        cart_total = items_total(items)

        enabled = loyalty_service.loyalty_enabled()
        points_available = loyalty_service.points_available_for_edit(customer, previous) if enabled else None
        redeemed = loyalty_service.redeemable_amount(points_available, cart_total, data.redeem_points)
        final_total = cart_total - redeemed

        if not debt and paid < final_total:
            raise ValidationError(
                f"Insufficient payment: total {final_total}, paid {paid}",
                field="paid",
            )

        if previous is not None and previous.customer_id is not None:
            previous_customer = self.session.get(Customer, previous.customer_id)
            shortfall = loyalty_service.reversal_shortfall(previous_customer, previous)
            if shortfall:
                raise ValidationError(
                    f"{previous_customer.name} has already spent {shortfall} points earned on this sale",
                    field="customer_id",
                )

        has_customer = customer is not None or new_customer_name is not None
        earned = loyalty_service.points_earned(final_total) if enabled and has_customer else 0

        if debt:
            # The paid field is ignored for debt sales: nothing is tendered now,
            # the total is recorded as paid and the receivable carries it.
            tendered = 0
            recorded_paid = final_total
            change = 0
        else:
            tendered = paid
            recorded_paid = paid
            change = paid - final_total

        return CommitPlan(
            items=items,
            points_redeemed=redeemed,
            final_total=final_total,
            points_earned=earned,
            payment_method_id=method.id,
            transaction_date=transaction_date,
            paid=recorded_paid,
            change=change,
            tendered=tendered,
            customer=customer,
            new_customer_name=new_customer_name,
            previous_sale=previous,
            previous_lines=previous_lines,
        )

    # ------------------------------------------------------------------
    # COMMITTING
    # ------------------------------------------------------------------

    def commit(self) -> int:
        if self.plan is None:
            raise SaleStateError("Sale transaction must be validated before commit")
        self._transition(STATE_COMMITTING)

        plan = self.plan
        session = self.session
        try:
            with unit_of_work(session):
                sale_id = self._write(session, plan)
        except Exception as exc:
            self.state = STATE_DRAFT
            self.plan = None
            current_app.logger.exception(
                "Sale commit aborted (sale_id=%s, edit=%s, total=%s)",
                self.sale_id, self.is_edit, plan.final_total,
            )
            if isinstance(exc, ConsistencyError):
                raise
            raise ConsistencyError(f"Sale commit failed: {exc}") from exc

        self._transition(STATE_COMMITTED)
        self.sale_id = sale_id
        current_app.logger.info(
            "Sale %s %s: total=%s paid=%s points +%s/-%s",
            sale_id, "updated" if self.is_edit else "created",
            plan.final_total, plan.paid, plan.points_earned, plan.points_redeemed,
        )
        return sale_id

    def _write(self, session, plan: CommitPlan) -> int:
        customer_id = plan.customer.id if plan.customer is not None else None
        if customer_id is None and plan.new_customer_name is not None:
            existing = find_customer_by_name(plan.new_customer_name, session=session)
            if existing is None:
                existing = add_customer(
                    session,
                    plan.new_customer_name,
                    self.data.customer_phone,
                    self.data.customer_address,
                )
            customer_id = existing.id

        previous = plan.previous_sale
        previous_lines = [
            _CommittedLine(product_id=line.product_id, qty=line.qty) for line in plan.previous_lines
        ]
        previous_points = None
        if previous is not None:
            previous_points = (previous.customer_id, previous.points_earned or 0, previous.points_redeemed or 0)

        # Sale header (upsert)
        if previous is None:
            sale = Sale(status=Sale.STATUS_COMPLETED)
            session.add(sale)
        else:
            sale = previous
        sale.customer_id = customer_id
        sale.payment_method_id = plan.payment_method_id
        sale.total = plan.final_total
        sale.paid = plan.paid
        sale.change = plan.change
        sale.points_earned = plan.points_earned
        sale.points_redeemed = plan.points_redeemed
        sale.created_at = plan.transaction_date
        sale.updated_at = utcnow()
        session.flush()

        # Sale lines (full replace)
        for line in plan.previous_lines:
            session.delete(line)
        session.flush()
        for item in plan.items:
            session.add(SaleLine(
                sale_id=sale.id,
                product_id=item.product_id,
                qty=item.quantity,
                price=item.unit_price,
                subtotal=item.subtotal,
                pricing=item.pricing,
            ))
        session.flush()
        session.expire(sale, ["lines"])

        # Receivable (full replace)
        receivable_service.sync_receivable(
            session,
            sale,
            customer_id=customer_id,
            tendered=plan.tendered,
            due_date=receivable_service.due_date_for(plan.transaction_date),
        )

        # Stock (reverse previous version, then apply the new one)
        stock_service.reconcile_sale_stock(
            session,
            sale_id=sale.id,
            new_items=plan.items,
            previous_lines=previous_lines,
        )

        # Points (reverse previous effect, then redeem and earn)
        if previous_points is not None and previous_points[0] is not None:
            prev_customer_id, prev_earned, prev_redeemed = previous_points
            loyalty_service.reverse_sale_points(
                session, prev_customer_id,
                earned=prev_earned, redeemed=prev_redeemed,
                sale_id=sale.id, reason=f"Sale {sale.id} edited",
            )
        if customer_id is not None:
            loyalty_service.apply_sale_points(
                session, customer_id,
                earned=plan.points_earned, redeemed=plan.points_redeemed,
                sale_id=sale.id,
            )

        session.flush()
        return sale.id

    def run(self) -> int:
        self.validate()
        return self.commit()


@dataclass(frozen=True)
class _CommittedLine:
    """Snapshot of a persisted line, taken before the rows are replaced."""
    product_id: int
    qty: int


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def create_sale(data: SaleInput, *, session=None) -> int:
    """Validate and commit a new sale; returns the committed sale id."""
    return SaleTransaction(data, session=session).run()


def update_sale(sale_id: int, data: SaleInput, *, session=None) -> None:
    """
    Replace a committed sale with a new version.

    Stock, receivable and points end up exactly as if only the new version
    had ever been committed.
    """
    SaleTransaction(data, sale_id=sale_id, session=session).run()


def cancel_sale(sale_id: int, *, session=None) -> None:
    """
    Cancel a committed sale: return its stock, withdraw its point effects,
    drop its receivable and mark it CANCELLED. Lines are kept for history.
    """
    session = resolve_session(session)
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", entity="sale", entity_id=sale_id)
    if sale.status == Sale.STATUS_CANCELLED:
        raise ValidationError("Sale is already cancelled", field="sale_id")

    if sale.customer_id is not None:
        customer = session.get(Customer, sale.customer_id)
        shortfall = loyalty_service.reversal_shortfall(customer, sale)
        if shortfall:
            raise ValidationError(
                f"{customer.name} has already spent {shortfall} points earned on this sale",
                field="sale_id",
            )

    lines = [_CommittedLine(product_id=line.product_id, qty=line.qty) for line in sale.lines]
    try:
        with unit_of_work(session):
            stock_service.reconcile_sale_stock(session, sale_id=sale.id, previous_lines=lines)
            receivable_service.remove_receivable(session, sale.id)
            if sale.customer_id is not None:
                loyalty_service.reverse_sale_points(
                    session, sale.customer_id,
                    earned=sale.points_earned or 0, redeemed=sale.points_redeemed or 0,
                    sale_id=sale.id, reason=f"Sale {sale.id} cancelled",
                )
            sale.status = Sale.STATUS_CANCELLED
            sale.cancelled_at = utcnow()
    except Exception as exc:
        current_app.logger.exception("Sale cancel aborted (sale_id=%s)", sale_id)
        if isinstance(exc, ConsistencyError):
            raise
        raise ConsistencyError(f"Sale cancel failed: {exc}") from exc

    current_app.logger.info("Sale %s cancelled", sale_id)


def preview_sale(data: SaleInput, *, sale_id: int | None = None, session=None) -> dict:
    """
    Price a draft without validating payment or writing anything: billable
    items, cart total, redeemable points and the points the sale would earn.

    With sale_id the quote is for an edit of that sale, so points it already
    redeemed or earned count as returned to the customer.
    """
    session = resolve_session(session)
    previous = None
    if sale_id is not None:
        previous = session.get(Sale, sale_id)
        if previous is None:
            raise NotFoundError(f"Sale {sale_id} not found", entity="sale", entity_id=sale_id)
    items = data.cart.items()
    cart_total = items_total(items)

    customer = None
    if data.customer_id is not None:
        customer = session.get(Customer, data.customer_id)
        if customer is None:
            raise ValidationError("Customer not found", field="customer_id")

    enabled = loyalty_service.loyalty_enabled()
    points_available = loyalty_service.points_available_for_edit(customer, previous) if enabled else None
    redeemed = loyalty_service.redeemable_amount(points_available, cart_total, data.redeem_points)
    final_total = cart_total - redeemed
    earned = loyalty_service.points_earned(final_total) if enabled and customer is not None else 0

    return {
        "items": [item.to_dict() for item in items],
        "cart_total": cart_total,
        "points_redeemed": redeemed,
        "final_total": final_total,
        "points_earned": earned,
    }


def get_sale(sale_id: int, *, session=None) -> dict:
    session = resolve_session(session)
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", entity="sale", entity_id=sale_id)

    receivable = receivable_service.find_for_sale(session, sale.id)
    return {
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
        "receivable": receivable.to_dict() if receivable else None,
    }


def list_sales(*, limit: int = 50, offset: int = 0, session=None) -> list[Sale]:
    session = resolve_session(session)
    return (
        session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
