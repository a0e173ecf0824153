# Overview: Receivable manager; keeps the 0-or-1 debt record of a sale in step with its total and payment.

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app, has_app_context

from ..models import Receivable, Customer, Sale
from ..validation import ValidationError, NotFoundError
from .concurrency import resolve_session, unit_of_work

RECEIVABLE_STATUSES = {Receivable.STATUS_PENDING, Receivable.STATUS_PAID}
DEFAULT_TERM_DAYS = 30


def outstanding_amount(total: int, tendered: int) -> int:
    return max(0, total - tendered)


def due_date_for(transaction_date: datetime | date | None) -> date:
    term_days = DEFAULT_TERM_DAYS
    if has_app_context():
        term_days = int(current_app.config.get("RECEIVABLE_TERM_DAYS", DEFAULT_TERM_DAYS))
    if transaction_date is None:
        transaction_date = date.today()
    if isinstance(transaction_date, datetime):
        transaction_date = transaction_date.date()
    return transaction_date + timedelta(days=term_days)


def find_for_sale(session, sale_id: int) -> Receivable | None:
    return session.query(Receivable).filter_by(sale_id=sale_id).first()


def remove_receivable(session, sale_id: int) -> bool:
    """Delete the receivable tied to a sale, if any. No commit."""
    existing = find_for_sale(session, sale_id)
    if existing is None:
        return False
    session.delete(existing)
    session.flush()
    return True


def sync_receivable(
    session,
    sale,
    *,
    customer_id: int | None,
    tendered: int,
    due_date: date | None = None,
) -> Receivable | None:
    """
    Full replace of a sale's receivable inside the caller's unit of work.

    The old record is always removed first; a new pending one is written
    when the sale is under-paid and has a customer.
    """
    remove_receivable(session, sale.id)

    amount = outstanding_amount(sale.total, tendered)
    if amount <= 0 or customer_id is None:
        return None

    receivable = Receivable(
        sale_id=sale.id,
        customer_id=customer_id,
        amount=amount,
        due_date=due_date,
        status=Receivable.STATUS_PENDING,
    )
    session.add(receivable)
    return receivable


def get_receivable(receivable_id: int, *, session=None) -> Receivable:
    session = resolve_session(session)
    receivable = session.get(Receivable, receivable_id)
    if receivable is None:
        raise NotFoundError(f"Receivable {receivable_id} not found", entity="receivable", entity_id=receivable_id)
    return receivable


def list_receivables(*, status: str | None = None, customer_id: int | None = None, session=None) -> list[dict]:
    """Receivables with customer name and sale date, newest first."""
    session = resolve_session(session)
    if status is not None and status not in RECEIVABLE_STATUSES:
        raise ValidationError(f"status must be one of {sorted(RECEIVABLE_STATUSES)}", field="status")

    q = (
        session.query(Receivable, Customer.name, Sale.created_at)
        .join(Customer, Receivable.customer_id == Customer.id)
        .join(Sale, Receivable.sale_id == Sale.id)
    )
    if status is not None:
        q = q.filter(Receivable.status == status)
    if customer_id is not None:
        q = q.filter(Receivable.customer_id == customer_id)

    rows = []
    for receivable, customer_name, sale_date in q.order_by(Receivable.id.desc()).all():
        row = receivable.to_dict()
        row["customer_name"] = customer_name
        row["sale_date"] = sale_date.isoformat() if sale_date else None
        rows.append(row)
    return rows


def set_receivable_status(receivable_id: int, status: str, *, session=None) -> Receivable:
    """Mark a receivable paid, or re-open it as pending."""
    session = resolve_session(session)
    if status not in RECEIVABLE_STATUSES:
        raise ValidationError(f"status must be one of {sorted(RECEIVABLE_STATUSES)}", field="status")
    receivable = get_receivable(receivable_id, session=session)
    with unit_of_work(session):
        receivable.status = status
    return receivable
