# Overview: Customer provider; lookups, creation and the point balance mutation used by the loyalty ledger.

from __future__ import annotations

from sqlalchemy import func

from ..models import Customer, CustomerPointsHistory
from ..validation import ValidationError, ConsistencyError, NotFoundError
from .concurrency import resolve_session, lock_for_update, unit_of_work

POINTS_EARNED = "EARNED"
POINTS_REDEEMED = "REDEEMED"
POINTS_ADJUSTMENT = "ADJUSTMENT"

POINTS_HISTORY_TYPES = {POINTS_EARNED, POINTS_REDEEMED, POINTS_ADJUSTMENT}


def get_customer(customer_id: int, *, session=None) -> Customer:
    session = resolve_session(session)
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found", entity="customer", entity_id=customer_id)
    return customer


def list_customers(*, session=None) -> list[Customer]:
    session = resolve_session(session)
    return session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def find_customer_by_name(name: str, *, session=None) -> Customer | None:
    """Case-insensitive exact match on the trimmed name; oldest customer wins."""
    session = resolve_session(session)
    needle = (name or "").strip().lower()
    if not needle:
        return None
    return (
        session.query(Customer)
        .filter(func.lower(Customer.name) == needle)
        .order_by(Customer.id.asc())
        .first()
    )


def add_customer(session, name: str, phone: str | None = None, address: str | None = None) -> Customer:
    """
    Stage a new customer in the caller's unit of work and flush for its id.

    Does NOT commit.
    """
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Customer name must not be blank", field="customer_name")

    customer = Customer(
        name=clean_name,
        phone=(phone or "").strip() or None,
        address=(address or "").strip() or None,
        points=0,
    )
    session.add(customer)
    session.flush()
    return customer


def create_customer(name: str, phone: str | None = None, address: str | None = None, *, session=None) -> int:
    """Create and commit a customer; returns its id."""
    session = resolve_session(session)
    with unit_of_work(session):
        customer = add_customer(session, name, phone, address)
    return customer.id


def adjust_points(
    session,
    customer_id: int,
    delta: int,
    *,
    history_type: str,
    sale_id: int | None = None,
    notes: str | None = None,
) -> Customer:
    """
    Apply a signed change to a customer's point balance and log it.

    Runs inside the caller's unit of work (no commit). A change that would
    leave the balance negative raises ConsistencyError.
    """
    if history_type not in POINTS_HISTORY_TYPES:
        raise ValueError(f"unknown points history type: {history_type}")
    if delta == 0:
        return get_customer(customer_id, session=session)

    customer = lock_for_update(session.query(Customer).filter_by(id=customer_id)).populate_existing().first()
    if customer is None:
        raise ConsistencyError(f"Customer {customer_id} disappeared during commit")

    new_balance = (customer.points or 0) + delta
    if new_balance < 0:
        raise ConsistencyError(
            f"Customer {customer_id} points would go negative "
            f"(balance {customer.points}, change {delta})"
        )

    customer.points = new_balance
    session.add(CustomerPointsHistory(
        customer_id=customer_id,
        sale_id=sale_id,
        points=delta,
        type=history_type,
        notes=notes,
    ))
    return customer


def get_points_history(customer_id: int, *, limit: int = 50, offset: int = 0, session=None) -> list[CustomerPointsHistory]:
    session = resolve_session(session)
    get_customer(customer_id, session=session)
    return (
        session.query(CustomerPointsHistory)
        .filter_by(customer_id=customer_id)
        .order_by(CustomerPointsHistory.created_at.desc(), CustomerPointsHistory.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
