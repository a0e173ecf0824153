# Overview: Payment method provider; default seeding and the debt-like naming convention.

from __future__ import annotations

from ..models import PaymentMethod, Sale
from ..validation import ValidationError, NotFoundError
from .concurrency import resolve_session, unit_of_work

DEFAULT_PAYMENT_METHODS = ("Tunai", "Hutang", "Kartu Debit", "E-Wallet", "QRIS")

# Any method whose name contains this marker (case-insensitive) is a debt sale.
DEBT_MARKER = "hutang"
DEBT_METHOD_NAME = "Hutang"


def is_debt_method(method) -> bool:
    """Accepts a PaymentMethod (or anything with .name) or a plain name."""
    if method is None:
        return False
    name = method if isinstance(method, str) else getattr(method, "name", None)
    return DEBT_MARKER in (name or "").lower()


def ensure_default_payment_methods(*, session=None) -> bool:
    """
    Seed the defaults into an empty table, and re-add the debt method when
    the shop has deleted it. Returns True when anything was inserted.
    """
    session = resolve_session(session)
    names = [m.name for m in session.query(PaymentMethod).all()]

    if not names:
        missing = list(DEFAULT_PAYMENT_METHODS)
    elif not any(n.strip().lower() == DEBT_MARKER for n in names):
        missing = [DEBT_METHOD_NAME]
    else:
        return False

    with unit_of_work(session):
        for name in missing:
            session.add(PaymentMethod(name=name))
    return True


def get_payment_methods(*, session=None) -> list[PaymentMethod]:
    session = resolve_session(session)
    ensure_default_payment_methods(session=session)
    return session.query(PaymentMethod).order_by(PaymentMethod.id.asc()).all()


def get_payment_method(method_id: int, *, session=None) -> PaymentMethod:
    session = resolve_session(session)
    method = session.get(PaymentMethod, method_id)
    if method is None:
        raise NotFoundError(f"Payment method {method_id} not found", entity="payment_method", entity_id=method_id)
    return method


def add_payment_method(name: str, *, session=None) -> PaymentMethod:
    session = resolve_session(session)
    clean = (name or "").strip()
    if not clean:
        raise ValidationError("name is required", field="name")
    method = PaymentMethod(name=clean)
    with unit_of_work(session):
        session.add(method)
    return method


def delete_payment_method(method_id: int, *, session=None) -> None:
    """Delete a payment method that no sale references."""
    session = resolve_session(session)
    method = get_payment_method(method_id, session=session)
    in_use = session.query(Sale.id).filter_by(payment_method_id=method.id).first()
    if in_use is not None:
        raise ValidationError("Payment method is used by existing sales", field="payment_method_id")
    with unit_of_work(session):
        session.delete(method)
