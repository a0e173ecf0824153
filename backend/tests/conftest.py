"""
Pytest fixtures for the sale engine tests.

Provides an in-memory application, a per-test clean database and small
factories for products, customers and payment methods.
"""

import pytest

from kasir import create_app
from kasir.extensions import db
from kasir.models import Product, Customer, PaymentMethod
from kasir.services.cart_service import Cart
from kasir.services.sales_service import SaleInput


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOYALTY_ENABLED': True,
        'RECEIVABLE_TERM_DAYS': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    app.config['LOYALTY_ENABLED'] = True

    yield db.session

    # Cleanup after test
    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name="Gula", price=10, stock=100, package_qty=5, package_price=40)."""
    counter = {"n": 0}

    def _make(name=None, *, price=1000, stock=100, package_qty=None, package_price=None, purchase_price=None):
        counter["n"] += 1
        product = Product(
            code=f"P-{counter['n']:04d}",
            name=name or f"Product {counter['n']}",
            price=price,
            stock=stock,
            package_qty=package_qty,
            package_price=package_price,
            purchase_price=purchase_price,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name="Siti", *, points=0, phone=None):
        customer = Customer(name=name, points=points, phone=phone)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def cash_method(db_session):
    method = PaymentMethod(name="Tunai")
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def debt_method(db_session):
    method = PaymentMethod(name="Hutang")
    db_session.add(method)
    db_session.commit()
    return method


def make_input(lines, *, payment_method, paid=0, transaction_date="2026-10-19", **kwargs) -> SaleInput:
    """Helper: build a SaleInput from [(product, qty), ...]."""
    cart = Cart()
    for product, qty in lines:
        cart.add(product, qty)
    return SaleInput(
        cart=cart,
        payment_method_id=payment_method.id if payment_method is not None else None,
        paid=paid,
        transaction_date=transaction_date,
        **kwargs,
    )


def snapshot_ledgers(session) -> dict:
    """Stock, points and receivables as plain values, read fresh from the database."""
    from kasir.models import Receivable

    session.expire_all()
    return {
        "stock": {p.id: p.stock for p in session.query(Product).order_by(Product.id).all()},
        "points": {c.id: c.points for c in session.query(Customer).order_by(Customer.id).all()},
        "receivables": sorted(
            (r.sale_id, r.customer_id, r.amount, r.status)
            for r in session.query(Receivable).all()
        ),
    }
