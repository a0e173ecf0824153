from datetime import date, datetime
from types import SimpleNamespace

import pytest

from kasir.models import Receivable, Sale
from kasir.services import receivable_service
from kasir.services.concurrency import unit_of_work
from kasir.validation import ValidationError, NotFoundError


@pytest.fixture
def sale(db_session, cash_method, make_customer):
    customer = make_customer("Budi")
    sale = Sale(customer_id=customer.id, payment_method_id=cash_method.id, total=50000, paid=50000)
    db_session.add(sale)
    db_session.commit()
    return sale


def test_outstanding_amount():
    assert receivable_service.outstanding_amount(50000, 20000) == 30000
    assert receivable_service.outstanding_amount(50000, 60000) == 0


def test_due_date_uses_configured_term(app):
    assert receivable_service.due_date_for(datetime(2026, 10, 19, 14, 30)) == date(2026, 11, 18)
    app.config["RECEIVABLE_TERM_DAYS"] = 7
    try:
        assert receivable_service.due_date_for(date(2026, 10, 19)) == date(2026, 10, 26)
    finally:
        app.config["RECEIVABLE_TERM_DAYS"] = 30


class TestSyncReceivable:

    def test_underpaid_with_customer_creates_pending(self, db_session, sale):
        with unit_of_work(db_session):
            receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=0)

        receivable = db_session.query(Receivable).one()
        assert receivable.amount == 50000
        assert receivable.status == Receivable.STATUS_PENDING

    def test_fully_paid_creates_nothing(self, db_session, sale):
        with unit_of_work(db_session):
            result = receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=50000)

        assert result is None
        assert db_session.query(Receivable).count() == 0

    def test_no_customer_creates_nothing(self, db_session, sale):
        with unit_of_work(db_session):
            receivable_service.sync_receivable(db_session, sale, customer_id=None, tendered=0)

        assert db_session.query(Receivable).count() == 0

    def test_resync_replaces_instead_of_patching(self, db_session, sale):
        with unit_of_work(db_session):
            first = receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=0)
        first_id = first.id
        with unit_of_work(db_session):
            first.status = Receivable.STATUS_PAID

        sale.total = 30000
        with unit_of_work(db_session):
            receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=10000)

        receivable = db_session.query(Receivable).one()
        assert receivable.id != first_id
        assert receivable.amount == 20000
        assert receivable.status == Receivable.STATUS_PENDING

    def test_resync_when_paid_off_removes(self, db_session, sale):
        with unit_of_work(db_session):
            receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=0)
        with unit_of_work(db_session):
            receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=50000)

        assert db_session.query(Receivable).count() == 0


class TestReceivableStatus:

    def test_mark_paid_and_list(self, db_session, sale):
        with unit_of_work(db_session):
            receivable = receivable_service.sync_receivable(db_session, sale, customer_id=sale.customer_id, tendered=0)

        receivable_service.set_receivable_status(receivable.id, "paid")

        assert receivable_service.list_receivables(status="pending") == []
        rows = receivable_service.list_receivables(status="paid")
        assert len(rows) == 1
        assert rows[0]["customer_name"] == "Budi"
        assert rows[0]["amount"] == 50000

    def test_rejects_unknown_status(self, db_session, sale):
        with pytest.raises(ValidationError):
            receivable_service.set_receivable_status(1, "settled")
        with pytest.raises(ValidationError):
            receivable_service.list_receivables(status="settled")

    def test_unknown_receivable(self, db_session):
        with pytest.raises(NotFoundError):
            receivable_service.set_receivable_status(404, "paid")
