"""
Concurrency tests: in-process writers are serialized by the store's unit of
work, and a stale row version is retried against fresh data.
"""

import threading

import pytest
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from syncclinic.models import StoredRecord
from syncclinic.services import billing_history_service, invoice_service, payment_service
from syncclinic.services.concurrency import run_with_retry
from syncclinic.services.record_store import INVOICES


WRITERS = 8
AMOUNT = 2500


class TestSerializedWriters:
    def test_parallel_payments_are_not_lost(self, store):
        invoice = invoice_service.create_invoice(
            store,
            patient_id="p1",
            patient_name="Jane Wanjiru",
            items=[{"description": "Consultation", "amount_cents": WRITERS * AMOUNT}],
        )
        start = threading.Barrier(WRITERS)
        errors = []

        def _pay(n):
            try:
                start.wait()
                payment_service.add_payment(store, invoice.id, amount_cents=AMOUNT, mode="Cash", notes=str(n))
            except Exception as exc:  # collected for the main thread
                errors.append(exc)

        threads = [threading.Thread(target=_pay, args=(n,)) for n in range(WRITERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        stored = invoice_service.get_invoice(store, invoice.id)
        assert len(stored.payments) == WRITERS
        assert stored.paid_cents == WRITERS * AMOUNT
        assert stored.status == "paid"
        assert sorted(p.notes for p in stored.payments) == sorted(str(n) for n in range(WRITERS))
        assert len(billing_history_service.get_billing_history(store, invoice.id)) == WRITERS + 1

    def test_parallel_creates_get_distinct_numbers(self, store):
        errors = []

        def _create():
            try:
                invoice_service.create_invoice(
                    store,
                    patient_id="p1",
                    patient_name="Jane Wanjiru",
                    items=[{"description": "Consultation", "amount_cents": 100}],
                )
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=_create) for _ in range(WRITERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        numbers = sorted(inv.invoice_no for inv in invoice_service.list_invoices(store))
        assert numbers == [f"INV-{n:04d}" for n in range(1, WRITERS + 1)]


class TestRetry:
    def test_stale_first_attempt_is_retried(self, db_session):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("row version changed")
            return "done"

        assert run_with_retry(_op, session=db_session, backoff_base=0) == "done"
        assert len(calls) == 2

    def test_gives_up_after_attempts(self, db_session):
        calls = []

        def _op():
            calls.append(1)
            raise StaleDataError("row version changed")

        with pytest.raises(StaleDataError):
            run_with_retry(_op, session=db_session, attempts=3, backoff_base=0)
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self, db_session):
        calls = []

        def _op():
            calls.append(1)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            run_with_retry(_op, session=db_session, backoff_base=0)
        assert len(calls) == 1

    def test_concurrent_version_bump_raises_stale_data(self, sql_store, db_session):
        sql_store.atomic(lambda: sql_store.set_list(INVOICES, [1]))
        row = db_session.query(StoredRecord).filter_by(key=INVOICES).one()

        # Another writer commits a new version behind this session's back
        db_session.execute(
            update(StoredRecord)
            .where(StoredRecord.key == INVOICES)
            .values(value_json="[1,2]", version_id=StoredRecord.version_id + 1)
            .execution_options(synchronize_session=False)
        )

        row.value_json = "[9]"
        with pytest.raises(StaleDataError):
            db_session.flush()
        db_session.rollback()

    def test_unit_of_work_retries_against_fresh_data(self, sql_store):
        sql_store.atomic(lambda: sql_store.set_list(INVOICES, [1]))
        seen = []

        def _op():
            current = sql_store.get_list(INVOICES)
            seen.append(list(current))
            sql_store.set_list(INVOICES, current + [len(seen) * 10])
            if len(seen) == 1:
                raise StaleDataError("row version changed")
            return current

        sql_store.atomic(_op)

        assert seen == [[1], [1]]
        assert sql_store.get_list(INVOICES) == [1, 20]
