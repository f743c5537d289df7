from syncclinic.services import audit_service, billing_history_service
from syncclinic.services.record_store import AUDIT


class TestAuditLog:
    def test_newest_first_and_capped(self, store):
        for n in range(505):
            audit_service.append_audit_entry(store, action="Created", module="Billing", details=f"entry {n}")

        entries = audit_service.get_audit_entries(store)
        assert len(entries) == 500
        assert entries[0].details == "entry 504"
        assert entries[-1].details == "entry 5"
        assert len(store.get_list(AUDIT)) == 500

    def test_filter_by_module_and_limit(self, store):
        audit_service.append_audit_entry(store, action="Created", module="Billing", details="a")
        audit_service.append_audit_entry(store, action="Updated", module="Patients", details="b")
        audit_service.append_audit_entry(store, action="Payment", module="Billing", details="c")

        billing = audit_service.get_audit_entries(store, module="Billing")
        assert [e.details for e in billing] == ["c", "a"]
        assert [e.details for e in audit_service.get_audit_entries(store, limit=1)] == ["c"]

    def test_default_actor(self, store):
        entry = audit_service.append_audit_entry(store, action="Created", module="Billing", details="x")
        assert entry.user == "Admin"
        assert entry.timestamp.endswith("Z")


class TestBillingHistory:
    def test_not_truncated(self, store):
        for n in range(520):
            billing_history_service.append_billing_history(
                store, invoice_id="i1", invoice_no="INV-0001", action="Payment", details=str(n)
            )
        assert len(billing_history_service.get_billing_history(store, "i1")) == 520

    def test_filter_by_invoice(self, store):
        billing_history_service.append_billing_history(
            store, invoice_id="i1", invoice_no="INV-0001", action="Created", details="one"
        )
        billing_history_service.append_billing_history(
            store, invoice_id="i2", invoice_no="INV-0002", action="Created", details="two", actor="Nurse Wairimu"
        )

        assert [e.details for e in billing_history_service.get_billing_history(store)] == ["two", "one"]
        only = billing_history_service.get_billing_history(store, "i2")
        assert len(only) == 1
        assert only[0].user == "Nurse Wairimu"
        assert only[0].invoice_no == "INV-0002"
