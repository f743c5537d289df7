"""
HTTP tests for the billing, audit and health endpoints, run through the
Flask test client against the SQL record store.
"""

import pytest


def _create(client, **overrides):
    body = {
        "patient_id": "pt-jane",
        "items": [
            {"description": "Consultation", "amount_cents": 60000},
            {"description": "Lab: Full Blood Count", "amount_cents": 40000, "source": "lab"},
        ],
    }
    body.update(overrides)
    return client.post("/api/billing/invoices", json=body, headers={"X-Clinic-User": "Reception"})


class TestInvoiceEndpoints:
    def test_create_uses_patient_record_name(self, seeded_client):
        response = _create(seeded_client, patient_name="ignored")
        assert response.status_code == 201

        invoice = response.get_json()["invoice"]
        assert invoice["invoice_no"] == "INV-0001"
        assert invoice["patient_name"] == "Jane Wanjiru"
        assert invoice["total_cents"] == 100000
        assert invoice["paid_cents"] == 0
        assert invoice["status"] == "issued"

    def test_create_for_unregistered_patient_uses_body_name(self, client):
        response = _create(client, patient_id="walk-in", patient_name="Walk-in Patient")
        assert response.status_code == 201
        assert response.get_json()["invoice"]["patient_name"] == "Walk-in Patient"

    def test_create_validation(self, client):
        assert _create(client, patient_id="").status_code == 400
        response = _create(client, items=[{"description": "", "amount_cents": 100}])
        assert response.status_code == 400
        assert "line item" in response.get_json()["error"]
        assert _create(client, items=[{"description": "X", "amount_cents": -1}]).status_code == 400

    def test_create_rejects_payment_derived_status(self, seeded_client):
        response = _create(seeded_client, status="paid")
        assert response.status_code == 400
        assert "status" in response.get_json()["error"]

        listing = seeded_client.get("/api/billing/invoices").get_json()
        assert listing["invoices"] == []
        assert seeded_client.get("/api/billing/history").get_json()["history"] == []

        assert _create(seeded_client, status="draft").get_json()["invoice"]["status"] == "draft"

    def test_list_get_and_history(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        _create(seeded_client)

        listing = seeded_client.get("/api/billing/invoices").get_json()
        assert [i["invoice_no"] for i in listing["invoices"]] == ["INV-0001", "INV-0002"]
        assert listing["summary"]["total_billed_cents"] == 200000
        assert listing["summary"]["outstanding_cents"] == 200000

        fetched = seeded_client.get(f"/api/billing/invoices/{invoice_id}")
        assert fetched.status_code == 200
        assert fetched.get_json()["invoice"]["id"] == invoice_id

        history = seeded_client.get(f"/api/billing/invoices/{invoice_id}/history").get_json()
        assert history["invoice_id"] == invoice_id
        assert [h["action"] for h in history["history"]] == ["Created"]
        assert history["history"][0]["user"] == "Reception"

        assert len(seeded_client.get("/api/billing/history").get_json()["history"]) == 2

    def test_unknown_invoice_is_404(self, client):
        assert client.get("/api/billing/invoices/missing").status_code == 404
        assert client.get("/api/billing/invoices/missing/history").status_code == 404
        assert client.get("/api/billing/invoices/missing/statement").status_code == 404
        response = client.put(
            "/api/billing/invoices/missing/items",
            json={"items": [{"description": "Consultation", "amount_cents": 100}]},
        )
        assert response.status_code == 404

    def test_update_items(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        response = seeded_client.put(
            f"/api/billing/invoices/{invoice_id}/items",
            json={"items": [{"description": "Consultation", "amount_cents": 150000}, {"description": ""}]},
        )
        assert response.status_code == 200
        invoice = response.get_json()["invoice"]
        assert invoice["total_cents"] == 150000
        assert len(invoice["items"]) == 1
        assert invoice["status"] == "issued"

    def test_search_and_bad_date(self, seeded_client):
        _create(seeded_client)
        _create(seeded_client, patient_id="walk-in", patient_name="Otieno Kamau")

        found = seeded_client.get("/api/billing/invoices?q=otieno").get_json()["invoices"]
        assert [i["patient_name"] for i in found] == ["Otieno Kamau"]

        response = seeded_client.get("/api/billing/invoices?period=custom&from=not-a-date&to=2026-01-01")
        assert response.status_code == 400

    @pytest.mark.parametrize("url", [
        "/api/billing/invoices?period=decade",
        "/api/billing/invoices/export?period=decade",
        "/api/billing/summary?period=decade",
    ])
    def test_unknown_period_is_400(self, client, url):
        response = client.get(url)
        assert response.status_code == 400
        assert "Invalid period: decade" in response.get_json()["error"]


class TestPaymentEndpoints:
    def test_payment_lifecycle(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        url = f"/api/billing/invoices/{invoice_id}/payments"

        first = seeded_client.post(url, json={"amount_cents": 50000, "mode": "M-Pesa", "reference": "QK12AB34CD"})
        assert first.status_code == 201
        assert first.get_json()["invoice"]["status"] == "partial"
        first_id = first.get_json()["payment"]["id"]

        seeded_client.post(url, json={"amount_cents": 50000, "mode": "Cash"})
        extra = seeded_client.post(url, json={"amount_cents": 20000, "mode": "Bank"})
        assert extra.get_json()["invoice"]["status"] == "overpaid"
        extra_id = extra.get_json()["payment"]["id"]

        edited = seeded_client.patch(f"{url}/{extra_id}", json={"amount_cents": 0})
        assert edited.status_code == 200
        assert edited.get_json()["invoice"]["paid_cents"] == 100000
        assert edited.get_json()["invoice"]["status"] == "paid"

        deleted = seeded_client.delete(f"{url}/{first_id}")
        assert deleted.status_code == 200
        assert deleted.get_json()["invoice"]["paid_cents"] == 50000
        assert deleted.get_json()["invoice"]["status"] == "partial"

        history = seeded_client.get(f"/api/billing/invoices/{invoice_id}/history").get_json()["history"]
        assert [h["action"] for h in history] == [
            "Payment Deleted", "Payment Edited", "Payment", "Payment", "Payment", "Created",
        ]

    def test_payment_validation(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        url = f"/api/billing/invoices/{invoice_id}/payments"

        assert seeded_client.post(url, json={"amount_cents": 0, "mode": "Cash"}).status_code == 400
        assert seeded_client.post(url, json={"amount_cents": 100}).status_code == 400
        assert seeded_client.post(url, json={"amount_cents": 10.5, "mode": "Cash"}).status_code == 400

        payment_id = seeded_client.post(url, json={"amount_cents": 100, "mode": "Cash"}).get_json()["payment"]["id"]
        assert seeded_client.patch(f"{url}/{payment_id}", json={"paid_at": "2020-01-01"}).status_code == 400
        assert seeded_client.patch(f"{url}/{payment_id}", json={}).status_code == 400

    def test_payment_not_found(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        url = f"/api/billing/invoices/{invoice_id}/payments"

        assert seeded_client.post("/api/billing/invoices/missing/payments",
                                  json={"amount_cents": 100, "mode": "Cash"}).status_code == 404
        assert seeded_client.patch(f"{url}/nope", json={"amount_cents": 5}).status_code == 404
        assert seeded_client.delete(f"{url}/nope").status_code == 404

    def test_storage_full_returns_507_and_writes_nothing(self, seeded_client, app, monkeypatch):
        invoice = _create(seeded_client).get_json()["invoice"]

        monkeypatch.setitem(app.config, "RECORD_STORE_QUOTA_BYTES", 100)
        response = seeded_client.post(
            f"/api/billing/invoices/{invoice['id']}/payments", json={"amount_cents": 100, "mode": "Cash"}
        )
        assert response.status_code == 507
        assert response.get_json()["quota_bytes"] == 100
        monkeypatch.undo()

        after = seeded_client.get(f"/api/billing/invoices/{invoice['id']}").get_json()["invoice"]
        assert after["payments"] == []
        history = seeded_client.get(f"/api/billing/invoices/{invoice['id']}/history").get_json()["history"]
        assert len(history) == 1

    def test_payment_modes(self, seeded_client):
        assert seeded_client.get("/api/billing/payment-modes").get_json()["modes"] == ["M-Pesa", "Cash", "Bank"]


class TestReportEndpoints:
    def test_billable_items(self, seeded_client):
        response = seeded_client.get("/api/billing/patients/pt-jane/billable-items")
        assert response.status_code == 200
        items = response.get_json()["items"]
        assert items[0] == {"description": "Lab: Full Blood Count", "amount_cents": 0, "source": "lab"}
        assert len(items) == 4

        assert seeded_client.get("/api/billing/patients/ghost/billable-items").status_code == 404

    def test_statement_summary_and_export(self, seeded_client):
        invoice_id = _create(seeded_client).get_json()["invoice"]["id"]
        seeded_client.post(f"/api/billing/invoices/{invoice_id}/payments", json={"amount_cents": 30000, "mode": "Cash"})

        statement = seeded_client.get(f"/api/billing/invoices/{invoice_id}/statement").get_json()["statement"]
        assert statement["balance_label"] == "Balance Due"
        assert statement["balance"] == "KES 700"

        summary = seeded_client.get("/api/billing/summary?period=today").get_json()
        assert summary["total_paid_cents"] == 30000
        assert summary["outstanding_cents"] == 70000

        export = seeded_client.get("/api/billing/invoices/export")
        assert export.status_code == 200
        assert export.mimetype == "text/csv"
        assert "attachment" in export.headers["Content-Disposition"]
        assert export.get_data(as_text=True).splitlines()[1].startswith('"INV-0001","Jane Wanjiru"')


class TestAuditAndHealth:
    def test_audit_listing(self, seeded_client):
        _create(seeded_client)
        body = seeded_client.get("/api/audit?module=Billing&limit=9999").get_json()
        assert body["limit"] == 500
        assert body["entries"][0]["action"] == "Created"
        assert body["entries"][0]["user"] == "Reception"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["record_store"]["status"] == "healthy"

    def test_cors_for_allowed_origin(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "Access-Control-Allow-Origin" not in client.get("/health", headers={"Origin": "http://evil.test"}).headers
