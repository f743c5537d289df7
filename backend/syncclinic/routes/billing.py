# Overview: Flask API routes for billing operations; validates input and returns JSON responses.

# backend/syncclinic/routes/billing.py
"""
Billing API Routes

WHY: The dashboard's billing page creates invoices, records and corrects
payments, and shows each invoice's history.

DESIGN:
- Input validation happens here; the ledger services trust their callers
- Every mutating route returns the refreshed invoice
- All mutations write billing history and audit entries in the same unit of work

ERRORS:
- 400: validation problem
- 404: invoice, payment or patient not found
- 507: record store quota exceeded (nothing was written)
"""

from flask import Blueprint, Response, request, jsonify, g, current_app

from ..decorators import with_actor
from ..services import (
    billable_service,
    billing_history_service,
    invoice_service,
    payment_service,
    reporting_service,
)
from ..services.record_store import StorageFullError, get_record_store
from ..validation import (
    NotFoundError,
    ValidationError,
    parse_line_items,
    parse_payment_payload,
)


billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


def _storage_full(e: StorageFullError):
    return jsonify({
        "error": "Storage full",
        "message": str(e),
        "quota_bytes": e.quota_bytes,
    }), 507


def _period_args() -> dict:
    return {
        "period": request.args.get("period"),
        "custom_from": request.args.get("from"),
        "custom_to": request.args.get("to"),
    }


# =============================================================================
# INVOICES
# =============================================================================

@billing_bp.get("/invoices")
def list_invoices_route():
    """
    List invoices with the period summary.

    Query params:
    - q: Match patient name or invoice number (case-insensitive)
    - period: today, week, month, quarter, year, custom, all (default: all)
    - from / to: Date bounds for period=custom
    """
    try:
        store = get_record_store()
        invoices = invoice_service.search_invoices(store, query=request.args.get("q"), **_period_args())
        summary = reporting_service.billing_summary(store, **_period_args())
        return jsonify({
            "invoices": [inv.to_dict() for inv in invoices],
            "summary": summary,
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": f"Invalid date: {e}"}), 400
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.post("/invoices")
@with_actor
def create_invoice_route():
    """
    Create an invoice.

    Request body:
    {
        "patient_id": "p1",
        "patient_name": "Jane Doe",  (optional, taken from the patient record when it exists)
        "items": [{"description": "Consultation", "amount_cents": 100000}],
        "status": "issued"  (optional)
    }

    Items without a description are dropped; total_cents is their sum.
    """
    try:
        data = request.get_json(silent=True) or {}
        patient_id = str(data.get("patient_id") or "").strip()
        if not patient_id:
            return jsonify({"error": "Select a patient."}), 400

        items = parse_line_items(data.get("items", []))

        store = get_record_store()
        patient = billable_service.find_patient(store, patient_id)
        if patient is not None:
            patient_name = billable_service.patient_display_name(patient)
        else:
            patient_name = str(data.get("patient_name") or "").strip()

        invoice = invoice_service.create_invoice(
            store,
            patient_id=patient_id,
            patient_name=patient_name,
            items=items,
            total_cents=sum(item["amount_cents"] for item in items),
            status=data.get("status") or "issued",
            actor=g.actor,
        )
        return jsonify({"invoice": invoice.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageFullError as e:
        return _storage_full(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/invoices/export")
def export_invoices_route():
    """Download the filtered invoice list as CSV."""
    try:
        invoices = invoice_service.search_invoices(get_record_store(), query=request.args.get("q"), **_period_args())
        body = reporting_service.invoices_to_csv(invoices)
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=invoices.csv"},
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": f"Invalid date: {e}"}), 400
    except Exception:
        current_app.logger.exception("Failed to export invoices")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/invoices/<invoice_id>")
def get_invoice_route(invoice_id: str):
    try:
        invoice = invoice_service.get_invoice(get_record_store(), invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@billing_bp.put("/invoices/<invoice_id>/items")
@with_actor
def update_invoice_items_route(invoice_id: str):
    """
    Replace an invoice's line items.

    Request body:
    {"items": [{"description": "Consultation", "amount_cents": 150000}]}

    Payments and status are unchanged.
    """
    try:
        data = request.get_json(silent=True) or {}
        items = parse_line_items(data.get("items", []))

        invoice = invoice_service.update_invoice_items(
            get_record_store(),
            invoice_id,
            items=items,
            total_cents=sum(item["amount_cents"] for item in items),
            actor=g.actor,
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StorageFullError as e:
        return _storage_full(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/invoices/<invoice_id>/statement")
def invoice_statement_route(invoice_id: str):
    """Printable statement with organization header and balance label."""
    try:
        statement = reporting_service.invoice_statement(get_record_store(), invoice_id)
        return jsonify({"statement": statement}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to build invoice statement")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@billing_bp.post("/invoices/<invoice_id>/payments")
@with_actor
def add_payment_route(invoice_id: str):
    """
    Record a payment.

    Request body:
    {
        "amount_cents": 50000,
        "mode": "M-Pesa",
        "reference": "QK12AB34CD",  (optional)
        "notes": ""  (optional)
    }

    Returns:
        201: Payment recorded, with refreshed invoice
        400: Missing/zero amount or missing mode
        404: Invoice not found
    """
    try:
        payload = parse_payment_payload(request.get_json(silent=True), partial=False)

        invoice, payment = payment_service.add_payment(
            get_record_store(),
            invoice_id,
            amount_cents=payload["amount_cents"],
            mode=payload["mode"],
            reference=payload.get("reference", ""),
            notes=payload.get("notes", ""),
            actor=g.actor,
        )
        return jsonify({"payment": payment.to_dict(), "invoice": invoice.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StorageFullError as e:
        return _storage_full(e)
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.patch("/invoices/<invoice_id>/payments/<payment_id>")
@with_actor
def update_payment_route(invoice_id: str, payment_id: str):
    """Edit amount, mode, reference or notes of a payment (patch semantics)."""
    try:
        updates = parse_payment_payload(request.get_json(silent=True), partial=True)

        invoice, payment = payment_service.update_payment(
            get_record_store(),
            invoice_id,
            payment_id,
            updates,
            actor=g.actor,
        )
        return jsonify({"payment": payment.to_dict(), "invoice": invoice.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StorageFullError as e:
        return _storage_full(e)
    except Exception:
        current_app.logger.exception("Failed to update payment")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.delete("/invoices/<invoice_id>/payments/<payment_id>")
@with_actor
def delete_payment_route(invoice_id: str, payment_id: str):
    try:
        invoice = payment_service.delete_payment(
            get_record_store(),
            invoice_id,
            payment_id,
            actor=g.actor,
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StorageFullError as e:
        return _storage_full(e)
    except Exception:
        current_app.logger.exception("Failed to delete payment")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.get("/payment-modes")
def payment_modes_route():
    return jsonify({"modes": payment_service.payment_modes(get_record_store())}), 200


# =============================================================================
# HISTORY
# =============================================================================

@billing_bp.get("/invoices/<invoice_id>/history")
def invoice_history_route(invoice_id: str):
    """Billing history for one invoice, newest first."""
    try:
        store = get_record_store()
        invoice_service.get_invoice(store, invoice_id)
        entries = billing_history_service.get_billing_history(store, invoice_id)
        return jsonify({"invoice_id": invoice_id, "history": [e.to_dict() for e in entries]}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@billing_bp.get("/history")
def billing_history_route():
    """Billing history across all invoices, newest first."""
    entries = billing_history_service.get_billing_history(get_record_store())
    return jsonify({"history": [e.to_dict() for e in entries]}), 200


# =============================================================================
# BILLABLE ITEMS & SUMMARY
# =============================================================================

@billing_bp.get("/patients/<patient_id>/billable-items")
def billable_items_route(patient_id: str):
    """
    Suggested line items from the patient's lab orders and prescriptions.

    NOTE: Not deduplicated against earlier invoices; the full history is
    returned every time.
    """
    try:
        store = get_record_store()
        billable_service.get_patient(store, patient_id)
        items = billable_service.billable_items_for(store, patient_id)
        return jsonify({"patient_id": patient_id, "items": items}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@billing_bp.get("/summary")
def billing_summary_route():
    """Total billed, total paid and outstanding for a period."""
    try:
        summary = reporting_service.billing_summary(get_record_store(), **_period_args())
        return jsonify(summary), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": f"Invalid date: {e}"}), 400
