# Overview: Invoice lifecycle; creation, line-item edits, lookups and search.

"""
Invoice Lifecycle Service

WHY: An invoice is the billing document for one patient. It is created once,
its line items may be edited, and its payments are managed by
payment_service. There is no delete path.

DESIGN PRINCIPLES:
- total_cents is stored, recomputed only when line items change
- paid_cents/status are owned by the payment sub-ledger, never touched here
- patient_name is a snapshot taken when the invoice is written
- Every mutation is one unit of work: invoice write + billing history + audit
- Unknown invoice ids raise InvoiceNotFoundError (no silent no-ops)
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from ..formatting import format_money
from ..models import Invoice, LineItem, STATUS_DRAFT, STATUS_ISSUED
from ..time_utils import PERIODS, is_in_period, utcnow, to_utc_z
from ..validation import InvoiceNotFoundError, ValidationError, coerce_amount_cents
from .audit_service import append_audit_entry
from .billing_history_service import append_billing_history, HISTORY_CREATED, HISTORY_UPDATED
from .document_service import next_invoice_number
from .record_store import INVOICES, RecordStore


AUDIT_MODULE = "Billing"

# Payment-derived statuses are only ever set by the payment sub-ledger
INITIAL_INVOICE_STATUSES = (STATUS_DRAFT, STATUS_ISSUED)


# =============================================================================
# COLLECTION HELPERS
# =============================================================================

def load_invoices(store: RecordStore) -> list[Invoice]:
    return [Invoice.from_dict(d) for d in store.get_list(INVOICES)]


def save_invoices(store: RecordStore, invoices: list[Invoice]) -> None:
    store.set_list(INVOICES, [inv.to_dict() for inv in invoices])


def find_invoice_index(invoices: list[Invoice], invoice_id: str) -> int:
    for index, invoice in enumerate(invoices):
        if invoice.id == invoice_id:
            return index
    raise InvoiceNotFoundError(invoice_id)


def _coerce_items(items: Iterable) -> list[LineItem]:
    result = []
    for item in items:
        if not isinstance(item, LineItem):
            item = LineItem(
                description=str(item.get("description", "")),
                amount_cents=item.get("amount_cents", 0),
                source=item.get("source"),
            )
        result.append(LineItem(
            description=item.description,
            amount_cents=coerce_amount_cents(item.amount_cents),
            source=item.source,
        ))
    return result


def items_total(items: Iterable[LineItem]) -> int:
    return sum(item.amount_cents for item in items)


# =============================================================================
# LIFECYCLE
# =============================================================================

def create_invoice(
    store: RecordStore,
    *,
    patient_id: str,
    patient_name: str,
    items: Iterable,
    total_cents: Optional[int] = None,
    status: str = STATUS_ISSUED,
    actor: Optional[str] = None,
) -> Invoice:
    """
    Create an invoice for a patient.

    Args:
        store: Record store to write to
        patient_id: Patient being billed
        patient_name: Display name snapshot
        items: Line items (LineItem or dicts with description/amount_cents/source)
        total_cents: Stored total; defaults to the sum of item amounts
        status: Initial status, "issued" (default) or "draft"
        actor: User recorded in history and audit

    Returns:
        The persisted Invoice with payments=[] and paid_cents=0

    Raises:
        ValidationError: If status is not an initial status or an amount is invalid
    """
    if status not in INITIAL_INVOICE_STATUSES:
        raise ValidationError(
            f"Invalid initial invoice status: {status}. Must be one of {list(INITIAL_INVOICE_STATUSES)}"
        )

    line_items = _coerce_items(items)
    total = items_total(line_items) if total_cents is None else coerce_amount_cents(total_cents, field="total_cents")

    def _op() -> Invoice:
        invoices = load_invoices(store)
        invoice = Invoice(
            id=uuid.uuid4().hex,
            invoice_no=next_invoice_number(store),
            patient_id=patient_id,
            patient_name=patient_name,
            items=line_items,
            total_cents=total,
            paid_cents=0,
            status=status,
            payments=[],
            created_at=to_utc_z(utcnow()),
        )
        invoices.append(invoice)
        save_invoices(store, invoices)

        append_audit_entry(
            store,
            action="Created",
            module=AUDIT_MODULE,
            details=f"Invoice {invoice.invoice_no} - {format_money(total)}",
            actor=actor,
        )
        append_billing_history(
            store,
            invoice_id=invoice.id,
            invoice_no=invoice.invoice_no,
            action=HISTORY_CREATED,
            details=f"Invoice created for {format_money(total)}",
            actor=actor,
        )
        return invoice

    return store.atomic(_op)


def update_invoice_items(
    store: RecordStore,
    invoice_id: str,
    *,
    items: Iterable,
    total_cents: Optional[int] = None,
    actor: Optional[str] = None,
) -> Invoice:
    """
    Replace an invoice's line items and stored total.

    Payments, paid_cents and status are left exactly as they were; status is
    only re-derived by payment operations.

    Raises:
        InvoiceNotFoundError: If no invoice has this id
    """
    line_items = _coerce_items(items)
    total = items_total(line_items) if total_cents is None else coerce_amount_cents(total_cents, field="total_cents")

    def _op() -> Invoice:
        invoices = load_invoices(store)
        index = find_invoice_index(invoices, invoice_id)
        invoice = invoices[index]
        invoice.items = line_items
        invoice.total_cents = total
        invoice.updated_at = to_utc_z(utcnow())
        save_invoices(store, invoices)

        append_billing_history(
            store,
            invoice_id=invoice.id,
            invoice_no=invoice.invoice_no,
            action=HISTORY_UPDATED,
            details=f"Invoice line items updated. Total: {format_money(total)}",
            actor=actor,
        )
        append_audit_entry(
            store,
            action="Updated",
            module=AUDIT_MODULE,
            details=f"Invoice {invoice.invoice_no} updated",
            actor=actor,
        )
        return invoice

    return store.atomic(_op)


# =============================================================================
# QUERIES
# =============================================================================

def list_invoices(store: RecordStore) -> list[Invoice]:
    """All invoices in creation order."""
    return load_invoices(store)


def get_invoice(store: RecordStore, invoice_id: str) -> Invoice:
    invoices = load_invoices(store)
    return invoices[find_invoice_index(invoices, invoice_id)]


def search_invoices(
    store: RecordStore,
    *,
    query: Optional[str] = None,
    period: Optional[str] = None,
    custom_from: Optional[str] = None,
    custom_to: Optional[str] = None,
) -> list[Invoice]:
    """
    Invoices created within a period whose patient name or invoice number
    contains the query (case-insensitive).

    Raises:
        ValidationError: If period is not one of PERIODS
    """
    if period and period not in PERIODS:
        raise ValidationError(f"Invalid period: {period}. Must be one of {list(PERIODS)}")
    needle = (query or "").strip().lower()
    results = []
    for invoice in load_invoices(store):
        if not is_in_period(invoice.created_at, period, custom_from, custom_to):
            continue
        if needle and needle not in invoice.patient_name.lower() and needle not in invoice.invoice_no.lower():
            continue
        results.append(invoice)
    return results
