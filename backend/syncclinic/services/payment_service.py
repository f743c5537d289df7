# Overview: Payment sub-ledger; records, edits and removes payments and keeps paid/status derived.

"""
Payment Sub-Ledger

WHY: Patients pay invoices in one or many instalments (M-Pesa, cash, bank).
Every change to an invoice's payments must leave paid_cents and status
consistent with the payments actually on file.

DESIGN PRINCIPLES:
- Payments are embedded in their invoice, in insertion (chronological) order
- paid_cents is always the sum of payment amounts, recomputed after each change
- status is a pure function of (total, paid); see recalc_status
- Each operation re-reads the current invoice collection (read-modify-write)
- Invoice write, billing history and audit entry form one unit of work
"""

from __future__ import annotations

import uuid
from typing import Optional

from ..formatting import format_money
from ..models import Invoice, Payment, STATUS_OVERPAID, STATUS_PAID, STATUS_PARTIAL, STATUS_UNPAID
from ..time_utils import utcnow, to_utc_z
from ..validation import PaymentNotFoundError, ValidationError, coerce_amount_cents
from .audit_service import append_audit_entry
from .billing_history_service import (
    append_billing_history,
    HISTORY_PAYMENT,
    HISTORY_PAYMENT_EDITED,
    HISTORY_PAYMENT_DELETED,
)
from .invoice_service import AUDIT_MODULE, find_invoice_index, load_invoices, save_invoices
from .record_store import MASTER_LISTS, RecordStore


# =============================================================================
# PAYMENT MODES
# =============================================================================

DEFAULT_PAYMENT_MODES = ["M-Pesa", "Cash", "Bank"]
PAYMENT_MODES_LIST = "Payment Modes"

MUTABLE_PAYMENT_FIELDS = ("amount_cents", "mode", "reference", "notes")


def payment_modes(store: RecordStore) -> list[str]:
    """
    Default modes followed by active, not-yet-listed entries of the
    configurable "Payment Modes" master list.
    """
    modes = list(DEFAULT_PAYMENT_MODES)
    for item in store.get_list(MASTER_LISTS):
        if item.get("list_type") != PAYMENT_MODES_LIST or not item.get("active"):
            continue
        name = item.get("name")
        if name and name not in modes:
            modes.append(name)
    return modes


# =============================================================================
# STATUS DERIVATION
# =============================================================================

def recalc_status(total_cents: int, paid_cents: int) -> str:
    """
    Derive invoice status from total and paid.

    Order matters:
    - UNPAID: paid == 0 (checked first, so total == paid == 0 is unpaid)
    - OVERPAID: paid > total (checked before the exact match)
    - PAID: paid >= total
    - PARTIAL: anything else
    """
    if paid_cents == 0:
        return STATUS_UNPAID
    if paid_cents > total_cents:
        return STATUS_OVERPAID
    if paid_cents >= total_cents:
        return STATUS_PAID
    return STATUS_PARTIAL


def _apply_payments(invoice: Invoice, payments: list[Payment]) -> None:
    invoice.payments = payments
    invoice.paid_cents = sum(p.amount_cents for p in payments)
    invoice.status = recalc_status(invoice.total_cents, invoice.paid_cents)
    invoice.updated_at = to_utc_z(utcnow())


def _clean_mode(mode) -> str:
    if not isinstance(mode, str) or not mode.strip():
        raise ValidationError("Payment mode must be a non-empty string")
    return mode.strip()


def _find_payment_index(invoice: Invoice, payment_id: str) -> int:
    for index, payment in enumerate(invoice.payments):
        if payment.id == payment_id:
            return index
    raise PaymentNotFoundError(invoice.id, payment_id)


# =============================================================================
# PAYMENT OPERATIONS
# =============================================================================

def add_payment(
    store: RecordStore,
    invoice_id: str,
    *,
    amount_cents: int,
    mode: str,
    reference: str = "",
    notes: str = "",
    actor: Optional[str] = None,
) -> tuple[Invoice, Payment]:
    """
    Record a payment against an invoice.

    Args:
        store: Record store
        invoice_id: Invoice being paid
        amount_cents: Amount received (minor units, non-negative)
        mode: Payment mode, e.g. "M-Pesa"
        reference: Transaction code or receipt number (optional)
        notes: Free text (optional)
        actor: User recorded in history and audit

    Returns:
        (updated invoice, new payment)

    Raises:
        InvoiceNotFoundError: If the invoice does not exist
        ValidationError: If the amount is negative or not an integer, or mode is blank
    """
    amount = coerce_amount_cents(amount_cents)
    mode = _clean_mode(mode)

    def _op():
        invoices = load_invoices(store)
        invoice = invoices[find_invoice_index(invoices, invoice_id)]

        payment = Payment(
            id=uuid.uuid4().hex,
            amount_cents=amount,
            mode=mode,
            reference=reference or "",
            notes=notes or "",
            paid_at=to_utc_z(utcnow()),
        )
        _apply_payments(invoice, invoice.payments + [payment])
        save_invoices(store, invoices)

        append_billing_history(
            store,
            invoice_id=invoice.id,
            invoice_no=invoice.invoice_no,
            action=HISTORY_PAYMENT,
            details=f"Payment of {format_money(amount)} via {mode}",
            actor=actor,
        )
        append_audit_entry(
            store,
            action="Payment",
            module=AUDIT_MODULE,
            details=f"Payment of {format_money(amount)} via {mode} on {invoice.invoice_no}",
            actor=actor,
        )
        return invoice, payment

    return store.atomic(_op)


def update_payment(
    store: RecordStore,
    invoice_id: str,
    payment_id: str,
    updates: dict,
    *,
    actor: Optional[str] = None,
) -> tuple[Invoice, Payment]:
    """
    Patch a payment in place; unspecified fields keep their values.

    Only amount_cents, mode, reference and notes may change. id and paid_at
    are fixed at creation.

    Raises:
        InvoiceNotFoundError: If the invoice does not exist
        PaymentNotFoundError: If the invoice has no such payment
        ValidationError: If updates touch other fields, or the amount or mode is invalid
    """
    illegal = set(updates) - set(MUTABLE_PAYMENT_FIELDS)
    if illegal:
        raise ValidationError(f"Payment fields cannot be changed: {sorted(illegal)}")
    patch = dict(updates)
    if "amount_cents" in patch:
        patch["amount_cents"] = coerce_amount_cents(patch["amount_cents"])
    if "mode" in patch:
        patch["mode"] = _clean_mode(patch["mode"])
    for field in ("reference", "notes"):
        if field in patch:
            patch[field] = "" if patch[field] is None else str(patch[field])

    def _op():
        invoices = load_invoices(store)
        invoice = invoices[find_invoice_index(invoices, invoice_id)]
        index = _find_payment_index(invoice, payment_id)

        original = invoice.payments[index]
        edited = Payment(
            id=original.id,
            amount_cents=patch.get("amount_cents", original.amount_cents),
            mode=patch.get("mode", original.mode),
            reference=patch.get("reference", original.reference),
            notes=patch.get("notes", original.notes),
            paid_at=original.paid_at,
        )
        payments = list(invoice.payments)
        payments[index] = edited
        _apply_payments(invoice, payments)
        save_invoices(store, invoices)

        details = f"Payment {payment_id} edited"
        if edited.amount_cents != original.amount_cents:
            details += f": {format_money(original.amount_cents)} -> {format_money(edited.amount_cents)}"
        append_billing_history(
            store,
            invoice_id=invoice.id,
            invoice_no=invoice.invoice_no,
            action=HISTORY_PAYMENT_EDITED,
            details=details,
            actor=actor,
        )
        append_audit_entry(
            store,
            action="Updated",
            module=AUDIT_MODULE,
            details=f"Payment edited on {invoice.invoice_no}",
            actor=actor,
        )
        return invoice, edited

    return store.atomic(_op)


def delete_payment(
    store: RecordStore,
    invoice_id: str,
    payment_id: str,
    *,
    actor: Optional[str] = None,
) -> Invoice:
    """
    Remove a payment and re-derive paid/status.

    Raises:
        InvoiceNotFoundError: If the invoice does not exist
        PaymentNotFoundError: If the invoice has no such payment
    """
    def _op():
        invoices = load_invoices(store)
        invoice = invoices[find_invoice_index(invoices, invoice_id)]
        index = _find_payment_index(invoice, payment_id)

        removed = invoice.payments[index]
        payments = invoice.payments[:index] + invoice.payments[index + 1:]
        _apply_payments(invoice, payments)
        save_invoices(store, invoices)

        append_billing_history(
            store,
            invoice_id=invoice.id,
            invoice_no=invoice.invoice_no,
            action=HISTORY_PAYMENT_DELETED,
            details=f"Payment of {format_money(removed.amount_cents)} via {removed.mode} removed",
            actor=actor,
        )
        append_audit_entry(
            store,
            action="Deleted",
            module=AUDIT_MODULE,
            details=f"Payment deleted on {invoice.invoice_no}",
            actor=actor,
        )
        return invoice

    return store.atomic(_op)


def get_payment(store: RecordStore, invoice_id: str, payment_id: str) -> Payment:
    invoices = load_invoices(store)
    invoice = invoices[find_invoice_index(invoices, invoice_id)]
    return invoice.payments[_find_payment_index(invoice, payment_id)]
