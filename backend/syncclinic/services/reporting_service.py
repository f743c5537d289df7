# Overview: Billing reports; period summary, printable statement and CSV export.

from __future__ import annotations

import csv
import io
from typing import Iterable, Optional

from ..formatting import format_money
from ..models import Invoice
from ..time_utils import to_utc_z, utcnow
from .invoice_service import get_invoice, search_invoices
from .record_store import BRANDING, ORG_SETTINGS, RecordStore


DEFAULT_ORG_SETTINGS = {
    "name": "Sync Clinic",
    "trading_name": "",
    "reg_number": "",
    "email": "",
    "phone": "",
    "address": "",
    "footer_notes": "",
}

DEFAULT_BRANDING = {
    "logo": "",
    "primary_color": "#2a9d8f",
    "secondary_color": "#264653",
    "accent_color": "#e9c46a",
    "text_color": "#1d3557",
}

CSV_COLUMNS = ["Invoice No", "Patient", "Date", "Total", "Paid", "Balance", "Status", "Payments"]


def billing_summary(
    store: RecordStore,
    *,
    period: Optional[str] = None,
    custom_from: Optional[str] = None,
    custom_to: Optional[str] = None,
) -> dict:
    """Totals for invoices created in a period. Outstanding never goes below zero."""
    invoices = search_invoices(store, period=period, custom_from=custom_from, custom_to=custom_to)
    total_billed = sum(inv.total_cents for inv in invoices)
    total_paid = sum(inv.paid_cents for inv in invoices)
    return {
        "period": period or "all",
        "invoice_count": len(invoices),
        "total_billed_cents": total_billed,
        "total_paid_cents": total_paid,
        "outstanding_cents": max(0, total_billed - total_paid),
    }


def balance_label(balance_cents: int) -> str:
    if balance_cents > 0:
        return "Balance Due"
    if balance_cents < 0:
        return "Overpaid"
    return "Balance"


def invoice_statement(store: RecordStore, invoice_id: str) -> dict:
    """
    Printable view of one invoice: organization header, lines, payments and
    the balance with its label. Amounts are included both raw and formatted.
    """
    invoice = get_invoice(store, invoice_id)
    org = {**DEFAULT_ORG_SETTINGS, **(store.get_object(ORG_SETTINGS, {}) or {})}
    branding = {**DEFAULT_BRANDING, **(store.get_object(BRANDING, {}) or {})}
    balance = invoice.balance_cents

    return {
        "organization": {
            "name": org["name"] or DEFAULT_ORG_SETTINGS["name"],
            "trading_name": org["trading_name"],
            "phone": org["phone"],
            "email": org["email"],
            "logo": branding["logo"],
        },
        "invoice_no": invoice.invoice_no,
        "patient_name": invoice.patient_name,
        "created_at": invoice.created_at,
        "status": invoice.status,
        "lines": [
            {"description": item.description, "amount_cents": item.amount_cents, "amount": format_money(item.amount_cents)}
            for item in invoice.items
        ],
        "payments": [
            {"paid_at": p.paid_at, "mode": p.mode, "amount_cents": p.amount_cents, "amount": format_money(p.amount_cents)}
            for p in invoice.payments
        ],
        "total": format_money(invoice.total_cents),
        "paid": format_money(invoice.paid_cents),
        "balance_label": balance_label(balance),
        "balance": format_money(abs(balance)),
        "footer": org["footer_notes"] or f"Thank you for choosing {org['name'] or DEFAULT_ORG_SETTINGS['name']}",
        "generated_at": to_utc_z(utcnow()),
    }


def invoices_to_csv(invoices: Iterable[Invoice]) -> str:
    """
    CSV with a plain header row; every data value is double-quoted and inner
    quotes are doubled.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_COLUMNS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for inv in invoices:
        writer.writerow([
            inv.invoice_no,
            inv.patient_name,
            inv.created_at,
            format_money(inv.total_cents),
            format_money(inv.paid_cents),
            format_money(inv.balance_cents),
            inv.status,
            len(inv.payments),
        ])
    return buffer.getvalue()
