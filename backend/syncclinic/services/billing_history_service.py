# Overview: Per-invoice billing history; append-only, newest first, never truncated.

from __future__ import annotations

import uuid
from typing import Optional

from ..formatting import current_actor
from ..models import BillingHistoryEntry
from ..time_utils import utcnow, to_utc_z
from .record_store import BILLING_HISTORY, RecordStore


HISTORY_CREATED = "Created"
HISTORY_UPDATED = "Updated"
HISTORY_PAYMENT = "Payment"
HISTORY_PAYMENT_EDITED = "Payment Edited"
HISTORY_PAYMENT_DELETED = "Payment Deleted"


def append_billing_history(
    store: RecordStore,
    *,
    invoice_id: str,
    invoice_no: str,
    action: str,
    details: str,
    actor: Optional[str] = None,
) -> BillingHistoryEntry:
    """
    Record one ledger action against an invoice.

    Every invoice/payment mutation calls this exactly once, inside the same
    unit of work as the mutation itself.
    """
    entry = BillingHistoryEntry(
        id=uuid.uuid4().hex,
        invoice_id=invoice_id,
        invoice_no=invoice_no,
        action=action,
        details=details,
        user=current_actor(actor),
        timestamp=to_utc_z(utcnow()),
    )
    entries = store.get_list(BILLING_HISTORY)
    entries.insert(0, entry.to_dict())
    store.set_list(BILLING_HISTORY, entries)
    return entry


def get_billing_history(store: RecordStore, invoice_id: Optional[str] = None) -> list[BillingHistoryEntry]:
    """All history entries (or one invoice's), newest first."""
    entries = [BillingHistoryEntry.from_dict(e) for e in store.get_list(BILLING_HISTORY)]
    if invoice_id:
        entries = [e for e in entries if e.invoice_id == invoice_id]
    return entries
