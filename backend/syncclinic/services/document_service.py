# Overview: Display-number allocation for billing documents.

from __future__ import annotations

from ..formatting import setting
from .record_store import INVOICES, RecordStore


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    store: RecordStore,
    *,
    document_type: str,
    prefix: str,
    pad: int = 4,
    collection_key: str | None = None,
) -> str:
    """
    Allocate the next display number for a document type (e.g. INV-0001).

    The counter is atomic in the record store. The first time a type is
    numbered, the counter starts after the documents already stored under
    collection_key, so data written before counters existed keeps its numbers.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    start = 1
    if collection_key:
        start = len(store.get_list(collection_key)) + 1

    number = store.next_sequence(document_type, start=start)
    return f"{prefix}-{number:0{pad}d}"


def next_invoice_number(store: RecordStore) -> str:
    return next_document_number(
        store,
        document_type="INVOICE",
        prefix=setting("INVOICE_NUMBER_PREFIX", "INV"),
        pad=setting("INVOICE_NUMBER_PAD", 4),
        collection_key=INVOICES,
    )
