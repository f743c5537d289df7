from .records import StoredRecord, RecordSequence
from .billing import (
    Invoice,
    LineItem,
    Payment,
    BillingHistoryEntry,
    AuditEntry,
    INVOICE_STATUSES,
    STATUS_DRAFT,
    STATUS_ISSUED,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_UNPAID,
    STATUS_OVERPAID,
)

__all__ = [
    'StoredRecord', 'RecordSequence',
    'Invoice', 'LineItem', 'Payment', 'BillingHistoryEntry', 'AuditEntry',
    'INVOICE_STATUSES', 'STATUS_DRAFT', 'STATUS_ISSUED', 'STATUS_PAID',
    'STATUS_PARTIAL', 'STATUS_UNPAID', 'STATUS_OVERPAID',
]
