"""
Billing documents as stored in the record store.

Invoices embed their payments; billing history and audit entries live in
their own collections. All amounts are integer minor units (cents) and all
timestamps are ISO-8601 UTC strings with a trailing 'Z'.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


STATUS_DRAFT = "draft"
STATUS_ISSUED = "issued"
STATUS_PAID = "paid"
STATUS_PARTIAL = "partial"
STATUS_UNPAID = "unpaid"
STATUS_OVERPAID = "overpaid"

INVOICE_STATUSES = (
    STATUS_DRAFT,
    STATUS_ISSUED,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_UNPAID,
    STATUS_OVERPAID,
)


@dataclass
class LineItem:
    description: str
    amount_cents: int = 0
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            description=data.get("description", ""),
            amount_cents=int(data.get("amount_cents", 0)),
            source=data.get("source"),
        )

    def to_dict(self) -> dict:
        out = {"description": self.description, "amount_cents": self.amount_cents}
        if self.source:
            out["source"] = self.source
        return out


@dataclass
class Payment:
    """One payment event against an invoice; id and paid_at never change."""
    id: str
    amount_cents: int
    mode: str
    reference: str
    notes: str
    paid_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "Payment":
        return cls(
            id=data["id"],
            amount_cents=int(data["amount_cents"]),
            mode=data.get("mode", ""),
            reference=data.get("reference", ""),
            notes=data.get("notes", ""),
            paid_at=data["paid_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "mode": self.mode,
            "reference": self.reference,
            "notes": self.notes,
            "paid_at": self.paid_at,
        }


@dataclass
class Invoice:
    """
    Billing document for one patient.

    paid_cents always equals the sum of payments[].amount_cents, and status
    is recomputed from (total_cents, paid_cents) after every payment change.
    """
    id: str
    invoice_no: str
    patient_id: str
    patient_name: str
    total_cents: int
    status: str
    created_at: str
    items: list[LineItem] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    paid_cents: int = 0
    updated_at: Optional[str] = None

    @property
    def balance_cents(self) -> int:
        """Positive while money is owed, negative when overpaid."""
        return self.total_cents - self.paid_cents

    @classmethod
    def from_dict(cls, data: dict) -> "Invoice":
        return cls(
            id=data["id"],
            invoice_no=data["invoice_no"],
            patient_id=data["patient_id"],
            patient_name=data.get("patient_name", ""),
            total_cents=int(data.get("total_cents", 0)),
            status=data["status"],
            created_at=data["created_at"],
            items=[LineItem.from_dict(i) for i in data.get("items", [])],
            payments=[Payment.from_dict(p) for p in data.get("payments", [])],
            paid_cents=int(data.get("paid_cents", 0)),
            updated_at=data.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "items": [i.to_dict() for i in self.items],
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "status": self.status,
            "payments": [p.to_dict() for p in self.payments],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class BillingHistoryEntry:
    id: str
    invoice_id: str
    invoice_no: str
    action: str
    details: str
    user: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict) -> "BillingHistoryEntry":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__})

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "invoice_no": self.invoice_no,
            "action": self.action,
            "details": self.details,
            "user": self.user,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AuditEntry:
    id: str
    action: str
    module: str
    details: str
    user: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__})

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "module": self.module,
            "details": self.details,
            "user": self.user,
            "timestamp": self.timestamp,
        }
