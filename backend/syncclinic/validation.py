from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Maximum single amount: 99,999,999.99 (9,999,999,999 minor units)
MAX_AMOUNT_CENTS = 9_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level lookup failure: nothing matched, so nothing changed."""


class InvoiceNotFoundError(NotFoundError):
    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice {invoice_id} not found")
        self.invoice_id = invoice_id


class PaymentNotFoundError(NotFoundError):
    def __init__(self, invoice_id: str, payment_id: str):
        super().__init__(f"Payment {payment_id} not found on invoice {invoice_id}")
        self.invoice_id = invoice_id
        self.payment_id = payment_id


class PatientNotFoundError(NotFoundError):
    def __init__(self, patient_id: str):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


@dataclass(frozen=True)
class PaymentPolicy:
    """
    Boundary policy for payment payloads:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required when recording a payment
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str]


PAYMENT_POLICY = PaymentPolicy(
    writable_fields=frozenset({"amount_cents", "mode", "reference", "notes"}),
    required_on_create=frozenset({"amount_cents", "mode"}),
)


def coerce_amount_cents(value: Any, *, field: str = "amount_cents") -> int:
    """
    Strict integer minor-unit parsing.

    Rejects floats, booleans, scientific notation and decimals so that money
    never passes through binary floating point.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            amount = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def parse_line_items(raw_items: Any) -> list[dict]:
    """
    Normalize invoice line items from a request body.

    Items with an empty description are dropped (blank editor rows), and at
    least one item must remain.
    """
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items: list[dict] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        description = str(raw.get("description") or "").strip()
        if not description:
            continue
        item = {
            "description": description,
            "amount_cents": coerce_amount_cents(raw.get("amount_cents", 0), field=f"items[{index}].amount_cents"),
        }
        source = raw.get("source")
        if source:
            item["source"] = str(source).strip()
        items.append(item)

    if not items:
        raise ValidationError("At least one line item with a description is required")
    return items


def parse_payment_payload(payload: Any, *, partial: bool) -> dict:
    """
    Validate a payment body against PAYMENT_POLICY.

    partial=False: recording a payment; amount must be positive and mode set.
    partial=True: editing; only supplied fields are returned (patch semantics).
    """
    if not isinstance(payload, dict):
        raise ValidationError("JSON object body required")

    unknown = set(payload) - PAYMENT_POLICY.writable_fields
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {sorted(unknown)}")

    if not partial:
        missing = [f for f in sorted(PAYMENT_POLICY.required_on_create) if not payload.get(f)]
        if missing:
            raise ValidationError("Amount and mode required")

    cleaned: dict = {}
    if "amount_cents" in payload:
        cleaned["amount_cents"] = coerce_amount_cents(payload["amount_cents"])
        if not partial and cleaned["amount_cents"] <= 0:
            raise ValidationError("Payment amount must be positive")
    if "mode" in payload:
        mode = str(payload["mode"] or "").strip()
        if not mode:
            raise ValidationError("mode cannot be empty")
        cleaned["mode"] = mode
    for field in ("reference", "notes"):
        if field in payload:
            cleaned[field] = str(payload[field] or "").strip()

    if partial and not cleaned:
        raise ValidationError("No payment fields to update")
    return cleaned
