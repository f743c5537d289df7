# Overview: Read-only clinical readers and billable-item suggestions for a patient's invoice.

"""
Billable Items

WHY: When staff open an invoice for a patient, the patient's lab orders and
prescribed drugs are proposed as line items so nothing is forgotten.

KNOWN GAP: suggestions are not matched against earlier invoices. Every call
returns the patient's full lab/prescription history, so staff must remove
anything already billed. Invoice line items keep their source but not the
lab order or prescription id, so there is nothing to match on yet.
"""

from __future__ import annotations

from typing import Optional

from ..validation import PatientNotFoundError
from .record_store import LAB_ORDERS, PATIENTS, PRESCRIPTIONS, RecordStore


SOURCE_LAB = "lab"
SOURCE_PRESCRIPTION = "prescription"


# =============================================================================
# READERS
# =============================================================================

def get_patients(store: RecordStore) -> list[dict]:
    return store.get_list(PATIENTS)


def find_patient(store: RecordStore, patient_id: str) -> Optional[dict]:
    for patient in get_patients(store):
        if patient.get("id") == patient_id:
            return patient
    return None


def get_patient(store: RecordStore, patient_id: str) -> dict:
    patient = find_patient(store, patient_id)
    if patient is None:
        raise PatientNotFoundError(patient_id)
    return patient


def patient_display_name(patient: dict) -> str:
    return f"{patient.get('first_name', '')} {patient.get('last_name', '')}".strip()


def get_lab_orders(store: RecordStore, patient_id: Optional[str] = None) -> list[dict]:
    orders = store.get_list(LAB_ORDERS)
    if patient_id:
        orders = [o for o in orders if o.get("patient_id") == patient_id]
    return orders


def get_prescriptions(store: RecordStore, patient_id: Optional[str] = None) -> list[dict]:
    prescriptions = store.get_list(PRESCRIPTIONS)
    if patient_id:
        prescriptions = [p for p in prescriptions if p.get("patient_id") == patient_id]
    return prescriptions


# =============================================================================
# AGGREGATION
# =============================================================================

def billable_items_for(store: RecordStore, patient_id: str) -> list[dict]:
    """
    Candidate line items for a patient, all priced at zero.

    Order: one item per lab order ("Lab: <test>"), then one per drug of each
    prescription ("Drug: <name> (<dosage>)"), each in stored order.
    """
    items = []
    for order in get_lab_orders(store, patient_id):
        items.append({
            "description": f"Lab: {order.get('test_name', '')}",
            "amount_cents": 0,
            "source": SOURCE_LAB,
        })
    for prescription in get_prescriptions(store, patient_id):
        for drug in prescription.get("drugs", []):
            items.append({
                "description": f"Drug: {drug.get('name', '')} ({drug.get('dosage', '')})",
                "amount_cents": 0,
                "source": SOURCE_PRESCRIPTION,
            })
    return items
