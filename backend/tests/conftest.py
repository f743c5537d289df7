"""
Pytest fixtures for Sync Clinic billing tests.

Provides the Flask app on an in-memory SQLite database, a per-test table
wipe, a test client, and record stores (SQL-backed and in-memory).
"""

import os

# Must be set before the config module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest

from syncclinic import create_app
from syncclinic.extensions import db
from syncclinic.services.record_store import (
    LAB_ORDERS,
    PATIENTS,
    PRESCRIPTIONS,
    MemoryRecordStore,
    get_record_store,
)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app()
    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def sql_store(db_session):
    """Record store bound to the test database."""
    return get_record_store()


@pytest.fixture(scope='function')
def store():
    """In-memory record store; no Flask app involved."""
    return MemoryRecordStore()


PATIENT_ID = "pt-jane"


def seed_patient_history(store, patient_id: str = PATIENT_ID) -> None:
    """One patient with two lab orders and a two-drug prescription."""
    store.set_list(PATIENTS, [
        {"id": patient_id, "patient_no": "PT-0001", "first_name": "Jane", "last_name": "Wanjiru"},
        {"id": "pt-other", "patient_no": "PT-0002", "first_name": "Otieno", "last_name": "Kamau"},
    ])
    store.set_list(LAB_ORDERS, [
        {"id": "lab-1", "patient_id": patient_id, "test_name": "Full Blood Count", "status": "ordered"},
        {"id": "lab-2", "patient_id": "pt-other", "test_name": "Malaria RDT", "status": "ordered"},
        {"id": "lab-3", "patient_id": patient_id, "test_name": "Urinalysis", "status": "result_ready"},
    ])
    store.set_list(PRESCRIPTIONS, [
        {
            "id": "rx-1",
            "patient_id": patient_id,
            "drugs": [
                {"name": "Amoxicillin", "dosage": "500mg"},
                {"name": "Paracetamol", "dosage": "1g"},
            ],
        },
        {"id": "rx-2", "patient_id": "pt-other", "drugs": [{"name": "Coartem", "dosage": "80/480mg"}]},
    ])


@pytest.fixture(scope='function')
def patient_store(store):
    seed_patient_history(store)
    return store


@pytest.fixture(scope='function')
def seeded_client(client, sql_store):
    """Test client with patient history committed to the SQL store."""
    sql_store.atomic(lambda: seed_patient_history(sql_store))
    return client
