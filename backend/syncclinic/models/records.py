from __future__ import annotations

from ..extensions import db


class StoredRecord(db.Model):
    """
    One persisted collection or object, stored as a JSON document under a key.

    WHY: The clinic data model is a key-value store of JSON collections
    (invoices, billing_history, audit, patients, ...). Each key is written
    whole; version_id turns a concurrent whole-collection write into a
    StaleDataError instead of a silent clobber.
    """
    __tablename__ = "stored_records"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_stored_records_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, index=True)

    # Serialized JSON payload and its encoded size (for quota accounting)
    value_json = db.Column(db.Text, nullable=False)
    size_bytes = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class RecordSequence(db.Model):
    """
    Atomic named counters for display numbers (INV-0001, ...).

    WHY: Numbering from the collection length repeats numbers when two
    creates race; a dedicated counter row does not.
    """
    __tablename__ = "record_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_record_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
