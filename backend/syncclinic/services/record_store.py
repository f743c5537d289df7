# Overview: Generic persisted-collection store; every clinic entity lives under a string key.

"""
Record Store

WHY: All clinic data (invoices, billing history, audit, patients, lab orders,
prescriptions, settings) is a JSON collection or object stored under its own
key. Services get a store injected instead of reaching for global state, so
the ledger runs unchanged against SQL in production and memory in tests.

INVARIANTS:
- A key is always written whole (read collection -> compute -> write collection).
- atomic() is the unit of work: every write made inside it is committed
  together or rolled back together.
- A write that would push total stored bytes past the quota raises
  StorageFullError and leaves the previously persisted state authoritative.
- Reads return fresh copies; mutating a returned list never changes the store.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional, TypeVar

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..models import StoredRecord, RecordSequence
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# COLLECTION KEYS
# =============================================================================

INVOICES = "invoices"
BILLING_HISTORY = "billing_history"
AUDIT = "audit"
PATIENTS = "patients"
VISITS = "visits"
VITALS = "vitals"
PRESCRIPTIONS = "prescriptions"
LAB_ORDERS = "lab_orders"
MASTER_LISTS = "master_lists"
ORG_SETTINGS = "org_settings"
BRANDING = "branding"

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageFullError(Exception):
    """Raised when a write would exceed the record store quota."""

    def __init__(self, key: str, required_bytes: int, quota_bytes: int):
        super().__init__(
            f"Storage full: writing '{key}' needs {required_bytes} bytes, quota is {quota_bytes} bytes"
        )
        self.key = key
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class RecordStore:
    """Base interface. Subclasses provide raw text storage and the unit of work."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes if quota_bytes is not None else DEFAULT_QUOTA_BYTES

    # -- raw storage (subclass responsibility) --------------------------------

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, text: str, size_bytes: int) -> None:
        raise NotImplementedError

    def _used_bytes(self, *, excluding: str) -> int:
        raise NotImplementedError

    def next_sequence(self, name: str, *, start: int = 1) -> int:
        """Allocate the next number of a named counter, starting at `start`."""
        raise NotImplementedError

    def atomic(self, func: Callable[[], T]) -> T:
        """Run func as one unit of work. Nested calls join the outer unit."""
        raise NotImplementedError

    # -- typed accessors -------------------------------------------------------

    def get_list(self, key: str) -> list:
        text = self._read(key)
        if not text:
            return []
        try:
            value = json.loads(text)
        except ValueError:
            logger.warning("Record '%s' is not valid JSON; treating as empty", key)
            return []
        return value if isinstance(value, list) else []

    def set_list(self, key: str, items: list) -> None:
        self._put(key, _dumps(list(items)))

    def get_object(self, key: str, default: Any = None) -> Any:
        text = self._read(key)
        if not text:
            return default
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("Record '%s' is not valid JSON; using default", key)
            return default

    def set_object(self, key: str, obj: Any) -> None:
        self._put(key, _dumps(obj))

    def _put(self, key: str, text: str) -> None:
        size = len(text.encode("utf-8"))
        required = self._used_bytes(excluding=key) + size
        if required > self.quota_bytes:
            logger.warning("Rejected write to '%s': %d bytes exceeds quota %d", key, required, self.quota_bytes)
            raise StorageFullError(key, required, self.quota_bytes)
        self._write(key, text, size)


class MemoryRecordStore(RecordStore):
    """
    In-process store holding serialized JSON per key.

    Used by tests and scripts. atomic() snapshots every key and counter and
    restores them if the unit of work raises.
    """

    def __init__(self, quota_bytes: Optional[int] = None, data: Optional[dict] = None):
        super().__init__(quota_bytes)
        self._data: dict[str, str] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.RLock()
        self._depth = 0
        for key, value in (data or {}).items():
            self._data[key] = _dumps(value)

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, text: str, size_bytes: int) -> None:
        self._data[key] = text

    def _used_bytes(self, *, excluding: str) -> int:
        return sum(len(text.encode("utf-8")) for key, text in self._data.items() if key != excluding)

    def next_sequence(self, name: str, *, start: int = 1) -> int:
        with self._lock:
            number = self._sequences.get(name, start)
            self._sequences[name] = number + 1
            return number

    def atomic(self, func: Callable[[], T]) -> T:
        with self._lock:
            if self._depth:
                return func()
            data_snapshot = dict(self._data)
            seq_snapshot = dict(self._sequences)
            self._depth += 1
            try:
                return func()
            except Exception:
                self._data = data_snapshot
                self._sequences = seq_snapshot
                raise
            finally:
                self._depth -= 1


class SqlRecordStore(RecordStore):
    """
    Flask-SQLAlchemy backed store: one StoredRecord row per key.

    Units of work are serialized in-process by a single writer lock; across
    processes the row version column plus run_with_retry turns a lost update
    into a retry against fresh data.
    """

    _write_lock = threading.RLock()
    _local = threading.local()

    def __init__(self, session=None, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.session = session or db.session

    def _read(self, key: str) -> Optional[str]:
        row = self.session.query(StoredRecord).filter_by(key=key).first()
        return row.value_json if row else None

    def _write(self, key: str, text: str, size_bytes: int) -> None:
        row = lock_for_update(self.session.query(StoredRecord).filter_by(key=key)).first()
        if row:
            row.value_json = text
            row.size_bytes = size_bytes
        else:
            self.session.add(StoredRecord(key=key, value_json=text, size_bytes=size_bytes))
        self.session.flush()

    def _used_bytes(self, *, excluding: str) -> int:
        used = self.session.query(
            func.coalesce(func.sum(StoredRecord.size_bytes), 0)
        ).filter(StoredRecord.key != excluding).scalar()
        return int(used or 0)

    def next_sequence(self, name: str, *, start: int = 1) -> int:
        stmt = (
            update(RecordSequence)
            .where(RecordSequence.name == name)
            .values(next_number=RecordSequence.next_number + 1)
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            self.session.flush()
            current = (
                self.session.query(RecordSequence.next_number)
                .filter_by(name=name)
                .scalar()
            )
            return current - 1

        self.session.add(RecordSequence(name=name, next_number=start + 1))
        self.session.flush()
        return start

    @property
    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @_depth.setter
    def _depth(self, value: int) -> None:
        self._local.depth = value

    def atomic(self, func: Callable[[], T]) -> T:
        with self._write_lock:
            if self._depth:
                return func()

            def _op():
                self._depth += 1
                try:
                    result = func()
                    self.session.commit()
                    return result
                except Exception:
                    self.session.rollback()
                    raise
                finally:
                    self._depth -= 1

            return run_with_retry(_op, session=self.session)


def get_record_store() -> SqlRecordStore:
    """Store bound to the current app's database session and quota."""
    return SqlRecordStore(
        session=db.session,
        quota_bytes=current_app.config.get("RECORD_STORE_QUOTA_BYTES", DEFAULT_QUOTA_BYTES),
    )
