# Overview: Shared audit trail; bounded, newest-first log of every mutating action.

"""
Audit Log Invariants

- Append-only from the writer's point of view: entries are never edited.
- Newest first; only the most recent AUDIT_LOG_LIMIT entries are retained.
- Written inside the same unit of work as the change it records.
"""

from __future__ import annotations

import uuid
from typing import Optional

from ..formatting import current_actor, setting
from ..models import AuditEntry
from ..time_utils import utcnow, to_utc_z
from .record_store import AUDIT, RecordStore

DEFAULT_AUDIT_LOG_LIMIT = 500


def append_audit_entry(
    store: RecordStore,
    *,
    action: str,
    module: str,
    details: str,
    actor: Optional[str] = None,
) -> AuditEntry:
    entry = AuditEntry(
        id=uuid.uuid4().hex,
        action=action,
        module=module,
        details=details,
        user=current_actor(actor),
        timestamp=to_utc_z(utcnow()),
    )
    limit = setting("AUDIT_LOG_LIMIT", DEFAULT_AUDIT_LOG_LIMIT)
    entries = store.get_list(AUDIT)
    entries.insert(0, entry.to_dict())
    store.set_list(AUDIT, entries[:limit])
    return entry


def get_audit_entries(
    store: RecordStore,
    *,
    module: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[AuditEntry]:
    """Audit entries, newest first, optionally for one module."""
    entries = [AuditEntry.from_dict(e) for e in store.get_list(AUDIT)]
    if module:
        entries = [e for e in entries if e.module == module]
    if limit is not None:
        entries = entries[:max(0, limit)]
    return entries
