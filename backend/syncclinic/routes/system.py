# backend/syncclinic/routes/system.py
"""
System health endpoint.

Reports whether the record store is reachable and how much of its quota
is in use.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import func

from ..extensions import db
from ..models import StoredRecord
from syncclinic.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_record_store_health() -> dict:
    start_time = time.time()
    try:
        record_count = db.session.query(StoredRecord).count()
        used_bytes = db.session.query(func.coalesce(func.sum(StoredRecord.size_bytes), 0)).scalar()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "records": record_count,
                "used_bytes": int(used_bytes or 0),
                "quota_bytes": current_app.config.get("RECORD_STORE_QUOTA_BYTES"),
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Record store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    store = check_record_store_health()
    healthy = store["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"record_store": store},
    }), 200 if healthy else 503
