# backend/syncclinic/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/syncclinic.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///syncclinic.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Total bytes the record store may hold across all keys (browser storage sized)
    RECORD_STORE_QUOTA_BYTES = int(os.environ.get("RECORD_STORE_QUOTA_BYTES", 5 * 1024 * 1024))

    AUDIT_LOG_LIMIT = int(os.environ.get("AUDIT_LOG_LIMIT", 500))

    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "KES")
    DEFAULT_ACTOR = os.environ.get("DEFAULT_ACTOR", "Admin")

    INVOICE_NUMBER_PREFIX = "INV"
    INVOICE_NUMBER_PAD = 4

    ALLOWED_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
