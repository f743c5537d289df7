from __future__ import annotations

from typing import Any

from flask import current_app, has_app_context


DEFAULT_CURRENCY = "KES"
DEFAULT_ACTOR = "Admin"


def setting(name: str, default: Any) -> Any:
    """App config value when running inside Flask, otherwise the default."""
    if has_app_context():
        return current_app.config.get(name, default)
    return default


def format_money(amount_cents: int, currency: str | None = None) -> str:
    """
    Render minor units with the fixed currency prefix.

    100000 -> "KES 1,000"; 100050 -> "KES 1,000.50"; -2500 -> "KES -25"
    """
    currency = currency or setting("CURRENCY_CODE", DEFAULT_CURRENCY)
    sign = "-" if amount_cents < 0 else ""
    units, cents = divmod(abs(int(amount_cents)), 100)
    if cents:
        return f"{currency} {sign}{units:,}.{cents:02d}"
    return f"{currency} {sign}{units:,}"


def current_actor(actor: str | None = None) -> str:
    return actor or setting("DEFAULT_ACTOR", DEFAULT_ACTOR)
