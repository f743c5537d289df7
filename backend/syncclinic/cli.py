# Overview: Flask CLI command groups for bootstrap, demo data and billing inspection.

# backend/syncclinic/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to syncclinic (PowerShell: $env:FLASK_APP="syncclinic").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create the record store tables if they do not exist (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Billing:
# - python -m flask billing seed-demo
#   Add a demo patient with a lab order, a prescription and extra payment modes.
# - python -m flask billing invoices [--period month] [--query jane]
#   List invoices with totals and status.
# - python -m flask billing history [INVOICE_ID]
#   Show billing history, optionally for one invoice.
# - python -m flask billing audit [--limit 20] [--module Billing]
#   Show the most recent audit entries.

import uuid

import click
from flask.cli import with_appcontext

from .extensions import db
from .formatting import format_money
from .services import audit_service, billing_history_service, invoice_service, reporting_service
from .services.record_store import (
    LAB_ORDERS,
    MASTER_LISTS,
    PATIENTS,
    PRESCRIPTIONS,
    StorageFullError,
    get_record_store,
)
from .time_utils import PERIODS, utcnow, to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create record store tables (safe to run repeatedly)."""
    db.create_all()
    click.echo("PASS Record store tables are ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


# =============================================================================
# BILLING COMMANDS
# =============================================================================

@click.group('billing')
def billing_group():
    """Billing inspection and demo data commands."""


@billing_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Add a demo patient with a lab order, a prescription and payment modes."""
    store = get_record_store()
    now = to_utc_z(utcnow())
    patient_id = uuid.uuid4().hex

    def _op():
        patients = store.get_list(PATIENTS)
        patients.append({
            "id": patient_id,
            "patient_no": f"PT-{len(patients) + 1:04d}",
            "first_name": "Jane",
            "last_name": "Wanjiru",
            "created_at": now,
        })
        store.set_list(PATIENTS, patients)

        labs = store.get_list(LAB_ORDERS)
        labs.append({
            "id": uuid.uuid4().hex,
            "patient_id": patient_id,
            "test_name": "Full Blood Count",
            "status": "ordered",
            "created_at": now,
        })
        store.set_list(LAB_ORDERS, labs)

        prescriptions = store.get_list(PRESCRIPTIONS)
        prescriptions.append({
            "id": uuid.uuid4().hex,
            "patient_id": patient_id,
            "drugs": [
                {"name": "Amoxicillin", "dosage": "500mg", "frequency": "TDS", "duration": "5 days"},
                {"name": "Paracetamol", "dosage": "1g", "frequency": "PRN", "duration": "3 days"},
            ],
            "created_at": now,
        })
        store.set_list(PRESCRIPTIONS, prescriptions)

        master = store.get_list(MASTER_LISTS)
        if not any(m.get("list_type") == "Payment Modes" and m.get("name") == "Card" for m in master):
            master.append({
                "id": uuid.uuid4().hex,
                "list_type": "Payment Modes",
                "name": "Card",
                "active": True,
                "created_at": now,
            })
        store.set_list(MASTER_LISTS, master)

    try:
        store.atomic(_op)
    except StorageFullError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Seeded demo patient Jane Wanjiru (ID: {patient_id})")


@billing_group.command('invoices')
@click.option('--period', default='all', type=click.Choice(PERIODS), help='Reporting period')
@click.option('--query', default=None, help='Match patient name or invoice number')
@with_appcontext
def list_invoices(period, query):
    """List invoices with totals and status."""
    store = get_record_store()
    invoices = invoice_service.search_invoices(store, query=query, period=period)

    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo(f"\n{'Invoice':<10} {'Patient':<24} {'Total':>16} {'Paid':>16} {'Status':<10}")
    click.echo("-" * 80)
    for inv in invoices:
        click.echo(
            f"{inv.invoice_no:<10} {inv.patient_name[:24]:<24} "
            f"{format_money(inv.total_cents):>16} {format_money(inv.paid_cents):>16} {inv.status:<10}"
        )

    summary = reporting_service.billing_summary(store, period=period)
    click.echo("-" * 80)
    click.echo(
        f"Billed {format_money(summary['total_billed_cents'])} | "
        f"Paid {format_money(summary['total_paid_cents'])} | "
        f"Outstanding {format_money(summary['outstanding_cents'])}"
    )


@billing_group.command('history')
@click.argument('invoice_id', required=False)
@with_appcontext
def show_history(invoice_id):
    """Show billing history, newest first."""
    entries = billing_history_service.get_billing_history(get_record_store(), invoice_id)
    if not entries:
        click.echo("No history entries.")
        return
    for entry in entries:
        click.echo(f"{entry.timestamp}  {entry.invoice_no:<10} {entry.action:<16} {entry.details} ({entry.user})")


@billing_group.command('audit')
@click.option('--limit', default=20, type=int, help='Number of entries')
@click.option('--module', default=None, help='Filter by module')
@with_appcontext
def show_audit(limit, module):
    """Show the most recent audit entries."""
    entries = audit_service.get_audit_entries(get_record_store(), module=module, limit=limit)
    if not entries:
        click.echo("No audit entries.")
        return
    for entry in entries:
        click.echo(f"{entry.timestamp}  [{entry.module}] {entry.action}: {entry.details} ({entry.user})")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(billing_group)
