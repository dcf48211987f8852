# Overview: Flask CLI command groups for bootstrap, ledger checks, and reports.

# backend/stocktrack/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stocktrack (PowerShell: $env:FLASK_APP="stocktrack").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger:
# - python -m flask stock reconcile
#   Compare cached qty_in_stock with SUM(in) - SUM(out); exits 1 on divergence.
#
# Reports:
# - python -m flask reports daily [--as-of 2026-10-18T12:00:00Z]
# - python -m flask reports inventory-value

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import reporting_service, stock_service


def _echo_json(payload) -> None:
    # Decimal and date values are rendered as strings
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('stock')
def stock_group():
    """Stock ledger inspection commands."""


@stock_group.command('reconcile')
@with_appcontext
def reconcile():
    """Check qty_in_stock against the movement history for every product."""
    discrepancies = stock_service.reconcile_stock()
    if not discrepancies:
        click.echo("PASS Stock ledger is consistent.")
        return

    click.echo(f"FAIL {len(discrepancies)} product(s) diverge from the ledger:")
    for d in discrepancies:
        click.echo(
            f"  - #{d['product_id']} {d['name']}: qty_in_stock={d['qty_in_stock']} "
            f"ledger={d['ledger_quantity']} (difference {d['difference']:+d})"
        )
    raise SystemExit(1)


@click.group('reports')
def reports_group():
    """Print reports as JSON."""


@reports_group.command('daily')
@click.option('--as-of', 'as_of', default=None, help='ISO-8601 instant inside the day to report (default: now)')
@with_appcontext
def daily(as_of):
    _echo_json(reporting_service.daily_report(as_of))


@reports_group.command('inventory-value')
@with_appcontext
def inventory_value():
    _echo_json(reporting_service.inventory_value_report())


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(reports_group)
