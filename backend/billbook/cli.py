# Overview: Flask CLI command groups for bootstrap, sync and reports.

# backend/billbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the company config row and the admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Cloud sync:
# - python -m flask sync status
# - python -m flask sync link --token <access token>
# - python -m flask sync push
# - python -m flask sync pull
#   Replaces local data with the shared document.
#
# Reports:
# - python -m flask reports gst --year 2025 [--month 4 | --quarter 2]

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services.auth_service import ensure_default_admin
from .services.report_service import gst_summary
from .services.settings_service import get_company_config, get_sync_session


def _echo_result(result) -> None:
    if result.ok:
        click.echo(f"PASS {json.dumps(result.value, default=str)}")
    else:
        click.echo(f"FAIL {result.error}: {result.message}")
        raise SystemExit(1)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables, the company config and sync session rows, and the
    default admin user (password from DEFAULT_ADMIN_PASSWORD).

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing billbook...")
    db.create_all()

    config = get_company_config()
    get_sync_session()
    db.session.commit()
    click.echo(f"PASS Company config ready (next invoice sequence {config.invoice_sequence})")

    admin = ensure_default_admin()
    click.echo(f"PASS Admin user: {admin.username}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('sync')
def sync_group():
    """Cloud sync commands."""


@sync_group.command('status')
@with_appcontext
def sync_status():
    click.echo(json.dumps(current_app.extensions["sync"].status(), indent=2))


@sync_group.command('link')
@click.option('--token', required=True, help='OAuth access token with Drive scope')
@with_appcontext
def sync_link(token):
    _echo_result(current_app.extensions["sync"].link(token))


@sync_group.command('push')
@with_appcontext
def sync_push():
    session = get_sync_session()
    if not session.cloud_enabled:
        click.echo("WARN  Cloud mode is off; nothing pushed")
        return
    _echo_result(current_app.extensions["sync"].push_now())


@sync_group.command('pull')
@with_appcontext
def sync_pull():
    _echo_result(current_app.extensions["sync"].pull())


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('gst')
@click.option('--year', type=int, required=True)
@click.option('--month', type=click.IntRange(1, 12), default=None)
@click.option('--quarter', type=click.IntRange(1, 4), default=None)
@with_appcontext
def reports_gst(year, month, quarter):
    """Print the GST summary for a month, quarter or year."""
    if month and quarter:
        raise click.UsageError("Use either --month or --quarter")
    summary = gst_summary(year, month=month, quarter=quarter)
    click.echo(f"Period:         {summary['period']}")
    click.echo(f"Invoices:       {summary['invoice_count']}")
    click.echo(f"Taxable value:  {summary['taxable_value']}")
    click.echo(f"CGST:           {summary['cgst']}")
    click.echo(f"SGST:           {summary['sgst']}")
    click.echo(f"IGST:           {summary['igst']}")
    click.echo(f"Total tax:      {summary['total_tax']}")
    click.echo(f"Grand total:    {summary['total_amount']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sync_group)
    app.cli.add_command(reports_group)
