# Overview: Flask CLI command groups for bootstrap, user management, and CSV imports.

# backend/bizsight/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent) and the upload folder.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --retention-days 30
#   Delete expired or revoked session tokens older than the retention window.
#
# Users:
# - python -m flask users create --full-name "Jane Doe" --username jane --email jane@example.com --mobile 5551234567
#   Create a user (prompts for the password).
# - python -m flask users list
#
# CSV imports (same pipeline as the upload endpoints):
# - python -m flask imports inventory jane products.csv
# - python -m flask imports sales jane sales.csv

import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import import_service, session_service
from .services.auth_service import create_user, PasswordValidationError, RegistrationError
from .services.csv_extractor import CsvStreamError


@click.group('system')
def system_group():
    """Database and filesystem setup."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables and the CSV upload folder."""
    click.echo("START Initializing BizSight...")
    db.create_all()
    click.echo("PASS Database tables ready")

    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    click.echo(f"PASS Upload folder ready: {folder}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. All users, products and sales are lost."""
    if not yes:
        click.confirm("WARN Every user, product and sale will be erased. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete")


@system_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(retention_days):
    """Purge dead session tokens older than --retention-days."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session tokens")


@click.group('users')
def users_group():
    """Account administration."""


@users_group.command('create')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--mobile', 'mobile_number', prompt=True, help='10-digit mobile number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(full_name, username, email, mobile_number, password):
    """Register an account, same rules as POST /api/auth/register."""
    try:
        user = create_user(
            full_name=full_name,
            username=username,
            email=email,
            password=password,
            mobile_number=mobile_number,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        raise SystemExit(1)
    except RegistrationError as e:
        click.echo(f"FAIL Failed to create user: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} ({user.email}) ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """Print every account with its product count."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    rule = "-" * 88
    click.echo(rule)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Mobile':<12} {'Active':<8} Products")
    click.echo(rule)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.email:<30} {user.mobile_number:<12} "
            f"{'yes' if user.is_active else 'no':<8} {len(user.products)}"
        )
    click.echo(rule)


@click.group('imports')
def imports_group():
    """Run CSV imports from the command line."""


def _run_cli_import(import_type: str, username: str, csv_file: str) -> None:
    user = db.session.query(User).filter_by(username=username.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        raise SystemExit(1)

    try:
        with open(csv_file, "rb") as stream:
            outcome = import_service.run_import(import_type, user_id=user.id, stream=stream)
    except CsvStreamError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)

    label = "PASS" if outcome.outcome == "full_success" else "WARN" if outcome.processed_count else "FAIL"
    click.echo(f"{label} {outcome.message}")
    for error in outcome.errors:
        click.echo(f"     row {error.row_number} [{error.stage}] {error.reason}")

    if outcome.http_status == 400:
        raise SystemExit(1)


@imports_group.command('inventory')
@click.argument('username')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_inventory_cli(username, csv_file):
    """Create/update USERNAME's products from CSV_FILE."""
    _run_cli_import("inventory", username, csv_file)


@imports_group.command('sales')
@click.argument('username')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_sales_cli(username, csv_file):
    """Record USERNAME's sales from CSV_FILE."""
    _run_cli_import("sales", username, csv_file)


def register_commands(app):
    """Attach the system, users and imports groups to app.cli."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(imports_group)
