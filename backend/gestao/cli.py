# Overview: Flask CLI command groups for bootstrap, user setup, and consistency audits.

# backend/gestao/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent: creates missing tables and the default roles (admin, finance, seller, production).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --uid abc123 --email ana@example.com --name "Ana" --role admin
#   Register a user known to the upstream auth provider.
# - python -m flask users list
#   List users with their role and status.
#
# Audits (exit code 1 when any record is inconsistent):
# - python -m flask audit stock
#   Replay every product's stock movements against its cached quantity.
# - python -m flask audit accounts
#   Replay every bank account's movements against its cached balance.

import click
from flask.cli import with_appcontext

from .errors import CoreError
from .extensions import db
from .models import User
from .permissions import DEFAULT_ROLES
from .services import identity_service, ledger_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables (if missing) and the default roles."""
    click.echo("START Initializing gestao backend...")
    db.create_all()
    click.echo("PASS Schema ready")

    created = identity_service.ensure_default_roles()
    for role in created:
        click.echo(f"PASS Created role: {role.name}")
    if not created:
        click.echo("PASS Default roles already present")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to create roles.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--uid', prompt=True, help='Identifier issued by the auth provider')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', 'display_name', default=None, help='Display name stamped on documents')
@click.option('--role', type=click.Choice(sorted(DEFAULT_ROLES)), default=None, help='Role')
@with_appcontext
def create_user_cli(uid, email, display_name, role):
    """Create a user."""
    try:
        user = identity_service.create_user(
            uid=uid,
            email=email,
            display_name=display_name,
            role_name=role,
        )
    except CoreError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.uid} ({user.email}) role={role or 'none'}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'UID':<24} {'Email':<30} {'Status':<10} {'Role'}")
    click.echo("="*90)

    for user in users:
        role_name = user.role.name if user.role else "none"
        click.echo(f"{user.id:<5} {user.uid:<24} {user.email:<30} {user.status:<10} {role_name}")

    click.echo("="*90 + "\n")


@click.group('audit')
def audit_group():
    """Consistency audits over the movement logs."""


@audit_group.command('stock')
@with_appcontext
def audit_stock_cli():
    """Replay stock movements for every product."""
    failures = 0
    for row in stock_service.audit_stock():
        if row["consistent"]:
            click.echo(f"PASS product {row['product_id']} {row['name']}: {row['cached_quantity']}")
        else:
            failures += 1
            click.echo(
                f"FAIL product {row['product_id']} {row['name']}: "
                f"cached={row['cached_quantity']} replayed={row['replayed_quantity']}"
            )

    if failures:
        click.echo(f"FAIL {failures} product(s) out of sync")
        raise SystemExit(1)
    click.echo("PASS Stock consistent")


@audit_group.command('accounts')
@with_appcontext
def audit_accounts_cli():
    """Replay bank movements for every account."""
    failures = 0
    for row in ledger_service.audit_accounts():
        if row["consistent"]:
            click.echo(f"PASS account {row['account_id']} {row['name']}: {row['balance_cents']}")
        else:
            failures += 1
            click.echo(
                f"FAIL account {row['account_id']} {row['name']}: "
                f"balance={row['balance_cents']} replayed={row['replayed_balance_cents']} "
                f"chain_ok={row['chain_ok']}"
            )

    if failures:
        click.echo(f"FAIL {failures} account(s) out of sync")
        raise SystemExit(1)
    click.echo("PASS Accounts consistent")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(audit_group)
