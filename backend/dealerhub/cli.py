# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/dealerhub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (no data is touched).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Account inspection/bootstrap:
# - python -m flask accounts create-admin
#   Create a root Admin (prompts for profile fields and password).
# - python -m flask accounts list [--role Distributor]
#   List accounts with role, balance and status.
#
# Code maintenance:
# - python -m flask codes reconcile
#   Report accounts whose balance differs from their available-code count.

import click
from flask.cli import with_appcontext

from .errors import CodeBalanceError
from .extensions import db
from .models import Account
from .permissions import Role, parse_role
from .services.account_service import create_root_admin
from .services.code_registry import reconcile_balances
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready. Run 'python -m flask accounts create-admin' to add the first Admin.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask accounts create-admin' to bootstrap.")


@click.group('accounts')
def accounts_group():
    """Account inspection and bootstrap commands."""


@accounts_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--mobile-number', prompt=True, help='Mobile number (login id)')
@click.option('--address', prompt=True, help='Postal address')
@click.option('--shop-name', prompt=True, help='Shop name')
@click.option('--dealer-code', prompt=True, help='Dealer code')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, mobile_number, address, shop_name, dealer_code, password):
    """
    Create a root Admin account (no creator).

    Admins generate codes when assigning, so their balance is display-only.
    """
    payload = {
        "name": name,
        "email": email,
        "mobile_number": mobile_number,
        "address": address,
        "shop_name": shop_name,
        "dealer_code": dealer_code,
    }
    try:
        account = create_root_admin(payload, password)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Could not create Admin: {e}")
        return
    except CodeBalanceError as e:
        click.echo(f"FAIL Could not create Admin ({e.kind.value}): {e.message}")
        return

    click.echo(f"PASS Created Admin: {account.name} ({account.email})")
    click.echo(f"     Account ID: {account.id}")
    click.echo(f"     Login with mobile number {account.mobile_number}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@accounts_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Filter by role')
@with_appcontext
def list_accounts(role):
    """List all accounts with role, balance and status."""
    query = db.session.query(Account)

    if role:
        query = query.filter_by(role=parse_role(role).value)

    accounts = query.order_by(Account.created_at, Account.id).all()

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<34} {'Role':<12} {'Name':<20} {'Mobile':<14} {'Balance':>8} {'Status':<10}")
    click.echo("="*110)

    for account in accounts:
        click.echo(
            f"{account.id:<34} {account.role:<12} {account.name[:20]:<20} "
            f"{account.mobile_number:<14} {account.balance:>8} {account.status:<10}"
        )

    click.echo("="*110 + "\n")


@click.group('codes')
def codes_group():
    """Code inventory commands."""


@codes_group.command('reconcile')
@with_appcontext
def reconcile_codes_cli():
    """
    Compare balances against owned codes.

    Admin balances are display-only and are skipped. Codes whose owner was
    deleted are listed separately.
    """
    report = reconcile_balances()

    if not report["drifted"]:
        click.echo("PASS Every balance matches its available-code count.")
    for row in report["drifted"]:
        click.echo(
            f"FAIL {row['account_id']} ({row['role']}): balance {row['balance']}, "
            f"available codes {row['available_codes']}"
        )

    for row in report["orphaned"]:
        click.echo(f"WARN {row['available_codes']} available codes owned by deleted account {row['owner_id']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(codes_group)
