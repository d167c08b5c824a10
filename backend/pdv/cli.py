# Overview: Flask CLI commands for bootstrap and account administration.

# backend/pdv/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <command> [options]
#
# Bootstrap:
# - python -m flask db-init
#   Create all tables (idempotent). Use Flask-Migrate (flask db upgrade) for schema changes.
# - python -m flask db-init --drop --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask create-admin --name "Admin" --email admin@pdv.local --password "Password123!"
#   Create a platform administrator (prompts if options are omitted).
#
# Accounts (tenants):
# - python -m flask accounts list [--status trial]
#   List owner accounts with payment status and trial end.
# - python -m flask accounts set-status 3 paid
#   Change one account's payment status (pending/cancelled also revokes its sessions).

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import Owner
from .models.tenancy import OWNER_PAYMENT_STATUSES
from .services import system_service
from .services.auth_service import email_in_use, hash_password
from .time_utils import to_utc_z


@click.command("db-init")
@click.option("--drop", is_flag=True, help="Drop all tables first")
@click.option("--yes", is_flag=True, help="Confirm destructive operation")
@with_appcontext
def db_init(drop, yes):
    """Create database tables."""
    if drop:
        if not yes:
            click.echo("FAIL Refusing to drop tables without --yes")
            raise SystemExit(1)
        db.drop_all()
        click.echo("PASS Dropped all tables")

    db.create_all()
    click.echo("PASS Database tables created")


@click.command("create-admin")
@click.option("--name", prompt=True, help="Administrator display name")
@click.option("--email", prompt=True, help="Login email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password")
@with_appcontext
def create_admin(name, email, password):
    """
    Create a platform administrator.

    Administrators are owner accounts with is_admin set and status 'paid';
    they are never blocked by trial or payment checks.
    """
    email = email.strip().lower()
    if email_in_use(db.session, email):
        click.echo(f"FAIL Email already registered: {email}")
        raise SystemExit(1)

    try:
        password_hash = hash_password(password)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    admin = Owner(
        name=name.strip(),
        email=email,
        password_hash=password_hash,
        payment_status="paid",
        is_admin=True,
    )
    db.session.add(admin)
    db.session.commit()
    click.echo(f"PASS Created administrator {admin.email} (ID: {admin.id})")


@click.group("accounts")
def accounts_group():
    """Owner account (tenant) administration."""


@accounts_group.command("list")
@click.option("--status", type=click.Choice(OWNER_PAYMENT_STATUSES), help="Filter by payment status")
@with_appcontext
def list_accounts(status):
    """List owner accounts."""
    owners = system_service.list_owners(db.session, payment_status=status)

    if not owners:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Status':<10} {'Admin':<6} {'Trial ends'}")
    click.echo("=" * 100)

    for owner in owners:
        admin_str = "Yes" if owner.is_admin else "No"
        trial_str = to_utc_z(owner.trial_ends_at) or "-"
        click.echo(
            f"{owner.id:<5} {owner.name[:24]:<25} {owner.email[:34]:<35} "
            f"{owner.payment_status:<10} {admin_str:<6} {trial_str}"
        )

    click.echo("=" * 100)
    click.echo(f"Total: {len(owners)} account(s)\n")


@accounts_group.command("set-status")
@click.argument("owner_id", type=int)
@click.argument("payment_status", type=click.Choice(OWNER_PAYMENT_STATUSES))
@with_appcontext
def set_account_status(owner_id, payment_status):
    """Change an account's payment status."""
    try:
        owner = system_service.get_owner(db.session, owner_id)
    except DomainError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    system_service.set_payment_status(db.session, [owner.id], payment_status)
    click.echo(f"PASS Account {owner.email} is now '{payment_status}'")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_init)
    app.cli.add_command(create_admin)
    app.cli.add_command(accounts_group)
