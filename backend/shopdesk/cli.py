# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopdesk/cli.py
# Commands Legend (run from the repository root):
# Prereqs:
# - Activate your virtualenv and `pip install -e .`.
# - Set FLASK_APP to shopdesk (PowerShell: $env:FLASK_APP="shopdesk").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-password "Password123"]
#   Idempotent bootstrap: creates tables and the default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --email admin@shopdesk.local --password "Password123" --role admin
#   Create a user (prompts if options are omitted).
#
# Currency:
# - python -m flask currency rates [--base USD]
#   Fetch live rates (fallback table when the API is unreachable).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES
from .services.auth_service import PasswordValidationError
from .services.currency_service import fetch_currency_rates
from .services.user_service import add_user, UserError


DEFAULT_PASSWORD = "Password123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-password', default=DEFAULT_PASSWORD, help='Password for the default users')
@with_appcontext
def init_system(admin_password):
    """
    Initialize ShopDesk: create tables and one default user per role.

    Users: admin, cashier, stock, viewer (<name>@shopdesk.local).
    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing ShopDesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    for role in ROLES:
        existing = db.session.query(User).filter_by(username=role).first()
        if existing:
            click.echo(f"WARN  User '{role}' already exists, skipping...")
            continue
        try:
            add_user(
                username=role,
                email=f"{role}@shopdesk.local",
                password=admin_password,
                role=role,
                display_name=role.capitalize(),
            )
            click.echo(f"PASS Created user: {role} with role '{role}'")
        except (PasswordValidationError, UserError) as e:
            click.echo(f"FAIL Failed to create user '{role}': {e}")

    click.echo("\nDONE ShopDesk initialized. Change the default passwords!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), prompt=True)
@click.option('--display-name', default=None)
@with_appcontext
def create_user_command(username, email, password, role, display_name):
    """Create a user."""
    try:
        user = add_user(
            username=username,
            email=email,
            password=password,
            role=role,
            display_name=display_name,
        )
    except (PasswordValidationError, UserError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('currency')
def currency_group():
    """Exchange rate commands."""


@currency_group.command('rates')
@click.option('--base', default='USD', help='Base currency')
@with_appcontext
def show_rates(base):
    """Print fetched rates."""
    base = base.upper()
    symbols = [c for c in ("USD", "EGP", "AED") if c != base]
    for rate in fetch_currency_rates(base=base, symbols=symbols):
        click.echo(f"{rate.from_currency} -> {rate.to_currency}: {rate.rate:.4f}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(currency_group)
