# Overview: Flask CLI command groups for bootstrap, tenants and the monthly statement job.

# backend/consignment/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--org "Shop Name"] [--org-code SHOP]
#   Idempotent bootstrap: creates the default organization and an owner user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
# - python -m flask orgs create --name "Second Shop" --code "SHOP2"
#
# Users:
# - python -m flask users create --org-id 1 --username clerk --email clerk@shop.local --password "Password123!" --role clerk
#
# Statements (schedule monthly, e.g. cron on the 1st at 02:00):
# - python -m flask statements generate-monthly
#   Generate statements for the previous calendar month.
# - python -m flask statements generate-monthly --year 2025 --month 11 [--org-id 1]

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, User
from .models.auth import ROLE_OWNER, VALID_ROLES
from .services.auth_service import create_user, AuthError
from .services.statement_service import generate_statements_for_month
from .time_utils import previous_month


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Shop', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@click.option('--password', default='Password123!', help='Owner password')
@with_appcontext
def init_system(org_name, org_code, password):
    """
    Create the default organization and its owner user.

    SECURITY: Change the owner password immediately in production!
    """
    click.echo("START Initializing consignment system...")

    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    existing = db.session.query(User).filter_by(org_id=org.id, username="owner").first()
    if existing:
        click.echo("WARN  User 'owner' already exists in org, skipping...")
    else:
        try:
            create_user(
                org_id=org.id,
                username="owner",
                email=f"owner@{org_code.lower()}.local",
                password=password,
                role=ROLE_OWNER,
            )
            click.echo(f"PASS Created user: owner (owner@{org_code.lower()}.local) with role 'owner'")
        except AuthError as e:
            click.echo(f"FAIL Failed to create owner: {e}")
            return

    click.echo("DONE Consignment system initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DANGER: Drop all tables and recreate schema."""
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# ORGANIZATION MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    orgs = db.session.query(Organization).order_by(Organization.id).all()
    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Consignors'}")
    for org in orgs:
        active_str = "Yes" if org.is_active else "No"
        click.echo(f"{org.id:<5} {org.name:<30} {org.code or '-':<15} {active_str:<8} {len(org.consignors)}")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_org_cli(name, code):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(name=name, code=code, is_active=True)
    db.session.add(org)
    db.session.commit()
    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--org-id', type=int, required=True)
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(VALID_ROLES), default='clerk', show_default=True)
@click.option('--consignor-id', type=int, default=None, help='Required for consignor portal users')
@with_appcontext
def create_user_cli(org_id, username, email, password, role, consignor_id):
    try:
        user = create_user(
            org_id=org_id,
            username=username,
            email=email,
            password=password,
            role=role,
            consignor_id=consignor_id,
        )
    except AuthError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


# =============================================================================
# STATEMENT JOB
# =============================================================================

@click.group('statements')
def statements_group():
    """Consignor statement commands."""


@statements_group.command('generate-monthly')
@click.option('--year', type=int, default=None, help='Defaults to the previous month')
@click.option('--month', type=click.IntRange(1, 12), default=None, help='1-12; defaults to the previous month')
@click.option('--org-id', type=int, default=None, help='Limit to one organization')
@with_appcontext
def generate_monthly_cli(year, month, org_id):
    """Generate statements for every active consignor for one month."""
    if (year is None) != (month is None):
        raise click.UsageError("--year and --month must be given together")
    if year is None:
        year, month = previous_month()

    current_app.logger.info("Starting monthly statement generation for %s-%02d", year, month)
    try:
        summary = generate_statements_for_month(year, month, org_id=org_id)
    except Exception:
        current_app.logger.exception("Monthly statement generation for %s-%02d failed", year, month)
        raise

    click.echo(
        f"PASS Generated {len(summary['statement_ids'])} statement(s) for "
        f"{summary['period_start']:%B %Y} ({len(summary['failed_consignor_ids'])} failed)"
    )
    if summary["failed_consignor_ids"]:
        click.echo(f"WARN  Failed consignor ids: {', '.join(map(str, summary['failed_consignor_ids']))}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(users_group)
    app.cli.add_command(statements_group)
