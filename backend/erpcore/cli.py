# Overview: Flask CLI command groups for bootstrap and tenant administration.

# backend/erpcore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` once migrations exist).
#
# Tenant management (MULTI-TENANT):
# - python -m flask tenants list
# - python -m flask tenants create --name "Acme Corp" --code ACME
# - python -m flask tenants set-setting --tenant ACME --key lowStockThreshold --value 25
#
# Users:
# - python -m flask users create --tenant ACME --email admin@acme.test --password "Password123!" --role ADMIN
#
# Reports:
# - python -m flask reports seed-system --tenant ACME
#   Create the built-in report definitions and the overview dashboard.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Tenant, User
from .permissions import Role
from .services import dashboard_service, report_service, tenant_service, user_service


def _tenant_by_code(code: str) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(code=code.strip().upper()).first()
    if tenant is None:
        raise click.ClickException(f"Tenant '{code}' not found")
    return tenant


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all database tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()
    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users'}")
    click.echo("=" * 70)
    for tenant in tenants:
        user_count = db.session.query(User).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code:<15} {active_str:<8} {user_count}")
    click.echo("=" * 70 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code used at login (unique)')
@with_appcontext
def create_tenant_cli(name, code):
    """Create a new tenant."""
    try:
        tenant = tenant_service.create_tenant(db.session, name=name, code=code)
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


@tenants_group.command('set-setting')
@click.option('--tenant', 'tenant_code', required=True, help='Tenant code')
@click.option('--key', required=True, help='Setting name, e.g. lowStockThreshold')
@click.option('--value', required=True, help='JSON value; plain text is stored as a string')
@with_appcontext
def set_setting_cli(tenant_code, key, value):
    """Set one tenant setting."""
    tenant = _tenant_by_code(tenant_code)
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    tenant_service.update_settings(db.session, tenant.id, {key: parsed})
    click.echo(f"PASS {tenant.code}: {key} = {parsed!r}")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--tenant', 'tenant_code', required=True, help='Tenant code')
@click.option('--email', prompt=True, help='Login email')
@click.option('--name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.ADMIN.value)
@with_appcontext
def create_user_cli(tenant_code, email, name, password, role):
    """Create a user in a tenant."""
    tenant = _tenant_by_code(tenant_code)
    try:
        user = user_service.create_user(
            db.session,
            tenant.id,
            {"email": email, "name": name, "password": password, "role": role},
            bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
        )
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.email} with role '{user.role}' in {tenant.code}")


@click.group('reports')
def reports_group():
    """Report definition commands."""


@reports_group.command('seed-system')
@click.option('--tenant', 'tenant_code', required=True, help='Tenant code')
@with_appcontext
def seed_system_cli(tenant_code):
    """Create the built-in reports and overview dashboard for a tenant."""
    tenant = _tenant_by_code(tenant_code)
    reports = report_service.seed_system_reports(db.session, tenant.id)
    dashboard = dashboard_service.seed_system_dashboard(db.session, tenant.id)
    click.echo(f"PASS Created {len(reports)} system report(s)")
    click.echo("PASS Created system dashboard" if dashboard else "SKIP System dashboard already exists")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(reports_group)
