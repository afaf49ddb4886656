# Overview: Flask CLI command groups for bootstrap, salary runs and stock.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables if missing, default roles, permissions and a super employee.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Salary:
# - python -m flask salary generate [--period 2024-05]
#   Pay every active employee for the period (default: current month).
#
# Catalog and stock:
# - python -m flask catalog add-category "Beverages"
# - python -m flask stock receive ITM/2024/0 --qty 10 --cogs 1500
#   Receive stock for an item (by code) as a new lot.

import click
from flask.cli import with_appcontext

from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import Employee, Item
from .services import items_service, permission_service, salary_service, stock_service
from .services.auth_service import create_default_roles
from .services.employees_service import create_employee
from .validation import parse_money


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='super', help='Username for the first employee')
@click.option('--email', default='super@backoffice.local', help='Email for the first employee')
@click.option('--password', default='Password123', help='Password for the first employee')
@with_appcontext
def init_system(username, email, password):
    """Create default roles, permissions and a super employee."""
    click.echo("START Initializing back office...")
    db.create_all()

    roles = create_default_roles()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")

    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    existing = db.session.query(Employee).filter_by(username=username).first()
    if existing:
        click.echo(f"WARN  Employee '{username}' already exists, skipping...")
        return

    try:
        employee = create_employee(
            {"name": "Super", "username": username, "email": email, "password": password, "role": "super"}
        )
    except ValueError as e:
        click.echo(f"FAIL Failed to create employee '{username}': {e}")
        return

    click.echo(f"PASS Created employee: {employee.username} ({employee.code}) with role 'super'")
    click.echo("\nDefault credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   {username} / {password}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DANGER: Drop all tables and recreate schema. This will DELETE ALL DATA!"""
    if not yes:
        click.confirm("This will delete ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('salary')
def salary_group():
    """Monthly salary runs."""


@salary_group.command('generate')
@click.option('--period', default=None, help='Salary period as YYYY-MM (default: current month)')
@with_appcontext
def generate_salary(period):
    """Create salary rows and pay out commission balances."""
    try:
        salaries = salary_service.generate_salaries(period=period)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="--period")

    if not salaries:
        click.echo("No salaries generated (everyone already paid for this period).")
        return

    click.echo(f"\n{'Employee':<10} {'Basic':>14} {'Commission':>14} {'Total':>14}")
    click.echo("-" * 56)
    for salary in salaries:
        click.echo(
            f"{salary.employee_id:<10} {salary.basic_salary:>14} {salary.sales_commission:>14} {salary.total_salary:>14}"
        )
    click.echo(f"\nPASS Generated {len(salaries)} salaries for {salaries[0].period}")


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('add-category')
@click.argument('name')
@with_appcontext
def add_category(name):
    try:
        category = items_service.create_category(name)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created category: {category.name} (ID: {category.id})")


@click.group('stock')
def stock_group():
    """Stock commands."""


@stock_group.command('receive')
@click.argument('item_code')
@click.option('--qty', type=int, required=True, help='Units received')
@click.option('--cogs', required=True, help='Unit cost of the lot')
@click.option('--note', default=None)
@with_appcontext
def receive_stock(item_code, qty, cogs, note):
    """Receive stock for an item as a new lot."""
    item = db.session.query(Item).filter_by(code=item_code, deleted_at=None).first()
    if item is None:
        raise click.ClickException(f"Item {item_code} not found")

    try:
        lot = stock_service.receive_stock(item_id=item.id, cogs=parse_money(cogs, "cogs"), qty=qty, note=note)
    except (ValidationError, NotFoundError) as e:
        raise click.ClickException(str(e))

    click.echo(
        f"PASS Received {qty} units of {item.name} into lot {lot.id}; on hand: {stock_service.get_stock_count(item.id)}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(salary_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
