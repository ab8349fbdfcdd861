# Overview: Flask CLI command groups for bootstrap, inspection, and day recovery.

# backend/pubpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app pubpos <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app pubpos system init
#   Create all tables (idempotent).
# - flask --app pubpos system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Staff:
# - flask --app pubpos staff list
#   List staff members and whether they have a PIN.
# - flask --app pubpos staff create --name "Ana" --pin 1234
#   Create a staff member (PIN optional).
#
# Trading day:
# - flask --app pubpos day status
#   Show the active session, if any.
# - flask --app pubpos day history --limit 10
#   List closed sessions, newest first.
# - flask --app pubpos day recover 2024-01-15 [--staff-id 1]
#   Create a closing for a date whose close was missed.
#
# Products:
# - flask --app pubpos products low-stock
#   List products at or below their low-stock threshold.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.money import format_cents
from .services import day_session_service, inventory_service, staff_service
from .services.errors import DomainError
from .time_utils import parse_iso_date
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables. Safe to run repeatedly."""
    db.create_all()
    click.echo("PASS Database schema ready.")


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


@click.group('staff')
def staff_group():
    """Staff inspection and bootstrap."""


@staff_group.command('list')
@with_appcontext
def list_staff():
    staff = staff_service.list_staff()
    if not staff:
        click.echo("No staff members.")
        return
    for member in staff:
        pin = "PIN" if member.has_pin else "no PIN"
        click.echo(f"{member.id:>4}  {member.name}  ({pin})")


@staff_group.command('create')
@click.option('--name', prompt=True, help='Display name (unique)')
@click.option('--pin', default='', help='Optional 4-8 digit PIN')
@with_appcontext
def create_staff(name, pin):
    try:
        member = staff_service.create_staff(name, pin or None)
    except (DomainError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created staff member {member.name} (ID: {member.id})")


@click.group('day')
def day_group():
    """Trading-day inspection and recovery."""


@day_group.command('status')
@with_appcontext
def day_status():
    session = day_session_service.get_active_session()
    if not session:
        click.echo("No active day.")
        return
    click.echo(
        f"Active session {session.id} for {session.date} "
        f"started {session.started_at:%Y-%m-%d %H:%M} UTC by staff {session.started_by}"
    )


@day_group.command('history')
@click.option('--limit', type=int, default=None, help='Max sessions to show')
@with_appcontext
def day_history(limit):
    sessions = day_session_service.get_sales_history(limit)
    if not sessions:
        click.echo("No closed days yet.")
        return
    for session in sessions:
        flag = " (recovered)" if session.is_recovery else ""
        click.echo(
            f"{session.id:>4}  {session.date}  orders={session.total_orders}  "
            f"revenue={format_cents(session.total_revenue_cents)}{flag}"
        )


@day_group.command('recover')
@click.argument('date')
@click.option('--staff-id', type=int, default=None, help='Staff credited with the closing')
@with_appcontext
def day_recover(date, staff_id):
    """Create the missing closing for DATE (YYYY-MM-DD)."""
    try:
        day = parse_iso_date(date)
    except ValueError:
        raise click.BadParameter("DATE must be YYYY-MM-DD")
    if day is None:
        raise click.BadParameter("DATE must be YYYY-MM-DD")
    try:
        session = day_session_service.create_day_closing_for_date(day, staff_id)
    except (DomainError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(
        f"PASS Recovered {session.date}: {session.total_orders} orders, "
        f"revenue {format_cents(session.total_revenue_cents)} (session {session.id})"
    )


@click.group('products')
def products_group():
    """Product inspection."""


@products_group.command('low-stock')
@with_appcontext
def low_stock():
    products = inventory_service.list_below_threshold()
    if not products:
        click.echo("All products above threshold.")
        return
    for product in products:
        click.echo(f"{product.id:>4}  {product.name}  qty={product.quantity}  threshold={product.low_stock_threshold}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(staff_group)
    app.cli.add_command(day_group)
    app.cli.add_command(products_group)
