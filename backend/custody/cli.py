# Overview: Flask CLI command groups for bootstrap, custody operations, and inspection.

# backend/custody/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username jdoe --first-name Jane --last-name Doe --email jdoe@example.com --password "Password123!"
# - python -m flask users grant jdoe units edit
#
# Units:
# - python -m flask units list [--status deployed]
# - python -m flask units create --tag A-001 --name "Laptop 14"
# - python -m flask units checkout A-001 jdoe [--due 2025-01-01] [--note "..."]
# - python -m flask units checkin A-001
# - python -m flask units mark-overdue [--as-of 2025-01-01]
#   Batch job: flag deployed units past their expected return date.
# - python -m flask units verify
#   Report units that break the custody invariant.
#
# Licenses / consumables:
# - python -m flask licenses assign 3 "jdoe@example.com" [--serial X]
# - python -m flask licenses seats
# - python -m flask consumables assign 5 "Front desk" --quantity 3
# - python -m flask consumables return 12
# - python -m flask consumables low-stock
#
# Reporting:
# - python -m flask stats units
# - python -m flask activity list [--user jdoe] [--unit A-001] [--limit 50]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Unit, UnitStatus, User
from .services import (
    activity_service,
    consumable_service,
    license_service,
    stats_service,
    unit_service,
    user_service,
)
from .services.results import LifecycleResult
from .time_utils import parse_iso_date
from .validation import ConflictError, ValidationError, coerce_quantity


def _parse_date_option(value, option_name):
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter(f"{option_name} must be YYYY-MM-DD")


def _require_unit(tag: str) -> Unit:
    unit = unit_service.get_unit_by_tag(tag)
    if unit is None:
        raise click.ClickException(f"Unit '{tag}' not found")
    return unit


def _require_user(username: str) -> User:
    user = user_service.get_user_by_username(username)
    if user is None:
        raise click.ClickException(f"User '{username}' not found")
    return user


def _report(result: LifecycleResult, success_message: str) -> None:
    if result.ok:
        click.echo(f"PASS {success_message}")
    else:
        click.echo(f"FAIL [{result.failure.value}] {result.message}")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (safe to run repeatedly)."""
    db.create_all()
    click.echo("PASS Tables created/verified")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.username.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        admin = " [admin]" if user.is_admin else ""
        click.echo(f"{user.id:>5}  {user.username:<20} {user.display_name}{admin}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--department', default=None)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--admin', 'is_admin', is_flag=True, help='Grant all permissions')
@with_appcontext
def create_user(username, first_name, last_name, email, department, password, is_admin):
    payload = {
        "username": username,
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "department": department,
        "is_admin": is_admin,
    }
    try:
        user = user_service.create_user(payload, password)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id})")


@users_group.command('grant')
@click.argument('username')
@click.argument('resource')
@click.argument('action')
@click.option('--revoke', is_flag=True, help='Remove instead of grant')
@with_appcontext
def grant_permission(username, resource, action, revoke):
    user = _require_user(username)
    try:
        user_service.set_permission(user.id, resource, action, not revoke)
    except ValidationError as e:
        raise click.ClickException(str(e))
    verb = "Revoked" if revoke else "Granted"
    click.echo(f"PASS {verb} {resource}.{action} for {username}")


@click.group('units')
def units_group():
    """Unit custody operations."""


@units_group.command('list')
@click.option('--status', type=click.Choice([s.value for s in UnitStatus]), default=None)
@with_appcontext
def list_units(status):
    q = db.session.query(Unit).order_by(Unit.tag.asc())
    if status:
        q = q.filter(Unit.status == UnitStatus(status))
    units = q.all()
    if not units:
        click.echo("No units found")
        return
    for unit in units:
        holder = f" -> user {unit.holder_id}" if unit.holder_id else ""
        click.echo(f"{unit.tag:<16} {unit.status.value:<10} {unit.name}{holder}")


@units_group.command('create')
@click.option('--tag', required=True)
@click.option('--name', required=True)
@click.option('--category', default=None)
@click.option('--serial', default=None)
@with_appcontext
def create_unit(tag, name, category, serial):
    try:
        unit = unit_service.create_unit(
            {"tag": tag, "name": name, "category": category, "serial": serial}
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created unit {unit.tag} (ID: {unit.id})")


@units_group.command('checkout')
@click.argument('tag')
@click.argument('username')
@click.option('--due', default=None, help='Expected return date (YYYY-MM-DD)')
@click.option('--note', default=None)
@with_appcontext
def checkout_unit(tag, username, due, note):
    unit = _require_unit(tag)
    user = _require_user(username)
    expected = _parse_date_option(due, "--due")
    result = unit_service.checkout_unit(unit.id, user.id, expected, note)
    _report(result, f"{tag} checked out to {username}")


@units_group.command('checkin')
@click.argument('tag')
@click.option('--note', default=None)
@with_appcontext
def checkin_unit(tag, note):
    unit = _require_unit(tag)
    result = unit_service.checkin_unit(unit.id, note)
    if result.ok:
        click.echo(f"PASS {tag} checked in")
    else:
        click.echo(f"WARN  Nothing to check in: {result.message}")


@units_group.command('mark-overdue')
@click.option('--as-of', 'as_of', default=None, help='Cutoff date (YYYY-MM-DD), default today')
@with_appcontext
def mark_overdue(as_of):
    cutoff = _parse_date_option(as_of, "--as-of")
    flagged = unit_service.mark_overdue_units(cutoff)
    for unit in flagged:
        click.echo(f"OVERDUE {unit.tag} (holder {unit.holder_id}, due {unit.expected_return_date})")
    click.echo(f"PASS {len(flagged)} unit(s) marked overdue")


@units_group.command('verify')
@with_appcontext
def verify_units():
    """Report units whose custody fields disagree with their status."""
    bad = 0
    for unit in db.session.query(Unit).order_by(Unit.id.asc()).all():
        for problem in unit_service.custody_violations(unit):
            bad += 1
            click.echo(f"FAIL {unit.tag}: {problem}")
    if bad:
        raise click.ClickException(f"{bad} custody violation(s) found")
    click.echo("PASS All units consistent")


@click.group('licenses')
def licenses_group():
    """License seat operations."""


@licenses_group.command('assign')
@click.argument('license_id', type=int)
@click.argument('assignee')
@click.option('--serial', default=None)
@click.option('--note', default=None)
@with_appcontext
def assign_seat(license_id, assignee, serial, note):
    try:
        result = license_service.assign_seat(license_id, assignee, serial, note)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    _report(result, f"Seat of license {license_id} assigned to {assignee}")


@licenses_group.command('seats')
@with_appcontext
def seat_usage():
    for row in stats_service.license_seat_stats():
        click.echo(f"{row['license_id']:>5}  {row['name']:<30} {row['in_use']}/{row['seats']} in use")


@click.group('consumables')
def consumables_group():
    """Consumable stock operations."""


@consumables_group.command('assign')
@click.argument('consumable_id', type=int)
@click.argument('assignee')
@click.option('--quantity', default="1", help='Units to hand out')
@click.option('--serial', default=None)
@click.option('--external-id', default=None)
@click.option('--note', default=None)
@with_appcontext
def assign_stock(consumable_id, assignee, quantity, serial, external_id, note):
    try:
        qty = coerce_quantity(quantity)
        result = consumable_service.assign_stock(
            consumable_id, assignee, qty, serial, external_id, note
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    _report(result, f"{qty} of consumable {consumable_id} assigned to {assignee}")


@consumables_group.command('return')
@click.argument('assignment_id', type=int)
@with_appcontext
def return_stock(assignment_id):
    result = consumable_service.return_stock(assignment_id)
    _report(result, f"Assignment {assignment_id} returned")


@consumables_group.command('low-stock')
@with_appcontext
def low_stock():
    rows = stats_service.low_stock_consumables()
    if not rows:
        click.echo("PASS No consumables below minimum")
        return
    for c in rows:
        click.echo(f"LOW {c.name}: {c.quantity} on hand (min {c.min_quantity})")


@click.group('stats')
def stats_group():
    """Read-only summaries."""


@stats_group.command('units')
@with_appcontext
def unit_stats():
    stats = stats_service.unit_stats()
    for key in ("total", "checked_out", "available", "pending", "overdue", "archived"):
        click.echo(f"{key:<12} {stats[key]}")


@click.group('activity')
def activity_group():
    """Activity ledger inspection."""


@activity_group.command('list')
@click.option('--user', 'username', default=None)
@click.option('--unit', 'tag', default=None)
@click.option('--limit', default=50, type=int)
@with_appcontext
def list_activity(username, tag, limit):
    if username:
        rows = activity_service.list_by_user(_require_user(username).id)
    elif tag:
        rows = activity_service.list_by_item(_require_unit(tag).id, "unit")
    else:
        rows = activity_service.list_activities()
    for activity in rows[-limit:]:
        d = activity.to_dict()
        click.echo(
            f"#{d['sequence']:<6} {d['timestamp']} {d['action']:<8} "
            f"{d['item_type']}:{d['item_id']} user={d['user_id']} {d['notes'] or ''}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(units_group)
    app.cli.add_command(licenses_group)
    app.cli.add_command(consumables_group)
    app.cli.add_command(stats_group)
    app.cli.add_command(activity_group)
