# Overview: Flask CLI command groups for bootstrap, users, and operator actions on expenses.

# backend/expenseflow/cli.py
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
# Users (directory data, normally synced from the HR system):
# - python -m flask users create --login ivanov --full-name "Иванов И." --role director --company-id 1 --telegram-id 123
# - python -m flask users list [--company-id 1]
#
# Expenses (operator actions, run through the lifecycle engine):
# - python -m flask expenses list --company-id 1 [--status pending]
# - python -m flask expenses approve 42 --actor-id 2 [--comment "ok"]
# - python -m flask expenses decline 42 --actor-id 2 [--reason "no budget"]
# - python -m flask expenses issue 42 --actor-id 3 [--amount 80000]

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .enums import ExpenseStatus, Role
from .models import User
from .services.messages import format_amount
from .time_utils import format_local
from . import get_engine


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('users')
def users_group():
    """User directory inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--login', prompt=True, help='Unique login')
@click.option('--full-name', default=None, help='Display name')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@click.option('--company-id', type=int, prompt=True, help='Company ID')
@click.option('--telegram-id', type=int, default=None, help='Telegram chat id (delivery address)')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(login, full_name, role, company_id, telegram_id, phone):
    """Create a directory user."""
    user = User(
        login=login,
        full_name=full_name,
        role=role,
        company_id=company_id,
        telegram_id=telegram_id,
        phone=phone,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        click.echo(f"FAIL User '{login}' already exists")
        return

    click.echo(f"PASS Created user: {login} (ID: {user.id}) with role '{role}'")
    click.echo(f"     Company ID: {company_id}")
    if telegram_id is None:
        click.echo("WARN  No telegram id: this user will not receive notifications")


@users_group.command('list')
@click.option('--company-id', type=int, default=None, help='Filter by company')
@with_appcontext
def list_users(company_id):
    """List directory users."""
    q = db.session.query(User)
    if company_id is not None:
        q = q.filter_by(company_id=company_id)
    users = q.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    for u in users:
        tg = u.telegram_id if u.telegram_id is not None else "-"
        click.echo(f"{u.id:>5}  {u.login:<20} {u.role:<10} company={u.company_id}  tg={tg}  {u.display_name}")


@click.group('expenses')
def expenses_group():
    """Expense request inspection and operator actions."""


@expenses_group.command('list')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--status', type=click.Choice([s.value for s in ExpenseStatus]), default=None, help='Filter by status')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_expenses(company_id, status, limit):
    """List a company's expense requests, newest first."""
    engine = get_engine()
    statuses = [ExpenseStatus(status)] if status else None
    requests_ = engine.store.list_for_company(company_id, statuses, limit=limit)

    if not requests_:
        click.echo("No expense requests found.")
        return

    for r in requests_:
        click.echo(
            f"#{r.id:<5} {format_local(r.created_at)}  {r.status:<9} {format_amount(r.effective_amount):>18} {r.currency}  "
            f"requester={r.requester_id}  {r.description or '-'}"
        )


def _actor(actor_id: int):
    actor = get_engine().directory.get_user(actor_id)
    if actor is None:
        raise click.ClickException(f"User #{actor_id} not found")
    return actor


def _echo_result(result):
    if result.success:
        click.echo(f"PASS {result.message}")
    else:
        click.echo(f"FAIL [{result.error.value}] {result.message}")


@expenses_group.command('approve')
@click.argument('request_id', type=int)
@click.option('--actor-id', type=int, required=True, help='Director user ID')
@click.option('--comment', default=None)
@with_appcontext
def approve_expense(request_id, actor_id, comment):
    """Approve a pending request."""
    _echo_result(get_engine().approve(_actor(actor_id), request_id, comment=comment))


@expenses_group.command('decline')
@click.argument('request_id', type=int)
@click.option('--actor-id', type=int, required=True, help='Director user ID')
@click.option('--reason', default=None)
@with_appcontext
def decline_expense(request_id, actor_id, reason):
    """Decline a pending request."""
    _echo_result(get_engine().decline(_actor(actor_id), request_id, reason=reason))


@expenses_group.command('issue')
@click.argument('request_id', type=int)
@click.option('--actor-id', type=int, required=True, help='Cashier user ID')
@click.option('--amount', default=None, help='Issued amount if it differs from the approved one')
@with_appcontext
def issue_expense(request_id, actor_id, amount):
    """Mark an approved request as issued."""
    _echo_result(get_engine().issue(_actor(actor_id), request_id, amount=amount))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(expenses_group)
