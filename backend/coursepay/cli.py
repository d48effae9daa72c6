# Overview: Flask CLI command groups for bootstrap, maintenance, and background jobs.

# backend/coursepay/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system create-admin --name "Platform" --email owner@coursepay.local
#   Create the platform owner (SUPER_ADMIN) who receives the platform share.
#
# Maintenance:
# - python -m flask maintenance reap-discounts
#   Delete coupons and promo codes that are inactive or past expiry.
#
# Background jobs:
# - python -m flask jobs run
#   Run the scheduler in the foreground (discount reaper on its interval).
# - python -m flask jobs status
#   List jobs registered on the in-process scheduler.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import maintenance_service
from .services.user_service import ROLE_SUPER_ADMIN, USER_STATUS_ACTIVE


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables from the model metadata."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('create-admin')
@click.option('--name', default='Platform Owner', show_default=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@with_appcontext
def create_admin(name, email):
    """
    Create the platform owner account.

    Settlement credits the platform share to the first live SUPER_ADMIN.
    """
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        click.echo(f"WARN User {email} already exists (ID: {existing.id}, role: {existing.role})")
        return

    user = User(name=name, email=email, role=ROLE_SUPER_ADMIN, status=USER_STATUS_ACTIVE)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created platform owner {user.email} (ID: {user.id})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('reap-discounts')
@with_appcontext
def reap_discounts_cli():
    """Delete inactive and expired coupons and promo codes."""
    counts = maintenance_service.reap_discount_instruments()
    if counts is None:
        click.echo("SKIP Another reaper run is in progress.")
        return
    for table, deleted in counts.items():
        click.echo(f"Deleted {deleted} rows from {table}.")


@click.group('jobs')
def jobs_group():
    """Background job commands."""


@jobs_group.command('run')
@with_appcontext
def run_jobs_cli():
    """Run scheduled jobs in the foreground until interrupted."""
    from .jobs.scheduler import run_scheduler_forever

    click.echo("START Running background jobs (Ctrl+C to stop)...")
    run_scheduler_forever(current_app._get_current_object())


@jobs_group.command('status')
@with_appcontext
def jobs_status_cli():
    """List jobs on the in-process scheduler."""
    from .jobs.scheduler import get_job_status

    jobs = get_job_status()
    if not jobs:
        click.echo("No scheduled jobs (is SCHEDULER_ENABLED set?).")
        return
    for job in jobs:
        click.echo(f"{job['id']}: next run {job['next_run_time']} ({job['trigger']})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(maintenance_group)
    app.cli.add_command(jobs_group)
