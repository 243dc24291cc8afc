"""
Flask CLI commands for portal management.

Commands:
- flask init-db: Create all tables
- flask set-branding: Set points exchange rate and selection limit
- flask create-employee: Create an employee with a points balance
- flask issue-session: Mint a bearer token for an employee
"""

import click
import re
from flask import current_app
from perks.database import db_session, create_all
from perks.models import Employee, EmployeeSession

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables (no migrations)."""
        create_all()
        click.echo(click.style('Tables created.', fg='green'))

    @app.cli.command('set-branding')
    @click.option('--currency-per-point', type=str, default=None, help='Currency units one point is worth')
    @click.option('--max-selections', type=int, default=None, help='Orders allowed per employee (-1 = unlimited)')
    def set_branding(currency_per_point, max_selections):
        """Update the checkout settings stored on the branding row."""
        from perks.services.settings_service import update_checkout_settings

        try:
            branding = update_checkout_settings(
                db_session,
                currency_per_point=currency_per_point,
                max_selections=max_selections
            )
            db_session.commit()
        except (ValueError, ArithmeticError) as e:
            db_session.rollback()
            raise click.ClickException(f'Invalid settings: {e}')

        click.echo(click.style('Settings updated.', fg='green'))
        click.echo(f'   currency_per_point: {branding.currency_per_point}')
        click.echo(f'   max_selections_per_user: {branding.max_selections_per_user}')

    @app.cli.command('create-employee')
    @click.option('--email', prompt=True, help='Employee email address')
    @click.option('--first-name', prompt=True, help='First name')
    @click.option('--last-name', prompt=True, help='Last name')
    @click.option('--points', type=int, default=0, show_default=True, help='Initial points balance')
    @click.option('--phone', default=None, help='Mobile number')
    def create_employee(email, first_name, last_name, points, phone):
        """Create a new employee."""
        email = email.strip().lower()
        if not re.match(EMAIL_PATTERN, email):
            raise click.ClickException('Invalid email. Use format: user@example.com')
        if points < 0:
            raise click.ClickException('Points cannot be negative.')

        if db_session.query(Employee).filter_by(email=email).first():
            raise click.ClickException(f'An employee with email {email} already exists.')

        employee = Employee(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone,
            points=points
        )
        db_session.add(employee)
        db_session.commit()

        click.echo(click.style('Employee created.', fg='green', bold=True))
        click.echo(f'   ID: {employee.id}')
        click.echo(f'   Points: {employee.points}')

    @app.cli.command('issue-session')
    @click.option('--email', prompt=True, help='Employee email address')
    def issue_session(email):
        """Issue a bearer token for an employee (development and testing)."""
        employee = db_session.query(Employee).filter_by(email=email.strip().lower()).first()
        if not employee:
            raise click.ClickException(f'No employee with email {email}.')

        employee_session = EmployeeSession.issue(
            employee.id,
            ttl_days=current_app.config.get('SESSION_TTL_DAYS', 7)
        )
        db_session.add(employee_session)
        db_session.commit()

        click.echo(employee_session.token)
