"""Middleware for employee authentication."""
from functools import wraps
from flask import g, request, current_app
from perks.database import get_session
from perks.models import EmployeeSession
from perks.exceptions import UnauthorizedError, AccountLockedError


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_employee():
    """
    Load the current employee into g.

    Called before each request. Sets g.employee when the request carries a
    Bearer token matching an unexpired EmployeeSession.
    """
    g.employee = None

    token = _bearer_token()
    if not token:
        return

    db_session = get_session()
    employee_session = db_session.query(EmployeeSession).filter_by(token=token).first()
    if not employee_session:
        return
    if employee_session.is_expired:
        current_app.logger.info(f"Expired session for employee {employee_session.employee_id}")
        return

    g.employee = employee_session.employee


def require_employee(f):
    """
    Decorator: Require an authenticated, unlocked employee.

    Raises UnauthorizedError (401) without a valid session and
    AccountLockedError (423) for locked accounts.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        employee = g.get('employee')
        if employee is None:
            raise UnauthorizedError()
        if employee.is_locked:
            raise AccountLockedError()
        return f(*args, **kwargs)
    return decorated_function
