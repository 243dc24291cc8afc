"""Bearer-token sessions issued to employees after login."""
import secrets
from datetime import datetime, timedelta
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class EmployeeSession(Base):
    """Employee session token."""

    __tablename__ = 'employee_session'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    employee_id = Column(Identifier, ForeignKey('employee.id', ondelete='CASCADE'), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    employee = relationship('Employee')

    @classmethod
    def issue(cls, employee_id, ttl_days=7):
        """Build a new session for an employee (caller adds and commits)."""
        return cls(
            employee_id=employee_id,
            token=secrets.token_urlsafe(32),
            expires_at=datetime.now() + timedelta(days=ttl_days)
        )

    @property
    def is_expired(self):
        return self.expires_at <= datetime.now()

    def __repr__(self):
        return f"<EmployeeSession(id={self.id}, employee_id={self.employee_id})>"
