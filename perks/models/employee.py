"""Employee model - portal users holding a points balance."""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, CheckConstraint
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class Employee(Base):
    """Employee model."""

    __tablename__ = 'employee'
    __table_args__ = (
        CheckConstraint('points >= 0', name='ck_employee_points_non_negative'),
    )

    id = Column(Identifier, primary_key=True, autoincrement=True)
    employee_code = Column(String(50), nullable=True, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone_number = Column(String(20), nullable=True)
    points = Column(Integer, nullable=False, default=0, server_default='0')
    login_attempts = Column(Integer, nullable=False, default=0, server_default='0')
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'employeeId': self.employee_code,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'points': self.points,
            'isLocked': self.is_locked,
        }

    def __repr__(self):
        return f"<Employee(id={self.id}, email='{self.email}', points={self.points})>"
