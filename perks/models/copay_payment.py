"""Co-pay payment sessions opened with the payment gateway."""
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class CopayStatus(str, enum.Enum):
    INITIATED = 'INITIATED'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class CopayPayment(Base):
    """
    One hosted-payment session per co-pay attempt.

    The merchant transaction id is unique, which makes verify-copay
    idempotent: a COMPLETED transaction can never commit orders again.
    """

    __tablename__ = 'copay_payment'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    merchant_transaction_id = Column(String(64), nullable=False, unique=True)
    employee_id = Column(Identifier, ForeignKey('employee.id'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # whole currency units
    status = Column(String(20), nullable=False, default=CopayStatus.INITIATED.value, index=True)
    gateway_transaction_id = Column(String(100), nullable=True)
    delivery_method = Column(String(20), nullable=True)
    delivery_address = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    employee = relationship('Employee')

    @property
    def is_completed(self):
        return self.status == CopayStatus.COMPLETED.value

    def __repr__(self):
        return (
            f"<CopayPayment(merchant_transaction_id='{self.merchant_transaction_id}', "
            f"amount={self.amount}, status='{self.status}')>"
        )
