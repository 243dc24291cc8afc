"""Order model and its metadata variants."""
import enum
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class OrderStatus(str, enum.Enum):
    CONFIRMED = 'confirmed'


@dataclass(frozen=True)
class PointsOnlyMetadata:
    """Order paid entirely with points."""
    used_points: int
    delivery_method: str
    delivery_address: Optional[str] = None

    kind = 'points'

    def to_dict(self):
        return {
            'kind': self.kind,
            'usedPoints': self.used_points,
            'deliveryMethod': self.delivery_method,
            'deliveryAddress': self.delivery_address,
        }


@dataclass(frozen=True)
class CoPayMetadata:
    """Order whose point shortfall was paid through the gateway."""
    used_points: int
    copay_amount: int
    payment_id: Optional[str]
    merchant_transaction_id: str
    delivery_method: str
    delivery_address: Optional[str] = None

    kind = 'copay'

    def to_dict(self):
        return {
            'kind': self.kind,
            'usedPoints': self.used_points,
            'copayInr': self.copay_amount,
            'paymentId': self.payment_id,
            'phonepeOrderId': self.merchant_transaction_id,
            'deliveryMethod': self.delivery_method,
            'deliveryAddress': self.delivery_address,
        }


class Order(Base):
    """Confirmed order for a single cart line. Immutable once created."""

    __tablename__ = 'customer_order'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    order_code = Column(String(32), nullable=False, unique=True)
    employee_id = Column(Identifier, ForeignKey('employee.id'), nullable=False, index=True)
    product_id = Column(Identifier, ForeignKey('product.id'), nullable=False, index=True)
    selected_color = Column(String(50), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=OrderStatus.CONFIRMED.value)
    order_date = Column(DateTime, nullable=False, server_default=func.now())
    # 'metadata' is reserved on declarative classes
    order_metadata = Column('metadata', JSON, nullable=True)

    # Relationships
    employee = relationship('Employee')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_code,
            'employeeId': self.employee_id,
            'productId': self.product_id,
            'selectedColor': self.selected_color,
            'quantity': self.quantity,
            'status': self.status,
            'orderDate': self.order_date.isoformat() if self.order_date else None,
            'metadata': self.order_metadata,
        }

    def __repr__(self):
        return f"<Order(id={self.id}, order_code='{self.order_code}', status='{self.status}')>"
