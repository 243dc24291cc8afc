"""Cart item model - persistent per-employee cart lines."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from perks.database import Base, Identifier


class CartItem(Base):
    """
    Cart line: one product (in one colour) with a quantity.

    At most one line per (employee, product, colour); adding the same
    combination again merges quantities.
    """

    __tablename__ = 'cart_item'
    __table_args__ = (
        UniqueConstraint('employee_id', 'product_id', 'selected_color', name='uq_cart_item_employee_product_color'),
        CheckConstraint('quantity >= 1', name='ck_cart_item_quantity_positive'),
    )

    id = Column(Identifier, primary_key=True, autoincrement=True)
    employee_id = Column(Identifier, ForeignKey('employee.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Identifier, ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True)
    selected_color = Column(String(50), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    employee = relationship('Employee')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'employeeId': self.employee_id,
            'productId': self.product_id,
            'selectedColor': self.selected_color,
            'quantity': self.quantity,
        }

    def __repr__(self):
        return f"<CartItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
