"""Models package - exports all SQLAlchemy models."""
from perks.models.employee import Employee
from perks.models.employee_session import EmployeeSession
from perks.models.branding import Branding, UNLIMITED_SELECTIONS
from perks.models.product import Product
from perks.models.cart_item import CartItem
from perks.models.order import Order, OrderStatus, PointsOnlyMetadata, CoPayMetadata
from perks.models.copay_payment import CopayPayment, CopayStatus

__all__ = [
    'Employee', 'EmployeeSession',
    'Branding', 'UNLIMITED_SELECTIONS',
    'Product', 'CartItem',
    'Order', 'OrderStatus', 'PointsOnlyMetadata', 'CoPayMetadata',
    'CopayPayment', 'CopayStatus',
]
