"""
Checkout service with transactional logic.
Turns an employee's cart into confirmed orders paid with points.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perks.models import (
    Employee, Order, OrderStatus, Product, PointsOnlyMetadata, UNLIMITED_SELECTIONS
)
from perks.exceptions import (
    PortalError, EmptyCartError, SelectionLimitReachedError, ProductUnavailableError,
    InsufficientPointsError, CheckoutConflictError, InvalidDeliveryError
)
from perks.services.cart_service import get_cart_items, clear_cart
from perks.services.pricing_service import resolve_line_price, points_for_amount, amount_for_points

logger = logging.getLogger(__name__)

DELIVERY_METHODS = ('office', 'delivery')


@dataclass(frozen=True)
class DeliveryDetails:
    """Where the employee collects the goods."""
    method: str = 'office'
    address: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> 'DeliveryDetails':
        data = data or {}
        method = str(data.get('deliveryMethod') or 'office').strip().lower()
        address = data.get('deliveryAddress')
        address = address.strip() if isinstance(address, str) and address.strip() else None

        if method not in DELIVERY_METHODS:
            raise InvalidDeliveryError(f'Unknown delivery method "{method}"')
        if method == 'delivery' and not address:
            raise InvalidDeliveryError('A delivery address is required for home delivery')
        return cls(method=method, address=address)


@dataclass(frozen=True)
class QuoteLine:
    cart_item_id: int
    product_id: int
    product_name: str
    selected_color: Optional[str]
    quantity: int
    line_price: Decimal
    points: int


@dataclass
class CheckoutQuote:
    """Validated snapshot of a cart: prices, points and stock at quote time."""
    lines: List[QuoteLine]
    points_required: int
    points_available: int
    currency_per_point: Decimal

    @property
    def shortfall_points(self) -> int:
        return max(0, self.points_required - self.points_available)

    @property
    def is_covered(self) -> bool:
        return self.points_available >= self.points_required

    @property
    def copay_amount(self) -> int:
        """Currency the employee must pay for the missing points."""
        return amount_for_points(self.shortfall_points, self.currency_per_point)

    @property
    def total_price(self) -> Decimal:
        return sum((line.line_price for line in self.lines), Decimal('0.00'))

    def to_dict(self):
        return {
            'pointsRequired': self.points_required,
            'pointsAvailable': self.points_available,
            'shortfallPoints': self.shortfall_points,
            'copayAmount': self.copay_amount,
            'totalPrice': str(self.total_price),
        }


@dataclass
class CheckoutResult:
    orders: List[Order] = field(default_factory=list)
    employee: Optional[Employee] = None

    def to_dict(self):
        return {
            'orders': [
                {'order': order.to_dict(), 'product': order.product.to_dict() if order.product else None}
                for order in self.orders
            ],
            'employee': self.employee.to_dict() if self.employee else None,
        }


def selection_permitted(existing_count: int, cart_size: int, max_selections: int) -> bool:
    """Whether an employee may confirm `cart_size` more orders."""
    if max_selections == UNLIMITED_SELECTIONS:
        return True
    return existing_count + cart_size <= max_selections


def count_confirmed_orders(session: Session, employee_id: int) -> int:
    return session.query(func.count(Order.id)).filter(
        Order.employee_id == employee_id,
        Order.status == OrderStatus.CONFIRMED.value
    ).scalar() or 0


def build_checkout_quote(session: Session, employee: Employee, settings) -> CheckoutQuote:
    """
    Validate the cart and price it in points.

    Steps: load cart, selection limit, per-line stock and price, points sum.
    Nothing is written.

    Raises:
        EmptyCartError, SelectionLimitReachedError, ProductUnavailableError
    """
    cart_items = get_cart_items(session, employee.id)
    if not cart_items:
        raise EmptyCartError()

    existing = count_confirmed_orders(session, employee.id)
    if not selection_permitted(existing, len(cart_items), settings.max_selections):
        logger.info(
            f"[CHECKOUT] Selection limit reached employee={employee.id} "
            f"existing={existing} cart={len(cart_items)} max={settings.max_selections}"
        )
        raise SelectionLimitReachedError(settings.max_selections)

    lines = []
    points_required = 0
    for item in cart_items:
        product = item.product
        if not product or (product.stock or 0) < item.quantity:
            raise ProductUnavailableError(product.name if product else item.product_id)

        line_price = resolve_line_price(product, item.quantity)
        line_points = points_for_amount(line_price, settings.currency_per_point)
        points_required += line_points
        lines.append(QuoteLine(
            cart_item_id=item.id,
            product_id=product.id,
            product_name=product.name,
            selected_color=item.selected_color,
            quantity=item.quantity,
            line_price=line_price,
            points=line_points
        ))

    return CheckoutQuote(
        lines=lines,
        points_required=points_required,
        points_available=employee.points or 0,
        currency_per_point=settings.currency_per_point
    )


def next_order_code(session: Session, now: datetime) -> str:
    """ORD-<year>-<n>, n = orders already placed this year + 1."""
    year_start = datetime(now.year, 1, 1)
    next_year_start = datetime(now.year + 1, 1, 1)
    count = session.query(func.count(Order.id)).filter(
        Order.order_date >= year_start,
        Order.order_date < next_year_start
    ).scalar() or 0
    return f"ORD-{now.year}-{count + 1:03d}"


def commit_orders(
    session: Session,
    employee: Employee,
    quote: CheckoutQuote,
    metadata_for_line: Callable[[QuoteLine], Any],
    zero_points: bool = False,
    before_commit: Optional[Callable[[List[Order]], None]] = None
) -> CheckoutResult:
    """
    Write a validated quote as orders inside one transaction.

    Stock and points are decremented with conditional UPDATEs so that a
    concurrent checkout cannot oversell stock or overspend points; a failed
    condition rolls everything back.

    Args:
        metadata_for_line: builds the metadata variant stored on each order
        zero_points: co-pay checkouts set the balance to 0 instead of subtracting
        before_commit: extra writes to join the same transaction
    """
    now = datetime.now()
    orders = []

    try:
        for line in quote.lines:
            result = session.execute(
                update(Product)
                .where(Product.id == line.product_id, Product.stock >= line.quantity)
                .values(stock=Product.stock - line.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ProductUnavailableError(line.product_name)

            order = Order(
                order_code=next_order_code(session, now),
                employee_id=employee.id,
                product_id=line.product_id,
                selected_color=line.selected_color,
                quantity=line.quantity,
                status=OrderStatus.CONFIRMED.value,
                order_date=now,
                order_metadata=metadata_for_line(line).to_dict()
            )
            session.add(order)
            session.flush()
            orders.append(order)

        if zero_points:
            points_update = (
                update(Employee)
                .where(Employee.id == employee.id, Employee.points == quote.points_available)
                .values(points=0)
            )
        else:
            points_update = (
                update(Employee)
                .where(Employee.id == employee.id, Employee.points >= quote.points_required)
                .values(points=Employee.points - quote.points_required)
            )
        result = session.execute(points_update.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise CheckoutConflictError('Points balance changed during checkout, please retry')

        clear_cart(session, employee.id)

        if before_commit:
            before_commit(orders)

        session.commit()

    except PortalError:
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"[CHECKOUT] Integrity error for employee={employee.id}: {e.orig}")
        raise CheckoutConflictError()
    except Exception:
        session.rollback()
        logger.exception(f"[CHECKOUT] Unexpected error committing orders for employee={employee.id}")
        raise

    session.refresh(employee)
    logger.info(
        f"[CHECKOUT] employee={employee.id} orders={[o.order_code for o in orders]} "
        f"points_required={quote.points_required} zero_points={zero_points}"
    )
    return CheckoutResult(orders=orders, employee=employee)


def place_points_order(session: Session, employee: Employee, settings, delivery: DeliveryDetails) -> CheckoutResult:
    """
    Checkout paid entirely with points.

    Raises:
        InsufficientPointsError: balance does not cover the cart; the quote is
            attached so the caller can offer the co-pay path instead.
    """
    quote = build_checkout_quote(session, employee, settings)
    if not quote.is_covered:
        raise InsufficientPointsError(quote)

    return commit_orders(
        session,
        employee,
        quote,
        lambda line: PointsOnlyMetadata(
            used_points=line.points,
            delivery_method=delivery.method,
            delivery_address=delivery.address
        )
    )
