"""Cart Service - persistent per-employee cart operations."""

import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session, joinedload

from perks.models import CartItem, Product
from perks.exceptions import BusinessLogicError, NotFoundError, InvalidQuantityError, OutOfStockError
from perks.services.pricing_service import resolve_line_price, points_for_amount

logger = logging.getLogger(__name__)


def _parse_quantity(quantity: Any) -> int:
    """Quantities are whole numbers >= 1."""
    if isinstance(quantity, bool):
        raise InvalidQuantityError()
    if isinstance(quantity, float):
        if not quantity.is_integer():
            raise InvalidQuantityError()
        quantity = int(quantity)
    if not isinstance(quantity, int):
        raise InvalidQuantityError()
    if quantity < 1:
        raise InvalidQuantityError()
    return quantity


def _parse_product_id(product_id: Any) -> int:
    if isinstance(product_id, bool):
        raise BusinessLogicError('productId must be an integer')
    if isinstance(product_id, float) and not product_id.is_integer():
        raise BusinessLogicError('productId must be an integer')
    try:
        return int(product_id)
    except (TypeError, ValueError):
        raise BusinessLogicError('productId must be an integer')


def _normalize_color(color: Optional[str]) -> Optional[str]:
    if color is None:
        return None
    color = str(color).strip()
    return color or None


def _find_line(session: Session, employee_id: int, product_id: int, color: Optional[str]) -> Optional[CartItem]:
    query = session.query(CartItem).filter(
        CartItem.employee_id == employee_id,
        CartItem.product_id == product_id
    )
    if color is None:
        query = query.filter(CartItem.selected_color.is_(None))
    else:
        query = query.filter(CartItem.selected_color == color)
    return query.first()


def get_cart_items(session: Session, employee_id: int) -> List[CartItem]:
    """Cart lines for an employee, oldest first, products eagerly loaded."""
    return (
        session.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.employee_id == employee_id)
        .order_by(CartItem.id)
        .all()
    )


def add_to_cart(
    session: Session,
    employee_id: int,
    product_id: Any,
    color: Optional[str] = None,
    quantity: Any = 1
) -> CartItem:
    """Add product to cart, merging with an existing (product, color) line."""
    product_id = _parse_product_id(product_id)
    qty = _parse_quantity(quantity)
    color = _normalize_color(color)

    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Product not found')
    if not product.active:
        raise BusinessLogicError(f'Product "{product.name}" is not active')
    if color is not None and product.colors and color not in product.colors:
        raise BusinessLogicError(f'Color "{color}" is not available for "{product.name}"')

    available = product.stock or 0
    if qty > available:
        raise OutOfStockError(product.name, qty, available)

    line = _find_line(session, employee_id, product.id, color)
    if line:
        new_qty = line.quantity + qty
        if new_qty > available:
            raise OutOfStockError(product.name, new_qty, available)
        line.quantity = new_qty
    else:
        line = CartItem(
            employee_id=employee_id,
            product_id=product.id,
            selected_color=color,
            quantity=qty
        )
        session.add(line)

    session.flush()
    logger.info(f"[CART] employee={employee_id} product={product.id} color={color} qty={line.quantity}")
    return line


def set_quantity(session: Session, employee_id: int, item_id: int, quantity: Any) -> CartItem:
    """Replace a cart line's quantity."""
    qty = _parse_quantity(quantity)

    line = session.query(CartItem).filter(
        CartItem.id == item_id,
        CartItem.employee_id == employee_id
    ).first()
    if not line:
        raise NotFoundError('Cart item not found')

    product = line.product
    if not product:
        raise NotFoundError('Product not found')

    available = product.stock or 0
    if qty > available:
        raise OutOfStockError(product.name, qty, available)

    line.quantity = qty
    session.flush()
    return line


def remove_item(session: Session, employee_id: int, item_id: int) -> bool:
    """Remove a cart line. Returns False when there was nothing to remove."""
    line = session.query(CartItem).filter(
        CartItem.id == item_id,
        CartItem.employee_id == employee_id
    ).first()
    if not line:
        return False
    session.delete(line)
    session.flush()
    return True


def clear_cart(session: Session, employee_id: int) -> int:
    """Delete every cart line of an employee. Returns the number removed."""
    removed = session.query(CartItem).filter(
        CartItem.employee_id == employee_id
    ).delete(synchronize_session=False)
    session.flush()
    return removed


def get_cart_with_products(session: Session, employee_id: int, settings) -> Dict[str, Any]:
    """Cart lines with product details, line price and line points."""
    lines = []
    total_price = Decimal('0.00')
    total_points = 0

    for item in get_cart_items(session, employee_id):
        product = item.product
        entry = item.to_dict()
        entry['product'] = product.to_dict() if product else None
        if product:
            line_price = resolve_line_price(product, item.quantity)
            line_points = points_for_amount(line_price, settings.currency_per_point)
            entry['linePrice'] = str(line_price)
            entry['linePoints'] = line_points
            total_price += line_price
            total_points += line_points
        lines.append(entry)

    return {
        'items': lines,
        'totalPrice': str(total_price),
        'totalPoints': total_points,
    }
