"""Cart blueprint - persistent per-employee cart."""
from flask import Blueprint, request, jsonify, g
from perks.database import get_session
from perks.middleware import require_employee
from perks.exceptions import PortalError, BusinessLogicError
from perks.services.cart_service import add_to_cart, set_quantity, remove_item, get_cart_with_products
from perks.services.settings_service import get_checkout_settings

cart_bp = Blueprint('cart', __name__, url_prefix='/api/cart')


@cart_bp.route('', methods=['GET'])
@require_employee
def cart_view():
    """Cart lines with product, line price and line points, plus totals."""
    db_session = get_session()
    settings = get_checkout_settings(db_session)
    return jsonify(get_cart_with_products(db_session, g.employee.id, settings))


@cart_bp.route('', methods=['POST'])
@require_employee
def cart_add():
    db_session = get_session()
    data = request.get_json(silent=True) or {}

    product_id = data.get('productId')
    if product_id is None:
        raise BusinessLogicError('productId is required')

    try:
        item = add_to_cart(
            db_session,
            g.employee.id,
            product_id,
            color=data.get('selectedColor'),
            quantity=data.get('quantity', 1)
        )
        db_session.commit()
    except PortalError:
        db_session.rollback()
        raise

    return jsonify(item.to_dict()), 201


@cart_bp.route('/<int:item_id>', methods=['PUT'])
@require_employee
def cart_update(item_id):
    db_session = get_session()
    data = request.get_json(silent=True) or {}

    try:
        item = set_quantity(db_session, g.employee.id, item_id, data.get('quantity'))
        db_session.commit()
    except PortalError:
        db_session.rollback()
        raise

    return jsonify(item.to_dict())


@cart_bp.route('/<int:item_id>', methods=['DELETE'])
@require_employee
def cart_remove(item_id):
    db_session = get_session()

    if not remove_item(db_session, g.employee.id, item_id):
        return jsonify({'status': 'error', 'message': 'Cart item not found'}), 404

    db_session.commit()
    return jsonify({'status': 'success', 'message': 'Item removed'})
