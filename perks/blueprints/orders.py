"""
Orders blueprint - points checkout, co-pay checkout and order history.

The co-pay path is two requests: create-copay-order opens a hosted payment
page, and verify-copay commits the cart once the gateway confirms payment.
"""
import logging
from flask import Blueprint, request, jsonify, redirect, current_app, g
from perks.database import get_session
from perks.middleware import require_employee
from perks.models import Order, OrderStatus
from perks.exceptions import (
    InsufficientPointsError, PaymentGatewayError, PaymentInitiationFailedError,
    PaymentNotVerifiedError, AmountMismatchError
)
from perks.services.checkout_service import DeliveryDetails, place_points_order
from perks.services.copay_service import initiate_copay, verify_copay, callback_redirect
from perks.services.phonepe_client import PhonePeClient
from perks.services.settings_service import get_checkout_settings
from perks.blueprints.metrics import checkout_orders_total, copay_failures_total

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


def get_payment_gateway():
    """Gateway registered on the app, or a PhonePe client built from config."""
    gateway = current_app.extensions.get('payment_gateway')
    if gateway is not None:
        return gateway
    return PhonePeClient.from_config(current_app.config)


@orders_bp.route('', methods=['POST'])
@require_employee
def place_order():
    """
    Checkout the caller's cart with points.

    When points fall short nothing is written and the answer is
    ``{"status": "copay_required", ...quote}`` so the client can start co-pay.
    """
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    delivery = DeliveryDetails.from_payload(data)
    settings = get_checkout_settings(db_session)

    try:
        result = place_points_order(db_session, g.employee, settings, delivery)
    except InsufficientPointsError as e:
        response = e.quote.to_dict()
        response['status'] = 'copay_required'
        response['message'] = 'Insufficient points, co-pay required'
        return jsonify(response)

    checkout_orders_total.labels(mode='points').inc(len(result.orders))
    response = result.to_dict()
    response['status'] = 'success'
    return jsonify(response), 201


@orders_bp.route('/create-copay-order', methods=['POST'])
@require_employee
def create_copay_order():
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    delivery = DeliveryDetails.from_payload(data)
    settings = get_checkout_settings(db_session)

    try:
        gateway = get_payment_gateway()
        response = initiate_copay(
            db_session,
            g.employee,
            settings,
            delivery,
            gateway,
            base_url=current_app.config['PUBLIC_BASE_URL'],
            cart_path=current_app.config.get('CART_PAGE_PATH', '/cart')
        )
    except PaymentGatewayError as e:
        logger.error(f"[COPAY] Gateway unavailable: {e.message}")
        copay_failures_total.labels(reason='initiation').inc()
        raise PaymentInitiationFailedError(f'Failed to initiate payment: {e.message}')
    except PaymentInitiationFailedError:
        copay_failures_total.labels(reason='initiation').inc()
        raise

    response['status'] = 'success'
    return jsonify(response)


@orders_bp.route('/phonepe-callback', methods=['GET', 'POST'])
def phonepe_callback():
    """
    Gateway callback.

    Sends the browser back to the cart page, which then calls verify-copay.
    Nothing is committed here; the callback is not trusted as proof of payment.
    """
    params = request.args.to_dict()
    params.update(request.form.to_dict())
    params.update(request.get_json(silent=True) or {})

    target = callback_redirect(
        current_app.config['PUBLIC_BASE_URL'],
        current_app.config.get('CART_PAGE_PATH', '/cart'),
        params
    )
    return redirect(target, code=302)


@orders_bp.route('/verify-copay', methods=['POST'])
@require_employee
def verify_copay_order():
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    merchant_transaction_id = data.get('merchantTransactionId') or data.get('merchantOrderId')
    delivery = DeliveryDetails.from_payload(data) if data.get('deliveryMethod') else None
    settings = get_checkout_settings(db_session)

    try:
        gateway = get_payment_gateway()
        result = verify_copay(
            db_session,
            g.employee,
            settings,
            merchant_transaction_id,
            gateway,
            delivery=delivery
        )
    except PaymentGatewayError as e:
        copay_failures_total.labels(reason='not_verified').inc()
        raise PaymentNotVerifiedError(f'Could not verify payment: {e.message}')
    except PaymentNotVerifiedError:
        copay_failures_total.labels(reason='not_verified').inc()
        raise
    except AmountMismatchError:
        copay_failures_total.labels(reason='amount_mismatch').inc()
        raise

    checkout_orders_total.labels(mode='copay').inc(len(result.orders))
    response = result.to_dict()
    response['status'] = 'success'
    return jsonify(response), 201


@orders_bp.route('/my-orders', methods=['GET'])
@require_employee
def my_orders():
    """Confirmed orders of the caller, newest first."""
    db_session = get_session()
    orders = (
        db_session.query(Order)
        .filter(
            Order.employee_id == g.employee.id,
            Order.status == OrderStatus.CONFIRMED.value
        )
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )
    return jsonify([
        {'order': order.to_dict(), 'product': order.product.to_dict() if order.product else None}
        for order in orders
    ])
