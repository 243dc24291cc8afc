"""
Co-pay service.

When an employee's points do not cover the cart, the missing points are
bought with cash through the payment gateway's hosted page, then the cart
is committed as in a points checkout with the balance zeroed.
"""
import logging
import secrets
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy import update
from sqlalchemy.orm import Session

from perks.models import CopayPayment, CopayStatus, CoPayMetadata, Employee
from perks.exceptions import (
    BusinessLogicError, NotFoundError, PaymentGatewayError, PaymentInitiationFailedError,
    PaymentNotVerifiedError, AmountMismatchError, CheckoutConflictError
)
from perks.services.phonepe_client import SUCCESS_CODE
from perks.services.checkout_service import (
    DeliveryDetails, CheckoutResult, build_checkout_quote, commit_orders
)

logger = logging.getLogger(__name__)

CALLBACK_PATH = '/api/orders/phonepe-callback'


def generate_merchant_transaction_id() -> str:
    return f"TXN_{int(time.time() * 1000)}{secrets.token_hex(3).upper()}"


def _mobile_number(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    phone = phone.replace(' ', '')
    if phone.startswith('+91'):
        phone = phone[3:]
    return phone or None


def build_callback_url(base_url: str, merchant_transaction_id: str, delivery: DeliveryDetails) -> str:
    params = {'merchantOrderId': merchant_transaction_id, 'deliveryMethod': delivery.method}
    if delivery.address:
        params['deliveryAddress'] = delivery.address
    return f"{base_url.rstrip('/')}{CALLBACK_PATH}?{urlencode(params)}"


def build_return_url(base_url: str, cart_path: str, params: Dict[str, Any]) -> str:
    """Cart page URL the browser lands on after the gateway callback."""
    query = urlencode({k: v for k, v in params.items() if v})
    return f"{base_url.rstrip('/')}{cart_path}" + (f"?{query}" if query else '')


def callback_redirect(base_url: str, cart_path: str, params: Dict[str, Any]) -> str:
    """
    Where to send the browser after the gateway posts back.

    On success the cart page receives the transaction id and delivery details
    and calls verify-copay itself; anything else lands on the cart page with
    paymentStatus=failed. Nothing is committed here.
    """
    merchant_transaction_id = params.get('merchantOrderId') or params.get('merchantTransactionId')
    code = params.get('code')

    if code != SUCCESS_CODE:
        logger.warning(f"[COPAY] Callback for {merchant_transaction_id} reported {code}")
        return build_return_url(base_url, cart_path, {
            'paymentStatus': 'failed',
            'merchantTransactionId': merchant_transaction_id,
        })

    return build_return_url(base_url, cart_path, {
        'paymentStatus': 'success',
        'merchantTransactionId': merchant_transaction_id,
        'deliveryMethod': params.get('deliveryMethod'),
        'deliveryAddress': params.get('deliveryAddress'),
    })


def initiate_copay(
    session: Session,
    employee: Employee,
    settings,
    delivery: DeliveryDetails,
    gateway,
    base_url: str,
    cart_path: str = '/cart'
) -> Dict[str, Any]:
    """
    Open a hosted payment session for the cart's point shortfall.

    Returns:
        dict with paymentUrl, merchantTransactionId and the quote figures

    Raises:
        BusinessLogicError: points already cover the cart
        PaymentInitiationFailedError: gateway misconfigured, unreachable or refusing
    """
    quote = build_checkout_quote(session, employee, settings)
    if quote.is_covered:
        raise BusinessLogicError('Sufficient points, use normal checkout')

    amount = quote.copay_amount
    merchant_transaction_id = generate_merchant_transaction_id()

    try:
        payment_session = gateway.initiate_payment(
            amount=amount,
            merchant_transaction_id=merchant_transaction_id,
            merchant_user_id=str(employee.id),
            redirect_url=build_return_url(base_url, cart_path, {}),
            callback_url=build_callback_url(base_url, merchant_transaction_id, delivery),
            mobile_number=_mobile_number(employee.phone_number)
        )
    except PaymentGatewayError as e:
        logger.error(f"[COPAY] Initiation failed for employee={employee.id}: {e.message}")
        raise PaymentInitiationFailedError(f'Failed to initiate payment: {e.message}')

    session.add(CopayPayment(
        merchant_transaction_id=merchant_transaction_id,
        employee_id=employee.id,
        amount=amount,
        status=CopayStatus.INITIATED.value,
        delivery_method=delivery.method,
        delivery_address=delivery.address
    ))
    session.commit()

    logger.info(
        f"[COPAY] Initiated {merchant_transaction_id} employee={employee.id} "
        f"shortfall_points={quote.shortfall_points} amount={amount}"
    )

    response = quote.to_dict()
    response.update({
        'paymentUrl': payment_session.payment_url,
        'merchantTransactionId': merchant_transaction_id,
    })
    return response


def _mark_failed(session: Session, payment: CopayPayment, code: str) -> None:
    payment.status = CopayStatus.FAILED.value
    session.commit()
    logger.warning(f"[COPAY] {payment.merchant_transaction_id} not verified (gateway code {code})")


def verify_copay(
    session: Session,
    employee: Employee,
    settings,
    merchant_transaction_id: str,
    gateway,
    delivery: Optional[DeliveryDetails] = None
) -> CheckoutResult:
    """
    Complete a co-pay checkout after the gateway redirect.

    The gateway must report success, the cart is re-validated from the
    database, and the paid amount must equal the freshly computed shortfall.
    The order writes, the points reset and the payment record update share
    one transaction.

    Raises:
        NotFoundError: unknown transaction or one started by someone else
        BusinessLogicError: transaction already used, or points now suffice
        PaymentNotVerifiedError: gateway unreachable or payment not successful
        AmountMismatchError: paid amount differs from the current shortfall
        CheckoutConflictError: another request completed the same transaction first
    """
    if not merchant_transaction_id:
        raise BusinessLogicError('merchantTransactionId is required')

    payment = (
        session.query(CopayPayment)
        .filter(CopayPayment.merchant_transaction_id == merchant_transaction_id)
        .with_for_update()
        .first()
    )
    if not payment or payment.employee_id != employee.id:
        raise NotFoundError('Payment not found')
    if payment.is_completed:
        raise BusinessLogicError('This payment was already processed', status_code=409)

    try:
        status = gateway.check_status(merchant_transaction_id)
    except PaymentGatewayError as e:
        logger.error(f"[COPAY] Could not verify {merchant_transaction_id}: {e.message}")
        raise PaymentNotVerifiedError(f'Could not verify payment: {e.message}')

    if not status.success:
        _mark_failed(session, payment, status.code)
        raise PaymentNotVerifiedError()

    quote = build_checkout_quote(session, employee, settings)
    if quote.is_covered:
        raise BusinessLogicError('Sufficient points')

    expected = quote.copay_amount
    if Decimal(status.paid_amount) != Decimal(expected):
        logger.error(
            f"[COPAY] Amount mismatch for {merchant_transaction_id}: "
            f"expected={expected} paid={status.paid_amount}"
        )
        raise AmountMismatchError(expected, status.paid_amount)

    if delivery is None:
        delivery = DeliveryDetails(
            method=payment.delivery_method or 'office',
            address=payment.delivery_address
        )

    def _complete_payment(orders):
        # Only one verify may flip the record; a second one rolls its orders back
        result = session.execute(
            update(CopayPayment)
            .where(
                CopayPayment.id == payment.id,
                CopayPayment.status != CopayStatus.COMPLETED.value
            )
            .values(
                status=CopayStatus.COMPLETED.value,
                gateway_transaction_id=status.transaction_id,
                completed_at=datetime.now()
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"[COPAY] {merchant_transaction_id} was completed by a concurrent request")
            raise CheckoutConflictError('This payment was already processed')

    return commit_orders(
        session,
        employee,
        quote,
        lambda line: CoPayMetadata(
            used_points=line.points,
            copay_amount=expected,
            payment_id=status.transaction_id,
            merchant_transaction_id=merchant_transaction_id,
            delivery_method=delivery.method,
            delivery_address=delivery.address
        ),
        zero_points=True,
        before_commit=_complete_payment
    )
