"""PhonePe API client for hosted-page co-pay payments."""
import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from perks.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)

PAY_ENDPOINT = '/pg/v1/pay'
STATUS_ENDPOINT = '/pg/v1/status/{merchant_id}/{merchant_transaction_id}'
SUCCESS_CODE = 'PAYMENT_SUCCESS'


@dataclass(frozen=True)
class PaymentSession:
    payment_url: str
    merchant_transaction_id: str


@dataclass(frozen=True)
class PaymentStatus:
    code: str
    success: bool
    paid_amount: Decimal  # currency units, converted from paise
    transaction_id: Optional[str] = None


class PhonePeClient:
    """Client for the PhonePe Pay Page API."""

    def __init__(
        self,
        merchant_id: Optional[str],
        salt_key: Optional[str],
        salt_index: str = '1',
        api_url: str = 'https://api-preprod.phonepe.com/apis/pg-sandbox',
        timeout: int = 10
    ):
        """
        Initialize PhonePe client.

        Args:
            merchant_id: PhonePe merchant id
            salt_key: Salt key used to sign requests
            salt_index: Index of the salt key
            api_url: Base URL of the PhonePe API (sandbox or production)
            timeout: Seconds to wait for PhonePe before giving up

        Raises:
            PaymentGatewayError: if merchant id or salt key are missing
        """
        if not merchant_id or not salt_key:
            raise PaymentGatewayError('PhonePe not configured')

        self.merchant_id = merchant_id
        self.salt_key = salt_key
        self.salt_index = str(salt_index or '1')
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'PhonePeClient':
        return cls(
            merchant_id=config.get('PHONEPE_MERCHANT_ID'),
            salt_key=config.get('PHONEPE_SALT_KEY'),
            salt_index=config.get('PHONEPE_SALT_INDEX', '1'),
            api_url=config.get('PHONEPE_API_URL', 'https://api-preprod.phonepe.com/apis/pg-sandbox'),
            timeout=config.get('PHONEPE_TIMEOUT', 10)
        )

    def _checksum(self, content: str) -> str:
        digest = hashlib.sha256((content + self.salt_key).encode('utf-8')).hexdigest()
        return f"{digest}###{self.salt_index}"

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError:
            raise PaymentGatewayError(f'PhonePe returned a non-JSON response ({response.status_code})', response)

    def initiate_payment(
        self,
        amount: int,
        merchant_transaction_id: str,
        merchant_user_id: str,
        redirect_url: str,
        callback_url: str,
        mobile_number: Optional[str] = None
    ) -> PaymentSession:
        """
        Create a hosted payment page session.

        Args:
            amount: Amount in whole currency units (sent to PhonePe in paise)
            merchant_transaction_id: Our transaction id, echoed back by PhonePe
            merchant_user_id: Id of the paying employee
            redirect_url: Where the browser goes after paying
            callback_url: Server callback (carries delivery details)
            mobile_number: Optional 10-digit mobile number

        Returns:
            PaymentSession with the hosted page URL

        Raises:
            PaymentGatewayError: on network errors or a non-success answer
        """
        payload = {
            'merchantId': self.merchant_id,
            'merchantTransactionId': merchant_transaction_id,
            'merchantUserId': str(merchant_user_id),
            'amount': int(amount) * 100,
            'redirectUrl': redirect_url,
            'redirectMode': 'REDIRECT',
            'callbackUrl': callback_url,
            'paymentInstrument': {'type': 'PAY_PAGE'},
        }
        if mobile_number:
            payload['mobileNumber'] = mobile_number

        encoded = base64.b64encode(json.dumps(payload).encode('utf-8')).decode('ascii')
        headers = {
            'Content-Type': 'application/json',
            'X-VERIFY': self._checksum(encoded + PAY_ENDPOINT),
        }

        logger.info(f"[PHONEPE] Initiating payment {merchant_transaction_id} amount={amount}")

        try:
            response = requests.post(
                f"{self.api_url}{PAY_ENDPOINT}",
                json={'request': encoded},
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"[PHONEPE] Network error initiating {merchant_transaction_id}: {e}")
            raise PaymentGatewayError(f'PhonePe unreachable: {e}')

        data = self._json(response)
        if not response.ok or not data.get('success'):
            logger.error(f"[PHONEPE] Error initiating payment: {response.status_code} {response.text}")
            raise PaymentGatewayError(data.get('message') or 'PhonePe rejected the payment request', response)

        try:
            url = data['data']['instrumentResponse']['redirectInfo']['url']
        except (KeyError, TypeError):
            raise PaymentGatewayError('PhonePe response has no redirect URL', response)

        logger.info(f"[PHONEPE] Payment page ready for {merchant_transaction_id}")
        return PaymentSession(payment_url=url, merchant_transaction_id=merchant_transaction_id)

    def check_status(self, merchant_transaction_id: str) -> PaymentStatus:
        """
        Fetch the status of a payment.

        Returns:
            PaymentStatus; `success` is True only for PAYMENT_SUCCESS

        Raises:
            PaymentGatewayError: on network errors or unreadable answers
        """
        endpoint = STATUS_ENDPOINT.format(
            merchant_id=self.merchant_id,
            merchant_transaction_id=merchant_transaction_id
        )
        headers = {
            'Content-Type': 'application/json',
            'X-VERIFY': self._checksum(endpoint),
            'X-MERCHANT-ID': self.merchant_id,
        }

        logger.info(f"[PHONEPE] Checking status of {merchant_transaction_id}")

        try:
            response = requests.get(f"{self.api_url}{endpoint}", headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[PHONEPE] Network error checking {merchant_transaction_id}: {e}")
            raise PaymentGatewayError(f'PhonePe unreachable: {e}')

        data = self._json(response)
        code = data.get('code') or 'UNKNOWN'
        details = data.get('data') or {}
        paid_paise = details.get('amount') or 0

        status = PaymentStatus(
            code=code,
            success=bool(response.ok and data.get('success') and code == SUCCESS_CODE),
            paid_amount=Decimal(str(paid_paise)) / 100,
            transaction_id=details.get('transactionId')
        )
        logger.info(f"[PHONEPE] Status {merchant_transaction_id}: {status.code}")
        return status
