# gateways/payments.py
import logging
from dataclasses import dataclass

import requests
from django.conf import settings

from payments.calculator import generate_reference

logger = logging.getLogger(__name__)


@dataclass
class ChargeResult:
    success: bool
    reference: str
    message: str


class HttpPaymentGateway:
    """
    Card/wallet processor client.

    Declines come back as ``ChargeResult(success=False)``; transport failures
    are reported the same way so the caller has a single failure path.
    """

    def __init__(self, base_url=None, api_key=None, timeout=None):
        self.base_url = base_url or getattr(settings, 'PAYMENT_GATEWAY_URL', '')
        self.api_key = api_key or getattr(settings, 'PAYMENT_GATEWAY_API_KEY', '')
        self.timeout = timeout or getattr(settings, 'GATEWAY_TIMEOUT_SECONDS', 10)

    def charge(self, amount, purpose, user_id):
        url = f"{self.base_url}/v1/charges"
        headers = {
            'X-API-Key': self.api_key,
            'Content-Type': 'application/json',
        }
        payload = {
            'amount': str(amount),
            'currency': getattr(settings, 'CURRENCY', 'SAR'),
            'purpose': purpose,
            'customer_id': str(user_id),
        }
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"[PaymentGateway] Charge failed for user={user_id} amount={amount}: {str(e)}")
            return ChargeResult(success=False, reference='', message='Payment processing failed')

        if not data.get('success'):
            message = data.get('message') or 'Payment was declined'
            logger.warning(f"[PaymentGateway] Charge declined for user={user_id}: {message}")
            return ChargeResult(success=False, reference='', message=message)

        logger.info(f"[PaymentGateway] Charge succeeded: ref={data.get('reference')} amount={amount}")
        return ChargeResult(success=True, reference=data.get('reference', ''), message='Payment processed successfully')


class SandboxPaymentGateway:
    """Development processor: every charge succeeds with a fresh reference."""

    def charge(self, amount, purpose, user_id):
        reference = generate_reference('PAY')
        logger.info(f"[SandboxPayment] {purpose} of {amount} for user={user_id} approved: ref={reference}")
        return ChargeResult(success=True, reference=reference, message='Payment processed successfully')
