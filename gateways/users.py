# gateways/users.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests
from django.conf import settings

from common.exceptions import BusinessRuleError, ServiceUnavailableError

logger = logging.getLogger(__name__)


class FlagStatus:
    GREEN = 'GREEN'
    YELLOW = 'YELLOW'
    RED = 'RED'


@dataclass
class CreditProfile:
    user_id: str
    flag_status: Optional[str]
    sama_credit_amount: Decimal
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_bnpl_eligible(self):
        # Only GREEN users may use BNPL; everyone else pays in one go.
        return self.flag_status == FlagStatus.GREEN


@dataclass
class CreditUpdate:
    previous_amount: Decimal
    new_amount: Decimal
    operation: str


class HttpUserGateway:
    """
    User Service client: profile, credit flag and SAMA credit ledger.
    """

    def __init__(self, base_url=None, timeout=None):
        self.base_url = base_url or getattr(settings, 'USER_SERVICE_URL', 'http://localhost:3001')
        self.timeout = timeout or getattr(settings, 'GATEWAY_TIMEOUT_SECONDS', 10)

    def _headers(self, auth_token=None):
        headers = {'Content-Type': 'application/json'}
        if auth_token:
            headers['Authorization'] = auth_token
        return headers

    def fetch_user(self, user_id, auth_token=None):
        """
        Fetch the user's credit profile.

        Returns:
            CreditProfile
        """
        url = f"{self.base_url}/api/users/{user_id}"
        try:
            response = requests.get(url, headers=self._headers(auth_token), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"[UserGateway] Fetch failed for user={user_id} status={status_code}")
            if status_code == 404:
                raise BusinessRuleError('User not found')
            raise BusinessRuleError('Failed to fetch user details')
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"[UserGateway] User service unreachable: {str(e)}")
            raise ServiceUnavailableError('User service is unavailable')
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"[UserGateway] Unexpected error fetching user: {str(e)}")
            raise BusinessRuleError('Failed to fetch user details')

        user = data.get('data') if data.get('success') else None
        if not user:
            raise BusinessRuleError('Invalid response from user service')

        profile = CreditProfile(
            user_id=str(user.get('id', user_id)),
            flag_status=user.get('flagStatus'),
            sama_credit_amount=Decimal(str(user.get('samaCreditAmount') or 0)),
            phone=user.get('phone'),
            email=user.get('email'),
        )
        logger.info(
            f"[UserGateway] User fetched: id={profile.user_id} flag={profile.flag_status} "
            f"credit={profile.sama_credit_amount}"
        )
        return profile

    def update_credit(self, user_id, amount, operation, project_id, reason, auth_token=None):
        """
        Deduct from or add to the user's SAMA credit.

        Args:
            operation: 'deduct' or 'add'

        Returns:
            CreditUpdate
        """
        url = f"{self.base_url}/api/users/{user_id}/sama-credit"
        payload = {
            'amount': str(amount),
            'operation': operation,
            'projectId': str(project_id),
            'reason': reason,
        }
        try:
            response = requests.patch(url, json=payload, headers=self._headers(auth_token), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"[UserGateway] Credit update unreachable for user={user_id}: {str(e)}")
            raise ServiceUnavailableError('User service is unavailable')
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"[UserGateway] Credit update failed for user={user_id}: {str(e)}")
            raise BusinessRuleError('Failed to update SAMA credit')

        if not data.get('success'):
            raise BusinessRuleError(data.get('message') or 'Failed to update SAMA credit')

        result = data.get('data') or {}
        update = CreditUpdate(
            previous_amount=Decimal(str(result.get('previousAmount', 0))),
            new_amount=Decimal(str(result.get('newAmount', 0))),
            operation=result.get('operation', operation),
        )
        logger.info(
            f"[UserGateway] Credit {operation} for user={user_id}: "
            f"{update.previous_amount} -> {update.new_amount}"
        )
        return update
