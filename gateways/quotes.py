# gateways/quotes.py
import logging
import re
from decimal import Decimal

import requests
from django.conf import settings

from common.exceptions import BusinessRuleError, ServiceUnavailableError

logger = logging.getLogger(__name__)


class HttpQuoteGateway:
    """
    Quote Service client.

    Quotes are looked up by the quote request id and the contractor who
    submitted the quote.
    """

    def __init__(self, base_url=None, timeout=None):
        self.base_url = base_url or getattr(settings, 'QUOTE_SERVICE_URL', 'http://localhost:8000')
        self.timeout = timeout or getattr(settings, 'GATEWAY_TIMEOUT_SECONDS', 10)

    def fetch_quote(self, request_id, contractor_id, auth_token=None):
        """
        Fetch a contractor quote.

        Returns:
            dict: quote payload with ``id``, ``admin_status``, ``base_price``,
            ``system_specs`` and ``line_items``.
        """
        url = f"{self.base_url}/api/quotes/request/{request_id}/contractor/{contractor_id}/quote"
        headers = {}
        if auth_token:
            headers['Authorization'] = auth_token

        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"[QuoteGateway] Fetch failed for request={request_id} status={status_code}")
            if status_code == 404:
                raise BusinessRuleError('Quote not found')
            raise BusinessRuleError('Failed to fetch quote details')
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"[QuoteGateway] Quote service unreachable: {str(e)}")
            raise ServiceUnavailableError('Quotes service is unavailable')
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"[QuoteGateway] Unexpected error fetching quote: {str(e)}")
            raise BusinessRuleError('Failed to fetch quote details')

        quote = (data.get('data') or {}).get('quote') if data.get('success') else None
        if not quote:
            raise BusinessRuleError('Invalid response from quotes service')

        logger.info(
            f"[QuoteGateway] Quote fetched: id={quote.get('id')} "
            f"admin_status={quote.get('admin_status')} base_price={quote.get('base_price')}"
        )
        return quote


WATTAGE_PATTERN = re.compile(r'(\d+)\s*W', re.IGNORECASE)


def calculate_system_size(line_items):
    """
    Estimate system size in kWp from quote line items.

    Looks for the panel line and multiplies its wattage (e.g. "450W") by the
    quantity. Returns Decimal('0') when nothing usable is found.
    """
    for item in line_items or []:
        name = (item.get('item_name') or '').lower()
        if 'panel' not in name and 'solar' not in name:
            continue
        match = WATTAGE_PATTERN.search(item.get('description') or '')
        if match:
            total_watts = Decimal(match.group(1)) * Decimal(str(item.get('quantity') or 0))
            return (total_watts / Decimal('1000')).quantize(Decimal('0.01'))
        break
    return Decimal('0')
