# gateways/notifications.py
import logging
import re

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def mask_phone(phone):
    """Keep the first three and last three digits: +966****567."""
    if not phone:
        return ''
    return re.sub(r'(\d{3})\d+(\d{3})', r'\1****\2', phone)


def otp_message(otp, project_id):
    minutes = getattr(settings, 'OTP_EXPIRY_MINUTES', 10)
    return (
        f"Your installation verification code is {otp}. "
        f"It expires in {minutes} minutes. Project {str(project_id)[:8]}."
    )


class HttpSmsGateway:
    """SMS provider client. ``send_otp`` returns True only on a confirmed send."""

    def __init__(self, base_url=None, api_key=None, timeout=None):
        self.base_url = base_url or getattr(settings, 'SMS_GATEWAY_URL', '')
        self.api_key = api_key or getattr(settings, 'SMS_API_KEY', '')
        self.sender_id = getattr(settings, 'SMS_SENDER_ID', 'SOLAR')
        self.timeout = timeout or getattr(settings, 'GATEWAY_TIMEOUT_SECONDS', 10)

    def send_otp(self, phone, otp, project_id):
        url = f"{self.base_url}/v1/messages"
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        payload = {
            'to': phone,
            'sender': self.sender_id,
            'body': otp_message(otp, project_id),
        }
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"[SMS] OTP send failed to {mask_phone(phone)} for project {project_id}: {str(e)}")
            return False

        logger.info(f"[SMS] OTP sent to {mask_phone(phone)} for project {project_id}")
        return True


class ConsoleSmsGateway:
    """Development SMS sink: logs instead of sending."""

    def send_otp(self, phone, otp, project_id):
        logger.info(f"[SMS] OTP SMS would be sent to {mask_phone(phone)} for project {project_id}")
        if settings.DEBUG:
            logger.info(f"[SMS] Development OTP for project {project_id}: {otp}")
        return True
