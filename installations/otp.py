# installations/otp.py

from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from django.utils.crypto import constant_time_compare, get_random_string

OTP_LENGTH = 6


def generate_otp():
    return get_random_string(OTP_LENGTH, '0123456789')


def otp_expiry(now=None):
    minutes = getattr(settings, 'OTP_EXPIRY_MINUTES', 10)
    return (now or timezone.now()) + timedelta(minutes=minutes)


def max_attempts():
    return getattr(settings, 'OTP_MAX_ATTEMPTS', 3)


def is_expired(expires_at, now=None):
    return expires_at is None or (now or timezone.now()) > expires_at


def codes_match(expected, provided):
    if not expected or not provided:
        return False
    return constant_time_compare(str(expected), str(provided).strip())
