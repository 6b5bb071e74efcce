"""
Pure payment arithmetic: BNPL schedules, late fees, overdue days and
reference codes. Nothing here touches the database or the network.
"""
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, time as dt_time, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.utils import timezone
from django.utils.crypto import get_random_string

from common.exceptions import ValidationError

CENT = Decimal('0.01')
MAX_LATE_FEE_PERCENT = 10
SINGLE_PAY = 'single_pay'
BNPL = 'bnpl'

REFERENCE_CHARS = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'


@dataclass
class InstallmentItem:
    installment_number: int
    amount: Decimal
    due_date: datetime


@dataclass
class BNPLCalculation:
    total_amount: Decimal
    downpayment_amount: Decimal
    remaining_amount: Decimal
    number_of_installments: int
    monthly_emi: Decimal
    installment_schedule: List[InstallmentItem] = field(default_factory=list)


def to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


def round2(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def min_installments():
    return getattr(settings, 'BNPL_MIN_INSTALLMENTS', 3)


def max_installments():
    return getattr(settings, 'BNPL_MAX_INSTALLMENTS', 24)


def min_installment_amount():
    return to_decimal(getattr(settings, 'BNPL_MIN_INSTALLMENT_AMOUNT', '100'))


def end_of_day(moment):
    """Last microsecond of ``moment``'s day, in UTC."""
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    moment = moment.astimezone(dt_timezone.utc)
    return datetime.combine(moment.date(), dt_time.max, tzinfo=dt_timezone.utc)


def validate_payment_selection(total_amount, payment_method, downpayment_amount=None, number_of_installments=None):
    """
    Collect every problem with a payment selection.

    Returns:
        list[str]: empty when the selection is acceptable.
    """
    errors = []
    if payment_method not in (SINGLE_PAY, BNPL):
        return [f"Unknown payment method: {payment_method}"]
    if payment_method == SINGLE_PAY:
        return errors

    total = to_decimal(total_amount)
    downpayment = to_decimal(downpayment_amount or 0)

    if not number_of_installments:
        errors.append('Number of installments is required for BNPL')
        return errors
    if number_of_installments < min_installments() or number_of_installments > max_installments():
        errors.append(f"Number of installments must be between {min_installments()} and {max_installments()}")
        return errors

    if downpayment < 0:
        errors.append('Downpayment cannot be negative')
    elif downpayment >= total:
        errors.append('Downpayment cannot be equal to or greater than total amount')
    else:
        emi = round2((total - downpayment) / Decimal(number_of_installments))
        minimum = min_installment_amount()
        if emi < minimum:
            errors.append(
                f"Monthly installment amount must be at least {minimum} SAR "
                f"(computed {emi:.2f} SAR)"
            )
    return errors


def calculate_bnpl_schedule(total_amount, downpayment, number_of_installments, start=None):
    """
    Interest-free BNPL schedule.

    Installments 1..n-1 are ``round2(remaining / n)``; installment n takes
    whatever is left so the schedule sums exactly to ``remaining``. Due dates
    are one calendar month apart starting a month from ``start``, at end of
    day.
    """
    total = to_decimal(total_amount)
    down = to_decimal(downpayment or 0)
    count = int(number_of_installments)

    if total <= 0:
        raise ValidationError('Total amount must be greater than 0')
    if down < 0 or down >= total:
        raise ValidationError('Downpayment must be between 0 and total amount')
    if count < min_installments() or count > max_installments():
        raise ValidationError(
            f"Number of installments must be between {min_installments()} and {max_installments()}"
        )

    remaining = total - down
    emi = round2(remaining / Decimal(count))
    minimum = min_installment_amount()
    if emi < minimum:
        raise ValidationError(
            f"Monthly installment amount must be at least {minimum} SAR (computed {emi:.2f} SAR)"
        )

    base = start or timezone.now()
    schedule = []
    for i in range(1, count + 1):
        amount = emi if i < count else remaining - emi * (count - 1)
        schedule.append(InstallmentItem(
            installment_number=i,
            amount=round2(amount),
            due_date=end_of_day(base + relativedelta(months=i)),
        ))

    return BNPLCalculation(
        total_amount=total,
        downpayment_amount=down,
        remaining_amount=remaining,
        number_of_installments=count,
        monthly_emi=emi,
        installment_schedule=schedule,
    )


def calculate_overdue_days(due_date, today=None):
    """Whole days past the due date; 0 when not yet due."""
    today = today or timezone.now()
    if isinstance(today, datetime):
        today = today.astimezone(dt_timezone.utc).date() if timezone.is_aware(today) else today.date()
    if isinstance(due_date, datetime):
        due_date = due_date.astimezone(dt_timezone.utc).date() if timezone.is_aware(due_date) else due_date.date()
    if today <= due_date:
        return 0
    return (today - due_date).days


def calculate_late_fee(amount, overdue_days):
    """1% of the installment per started week overdue, capped at 10%."""
    if overdue_days <= 0:
        return Decimal('0.00')
    weeks_overdue = math.ceil(overdue_days / 7)
    percentage = min(weeks_overdue, MAX_LATE_FEE_PERCENT)
    return round2(to_decimal(amount) * Decimal(percentage) / Decimal('100'))


def _base36(number):
    digits = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'
    if number == 0:
        return '0'
    out = []
    while number:
        number, remainder = divmod(number, 36)
        out.append(digits[remainder])
    return ''.join(reversed(out))


def generate_reference(prefix='PAY'):
    """e.g. ``BNPL-LZ3K9Q2A-7HD2KX``"""
    timestamp = _base36(int(time.time() * 1000))
    return f"{prefix}-{timestamp}-{get_random_string(6, REFERENCE_CHARS)}"
