"""
In-memory gateways with deterministic behaviour.

Used by the test suite and handy for local demos:
``PROJECT_GATEWAYS = {'quote': 'gateways.fakes.FakeQuoteGateway', ...}``.
"""
from decimal import Decimal

from common.exceptions import BusinessRuleError
from gateways.payments import ChargeResult
from gateways.users import CreditProfile, CreditUpdate, FlagStatus


class FakeQuoteGateway:

    def __init__(self, quotes=None):
        # keyed by (request_id, contractor_id)
        self.quotes = dict(quotes or {})
        self.calls = []

    def add_quote(self, request_id, contractor_id, **fields):
        quote = {
            'id': fields.pop('id', f"quote-{request_id}"),
            'request_id': str(request_id),
            'contractor_id': str(contractor_id),
            'base_price': '12000.00',
            'admin_status': 'approved',
            'status': 'pending',
            'system_specs': {'system_size_kwp': 5.4},
            'line_items': [],
        }
        quote.update(fields)
        self.quotes[(str(request_id), str(contractor_id))] = quote
        return quote

    def fetch_quote(self, request_id, contractor_id, auth_token=None):
        self.calls.append((str(request_id), str(contractor_id)))
        quote = self.quotes.get((str(request_id), str(contractor_id)))
        if quote is None:
            raise BusinessRuleError('Quote not found')
        return dict(quote)


class FakeUserGateway:

    def __init__(self):
        self.profiles = {}
        self.credit_updates = []
        self.fail_credit_update = False

    def set_profile(self, user_id, flag_status=FlagStatus.GREEN, credit='0', phone='+966501234567'):
        self.profiles[str(user_id)] = CreditProfile(
            user_id=str(user_id),
            flag_status=flag_status,
            sama_credit_amount=Decimal(str(credit)),
            phone=phone,
        )

    def fetch_user(self, user_id, auth_token=None):
        profile = self.profiles.get(str(user_id))
        if profile is None:
            raise BusinessRuleError('User not found')
        return profile

    def update_credit(self, user_id, amount, operation, project_id, reason, auth_token=None):
        if self.fail_credit_update:
            raise BusinessRuleError('Failed to update SAMA credit')
        profile = self.fetch_user(user_id)
        previous = profile.sama_credit_amount
        if operation == 'deduct':
            profile.sama_credit_amount = previous - Decimal(str(amount))
        else:
            profile.sama_credit_amount = previous + Decimal(str(amount))
        self.credit_updates.append((str(user_id), Decimal(str(amount)), operation, str(project_id)))
        return CreditUpdate(previous_amount=previous, new_amount=profile.sama_credit_amount, operation=operation)


class FakePaymentGateway:

    def __init__(self, succeed=True, message='Payment was declined'):
        self.succeed = succeed
        self.message = message
        self.charges = []

    def charge(self, amount, purpose, user_id):
        self.charges.append((Decimal(str(amount)), purpose, str(user_id)))
        if not self.succeed:
            return ChargeResult(success=False, reference='', message=self.message)
        return ChargeResult(success=True, reference=f"FAKE-{len(self.charges):04d}", message='Payment processed successfully')


class FakeNotificationGateway:

    def __init__(self, deliver=True):
        self.deliver = deliver
        self.sent = []

    def send_otp(self, phone, otp, project_id):
        self.sent.append((phone, otp, str(project_id)))
        return self.deliver

    @property
    def last_otp(self):
        return self.sent[-1][1] if self.sent else None
