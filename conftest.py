import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from rest_framework_simplejwt.models import TokenUser

from gateways.fakes import (
    FakeNotificationGateway,
    FakePaymentGateway,
    FakeQuoteGateway,
    FakeUserGateway,
)
from projects.models import Project


def make_principal(role='user', user_id=None):
    """A caller as the identity service would present it in a token."""
    return TokenUser({'user_id': str(user_id or uuid.uuid4()), 'role': role})


# ------------------------------------------------------------------
# Principals
# ------------------------------------------------------------------
@pytest.fixture
def owner():
    return make_principal('user')


@pytest.fixture
def contractor():
    return make_principal('contractor')


@pytest.fixture
def stranger():
    return make_principal('user')


@pytest.fixture
def admin():
    return make_principal('admin')


# ------------------------------------------------------------------
# Gateways
# ------------------------------------------------------------------
@pytest.fixture
def fake_gateways(owner):
    """
    Swap every gateway built by the services for an in-memory fake.
    The owner starts GREEN with 20,000 SAR of credit.
    """
    fakes = {
        'quote': FakeQuoteGateway(),
        'user': FakeUserGateway(),
        'payment': FakePaymentGateway(),
        'notification': FakeNotificationGateway(),
    }
    fakes['user'].set_profile(owner.id, credit='20000')

    def build(name):
        return fakes[name]

    with patch('projects.services.build_gateway', side_effect=build), \
            patch('payments.engine.build_gateway', side_effect=build), \
            patch('installations.services.build_gateway', side_effect=build):
        yield SimpleNamespace(**fakes)


# ------------------------------------------------------------------
# Data
# ------------------------------------------------------------------
@pytest.fixture
def project_factory(owner, contractor):
    def create(status=Project.PAYMENT_PENDING, total_amount='12000.00', user=None, assigned=None, **fields):
        return Project.objects.create(
            user_id=(user or owner).id,
            contractor_id=(assigned or contractor).id,
            quote_id=fields.pop('quote_id', f"quote-{uuid.uuid4().hex[:12]}"),
            request_id=fields.pop('request_id', f"req-{uuid.uuid4().hex[:8]}"),
            total_amount=Decimal(total_amount),
            status=status,
            **fields,
        )
    return create


@pytest.fixture
def project(project_factory):
    return project_factory()
