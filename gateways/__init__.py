"""
Clients for the services this orchestrator depends on.

Concrete classes are selected per deployment through the ``PROJECT_GATEWAYS``
setting, so tests and local runs can swap in deterministic implementations.
"""
from django.conf import settings
from django.utils.module_loading import import_string


DEFAULT_GATEWAYS = {
    'quote': 'gateways.quotes.HttpQuoteGateway',
    'user': 'gateways.users.HttpUserGateway',
    'payment': 'gateways.payments.SandboxPaymentGateway',
    'notification': 'gateways.notifications.ConsoleSmsGateway',
}


def build_gateway(name):
    """Instantiate the gateway configured for ``name``."""
    configured = getattr(settings, 'PROJECT_GATEWAYS', {}) or {}
    dotted_path = configured.get(name) or DEFAULT_GATEWAYS[name]
    return import_string(dotted_path)()
