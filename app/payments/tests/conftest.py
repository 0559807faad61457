"""
Pytest fixtures for payment tests.

Usage:
    def test_success_callback(client, pending_order, signed):
        params = signed({"orderId": str(pending_order.id), "paymentStatus": "SUCCESS"})
"""

import pytest
from rest_framework.test import APIClient

from core.tests.factories import UserFactory
from payments.adapters import KashierAdapter
from payments.tests.factories import MerchantFactory, OrderFactory, age_order


# =============================================================================
# Users and Clients
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return UserFactory(is_staff=True)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def staff_client(api_client, staff_user):
    api_client.force_authenticate(user=staff_user)
    return api_client


@pytest.fixture
def cron_headers(settings):
    return {"HTTP_AUTHORIZATION": f"Bearer {settings.CRON_SECRET}"}


# =============================================================================
# Orders
# =============================================================================


@pytest.fixture
def merchant(db):
    return MerchantFactory()


@pytest.fixture
def pending_order(db, user, merchant):
    """Online order waiting for the gateway, created just now."""
    return OrderFactory(customer=user, merchant=merchant)


@pytest.fixture
def stale_order(db, user, merchant):
    """Online order abandoned 45 minutes ago."""
    return age_order(OrderFactory(customer=user, merchant=merchant), minutes=45)


@pytest.fixture
def paid_order(db, user, merchant):
    return OrderFactory(customer=user, merchant=merchant, paid=True)


# =============================================================================
# Gateway Signatures
# =============================================================================


@pytest.fixture
def signed():
    """Return a helper that adds a valid gateway signature to callback params."""

    def _sign(params: dict) -> dict:
        return {**params, "signature": KashierAdapter.compute_signature(params)}

    return _sign
