"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_configure():
    """Adjust Django settings before tests run."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # Test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False

    # No Redis during tests
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }


@pytest.fixture(autouse=True)
def gateway_settings(settings):
    """Known gateway credentials and cron secret for every test."""
    settings.KASHIER_MERCHANT_ID = "MID-TEST-1"
    settings.KASHIER_API_KEY = "test-api-key"
    settings.KASHIER_SECRET_KEY = "test-secret-key"
    settings.KASHIER_MODE = "test"
    settings.KASHIER_API_URL = "https://api.kashier.test"
    settings.KASHIER_CHECKOUT_URL = "https://checkout.kashier.test"
    settings.KASHIER_CURRENCY = "EGP"
    settings.KASHIER_API_TIMEOUT_SECONDS = 10
    settings.CRON_SECRET = "test-cron-secret"
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    return settings


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_adapters.py, test_callbacks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_webhooks.py",
        "test_handlers.py",
        "test_transitions.py",
        "test_refund_service.py",
        "test_payment_expiry.py",
        "test_settlement_overdue.py",
        "test_compensator.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_adapters.py",
        "test_callbacks.py",
        "test_states.py",
        "test_permissions.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
