"""
Payments app configuration.

This app reconciles the Kashier payment lifecycle with the order store:
- Gateway callbacks (payment and refund)
- Staff refunds
- Scheduled expiry and settlement sweeps
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
