"""
Webhook handling for Kashier payment and refund callbacks.

Callbacks are parsed once at the boundary (callbacks.py), verified,
and applied synchronously through the transition applier (handlers.py).

Usage:
    # In urls.py
    from payments.webhooks import kashier_refund_webhook, kashier_webhook

    urlpatterns = [
        path("webhooks/kashier/", kashier_webhook, name="kashier-webhook"),
    ]
"""

from payments.webhooks.handlers import (
    process_payment_callback,
    process_refund_callback,
    register_handler,
)
from payments.webhooks.views import kashier_refund_webhook, kashier_webhook

__all__ = [
    "kashier_refund_webhook",
    "kashier_webhook",
    "process_payment_callback",
    "process_refund_callback",
    "register_handler",
]
