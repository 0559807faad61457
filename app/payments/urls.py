"""
URL configuration for the payments app.

Routes:
    - GET|POST /webhooks/kashier/ - Payment callback
    - GET|POST /webhooks/kashier/refund/ - Refund callback
    - GET|POST /cron/expire-pending-payments/ - Expiry sweep
    - GET|POST /cron/settlement-overdue/ - Overdue settlement scan
    - POST /orders/<order_id>/refund/ - Staff refund

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    path("api/v1/payments/", include("payments.urls")),
"""

from django.urls import path

from payments.views import (
    ExpirePendingPaymentsCronView,
    OrderRefundView,
    SettlementOverdueCronView,
)
from payments.webhooks.views import kashier_refund_webhook, kashier_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/kashier/", kashier_webhook, name="kashier_webhook"),
    path("webhooks/kashier/refund/", kashier_refund_webhook, name="kashier_refund_webhook"),
    # Scheduler endpoints
    path(
        "cron/expire-pending-payments/",
        ExpirePendingPaymentsCronView.as_view(),
        name="cron_expire_pending_payments",
    ),
    path(
        "cron/settlement-overdue/",
        SettlementOverdueCronView.as_view(),
        name="cron_settlement_overdue",
    ),
    # Refunds
    path("orders/<uuid:order_id>/refund/", OrderRefundView.as_view(), name="order_refund"),
]
