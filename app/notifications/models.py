"""
Customer notification models.

Notifications are the in-app messages a customer sees about their orders:
payment confirmed, payment failed, checkout expired, refund processed,
refund failed. Rows are immutable once created; title and body are fully
rendered strings kept as a historical record.

Usage:
    from notifications.models import CustomerNotification, NotificationType

    CustomerNotification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationType(models.TextChoices):
    """Kinds of order notifications sent to customers."""

    PAYMENT_SUCCESS = "payment_success", "Payment Success"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    PAYMENT_EXPIRED = "payment_expired", "Payment Expired"
    REFUND_PROCESSED = "refund_processed", "Refund Processed"
    REFUND_FAILED = "refund_failed", "Refund Failed"


class CustomerNotification(BaseModel):
    """
    A notification delivered to one customer.

    Fields:
        recipient: Customer receiving the notification
        notification_type: What happened
        title: Rendered title
        body: Rendered body
        related_order: Order the notification is about (kept NULL if deleted)
        data: JSON context (order id, payment status, transaction id)
        is_read: Whether the customer opened it
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="customer_notifications",
    )

    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        db_index=True,
    )

    title = models.CharField(max_length=200)

    body = models.TextField(blank=True, default="")

    related_order = models.ForeignKey(
        "payments.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )

    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read"],
                name="notificatio_recipie_8a3f2c_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"CustomerNotification({self.notification_type} -> {self.recipient_id})"
