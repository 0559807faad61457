"""
Order model: the checkout order whose payment lifecycle is reconciled here.

Order rows are created at checkout by the storefront. From then on every
payment-status-affecting field is written only by
payments.transitions.OrderTransitionApplier through conditional updates;
plain save() is reserved for creation and admin edits of unrelated fields.

Usage:
    from payments.models import Order
    from payments.state_machines import OrderStatus, PaymentMethod, PaymentStatus

    order = Order.objects.create(
        customer=user,
        merchant=merchant,
        total=Decimal("250.00"),
        payment_method=PaymentMethod.ONLINE,
        payment_status=PaymentStatus.PENDING,
        status=OrderStatus.PENDING_PAYMENT,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)


def default_currency() -> str:
    return settings.KASHIER_CURRENCY


class Order(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    A customer's checkout order.

    Invariants:
        - payment_status paid/failed is terminal, except paid -> refunded
        - status cancelled is terminal for the webhook failure and expiry paths
        - payment_transaction_id is written once and never replaced
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Customer who placed the order",
    )

    merchant = models.ForeignKey(
        "payments.Merchant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Merchant fulfilling the order",
    )

    # ==========================================================================
    # Amount & Payment
    # ==========================================================================

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Order total charged to the customer",
    )

    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNSET,
        db_index=True,
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PAYMENT,
        db_index=True,
        help_text="Fulfillment status",
    )

    promo_code = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Promo code consumed when the order was created",
    )

    # ==========================================================================
    # Gateway Payment Data
    # ==========================================================================

    payment_transaction_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Gateway transaction reference (set once)",
    )

    payment_response = models.JSONField(
        null=True,
        blank=True,
        help_text="Raw gateway callback that settled the payment",
    )

    payment_completed_at = models.DateTimeField(null=True, blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Refund Data
    # ==========================================================================

    refund_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )

    refund_transaction_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Gateway refund reference",
    )

    refund_reason = models.TextField(null=True, blank=True)

    refunded_at = models.DateTimeField(null=True, blank=True)

    status_before_refund = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
        help_text="Fulfillment status restored if the gateway denies the refund",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="payments_or_status_0c5a1e_idx",
            ),
            models.Index(
                fields=["payment_method", "status"],
                name="payments_or_payment_7d2b4f_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gte=0),
                name="order_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}/{self.payment_status}, {self.total} {self.currency})"

    @property
    def is_online(self) -> bool:
        return self.payment_method == PaymentMethod.ONLINE

    @property
    def has_terminal_payment(self) -> bool:
        return self.payment_status in (PaymentStatus.PAID, PaymentStatus.FAILED)
