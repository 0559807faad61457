"""
Promo code models.

PromoCode.usage_count is a shared counter written by checkout (increment)
and by the compensator (decrement). Both sides use conditional updates;
the counter is never locked and never allowed below zero.

PromoCodeUsage is the per-order ledger of a consumed promo code. A row
existing means the order still counts against the code.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class PromoCode(BaseModel):
    """
    A discount code that can be consumed by orders.

    Fields:
        code: Code customers type at checkout (unique)
        usage_count: How many orders currently hold the code
        max_uses: Optional cap on usage_count
        is_active: Whether new orders may use the code
    """

    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")
    usage_count = models.PositiveIntegerField(default=0)
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(usage_count__gte=0),
                name="promo_usage_count_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return self.code


class PromoCodeUsage(BaseModel):
    """One order's consumption of a promo code."""

    promo_code = models.ForeignKey(
        PromoCode,
        on_delete=models.CASCADE,
        related_name="usages",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="promo_code_usages",
    )
    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.CASCADE,
        related_name="promo_code_usages",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["promo_code", "order"],
                name="unique_promo_usage_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"PromoCodeUsage({self.promo_code_id} -> {self.order_id})"
