"""
Merchant and Settlement models.

A Settlement is the amount a merchant owes the platform (commission on
cash-on-delivery orders) for one period. Once the period ends plus a grace
window without payment, the settlement becomes overdue exactly once.

State Flow:
    PENDING -> OVERDUE -> PAID
    PENDING -> PAID
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import SettlementStatus


class Merchant(BaseModel):
    """A store selling through the marketplace."""

    name = models.CharField(max_length=200)

    email = models.EmailField(
        null=True,
        blank=True,
        help_text="Address that receives settlement reminders",
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="merchants",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Settlement(BaseModel):
    """
    Amount owed by a merchant for one settlement period.

    The status field is an FSMField; the in-memory transition validates the
    source state and the persisted write goes through
    SettlementTransitionApplier, conditioned on the status read.
    """

    merchant = models.ForeignKey(
        Merchant,
        on_delete=models.PROTECT,
        related_name="settlements",
    )

    period_start = models.DateTimeField()

    period_end = models.DateTimeField(db_index=True)

    net_amount_due = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Commission owed to the platform for the period",
    )

    total_orders = models.PositiveIntegerField(default=0)

    status = FSMField(
        default=SettlementStatus.PENDING,
        choices=SettlementStatus.choices,
        db_index=True,
    )

    overdue_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-period_end"]
        indexes = [
            models.Index(
                fields=["status", "period_end"],
                name="payments_se_status_4e91b3_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Settlement({self.pk}, {self.merchant_id}, {self.status})"

    @transition(
        field=status,
        source=SettlementStatus.PENDING,
        target=SettlementStatus.OVERDUE,
    )
    def mark_overdue(self):
        """
        Flag the settlement as overdue.

        Transition: PENDING -> OVERDUE
        """
        self.overdue_at = timezone.now()

