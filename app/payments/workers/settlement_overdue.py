"""
Settlement overdue scanner.

Finds pending settlements whose period ended more than
SETTLEMENT_OVERDUE_GRACE_DAYS ago, moves each to overdue at most once, and
emails the merchant only when this run made the transition. Overlapping
runs cannot double-process a settlement: the write is conditioned on the
row still being pending.

Tasks:
- mark_overdue_settlements: Periodic task (celery-beat, daily)

Usage:
    from payments.workers import SettlementOverdueService

    result = SettlementOverdueService.mark_overdue_settlements(grace_days=1)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ServiceResult
from notifications.services import EmailService

from payments.models import Settlement
from payments.state_machines import SettlementStatus
from payments.transitions import SettlementTransitionApplier

OVERDUE_EMAIL_TEMPLATE = "notifications/email/settlement_overdue"


@dataclass
class OverdueSummary:
    """
    Aggregate result of one scanner run.

    Attributes:
        found: Pending settlements past the grace window
        updated: Settlements this run moved to overdue
        emails_sent: Merchant reminders delivered
        errors: One message per failed settlement or email
    """

    found: int = 0
    updated: int = 0
    emails_sent: int = 0
    errors: list[str] = field(default_factory=list)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "overdueFound": self.found,
            "statusUpdated": self.updated,
            "emailsSent": self.emails_sent,
            "errors": self.errors,
        }


def overdue_days(period_end: datetime, now: datetime) -> int:
    """Whole days past the period end, rounded up."""
    return math.ceil((now - period_end) / timedelta(days=1))


class SettlementOverdueService(BaseService):
    """Marks unpaid settlements overdue and reminds merchants."""

    @classmethod
    def mark_overdue_settlements(cls, grace_days: int | None = None) -> ServiceResult[OverdueSummary]:
        """
        Scan pending settlements past the grace window.

        Args:
            grace_days: Days after period_end before a settlement is overdue
                (defaults to SETTLEMENT_OVERDUE_GRACE_DAYS)

        Returns:
            ServiceResult with an OverdueSummary; per-settlement failures
            are collected in summary.errors
        """
        log = cls.get_logger()
        if grace_days is None:
            grace_days = settings.SETTLEMENT_OVERDUE_GRACE_DAYS

        now = timezone.now()
        summary = OverdueSummary(timestamp=now)

        candidates = list(
            Settlement.objects.select_related("merchant")
            .filter(
                status=SettlementStatus.PENDING,
                period_end__lt=now - timedelta(days=grace_days),
            )
            .order_by("period_end")
        )
        summary.found = len(candidates)

        for settlement in candidates:
            try:
                cls._process_settlement(settlement, now, summary)
            except Exception as e:
                log.error(
                    "Failed to process overdue settlement",
                    extra={"settlement_id": settlement.pk, "error": str(e)},
                    exc_info=True,
                )
                summary.errors.append(f"Settlement {settlement.pk}: {e}")

        log.info(
            "Settlement overdue scan completed",
            extra={
                "found": summary.found,
                "updated": summary.updated,
                "emails_sent": summary.emails_sent,
                "error_count": len(summary.errors),
            },
        )
        return ServiceResult.success(summary)

    @classmethod
    def _process_settlement(
        cls,
        settlement: Settlement,
        now: datetime,
        summary: OverdueSummary,
    ) -> None:
        result = SettlementTransitionApplier.mark_overdue(settlement)
        if not result.applied:
            return

        summary.updated += 1
        merchant = settlement.merchant
        if not merchant.email:
            cls.get_logger().warning(
                "Overdue settlement merchant has no email",
                extra={"settlement_id": settlement.pk, "merchant_id": merchant.pk},
            )
            return

        days = overdue_days(settlement.period_end, now)
        sent = EmailService.send(
            to=merchant.email,
            subject=f"Settlement payment overdue - {days} day{'s' if days != 1 else ''}",
            template_name=OVERDUE_EMAIL_TEMPLATE,
            context={
                "merchant_name": merchant.name,
                "settlement_id": settlement.pk,
                "amount_due": settlement.net_amount_due,
                "overdue_days": days,
                "period_start": settlement.period_start,
                "period_end": settlement.period_end,
                "dashboard_url": settings.MERCHANT_DASHBOARD_URL,
            },
        )
        if sent:
            summary.emails_sent += 1
        else:
            summary.errors.append(f"Settlement {settlement.pk}: failed to email {merchant.email}")


# =============================================================================
# Periodic Task
# =============================================================================


@shared_task(bind=True)
def mark_overdue_settlements(self, grace_days: int | None = None) -> dict:
    """
    Mark overdue settlements and email merchants.

    Scheduled via celery-beat once a day.
    """
    result = SettlementOverdueService.mark_overdue_settlements(grace_days=grace_days)
    return result.data.to_dict()
