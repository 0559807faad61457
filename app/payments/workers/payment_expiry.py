"""
Expiry sweep for abandoned online checkouts.

An online order sits in pending_payment until the gateway calls back. If
the customer abandons the hosted checkout, no callback ever comes; this
sweep cancels such orders once they are older than PAYMENT_EXPIRY_MINUTES
and releases any promo code they consumed.

Each order is handled independently. Losing the conditional update to a
webhook is the normal case and is counted as skipped; any other failure
is collected and the sweep moves on to the next order.

Tasks:
- expire_pending_payments: Periodic task (celery-beat, every 15 minutes)

Usage:
    from payments.workers import PaymentExpiryService

    result = PaymentExpiryService.expire_pending_payments()
    print(result.data.cancelled)

    # Or through Celery
    expire_pending_payments.delay()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from promotions.services import PromoUsageCompensator

from payments.models import Order
from payments.state_machines import OrderStatus, PaymentMethod
from payments.transitions import OrderTransitionApplier


@dataclass
class SweepSummary:
    """
    Aggregate result of one expiry sweep.

    Attributes:
        found: Candidates past the cutoff
        cancelled: Orders this sweep actually cancelled
        skipped: Orders another actor transitioned first
        compensated: Promo counters released
        errors: One entry per order that failed
        cutoff: Orders created before this instant were candidates
    """

    found: int = 0
    cancelled: int = 0
    skipped: int = 0
    compensated: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    cutoff: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "cancelled": self.cancelled,
            "skipped": self.skipped,
            "compensated": self.compensated,
            "errors": self.errors,
            "cutoffTime": self.cutoff.isoformat() if self.cutoff else None,
        }


class PaymentExpiryService(BaseService):
    """Cancels online orders stuck in pending_payment."""

    @classmethod
    def expire_pending_payments(
        cls,
        threshold_minutes: int | None = None,
        batch_size: int | None = None,
    ) -> ServiceResult[SweepSummary]:
        """
        Cancel abandoned online checkouts.

        Args:
            threshold_minutes: Age after which a pending_payment order is
                abandoned (defaults to PAYMENT_EXPIRY_MINUTES)
            batch_size: Maximum orders handled per run (defaults to
                PAYMENT_EXPIRY_BATCH_SIZE)

        Returns:
            ServiceResult with a SweepSummary; per-order failures are in
            summary.errors, the sweep itself does not fail
        """
        log = cls.get_logger()
        threshold_minutes = threshold_minutes or settings.PAYMENT_EXPIRY_MINUTES
        batch_size = batch_size or settings.PAYMENT_EXPIRY_BATCH_SIZE

        summary = SweepSummary(cutoff=timezone.now() - timedelta(minutes=threshold_minutes))

        candidates = list(
            Order.objects.filter(
                status=OrderStatus.PENDING_PAYMENT,
                payment_method=PaymentMethod.ONLINE,
                created_at__lt=summary.cutoff,
            )
            .order_by("created_at")
            .only("id", "promo_code")[:batch_size]
        )
        summary.found = len(candidates)

        log.info(
            "Starting payment expiry sweep",
            extra={"found": summary.found, "cutoff": summary.cutoff.isoformat()},
        )

        for order in candidates:
            try:
                cls._expire_order(order, summary)
            except Exception as e:
                log.error(
                    "Failed to expire order",
                    extra={"order_id": str(order.pk), "error": str(e)},
                    exc_info=True,
                )
                summary.errors.append({"order_id": str(order.pk), "error": str(e)})

        log.info(
            "Payment expiry sweep completed",
            extra={
                "found": summary.found,
                "cancelled": summary.cancelled,
                "skipped": summary.skipped,
                "compensated": summary.compensated,
                "error_count": len(summary.errors),
            },
        )
        return ServiceResult.success(summary)

    @classmethod
    def _expire_order(cls, order: Order, summary: SweepSummary) -> None:
        result = OrderTransitionApplier.expire_payment(order.pk)
        if not result.applied:
            summary.skipped += 1
            return

        summary.cancelled += 1
        expired = result.order

        if expired.promo_code:
            # The cancellation stands even if the promo counter cannot be released
            try:
                summary.compensated += PromoUsageCompensator.compensate(expired.pk)
            except Exception as e:
                cls.get_logger().error(
                    "Promo compensation failed for expired order",
                    extra={
                        "order_id": str(expired.pk),
                        "promo_code": expired.promo_code,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                summary.errors.append(
                    {
                        "order_id": str(expired.pk),
                        "stage": "promo_compensation",
                        "error": str(e),
                    }
                )

        NotificationService.notify_order_event(expired, NotificationType.PAYMENT_EXPIRED)


# =============================================================================
# Periodic Task
# =============================================================================


@shared_task(bind=True)
def expire_pending_payments(self, threshold_minutes: int | None = None) -> dict:
    """
    Cancel abandoned online checkouts.

    Scheduled via celery-beat every PAYMENT_EXPIRY_SWEEP_INTERVAL_MINUTES.

    Returns:
        Dict with the sweep summary
    """
    result = PaymentExpiryService.expire_pending_payments(threshold_minutes=threshold_minutes)
    return result.data.to_dict()
