"""
Promo usage compensation.

When an order that consumed a promo code is cancelled before payment, the
code's usage is released: the ledger row goes away and the counter is
decremented once.

Both writes are conditional. The ledger delete is by primary key, so when
two compensators race for the same order only the one that actually
removed the row goes on to decrement. The decrement itself is an
optimistic compare-and-set on usage_count, retried a bounded number of
times and clamped at zero.

Usage:
    from promotions.services import PromoUsageCompensator

    released = PromoUsageCompensator.compensate(order.id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from payments.transitions import compare_and_set

from promotions.exceptions import PromoCompensationError
from promotions.models import PromoCode, PromoCodeUsage

if TYPE_CHECKING:
    from uuid import UUID


class PromoUsageCompensator(BaseService):
    """Releases the promo code usage held by a cancelled order."""

    @classmethod
    def compensate(cls, order_id: UUID | str) -> int:
        """
        Release every promo usage recorded for an order.

        Calling it again for the same order is a no-op.

        Args:
            order_id: Cancelled order

        Returns:
            Number of promo counters decremented

        Raises:
            PromoCompensationError: A counter could not be decremented after
                the configured number of attempts
        """
        log = cls.get_logger()
        usages = list(
            PromoCodeUsage.objects.filter(order_id=order_id).values_list(
                "pk", "promo_code_id"
            )
        )

        released = 0
        for usage_id, promo_code_id in usages:
            with cls.atomic():
                deleted, _ = PromoCodeUsage.objects.filter(pk=usage_id).delete()
                if not deleted:
                    log.info(
                        "Promo usage already released",
                        extra={"order_id": str(order_id), "usage_id": usage_id},
                    )
                    continue
                cls._decrement(promo_code_id, order_id)
            released += 1

        if released:
            log.info(
                "Promo usage compensated",
                extra={"order_id": str(order_id), "released": released},
            )
        return released

    @classmethod
    def _decrement(cls, promo_code_id: int, order_id: UUID | str) -> None:
        """Optimistic usage_count - 1, never below zero."""
        max_attempts = settings.PROMO_COMPENSATION_MAX_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            current = (
                PromoCode.objects.filter(pk=promo_code_id)
                .values_list("usage_count", flat=True)
                .first()
            )
            if current is None or current == 0:
                cls.get_logger().warning(
                    "Promo counter already at zero or code missing",
                    extra={"promo_code_id": promo_code_id, "order_id": str(order_id)},
                )
                return

            rows = compare_and_set(
                PromoCode,
                promo_code_id,
                expected={"usage_count": current},
                changes={"usage_count": current - 1},
            )
            if rows == 1:
                return

            cls.get_logger().info(
                "Promo counter changed concurrently, retrying",
                extra={"promo_code_id": promo_code_id, "attempt": attempt},
            )

        raise PromoCompensationError(
            "Could not decrement promo usage counter",
            details={
                "promo_code_id": promo_code_id,
                "order_id": str(order_id),
                "attempts": max_attempts,
            },
        )
