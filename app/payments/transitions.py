"""
Idempotent transition appliers for orders and settlements.

Every write that moves an order's payment status or a settlement's status
goes through this module. A transition is always framed as "move from this
expected state", never "set this value": the write is a single conditional
UPDATE and the number of affected rows decides who won.

    rows == 1  -> applied=True, this caller owns the side effects
    rows == 0  -> applied=False, another actor got there first (or the
                  row was never in the expected state); callers treat it
                  as a successful no-op

No locks are taken. Webhook requests, Celery sweeps and admin refunds can
run in different processes against the same row; the store's conditional
update is the only synchronization primitive.

Usage:
    from payments.transitions import OrderTransitionApplier

    result = OrderTransitionApplier.confirm_payment(order.id, "txn_123", payload)
    if result.applied:
        notify_customer(result.order)
    else:
        logger.info("Order already processed")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from django.db.models import F, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from payments.exceptions import InvalidStateTransitionError
from payments.models import Order, Settlement
from payments.state_machines import OrderStatus, PaymentStatus, SettlementStatus

if TYPE_CHECKING:
    from decimal import Decimal
    from uuid import UUID

    from django.db.models import Model

logger = logging.getLogger(__name__)

M = TypeVar("M")


@dataclass
class TransitionResult(Generic[M]):
    """
    Outcome of a conditional transition.

    Attributes:
        applied: True only for the single caller whose update hit the row
        instance: Fresh copy of the row after the write (None if not applied)
    """

    applied: bool
    instance: M | None = None

    @property
    def order(self) -> M | None:
        return self.instance

    def __bool__(self) -> bool:
        return self.applied


def compare_and_set(
    model_class: type[Model],
    pk: Any,
    expected: dict[str, Any],
    changes: dict[str, Any],
) -> int:
    """
    Conditionally update one row.

    Issues UPDATE ... SET <changes> WHERE pk = <pk> AND <expected>.

    Args:
        model_class: Django model to update
        pk: Primary key of the row
        expected: Field lookups the row must still match
        changes: Field values (or expressions) to write

    Returns:
        Number of rows affected (0 or 1)

    Raises:
        InvalidStateTransitionError: If expected is empty; an unguarded
            write would be a blind overwrite
    """
    if not expected:
        raise InvalidStateTransitionError(
            "A conditional update needs at least one expected field",
            details={"model": model_class.__name__, "pk": str(pk)},
        )
    return model_class.objects.filter(pk=pk, **expected).update(**changes)


# =============================================================================
# Order Transitions
# =============================================================================


class OrderTransitionApplier:
    """
    The only writer of payment-status-affecting order fields.

    apply() is the generic primitive; the named classmethods are the
    transitions the reconciliation engine actually performs.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def apply(
        cls,
        order_id: UUID | str,
        expected_status: str | None = None,
        expected_payment_status: str | None = None,
        payment_status: str | None = None,
        status: str | None = None,
        extra_fields: dict[str, Any] | None = None,
    ) -> TransitionResult[Order]:
        """
        Move an order out of an expected state.

        Args:
            order_id: Order primary key
            expected_status: Fulfillment status the order must still have
            expected_payment_status: Payment status the order must still have
            payment_status: New payment status (None leaves it unchanged)
            status: New fulfillment status (None leaves it unchanged)
            extra_fields: Additional columns written in the same UPDATE

        Returns:
            TransitionResult with applied flag and the refreshed order
        """
        expected: dict[str, Any] = {}
        if expected_status is not None:
            expected["status"] = expected_status
        if expected_payment_status is not None:
            expected["payment_status"] = expected_payment_status

        changes: dict[str, Any] = dict(extra_fields or {})
        if payment_status is not None:
            changes["payment_status"] = payment_status
        if status is not None:
            changes["status"] = status
        changes["version"] = F("version") + 1
        changes["updated_at"] = timezone.now()

        rows = compare_and_set(Order, order_id, expected, changes)

        log_context = {
            "order_id": str(order_id),
            "expected": {k: str(v) for k, v in expected.items()},
            "payment_status": payment_status,
            "status": status,
        }

        if rows == 0:
            cls.get_logger().info("Order transition not applied", extra=log_context)
            return TransitionResult(applied=False)

        cls.get_logger().info("Order transition applied", extra=log_context)
        return TransitionResult(applied=True, instance=Order.objects.get(pk=order_id))

    # -------------------------------------------------------------------------
    # Payment callbacks and expiry (guarded on status = pending_payment)
    # -------------------------------------------------------------------------

    @classmethod
    def confirm_payment(
        cls,
        order_id: UUID | str,
        transaction_id: str | None,
        gateway_payload: dict | None = None,
    ) -> TransitionResult[Order]:
        """pending_payment -> paid / pending (visible to the merchant)."""
        extra: dict[str, Any] = {
            "payment_response": gateway_payload,
            "payment_completed_at": timezone.now(),
        }
        if transaction_id:
            # Written once: an existing reference is never replaced
            extra["payment_transaction_id"] = Coalesce(
                F("payment_transaction_id"), Value(transaction_id)
            )
        return cls.apply(
            order_id,
            expected_status=OrderStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.PAID,
            status=OrderStatus.PENDING,
            extra_fields=extra,
        )

    @classmethod
    def mark_payment_pending(
        cls,
        order_id: UUID | str,
        gateway_payload: dict | None = None,
    ) -> TransitionResult[Order]:
        """pending_payment -> payment pending, fulfillment status unchanged."""
        return cls.apply(
            order_id,
            expected_status=OrderStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.PENDING,
            extra_fields={"payment_response": gateway_payload},
        )

    @classmethod
    def fail_payment(
        cls,
        order_id: UUID | str,
        gateway_payload: dict | None = None,
    ) -> TransitionResult[Order]:
        """pending_payment -> failed / cancelled (gateway said no)."""
        return cls.apply(
            order_id,
            expected_status=OrderStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.FAILED,
            status=OrderStatus.CANCELLED,
            extra_fields={
                "payment_response": gateway_payload,
                "cancelled_at": timezone.now(),
            },
        )

    @classmethod
    def expire_payment(cls, order_id: UUID | str) -> TransitionResult[Order]:
        """pending_payment -> failed / cancelled (abandoned checkout)."""
        return cls.apply(
            order_id,
            expected_status=OrderStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.FAILED,
            status=OrderStatus.CANCELLED,
            extra_fields={"cancelled_at": timezone.now()},
        )

    # -------------------------------------------------------------------------
    # Refunds (guarded on payment_status; fulfillment status varies)
    # -------------------------------------------------------------------------

    @classmethod
    def mark_refunded(
        cls,
        order_id: UUID | str,
        refund_amount: Decimal,
        refund_transaction_id: str | None,
        reason: str | None = None,
    ) -> TransitionResult[Order]:
        """
        paid -> refunded.

        The current fulfillment status is kept in status_before_refund so a
        later refund denial can restore it.
        """
        return cls.apply(
            order_id,
            expected_payment_status=PaymentStatus.PAID,
            payment_status=PaymentStatus.REFUNDED,
            status=OrderStatus.REFUNDED,
            extra_fields={
                "status_before_refund": F("status"),
                "refund_amount": refund_amount,
                "refund_transaction_id": refund_transaction_id,
                "refund_reason": reason,
                "refunded_at": timezone.now(),
            },
        )

    @classmethod
    def finalize_refund(
        cls,
        order_id: UUID | str,
        refund_amount: Decimal | None,
        refund_transaction_id: str | None,
    ) -> TransitionResult[Order]:
        """
        paid -> refunded, driven by an asynchronous gateway confirmation.

        Only needed when the synchronous path never recorded the refund.
        """
        extra: dict[str, Any] = {
            "status_before_refund": F("status"),
            "refunded_at": timezone.now(),
        }
        if refund_transaction_id:
            extra["refund_transaction_id"] = Coalesce(
                F("refund_transaction_id"), Value(refund_transaction_id)
            )
        if refund_amount is not None:
            extra["refund_amount"] = refund_amount
        return cls.apply(
            order_id,
            expected_payment_status=PaymentStatus.PAID,
            payment_status=PaymentStatus.REFUNDED,
            status=OrderStatus.REFUNDED,
            extra_fields=extra,
        )

    @classmethod
    def revert_refund(cls, order_id: UUID | str) -> TransitionResult[Order]:
        """
        refunded -> paid, when the gateway denies a refund after the fact.

        Restores the fulfillment status the order had before the refund
        (delivered when it was not recorded) and clears the refund fields.
        """
        return cls.apply(
            order_id,
            expected_payment_status=PaymentStatus.REFUNDED,
            payment_status=PaymentStatus.PAID,
            extra_fields={
                "status": Coalesce(
                    F("status_before_refund"), Value(OrderStatus.DELIVERED.value)
                ),
                "status_before_refund": None,
                "refund_amount": None,
                "refund_transaction_id": None,
                "refund_reason": None,
                "refunded_at": None,
            },
        )


# =============================================================================
# Settlement Transitions
# =============================================================================


class SettlementTransitionApplier:
    """Conditional writer for settlement status."""

    @classmethod
    def mark_overdue(cls, settlement: Settlement) -> TransitionResult[Settlement]:
        """
        pending -> overdue, at most once per settlement.

        The django-fsm transition validates the in-memory source state;
        the UPDATE is conditioned on the row still being pending so two
        overlapping scanner runs cannot both win.
        """
        try:
            settlement.mark_overdue()
        except TransitionNotAllowed:
            return TransitionResult(applied=False)

        rows = compare_and_set(
            Settlement,
            settlement.pk,
            expected={"status": SettlementStatus.PENDING},
            changes={
                "status": SettlementStatus.OVERDUE,
                "overdue_at": settlement.overdue_at,
                "updated_at": timezone.now(),
            },
        )

        if rows == 0:
            logger.info(
                "Settlement already transitioned",
                extra={"settlement_id": settlement.pk},
            )
            settlement.refresh_from_db()
            return TransitionResult(applied=False)

        return TransitionResult(applied=True, instance=settlement)
