"""
Refund service for returning money on online-paid orders.

The gateway is called first, synchronously and exactly once. The order is
only written after the gateway confirmed the refund, through a conditional
update guarded on payment_status = paid (refunds can happen from several
fulfillment states, so the order status is not part of the guard).

Outcomes an administrator can tell apart:
    GATEWAY_REFUND_FAILED       - no money moved, order untouched
    REFUND_STORE_UPDATE_FAILED  - money moved, local write failed
    already_refunded=True       - money moved, a concurrent refund won the
                                  write; logged for manual reconciliation

Usage:
    from payments.services import RefundService

    result = RefundService.create_refund(
        order_id=order.id,
        reason="Item never arrived",
        amount=Decimal("50.00"),  # Partial refund
    )

    if result.success:
        print(f"Refund id: {result.data.refund_id}")
    else:
        print(f"{result.error_code}: {result.error}")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError

from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService

from payments.adapters import KashierAdapter
from payments.exceptions import GatewayConfigurationError, GatewayError
from payments.models import Order
from payments.state_machines import PaymentStatus
from payments.transitions import OrderTransitionApplier

if TYPE_CHECKING:
    from uuid import UUID


logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class RefundEligibility:
    """
    Result of refund eligibility check.

    Attributes:
        eligible: Whether the order can be refunded
        error_code: Machine-readable reason if not eligible
        block_reason: Human-readable reason if not eligible
        hint: Extra guidance for the administrator
    """

    eligible: bool
    error_code: str | None = None
    block_reason: str | None = None
    hint: str | None = None


@dataclass
class RefundOutcome:
    """
    Result of a refund that reached the gateway successfully.

    Attributes:
        order_id: Refunded order
        refund_id: Gateway refund reference recorded on the order
        amount: Refunded amount
        payment_status: Order payment status after the refund
        already_refunded: True if a concurrent refund recorded first
    """

    order_id: str
    refund_id: str | None
    amount: Decimal
    payment_status: str
    already_refunded: bool = False


class RefundService(BaseService):
    """
    Admin-initiated refunds.

    Methods:
        check_refund_eligibility: Preconditions checked before the gateway call
        create_refund: Refund at the gateway, then record it on the order
    """

    @classmethod
    def check_refund_eligibility(cls, order: Order) -> RefundEligibility:
        """
        Check the preconditions for refunding an order.

        Only online payments that are paid and carry a gateway
        transaction id can be refunded through the gateway.
        """
        if not order.is_online:
            return RefundEligibility(
                eligible=False,
                error_code="NOT_ONLINE_PAYMENT",
                block_reason="Only online payments can be refunded",
                hint="COD refunds are handled manually by the provider",
            )

        if order.payment_status == PaymentStatus.REFUNDED:
            return RefundEligibility(
                eligible=False,
                error_code="ALREADY_REFUNDED",
                block_reason="Order has already been refunded",
            )

        if order.payment_status != PaymentStatus.PAID:
            return RefundEligibility(
                eligible=False,
                error_code="NOT_PAID",
                block_reason=f"Order payment status is {order.payment_status}, not paid",
            )

        if not order.payment_transaction_id:
            return RefundEligibility(
                eligible=False,
                error_code="MISSING_TRANSACTION_ID",
                block_reason="Order has no gateway transaction id",
            )

        return RefundEligibility(eligible=True)

    @classmethod
    def create_refund(
        cls,
        order_id: UUID | str,
        reason: str,
        amount: Decimal | str | None = None,
        requested_by: int | None = None,
    ) -> ServiceResult[RefundOutcome]:
        """
        Refund an order.

        Implementation:
            1. Load the order and check eligibility
            2. Resolve the amount (defaults to the order total)
            3. Call the gateway once; on failure return without writing
            4. Record the refund with a conditional update on payment_status
            5. Lost race: report success with the stored refund id

        Args:
            order_id: Order to refund
            reason: Why the refund was issued (stored on the order)
            amount: Partial amount; None refunds the full total
            requested_by: Id of the staff user issuing the refund

        Returns:
            ServiceResult with RefundOutcome, or failure with one of
            ORDER_NOT_FOUND, NOT_ONLINE_PAYMENT, ALREADY_REFUNDED, NOT_PAID,
            MISSING_TRANSACTION_ID, INVALID_REFUND_AMOUNT,
            GATEWAY_REFUND_FAILED, REFUND_STORE_UPDATE_FAILED
        """
        log = cls.get_logger()
        log_context = {"order_id": str(order_id), "requested_by": requested_by}

        try:
            order = Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")

        eligibility = cls.check_refund_eligibility(order)
        if not eligibility.eligible:
            log.info(
                "Refund rejected",
                extra={**log_context, "error_code": eligibility.error_code},
            )
            return ServiceResult.failure(
                eligibility.block_reason,
                error_code=eligibility.error_code,
                details={"hint": eligibility.hint} if eligibility.hint else None,
            )

        refund_amount = cls._resolve_amount(order, amount)
        if refund_amount is None:
            return ServiceResult.failure(
                f"Refund amount must be greater than 0 and at most {order.total}",
                error_code="INVALID_REFUND_AMOUNT",
                details={"order_total": str(order.total)},
            )

        log_context["amount"] = str(refund_amount)

        # Step 1: Gateway call, never retried here
        try:
            gateway_result = KashierAdapter.create_refund(
                transaction_id=order.payment_transaction_id,
                order_id=str(order.pk),
                amount=refund_amount,
                currency=order.currency,
            )
        except (GatewayError, GatewayConfigurationError) as e:
            log.error(
                "Gateway refund failed, order untouched",
                extra={**log_context, "gateway_error": e.error_code},
            )
            details = {"gateway_error_code": e.error_code}
            if isinstance(e, GatewayError):
                details["retryable"] = e.is_retryable
            return ServiceResult.failure(
                e.message,
                error_code="GATEWAY_REFUND_FAILED",
                details=details,
            )

        refund_id = gateway_result.refund_id
        log_context["refund_id"] = refund_id

        # Step 2: Record the refund, conditioned on the order still being paid
        try:
            result = OrderTransitionApplier.mark_refunded(
                order.pk,
                refund_amount=refund_amount,
                refund_transaction_id=refund_id,
                reason=reason,
            )
        except DatabaseError:
            log.critical(
                "Refund succeeded at gateway but order update failed",
                extra=log_context,
                exc_info=True,
            )
            return ServiceResult.failure(
                "Refund processed by the gateway but the order could not be updated",
                error_code="REFUND_STORE_UPDATE_FAILED",
                details={"refund_id": refund_id},
            )

        if not result.applied:
            current = Order.objects.get(pk=order.pk)
            log.error(
                "Refund succeeded at gateway but order was already refunded",
                extra={
                    **log_context,
                    "stored_refund_id": current.refund_transaction_id,
                    "payment_status": current.payment_status,
                },
            )
            return ServiceResult.success(
                RefundOutcome(
                    order_id=str(order.pk),
                    refund_id=current.refund_transaction_id or refund_id,
                    amount=current.refund_amount or refund_amount,
                    payment_status=current.payment_status,
                    already_refunded=True,
                )
            )

        log.info("Refund recorded", extra=log_context)
        NotificationService.notify_order_event(
            result.order,
            NotificationType.REFUND_PROCESSED,
            extra_data={"refund_id": refund_id, "amount": str(refund_amount)},
        )

        return ServiceResult.success(
            RefundOutcome(
                order_id=str(order.pk),
                refund_id=refund_id,
                amount=refund_amount,
                payment_status=result.order.payment_status,
            )
        )

    @staticmethod
    def _resolve_amount(order: Order, amount: Decimal | str | None) -> Decimal | None:
        """Refund amount, or None if it is not positive or exceeds the total."""
        if amount is None:
            return order.total
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        if value <= 0 or value > order.total:
            return None
        return value
