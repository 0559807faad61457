"""
Payment and refund callback handlers.

Callbacks reach these functions already parsed and with a verified
signature. Each handler looks the order up, applies the idempotency
short-circuits, and moves the order through OrderTransitionApplier. Only
the caller whose conditional update actually hit the row notifies the
customer.

The handler registry maps a resolved gateway status to the transition it
triggers:

    SUCCESS            -> confirm_payment   (paid / pending)
    PENDING            -> mark_payment_pending
    FAILED, CANCELLED  -> fail_payment      (failed / cancelled, promo released)
    anything else      -> acknowledged, no change

Usage:
    from payments.webhooks.handlers import process_payment_callback

    result = process_payment_callback(PaymentCallback.from_params(params))
    if result.success:
        return JsonResponse({"success": True, "message": result.data.message})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from django.core.exceptions import ValidationError as DjangoValidationError

from core.services import ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from promotions.services import PromoUsageCompensator

from payments.models import Order
from payments.state_machines import (
    GatewayPaymentStatus,
    OrderStatus,
    PaymentStatus,
    RefundCallbackStatus,
)
from payments.transitions import OrderTransitionApplier, TransitionResult

if TYPE_CHECKING:
    from payments.webhooks.callbacks import PaymentCallback, RefundCallback


logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Order already processed"


@dataclass
class WebhookOutcome:
    """
    What a callback did to the order.

    Attributes:
        order_id: Order the callback referred to
        message: Human-readable result, echoed to the gateway
        applied: True if this callback changed the order
        payment_status: Order payment status after handling
    """

    order_id: str
    message: str
    applied: bool = False
    payment_status: str | None = None


# =============================================================================
# Handler Registry
# =============================================================================


PaymentHandler = Callable[[Order, "PaymentCallback"], TransitionResult[Order]]

# Maps resolved gateway statuses to transition handlers
PAYMENT_HANDLERS: dict[GatewayPaymentStatus, PaymentHandler] = {}


def register_handler(*statuses: GatewayPaymentStatus) -> Callable:
    """
    Decorator to register a payment callback handler.

    Usage:
        @register_handler(GatewayPaymentStatus.SUCCESS)
        def handle_success(order: Order, callback: PaymentCallback) -> TransitionResult:
            ...

    Args:
        statuses: Gateway statuses the handler is responsible for

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: PaymentHandler) -> PaymentHandler:
        for status in statuses:
            PAYMENT_HANDLERS[status] = func
        return func

    return decorator


@register_handler(GatewayPaymentStatus.SUCCESS)
def handle_payment_success(order: Order, callback: PaymentCallback) -> TransitionResult[Order]:
    return OrderTransitionApplier.confirm_payment(
        order.pk,
        transaction_id=callback.transaction_id,
        gateway_payload=callback.params,
    )


@register_handler(GatewayPaymentStatus.PENDING)
def handle_payment_pending(order: Order, callback: PaymentCallback) -> TransitionResult[Order]:
    return OrderTransitionApplier.mark_payment_pending(
        order.pk,
        gateway_payload=callback.params,
    )


@register_handler(GatewayPaymentStatus.FAILED, GatewayPaymentStatus.CANCELLED)
def handle_payment_failure(order: Order, callback: PaymentCallback) -> TransitionResult[Order]:
    return OrderTransitionApplier.fail_payment(
        order.pk,
        gateway_payload=callback.params,
    )


# Terminal payment statuses and the notification each one sends
TERMINAL_NOTIFICATIONS = {
    PaymentStatus.PAID: NotificationType.PAYMENT_SUCCESS,
    PaymentStatus.FAILED: NotificationType.PAYMENT_FAILED,
}


# =============================================================================
# Lookup
# =============================================================================


def get_order(order_id: str) -> Order | None:
    """Fetch an order, treating malformed ids like unknown ones."""
    try:
        return Order.objects.get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError, ValueError):
        return None


def _order_not_found(order_id: str) -> ServiceResult[WebhookOutcome]:
    logger.warning("Callback for unknown order", extra={"order_id": order_id})
    return ServiceResult.failure(
        "Order not found",
        error_code="ORDER_NOT_FOUND",
        details={"order_id": order_id},
    )


# =============================================================================
# Payment Callbacks
# =============================================================================


def release_promo_usage(order: Order) -> int:
    """
    Give back the promo code a cancelled order consumed.

    The cancellation already stands, so a compensation failure is logged
    and the callback is still acknowledged.
    """
    try:
        return PromoUsageCompensator.compensate(order.pk)
    except Exception as e:
        logger.error(
            "Promo compensation failed for cancelled order",
            extra={"order_id": str(order.pk), "promo_code": order.promo_code, "error": str(e)},
            exc_info=True,
        )
        return 0


def is_already_processed(order: Order, callback: PaymentCallback) -> bool:
    """
    Duplicate or late callbacks that must not write anything.

    True when the payment is already terminal, the order is cancelled,
    the same transaction was already recorded, or a repeated PENDING
    arrives for an order already marked pending.
    """
    if order.has_terminal_payment:
        return True
    if order.status == OrderStatus.CANCELLED:
        return True
    if callback.transaction_id and order.payment_transaction_id == callback.transaction_id:
        return True
    return (
        callback.status == GatewayPaymentStatus.PENDING
        and order.payment_status == PaymentStatus.PENDING
    )


def process_payment_callback(callback: PaymentCallback) -> ServiceResult[WebhookOutcome]:
    """
    Apply a verified payment callback to its order.

    Args:
        callback: Parsed callback with a verified signature

    Returns:
        ServiceResult with a WebhookOutcome, or failure ORDER_NOT_FOUND
    """
    order_id = str(callback.order_id)
    log_context = {
        "order_id": order_id,
        "transaction_id": callback.transaction_id,
        "gateway_status": callback.raw_status,
    }

    order = get_order(order_id)
    if order is None:
        return _order_not_found(order_id)

    if is_already_processed(order, callback):
        logger.info(
            "Payment callback short-circuited",
            extra={**log_context, "payment_status": order.payment_status, "status": order.status},
        )
        return ServiceResult.success(
            WebhookOutcome(order_id, ALREADY_PROCESSED, payment_status=order.payment_status)
        )

    handler = PAYMENT_HANDLERS.get(callback.status)
    if handler is None:
        logger.warning("Unrecognised gateway payment status, no change made", extra=log_context)
        return ServiceResult.success(
            WebhookOutcome(
                order_id,
                "Status not actionable",
                payment_status=order.payment_status,
            )
        )

    result = handler(order, callback)
    if not result.applied:
        # Another path (usually the expiry sweep) got there first
        return ServiceResult.success(
            WebhookOutcome(order_id, ALREADY_PROCESSED, payment_status=order.payment_status)
        )

    updated = result.order
    logger.info(
        "Payment callback applied",
        extra={**log_context, "payment_status": updated.payment_status},
    )

    if updated.status == OrderStatus.CANCELLED and updated.promo_code:
        release_promo_usage(updated)

    notification_type = TERMINAL_NOTIFICATIONS.get(updated.payment_status)
    if notification_type:
        NotificationService.notify_order_event(updated, notification_type)

    return ServiceResult.success(
        WebhookOutcome(
            order_id,
            "Payment status updated",
            applied=True,
            payment_status=updated.payment_status,
        )
    )


# =============================================================================
# Refund Callbacks
# =============================================================================


def process_refund_callback(callback: RefundCallback) -> ServiceResult[WebhookOutcome]:
    """
    Apply a verified refund callback to its order.

    Confirmed refunds finalize paid -> refunded unless the synchronous
    refund path already did. Denied refunds revert refunded -> paid and
    notify the customer once. Anything else is logged and ignored.
    """
    order_id = str(callback.order_id)
    log_context = {
        "order_id": order_id,
        "refund_id": callback.refund_id,
        "gateway_status": callback.raw_status,
    }

    order = get_order(order_id)
    if order is None:
        return _order_not_found(order_id)

    if callback.status == RefundCallbackStatus.CONFIRMED:
        if order.payment_status == PaymentStatus.REFUNDED:
            return ServiceResult.success(
                WebhookOutcome(order_id, "Refund already finalized", payment_status=order.payment_status)
            )

        result = OrderTransitionApplier.finalize_refund(
            order.pk,
            refund_amount=callback.amount if callback.amount is not None else order.total,
            refund_transaction_id=callback.refund_id,
        )
        if not result.applied:
            logger.warning(
                "Refund confirmation for an order that is not paid",
                extra={**log_context, "payment_status": order.payment_status},
            )
            return ServiceResult.success(
                WebhookOutcome(order_id, ALREADY_PROCESSED, payment_status=order.payment_status)
            )

        logger.info("Refund finalized from callback", extra=log_context)
        NotificationService.notify_order_event(
            result.order,
            NotificationType.REFUND_PROCESSED,
            extra_data={"refund_id": callback.refund_id},
        )
        return ServiceResult.success(
            WebhookOutcome(
                order_id,
                "Refund finalized",
                applied=True,
                payment_status=result.order.payment_status,
            )
        )

    if callback.status == RefundCallbackStatus.DENIED:
        result = OrderTransitionApplier.revert_refund(order.pk)
        if not result.applied:
            return ServiceResult.success(
                WebhookOutcome(order_id, ALREADY_PROCESSED, payment_status=order.payment_status)
            )

        # Money did not move after all; support follows up with the customer
        logger.error(
            "Refund denied by gateway, order reverted to paid",
            extra={
                **log_context,
                "previous_refund_id": order.refund_transaction_id,
                "failure_reason": callback.failure_reason,
            },
        )
        NotificationService.notify_order_event(
            result.order,
            NotificationType.REFUND_FAILED,
            extra_data={"refund_id": callback.refund_id, "reason": callback.failure_reason},
        )
        return ServiceResult.success(
            WebhookOutcome(
                order_id,
                "Refund reverted",
                applied=True,
                payment_status=result.order.payment_status,
            )
        )

    logger.info("Refund callback status not actionable, no change made", extra=log_context)
    return ServiceResult.success(
        WebhookOutcome(order_id, "Refund status not actionable", payment_status=order.payment_status)
    )
