"""
Gateway callback parsing.

Callbacks arrive as JSON bodies, form posts or redirect-style query
strings, and Kashier uses several aliases for the same field. Everything
is resolved here, once, into a typed callback object; handlers never look
at raw parameters except to verify the signature over them.

Aliases:
    order id:        orderId | merchantOrderId
    transaction id:  transactionId | kashierOrderId
    payment status:  paymentStatus | status
    failure reason:  error | failureReason
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from payments.state_machines import GatewayPaymentStatus, RefundCallbackStatus

if TYPE_CHECKING:
    from django.http import HttpRequest

logger = logging.getLogger(__name__)


class MalformedCallbackError(ValueError):
    """Raised when a callback body cannot be decoded at all."""


def extract_params(request: HttpRequest) -> dict[str, Any]:
    """
    Normalize GET query strings, JSON bodies and form posts to one dict.

    Raises:
        MalformedCallbackError: Body claims to be JSON but is not a JSON object
    """
    if request.method == "GET":
        return {key: request.GET.get(key) for key in request.GET}

    if request.content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        return {key: request.POST.get(key) for key in request.POST}

    try:
        data = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedCallbackError("Callback body is not valid JSON") from e
    if not isinstance(data, dict):
        raise MalformedCallbackError("Callback body must be a JSON object")
    return data


def _first(params: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = params.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _decimal(value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        logger.warning("Ignoring unparseable callback amount", extra={"amount": value})
        return None


@dataclass(frozen=True)
class PaymentCallback:
    """
    A payment notification from the gateway.

    Attributes:
        order_id: Our order id as echoed by the gateway
        transaction_id: Gateway transaction reference
        status: Resolved gateway status (UNKNOWN when unrecognised)
        raw_status: Status string exactly as received
        signature: Hex digest supplied by the gateway
        params: All received parameters, used for signature verification
    """

    order_id: str | None
    transaction_id: str | None
    status: GatewayPaymentStatus
    raw_status: str | None
    signature: str | None
    amount: Decimal | None = None
    currency: str | None = None
    card_brand: str | None = None
    masked_card: str | None = None
    failure_reason: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> PaymentCallback:
        raw_status = _first(params, "paymentStatus", "status")
        return cls(
            order_id=_first(params, "orderId", "merchantOrderId"),
            transaction_id=_first(params, "transactionId", "kashierOrderId"),
            status=GatewayPaymentStatus.parse(raw_status),
            raw_status=raw_status,
            signature=_first(params, "signature"),
            amount=_decimal(_first(params, "amount")),
            currency=_first(params, "currency"),
            card_brand=_first(params, "cardBrand"),
            masked_card=_first(params, "maskedCard"),
            failure_reason=_first(params, "error", "failureReason"),
            params=dict(params),
        )


@dataclass(frozen=True)
class RefundCallback:
    """
    A refund notification from the gateway.

    Attributes:
        order_id: Our order id
        refund_id: Gateway refund reference (refundId, else transactionId)
        status: CONFIRMED, DENIED or PENDING (anything unrecognised)
        raw_status: Status string exactly as received
        amount: Refunded amount if the gateway reports one
    """

    order_id: str | None
    refund_id: str | None
    status: RefundCallbackStatus
    raw_status: str | None
    signature: str | None
    amount: Decimal | None = None
    failure_reason: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> RefundCallback:
        raw_status = _first(params, "status")
        return cls(
            order_id=_first(params, "orderId", "merchantOrderId"),
            refund_id=_first(params, "refundId", "transactionId"),
            status=RefundCallbackStatus.parse(raw_status),
            raw_status=raw_status,
            signature=_first(params, "signature"),
            amount=_decimal(_first(params, "amount")),
            failure_reason=_first(params, "error", "failureReason"),
            params=dict(params),
        )
