"""
Webhook endpoint views for Kashier.

Both endpoints accept POST (JSON or form body) and GET (redirect-style
query string); the two shapes are normalized before anything else runs.

Response codes:
    200: Applied, duplicate, lost race, or status not actionable
    400: Missing order id or undecodable body
    403: Missing or invalid signature, or no secret configured
    404: Unknown order

Gateways retry on anything but 2xx, so every already-processed case is
answered with 200.

Usage:
    # In urls.py
    from payments.webhooks.views import kashier_refund_webhook, kashier_webhook

    urlpatterns = [
        path("webhooks/kashier/", kashier_webhook, name="kashier-webhook"),
        path("webhooks/kashier/refund/", kashier_refund_webhook, name="kashier-refund-webhook"),
    ]
"""

from __future__ import annotations

import logging
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from payments.adapters import KashierAdapter
from payments.exceptions import GatewayConfigurationError
from payments.webhooks.callbacks import (
    MalformedCallbackError,
    PaymentCallback,
    RefundCallback,
    extract_params,
)
from payments.webhooks.handlers import process_payment_callback, process_refund_callback


logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"success": False, "error": message}, status=status)


def _authenticate(params: dict[str, Any], signature: str | None, order_id: str) -> JsonResponse | None:
    """Return an error response unless the callback signature checks out."""
    if not signature:
        logger.warning("Callback received without signature", extra={"order_id": order_id})
        return _error("Missing signature", 403)

    try:
        valid = KashierAdapter.verify_signature(params, signature)
    except GatewayConfigurationError:
        logger.critical(
            "Kashier API key not configured, rejecting callback",
            extra={"order_id": order_id},
        )
        return _error("Signature verification unavailable", 403)

    if not valid:
        logger.warning("Invalid callback signature", extra={"order_id": order_id})
        return _error("Invalid signature", 403)
    return None


@csrf_exempt
@require_http_methods(["GET", "POST"])
def kashier_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive a Kashier payment callback.

    Steps:
    1. Normalize the request and require an order id (400)
    2. Verify the signature over all received parameters (403)
    3. Hand the parsed callback to process_payment_callback (404 if the
       order is unknown)
    """
    try:
        params = extract_params(request)
    except MalformedCallbackError as e:
        logger.warning("Malformed payment callback", extra={"error": str(e)})
        return _error(str(e), 400)

    callback = PaymentCallback.from_params(params)
    if not callback.order_id:
        logger.warning("Payment callback missing order id")
        return _error("Missing order ID", 400)

    rejection = _authenticate(params, callback.signature, callback.order_id)
    if rejection is not None:
        return rejection

    logger.info(
        "Received Kashier payment callback",
        extra={
            "order_id": callback.order_id,
            "transaction_id": callback.transaction_id,
            "gateway_status": callback.raw_status,
        },
    )

    result = process_payment_callback(callback)
    if not result.success:
        return _error(result.error, 404)

    outcome = result.data
    return JsonResponse(
        {
            "success": True,
            "message": outcome.message,
            "orderId": outcome.order_id,
            "paymentStatus": outcome.payment_status,
        }
    )


@csrf_exempt
@require_http_methods(["GET", "POST"])
def kashier_refund_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive an asynchronous Kashier refund confirmation or denial.

    Same request handling and signature rules as kashier_webhook.
    """
    try:
        params = extract_params(request)
    except MalformedCallbackError as e:
        logger.warning("Malformed refund callback", extra={"error": str(e)})
        return _error(str(e), 400)

    callback = RefundCallback.from_params(params)
    if not callback.order_id:
        logger.warning("Refund callback missing order id")
        return _error("Missing order ID", 400)

    rejection = _authenticate(params, callback.signature, callback.order_id)
    if rejection is not None:
        return rejection

    logger.info(
        "Received Kashier refund callback",
        extra={
            "order_id": callback.order_id,
            "refund_id": callback.refund_id,
            "gateway_status": callback.raw_status,
        },
    )

    result = process_refund_callback(callback)
    if not result.success:
        return _error(result.error, 404)

    outcome = result.data
    return JsonResponse(
        {
            "success": True,
            "message": outcome.message,
            "orderId": outcome.order_id,
            "paymentStatus": outcome.payment_status,
        }
    )
