"""
Kashier payment gateway adapter.

This module provides the KashierAdapter class which encapsulates every
interaction with the Kashier hosted checkout and refund API. All gateway
calls and all callback signature checks go through this adapter so that
timeouts, error translation and logging are consistent.

Features:
- HMAC-SHA256 verification of callback signatures, fail closed
- Order hash and hosted checkout URL generation
- Synchronous refund call with a bounded timeout and no retries
- Automatic error translation to domain exceptions
- Structured logging with timing metrics

Configuration (via settings):
- KASHIER_MERCHANT_ID: Merchant id (MID)
- KASHIER_API_KEY: Signs callbacks and authenticates refund calls
- KASHIER_SECRET_KEY: Signs checkout order hashes
- KASHIER_MODE: "test" or "live"
- KASHIER_API_URL: Refund API base URL
- KASHIER_CHECKOUT_URL: Hosted checkout base URL
- KASHIER_CURRENCY: Default currency (EGP)
- KASHIER_API_TIMEOUT_SECONDS: Refund call timeout (default: 10)

Usage:
    from payments.adapters import KashierAdapter

    if not KashierAdapter.verify_signature(params, params.get("signature")):
        return JsonResponse({"success": False}, status=403)

    result = KashierAdapter.create_refund(
        transaction_id=order.payment_transaction_id,
        order_id=str(order.id),
        amount=Decimal("100.00"),
    )
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

import httpx
from django.conf import settings

from payments.exceptions import (
    GatewayConfigurationError,
    GatewayInvalidResponseError,
    GatewayRefundDeclinedError,
    GatewayTimeoutError,
    GatewayUnavailableError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class RefundResult:
    """
    Result of a successful gateway refund call.

    Attributes:
        refund_id: Gateway refund reference (may be None if the gateway omits it)
        status: Status string reported by the gateway
        raw_response: Full response body (for debugging)
    """

    refund_id: str | None
    status: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


def canonicalize(params: dict[str, Any]) -> str:
    """
    Build the string the gateway signs.

    Drops the signature field, sorts keys lexicographically and joins
    key=value pairs with "&".
    """
    pairs = []
    for key in sorted(k for k in params if k != "signature"):
        pairs.append(f"{key}={_stringify(params[key])}")
    return "&".join(pairs)


def _stringify(value: Any) -> str:
    """Render a value the way the gateway does when it builds the signed string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        # JSON numbers: 250.0 is signed as "250", 250.5 as "250.5"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def format_amount(amount: Decimal | int | float | str) -> str:
    """Two-decimal amount string used in hashes and refund bodies."""
    return f"{Decimal(str(amount)):.2f}"


class KashierAdapter:
    """
    Adapter for Kashier gateway operations.

    All methods are classmethods - no instance state is maintained.
    Safe to call from web workers and Celery workers alike.
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _require_setting(name: str) -> str:
        value = getattr(settings, name, "")
        if not value:
            raise GatewayConfigurationError(
                f"{name} is not configured",
                details={"setting": name},
            )
        return value

    # =========================================================================
    # Signature Verification
    # =========================================================================

    @classmethod
    def compute_signature(cls, params: dict[str, Any]) -> str:
        """
        HMAC-SHA256 hex digest of the canonical parameter string.

        Raises:
            GatewayConfigurationError: KASHIER_API_KEY is not set
        """
        secret = cls._require_setting("KASHIER_API_KEY")
        return hmac.new(
            secret.encode("utf-8"),
            canonicalize(params).encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    @classmethod
    def verify_signature(
        cls,
        params: dict[str, Any],
        provided_signature: str | None,
    ) -> bool:
        """
        Check that a callback was signed by the gateway.

        Args:
            params: All callback parameters as received (signature included or not)
            provided_signature: Hex digest sent by the gateway

        Returns:
            True only if a signature was provided and matches

        Raises:
            GatewayConfigurationError: No secret configured. Callers must
                reject the callback; there is no unverified path.
        """
        expected = cls.compute_signature(params)
        if not provided_signature:
            return False
        return hmac.compare_digest(expected, str(provided_signature).strip().lower())

    # =========================================================================
    # Hosted Checkout
    # =========================================================================

    @classmethod
    def generate_order_hash(
        cls,
        order_id: str,
        amount: Decimal | int | float | str,
        currency: str | None = None,
    ) -> str:
        """
        Hash authenticating a hosted checkout session.

        HMAC-SHA256 over /?payment={mid}.{orderId}.{amount}.{currency}
        keyed with KASHIER_SECRET_KEY.
        """
        merchant_id = cls._require_setting("KASHIER_MERCHANT_ID")
        secret = cls._require_setting("KASHIER_SECRET_KEY")
        currency = currency or settings.KASHIER_CURRENCY
        path = f"/?payment={merchant_id}.{order_id}.{format_amount(amount)}.{currency}"
        return hmac.new(
            secret.encode("utf-8"), path.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    @classmethod
    def build_checkout_url(
        cls,
        order_id: str,
        amount: Decimal | int | float | str,
        redirect_url: str,
        webhook_url: str | None = None,
        customer_name: str | None = None,
        customer_email: str | None = None,
        customer_phone: str | None = None,
        description: str | None = None,
        language: str = "ar",
    ) -> str:
        """Build the hosted checkout URL the customer is redirected to."""
        currency = settings.KASHIER_CURRENCY
        query: dict[str, str] = {
            "merchantId": cls._require_setting("KASHIER_MERCHANT_ID"),
            "orderId": order_id,
            "amount": format_amount(amount),
            "currency": currency,
            "hash": cls.generate_order_hash(order_id, amount, currency),
            "mode": settings.KASHIER_MODE,
            "merchantRedirect": redirect_url,
            "display": language,
            "allowedMethods": "card,wallet",
        }
        optional = {
            "customerName": customer_name,
            "customerEmail": customer_email,
            "customerPhone": customer_phone,
            "description": description,
            "serverWebhook": webhook_url,
        }
        query.update({k: v for k, v in optional.items() if v})
        return f"{settings.KASHIER_CHECKOUT_URL.rstrip('/')}/?{urlencode(query)}"

    # =========================================================================
    # Refunds
    # =========================================================================

    @classmethod
    def create_refund(
        cls,
        transaction_id: str,
        order_id: str,
        amount: Decimal,
        currency: str | None = None,
    ) -> RefundResult:
        """
        Refund a captured payment.

        Called once, synchronously, with KASHIER_API_TIMEOUT_SECONDS as the
        upper bound. Never retried here: a failure goes back to the caller.

        Args:
            transaction_id: Gateway transaction reference of the payment
            order_id: Our order id
            amount: Amount to refund
            currency: Defaults to KASHIER_CURRENCY

        Returns:
            RefundResult with the gateway refund id

        Raises:
            GatewayConfigurationError: Credentials missing
            GatewayRefundDeclinedError: Gateway refused the refund
            GatewayUnavailableError: Network error or 5xx
            GatewayTimeoutError: No answer in time
            GatewayInvalidResponseError: Non-JSON answer
        """
        logger = cls.get_logger()
        merchant_id = cls._require_setting("KASHIER_MERCHANT_ID")
        api_key = cls._require_setting("KASHIER_API_KEY")
        currency = currency or settings.KASHIER_CURRENCY

        token = base64.b64encode(f"{merchant_id}:{api_key}".encode()).decode()
        url = f"{settings.KASHIER_API_URL.rstrip('/')}/payments/refund"
        body = {
            "transactionId": transaction_id,
            "orderId": order_id,
            "amount": format_amount(amount),
            "currency": currency,
        }

        log_context = {
            "operation": "create_refund",
            "order_id": order_id,
            "transaction_id": transaction_id,
            "amount": body["amount"],
        }

        start_time = time.time()
        logger.info("Starting Kashier operation", extra=log_context)

        try:
            response = httpx.post(
                url,
                json=body,
                headers={
                    "Authorization": f"Basic {token}",
                    "Content-Type": "application/json",
                },
                timeout=settings.KASHIER_API_TIMEOUT_SECONDS,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_transport_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        return cls._parse_refund_response(response, {**log_context, "duration_ms": duration_ms})

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _parse_refund_response(
        cls,
        response: httpx.Response,
        log_context: dict[str, Any],
    ) -> RefundResult:
        """
        Interpret the refund API answer.

        Failure when the HTTP status is not 2xx or the body says
        status == "FAILURE". The refund id is read from refundId,
        transactionId or id, in that order.
        """
        logger = cls.get_logger()

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 500:
            logger.error(
                "Kashier server error",
                extra={**log_context, "http_status": response.status_code},
            )
            raise GatewayUnavailableError(
                f"Kashier refund failed (HTTP {response.status_code})",
                gateway_status=response.status_code,
            )

        if not isinstance(data, dict):
            logger.error(
                "Unparseable Kashier response",
                extra={**log_context, "http_status": response.status_code},
            )
            raise GatewayInvalidResponseError(
                f"Kashier returned a non-JSON response (HTTP {response.status_code})",
                gateway_status=response.status_code,
            )

        if not response.is_success or data.get("status") == "FAILURE":
            message = (
                data.get("message")
                or data.get("error")
                or f"Refund failed (HTTP {response.status_code})"
            )
            logger.warning(
                "Kashier declined refund",
                extra={
                    **log_context,
                    "http_status": response.status_code,
                    "gateway_message": message,
                },
            )
            raise GatewayRefundDeclinedError(
                str(message),
                gateway_status=data.get("status") or response.status_code,
            )

        refund_id = data.get("refundId") or data.get("transactionId") or data.get("id")
        logger.info(
            "Kashier operation completed",
            extra={**log_context, "refund_id": refund_id},
        )
        return RefundResult(
            refund_id=str(refund_id) if refund_id else None,
            status=data.get("status"),
            raw_response=data,
        )

    @classmethod
    def _handle_transport_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate httpx exceptions to domain exceptions.

        Raises:
            GatewayTimeoutError: Request timed out
            GatewayUnavailableError: Any other transport failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, httpx.TimeoutException):
            logger.error("Kashier request timed out", extra=log_context)
            raise GatewayTimeoutError(
                "Kashier refund request timed out",
                details={"timeout_seconds": settings.KASHIER_API_TIMEOUT_SECONDS},
            ) from error

        if isinstance(error, httpx.HTTPError):
            logger.error(
                "Connection error to Kashier",
                extra=log_context,
                exc_info=True,
            )
            raise GatewayUnavailableError(
                "Kashier is unreachable",
                details={"error": str(error)},
            ) from error
