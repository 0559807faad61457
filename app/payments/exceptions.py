"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    └── PaymentProcessingError - Payment processing failures
        └── GatewayError - Base for all payment gateway errors
            ├── GatewayRefundDeclinedError - Gateway answered but refused (permanent)
            ├── GatewayInvalidResponseError - Unparseable gateway answer (permanent)
            ├── GatewayUnavailableError - Network/5xx failure (transient)
            └── GatewayTimeoutError - No answer within the timeout (transient)

    GatewayConfigurationError - Secrets missing; callers must fail closed
    InvalidStateTransitionError - Transition not allowed (ConflictError)

Usage:
    from payments.exceptions import GatewayError

    try:
        result = KashierAdapter.create_refund(...)
    except GatewayError as e:
        if e.is_retryable:
            ...  # the administrator may retry later
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentProcessingError(PaymentError):
    """Raised when payment processing fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentProcessingError):
    """
    Base exception for all payment gateway errors.

    Attributes:
        gateway_status: Status string or HTTP status returned by the gateway
        is_retryable: Whether a later retry could succeed

    The refund orchestrator never retries on its own; is_retryable is
    surfaced to the administrator who decides.
    """

    default_error_code: str = "GATEWAY_ERROR"
    http_status: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        gateway_status: str | int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway_status is not None:
            details["gateway_status"] = gateway_status
        super().__init__(message, error_code=error_code, details=details)
        self.gateway_status = gateway_status


class GatewayRefundDeclinedError(GatewayError):
    """The gateway processed the request and refused the refund."""

    default_error_code: str = "GATEWAY_REFUND_DECLINED"


class GatewayInvalidResponseError(GatewayError):
    """The gateway answered with something we cannot interpret."""

    default_error_code: str = "GATEWAY_INVALID_RESPONSE"


class GatewayUnavailableError(GatewayError):
    """
    The gateway could not be reached or answered with a server error.

    Covers connection failures, DNS/TLS errors and 5xx responses.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


class GatewayTimeoutError(GatewayError):
    """
    The gateway did not answer within KASHIER_API_TIMEOUT_SECONDS.

    IMPORTANT: the refund may have gone through on the gateway side.
    Check the gateway dashboard before retrying.
    """

    default_error_code: str = "GATEWAY_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Integrity Exceptions
# =============================================================================


class GatewayConfigurationError(PaymentError):
    """
    Raised when a secret needed to verify or call the gateway is missing.

    Callers must reject the request; there is no unverified fallback.
    """

    default_error_code: str = "GATEWAY_NOT_CONFIGURED"
    http_status: int = 403


# =============================================================================
# State Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a transition is requested without any guard.

    Example:
        raise InvalidStateTransitionError(
            "A transition needs at least one expected field",
            details={"order_id": str(order_id)},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"
