"""
Application-wide exception hierarchy.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ConflictError - State conflicts (lost races, duplicate work)
    └── payments.exceptions - Gateway and payment errors

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Could not decrement promo usage counter",
        error_code="PROMO_COMPENSATION_FAILED",
        details={"promo_code_id": promo_code_id},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain errors. DRF handles API-layer
    exceptions (serialization, authentication, throttling).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context
        http_status: Status code a view should answer with
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Order not found",
                "error_code": "ORDER_NOT_FOUND",
                "details": {"order_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """
    Raised when current state conflicts with the requested operation.

    Example:
        raise ConflictError(
            "Order was refunded by a concurrent request",
            error_code="ALREADY_REFUNDED",
        )
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409

