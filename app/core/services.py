"""
Service layer primitives shared by every app.

- ServiceResult: success/failure wrapper for expected outcomes
- BaseService: classmethod-only base with logger and transaction helpers

Expected failures (an order that is not refundable, a gateway that said no)
come back as ServiceResult.failure(...) with a machine-readable error_code.
Unexpected failures (database errors, bugs) raise.

Usage:
    from core.services import BaseService, ServiceResult

    class RefundService(BaseService):
        @classmethod
        def create_refund(cls, order_id, reason) -> ServiceResult[RefundOutcome]:
            order = Order.objects.filter(pk=order_id).first()
            if order is None:
                return ServiceResult.failure("Order not found", "ORDER_NOT_FOUND")
            ...
            return ServiceResult.success(outcome)

    result = RefundService.create_refund(order_id, reason="Damaged item")
    if result:
        return Response(result.to_response(), status=200)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful
        error: Human-readable error message if failed
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
        details: Extra context attached to a failure (e.g. a gateway refund id)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Example:
            return ServiceResult.failure(
                "Order has no gateway transaction id",
                error_code="MISSING_TRANSACTION_ID",
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            details=details,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success flag and either data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        if self.details:
            response["details"] = self.details
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: every operation is a classmethod, every
    expected failure is a ServiceResult, everything else raises.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the concrete service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Run the enclosed block in a database transaction.

        Thin wrapper around django.db.transaction.atomic() so transaction
        boundaries read explicitly in service code.
        """
        with transaction.atomic():
            yield

