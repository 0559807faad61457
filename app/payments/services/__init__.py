"""
Payment services for coordinating payment operations.

This module provides:
- RefundService: Admin-initiated refunds through the gateway

Usage:
    from payments.services import RefundService

    result = RefundService.create_refund(
        order_id=order.id,
        reason="Customer request",
    )
"""

from payments.services.refund_service import (
    RefundEligibility,
    RefundOutcome,
    RefundService,
)

__all__ = [
    "RefundEligibility",
    "RefundOutcome",
    "RefundService",
]
