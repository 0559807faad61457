"""
Payment gateway adapters.

All gateway calls and callback signature checks go through these adapters
so that error handling, timeouts and logging stay consistent.

Usage:
    from payments.adapters import KashierAdapter

    result = KashierAdapter.create_refund(
        transaction_id="txn_123",
        order_id=str(order.id),
        amount=Decimal("100.00"),
    )
"""

from payments.adapters.kashier_adapter import (
    KashierAdapter,
    RefundResult,
    canonicalize,
    format_amount,
)

__all__ = [
    "KashierAdapter",
    "RefundResult",
    "canonicalize",
    "format_amount",
]
