"""
State enums for the payment lifecycle.
"""

from payments.state_machines.states import (
    GatewayPaymentStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundCallbackStatus,
    SettlementStatus,
)

__all__ = [
    "GatewayPaymentStatus",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "RefundCallbackStatus",
    "SettlementStatus",
]
