"""
Workers for periodic payment reconciliation.

This module contains the sweeps that resolve stale state:
- PaymentExpiry: Cancels abandoned online checkouts and releases promo usage
- SettlementOverdue: Flags unpaid merchant settlements and emails the merchant

Usage:
    from payments.workers import expire_pending_payments, mark_overdue_settlements

    # Trigger manual processing
    expire_pending_payments.delay()
    mark_overdue_settlements.delay()
"""

from payments.workers.payment_expiry import (
    PaymentExpiryService,
    SweepSummary,
    expire_pending_payments,
)
from payments.workers.settlement_overdue import (
    OverdueSummary,
    SettlementOverdueService,
    mark_overdue_settlements,
)

__all__ = [
    # Payment Expiry
    "PaymentExpiryService",
    "SweepSummary",
    "expire_pending_payments",
    # Settlement Overdue
    "OverdueSummary",
    "SettlementOverdueService",
    "mark_overdue_settlements",
]
