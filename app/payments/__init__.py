"""
Payments app for Kashier order payment reconciliation.

This app handles:
- Order payment and refund state transitions (conditional updates only)
- Kashier callback signature verification
- Payment and refund webhooks
- Admin-initiated refunds
- Expiry sweep of abandoned online checkouts
- Settlement overdue scanning

Related apps:
    - promotions: Promo usage compensation after an expired checkout
    - notifications: Customer notifications and merchant emails

Usage:
    from payments.transitions import OrderTransitionApplier
    from payments.services import RefundService

    result = OrderTransitionApplier.confirm_payment(order.id, "txn_123", payload)
    result = RefundService.create_refund(order.id, reason="Damaged item")
"""
