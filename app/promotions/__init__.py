"""
Promotions app.

This app handles:
- Promo codes and their usage counters
- The per-order usage ledger
- Compensation of promo usage when an order is cancelled

Related apps:
    - payments: Expiry sweeper invokes the compensator after cancelling an order
"""
