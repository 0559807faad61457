"""
Payment domain models.

- Order: checkout order carrying payment and fulfillment status
- Merchant: store that fulfills orders and owes settlements
- Settlement: commission owed by a merchant for one period
"""

from payments.models.order import Order
from payments.models.settlement import Merchant, Settlement

__all__ = [
    "Merchant",
    "Order",
    "Settlement",
]
