"""
State enums for the checkout payment lifecycle.

These are Django TextChoices for database storage and admin integration.

Order payment status:
    unset (cash on delivery)
    pending --> paid --> refunded
    pending --> failed
    refunded --> paid (only when the gateway later denies an async refund)

Order fulfillment status:
    pending_payment --> pending --> confirmed --> ... --> delivered
    pending_payment --> cancelled (failed payment or expiry)
    any paid fulfillment status --> refunded

Settlement status:
    pending --> overdue --> paid
    pending --> paid
"""

from django.db import models


class PaymentMethod(models.TextChoices):
    """How the customer pays for an order."""

    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on Delivery"
    ONLINE = "online", "Online"


class PaymentStatus(models.TextChoices):
    """
    Payment status of an order.

    PAID and FAILED are terminal with one exception: PAID -> REFUNDED.
    REFUNDED -> PAID only happens when a refund is denied asynchronously.
    """

    UNSET = "unset", "Unset"
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class OrderStatus(models.TextChoices):
    """
    Fulfillment status of an order.

    PENDING_PAYMENT means the customer was sent to the hosted checkout
    and the gateway has not answered yet.
    """

    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for Delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class SettlementStatus(models.TextChoices):
    """Status of a merchant settlement period."""

    PENDING = "pending", "Pending"
    OVERDUE = "overdue", "Overdue"
    PAID = "paid", "Paid"


class GatewayPaymentStatus(models.TextChoices):
    """
    Payment status reported by the gateway callback.

    UNKNOWN covers anything the gateway sends that we do not recognise;
    it is acknowledged but never acted on.
    """

    SUCCESS = "SUCCESS", "Success"
    PENDING = "PENDING", "Pending"
    FAILED = "FAILED", "Failed"
    CANCELLED = "CANCELLED", "Cancelled"
    UNKNOWN = "UNKNOWN", "Unknown"

    @property
    def is_failure(self) -> bool:
        return self in (GatewayPaymentStatus.FAILED, GatewayPaymentStatus.CANCELLED)

    @classmethod
    def parse(cls, raw: str | None) -> "GatewayPaymentStatus":
        value = (raw or "").strip().upper()
        if value in cls.values:
            return cls(value)
        return cls.UNKNOWN


class RefundCallbackStatus(models.TextChoices):
    """
    Refund outcome reported by the gateway refund callback.

    SUCCESS/REFUNDED collapse to CONFIRMED, FAILED/REJECTED to DENIED.
    """

    CONFIRMED = "confirmed", "Confirmed"
    DENIED = "denied", "Denied"
    PENDING = "pending", "Pending"

    @classmethod
    def parse(cls, raw: str | None) -> "RefundCallbackStatus":
        value = (raw or "").strip().upper()
        if value in ("SUCCESS", "REFUNDED"):
            return cls.CONFIRMED
        if value in ("FAILED", "REJECTED"):
            return cls.DENIED
        return cls.PENDING

