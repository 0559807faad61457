"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import OrderFactory, SettlementFactory

    # An online order waiting for the gateway
    order = OrderFactory()

    # A paid order ready to refund
    order = OrderFactory(paid=True)

    # Cash on delivery
    order = OrderFactory(cod=True)
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from core.tests.factories import UserFactory
from payments.models import Merchant, Order, Settlement
from payments.state_machines import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SettlementStatus,
)


class MerchantFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Merchant

    name = factory.Sequence(lambda n: f"Merchant {n}")
    email = factory.Sequence(lambda n: f"merchant{n}@example.com")
    owner = factory.SubFactory(UserFactory)


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for Order instances.

    Defaults to an online order in pending_payment. Traits:
        paid: Gateway confirmed, fulfillment pending, transaction id set
        delivered: Paid and delivered
        cod: Cash on delivery, payment status unset
    """

    class Meta:
        model = Order

    customer = factory.SubFactory(UserFactory)
    merchant = factory.SubFactory(MerchantFactory)
    total = Decimal("250.00")
    currency = "EGP"
    payment_method = PaymentMethod.ONLINE
    payment_status = PaymentStatus.PENDING
    status = OrderStatus.PENDING_PAYMENT

    class Params:
        paid = factory.Trait(
            payment_status=PaymentStatus.PAID,
            status=OrderStatus.PENDING,
            payment_transaction_id=factory.Sequence(lambda n: f"txn_{n:06d}"),
            payment_completed_at=factory.LazyFunction(timezone.now),
        )
        delivered = factory.Trait(
            payment_status=PaymentStatus.PAID,
            status=OrderStatus.DELIVERED,
            payment_transaction_id=factory.Sequence(lambda n: f"txn_d{n:06d}"),
            payment_completed_at=factory.LazyFunction(timezone.now),
        )
        cod = factory.Trait(
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
            payment_status=PaymentStatus.UNSET,
            status=OrderStatus.PENDING,
        )


def age_order(order: Order, minutes: int) -> Order:
    """Backdate created_at, which auto_now_add otherwise pins to now."""
    Order.objects.filter(pk=order.pk).update(
        created_at=timezone.now() - timedelta(minutes=minutes)
    )
    order.refresh_from_db()
    return order


class SettlementFactory(factory.django.DjangoModelFactory):
    """
    Factory for Settlement instances.

    Defaults to a pending settlement whose period ended ten days ago.
    """

    class Meta:
        model = Settlement

    merchant = factory.SubFactory(MerchantFactory)
    period_end = factory.LazyFunction(lambda: timezone.now() - timedelta(days=10))
    period_start = factory.LazyAttribute(lambda o: o.period_end - timedelta(days=7))
    net_amount_due = Decimal("1200.50")
    total_orders = 14
    status = SettlementStatus.PENDING
