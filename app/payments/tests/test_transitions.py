"""
Tests for the conditional transition appliers.

Tests cover:
- Each named order transition from its expected state
- No-op (applied=False) when the order already moved
- Transaction id written once
- Refund record and reversal restoring the previous status
- Settlement pending -> overdue at most once
"""

from decimal import Decimal

import pytest

from payments.exceptions import InvalidStateTransitionError
from payments.models import Order, Settlement
from payments.state_machines import OrderStatus, PaymentStatus, SettlementStatus
from payments.tests.factories import OrderFactory, SettlementFactory
from payments.transitions import (
    OrderTransitionApplier,
    SettlementTransitionApplier,
    compare_and_set,
)


@pytest.mark.django_db
class TestCompareAndSet:
    def test_updates_when_expected_matches(self, pending_order):
        rows = compare_and_set(
            Order,
            pending_order.pk,
            expected={"status": OrderStatus.PENDING_PAYMENT},
            changes={"status": OrderStatus.CANCELLED},
        )

        assert rows == 1

    def test_zero_rows_when_expected_differs(self, paid_order):
        rows = compare_and_set(
            Order,
            paid_order.pk,
            expected={"status": OrderStatus.PENDING_PAYMENT},
            changes={"status": OrderStatus.CANCELLED},
        )

        assert rows == 0
        paid_order.refresh_from_db()
        assert paid_order.status == OrderStatus.PENDING

    def test_refuses_unguarded_write(self, pending_order):
        with pytest.raises(InvalidStateTransitionError):
            compare_and_set(Order, pending_order.pk, expected={}, changes={"total": 1})


@pytest.mark.django_db
class TestPaymentTransitions:
    def test_confirm_payment(self, pending_order):
        result = OrderTransitionApplier.confirm_payment(
            pending_order.pk, "txn_1", {"paymentStatus": "SUCCESS"}
        )

        assert result.applied
        order = result.order
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.PENDING
        assert order.payment_transaction_id == "txn_1"
        assert order.payment_response == {"paymentStatus": "SUCCESS"}
        assert order.payment_completed_at is not None
        assert order.version == pending_order.version + 1

    def test_confirm_twice_applies_once(self, pending_order):
        first = OrderTransitionApplier.confirm_payment(pending_order.pk, "txn_1")
        second = OrderTransitionApplier.confirm_payment(pending_order.pk, "txn_2")

        assert first.applied
        assert not second.applied
        assert second.order is None
        pending_order.refresh_from_db()
        assert pending_order.payment_transaction_id == "txn_1"

    def test_existing_transaction_id_not_replaced(self, user, merchant):
        order = OrderFactory(customer=user, merchant=merchant, payment_transaction_id="txn_original")

        result = OrderTransitionApplier.confirm_payment(order.pk, "txn_new")

        assert result.applied
        assert result.order.payment_transaction_id == "txn_original"

    def test_mark_payment_pending_keeps_fulfillment_status(self, pending_order):
        result = OrderTransitionApplier.mark_payment_pending(pending_order.pk, {"status": "PENDING"})

        assert result.applied
        assert result.order.payment_status == PaymentStatus.PENDING
        assert result.order.status == OrderStatus.PENDING_PAYMENT

    def test_fail_payment(self, pending_order):
        result = OrderTransitionApplier.fail_payment(pending_order.pk)

        assert result.applied
        assert result.order.payment_status == PaymentStatus.FAILED
        assert result.order.status == OrderStatus.CANCELLED
        assert result.order.cancelled_at is not None

    def test_expire_after_success_is_noop(self, pending_order):
        OrderTransitionApplier.confirm_payment(pending_order.pk, "txn_1")

        result = OrderTransitionApplier.expire_payment(pending_order.pk)

        assert not result.applied
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PAID

    def test_success_after_expiry_is_noop(self, pending_order):
        OrderTransitionApplier.expire_payment(pending_order.pk)

        result = OrderTransitionApplier.confirm_payment(pending_order.pk, "txn_1")

        assert not result.applied
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.CANCELLED
        assert pending_order.payment_transaction_id is None


@pytest.mark.django_db
class TestRefundTransitions:
    def test_mark_refunded_records_previous_status(self, user, merchant):
        order = OrderFactory(customer=user, merchant=merchant, delivered=True)

        result = OrderTransitionApplier.mark_refunded(
            order.pk, Decimal("250.00"), "rf_1", reason="Damaged"
        )

        assert result.applied
        refunded = result.order
        assert refunded.payment_status == PaymentStatus.REFUNDED
        assert refunded.status == OrderStatus.REFUNDED
        assert refunded.status_before_refund == OrderStatus.DELIVERED
        assert refunded.refund_amount == Decimal("250.00")
        assert refunded.refund_transaction_id == "rf_1"
        assert refunded.refund_reason == "Damaged"

    def test_mark_refunded_requires_paid(self, pending_order):
        result = OrderTransitionApplier.mark_refunded(pending_order.pk, Decimal("1.00"), "rf_1")

        assert not result.applied

    def test_finalize_refund_keeps_existing_refund_id(self, paid_order):
        Order.objects.filter(pk=paid_order.pk).update(refund_transaction_id="rf_sync")

        result = OrderTransitionApplier.finalize_refund(paid_order.pk, None, "rf_async")

        assert result.applied
        assert result.order.refund_transaction_id == "rf_sync"
        assert result.order.refund_amount is None

    def test_revert_restores_status_before_refund(self, user, merchant):
        order = OrderFactory(customer=user, merchant=merchant, delivered=True)
        OrderTransitionApplier.mark_refunded(order.pk, Decimal("250.00"), "rf_1")

        result = OrderTransitionApplier.revert_refund(order.pk)

        assert result.applied
        reverted = result.order
        assert reverted.payment_status == PaymentStatus.PAID
        assert reverted.status == OrderStatus.DELIVERED
        assert reverted.refund_amount is None
        assert reverted.refund_transaction_id is None
        assert reverted.refunded_at is None
        assert reverted.status_before_refund is None

    def test_revert_defaults_to_delivered(self, paid_order):
        Order.objects.filter(pk=paid_order.pk).update(
            payment_status=PaymentStatus.REFUNDED,
            status=OrderStatus.REFUNDED,
        )

        result = OrderTransitionApplier.revert_refund(paid_order.pk)

        assert result.order.status == OrderStatus.DELIVERED

    def test_revert_twice_applies_once(self, paid_order):
        OrderTransitionApplier.mark_refunded(paid_order.pk, Decimal("250.00"), "rf_1")

        assert OrderTransitionApplier.revert_refund(paid_order.pk).applied
        assert not OrderTransitionApplier.revert_refund(paid_order.pk).applied


@pytest.mark.django_db
class TestSettlementTransitions:
    def test_mark_overdue(self):
        settlement = SettlementFactory()

        result = SettlementTransitionApplier.mark_overdue(settlement)

        assert result.applied
        settlement.refresh_from_db()
        assert settlement.status == SettlementStatus.OVERDUE
        assert settlement.overdue_at is not None

    def test_already_overdue_in_memory(self):
        settlement = SettlementFactory(status=SettlementStatus.OVERDUE)

        assert not SettlementTransitionApplier.mark_overdue(settlement).applied

    def test_stale_copy_loses(self):
        settlement = SettlementFactory()
        stale_copy = Settlement.objects.get(pk=settlement.pk)

        assert SettlementTransitionApplier.mark_overdue(settlement).applied
        result = SettlementTransitionApplier.mark_overdue(stale_copy)

        assert not result.applied
        stale_copy.refresh_from_db()
        assert stale_copy.status == SettlementStatus.OVERDUE
