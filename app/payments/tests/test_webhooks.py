"""
Tests for the Kashier payment and refund callbacks.

Tests cover:
- Signature enforcement (missing, tampered, unconfigured secret)
- Request validation (missing order id, malformed body, unknown order)
- Success, pending and failure transitions with notifications
- Duplicate and late callbacks applying at most once
- A success callback arriving after the expiry sweep
- Promo usage released exactly once when a callback cancels the order
- Refund confirmation and denial
"""

import hashlib
import hmac
import json
from decimal import Decimal

import pytest
from django.urls import reverse

from notifications.models import CustomerNotification, NotificationType
from payments.models import Order
from payments.state_machines import GatewayPaymentStatus, OrderStatus, PaymentStatus
from payments.tests.factories import OrderFactory
from payments.transitions import OrderTransitionApplier
from payments.webhooks import register_handler
from payments.webhooks.handlers import PAYMENT_HANDLERS
from payments.workers import PaymentExpiryService
from promotions.exceptions import PromoCompensationError
from promotions.models import PromoCode, PromoCodeUsage
from promotions.tests.factories import PromoCodeFactory, PromoCodeUsageFactory

PAYMENT_URL = reverse("payments:kashier_webhook")
REFUND_URL = reverse("payments:kashier_refund_webhook")


def post_json(client, url, params):
    return client.post(url, data=json.dumps(params), content_type="application/json")


def payment_params(order, status="SUCCESS", transaction_id="txn_100"):
    return {
        "orderId": str(order.id),
        "transactionId": transaction_id,
        "paymentStatus": status,
        "amount": "250.00",
        "currency": "EGP",
    }


# =============================================================================
# Authentication and Validation
# =============================================================================


@pytest.mark.django_db
class TestCallbackAuthentication:
    def test_missing_signature_rejected(self, client, pending_order):
        response = post_json(client, PAYMENT_URL, payment_params(pending_order))

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Missing signature"}

    def test_tampered_status_rejected_without_change(self, client, pending_order, signed):
        params = signed(payment_params(pending_order, status="FAILED"))
        params["paymentStatus"] = "SUCCESS"

        response = post_json(client, PAYMENT_URL, params)

        assert response.status_code == 403
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PENDING
        assert pending_order.status == OrderStatus.PENDING_PAYMENT
        assert not CustomerNotification.objects.exists()

    def test_unconfigured_secret_fails_closed(self, client, pending_order, signed, settings):
        params = signed(payment_params(pending_order))
        settings.KASHIER_API_KEY = ""

        response = post_json(client, PAYMENT_URL, params)

        assert response.status_code == 403
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PENDING

    def test_missing_order_id(self, client, signed):
        response = post_json(client, PAYMENT_URL, signed({"paymentStatus": "SUCCESS"}))

        assert response.status_code == 400
        assert response.json()["error"] == "Missing order ID"

    def test_malformed_json(self, client):
        response = client.post(PAYMENT_URL, data="{oops", content_type="application/json")

        assert response.status_code == 400

    def test_unknown_order(self, client, signed):
        params = signed(
            {
                "orderId": "5b0c1f3e-8a4d-4c0e-9d51-1b2c3d4e5f60",
                "paymentStatus": "SUCCESS",
            }
        )

        response = post_json(client, PAYMENT_URL, params)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Order not found"}

    def test_malformed_order_id_treated_as_unknown(self, client, signed):
        response = post_json(client, PAYMENT_URL, signed({"orderId": "not-a-uuid", "paymentStatus": "SUCCESS"}))

        assert response.status_code == 404

    def test_put_not_allowed(self, client):
        assert client.put(PAYMENT_URL).status_code == 405


# =============================================================================
# Payment Callbacks
# =============================================================================


@pytest.mark.django_db
class TestPaymentCallback:
    def test_success_marks_paid_and_notifies(self, client, pending_order, signed):
        response = post_json(client, PAYMENT_URL, signed(payment_params(pending_order)))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Payment status updated",
            "orderId": str(pending_order.id),
            "paymentStatus": PaymentStatus.PAID,
        }
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PAID
        assert pending_order.status == OrderStatus.PENDING
        assert pending_order.payment_transaction_id == "txn_100"
        notification = CustomerNotification.objects.get()
        assert notification.notification_type == NotificationType.PAYMENT_SUCCESS
        assert notification.recipient == pending_order.customer

    def test_json_number_amount_signed_as_gateway_renders_it(self, client, pending_order, settings):
        params = {
            "amount": 250.0,
            "orderId": str(pending_order.id),
            "paymentStatus": "SUCCESS",
            "transactionId": "txn_100",
        }
        message = f"amount=250&orderId={pending_order.id}&paymentStatus=SUCCESS&transactionId=txn_100"
        params["signature"] = hmac.new(
            settings.KASHIER_API_KEY.encode(), message.encode(), hashlib.sha256
        ).hexdigest()

        response = post_json(client, PAYMENT_URL, params)

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PAID

    def test_success_via_query_string(self, client, pending_order, signed):
        response = client.get(PAYMENT_URL, signed(payment_params(pending_order)))

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PAID

    def test_failure_cancels_order(self, client, pending_order, signed):
        response = post_json(client, PAYMENT_URL, signed(payment_params(pending_order, status="FAILED")))

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.FAILED
        assert pending_order.status == OrderStatus.CANCELLED
        assert CustomerNotification.objects.get().notification_type == NotificationType.PAYMENT_FAILED

    def test_cancelled_status_treated_as_failure(self, client, pending_order, signed):
        post_json(client, PAYMENT_URL, signed(payment_params(pending_order, status="CANCELLED")))

        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.CANCELLED

    def test_pending_does_not_notify(self, client, user, merchant, signed):
        order = OrderFactory(customer=user, merchant=merchant, payment_status=PaymentStatus.UNSET)

        response = post_json(client, PAYMENT_URL, signed(payment_params(order, status="PENDING")))

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING
        assert order.status == OrderStatus.PENDING_PAYMENT
        assert not CustomerNotification.objects.exists()

    def test_repeated_pending_is_duplicate(self, client, pending_order, signed):
        response = post_json(client, PAYMENT_URL, signed(payment_params(pending_order, status="PENDING")))

        assert response.json()["message"] == "Order already processed"

    def test_unknown_status_acknowledged_without_change(self, client, pending_order, signed):
        response = post_json(client, PAYMENT_URL, signed(payment_params(pending_order, status="ON_HOLD")))

        assert response.status_code == 200
        assert response.json()["message"] == "Status not actionable"
        pending_order.refresh_from_db()
        assert pending_order.status == OrderStatus.PENDING_PAYMENT

    def test_duplicate_success_applies_once(self, client, pending_order, signed):
        params = signed(payment_params(pending_order))

        first = post_json(client, PAYMENT_URL, params)
        second = post_json(client, PAYMENT_URL, params)

        assert first.json()["message"] == "Payment status updated"
        assert second.status_code == 200
        assert second.json()["message"] == "Order already processed"
        assert CustomerNotification.objects.count() == 1
        pending_order.refresh_from_db()
        assert pending_order.version == 2

    def test_failure_after_success_ignored(self, client, pending_order, signed):
        post_json(client, PAYMENT_URL, signed(payment_params(pending_order)))

        response = post_json(
            client,
            PAYMENT_URL,
            signed(payment_params(pending_order, status="FAILED", transaction_id="txn_101")),
        )

        assert response.json()["message"] == "Order already processed"
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PAID

    def test_success_after_expiry_sweep(self, client, stale_order, signed):
        PaymentExpiryService.expire_pending_payments(threshold_minutes=30)

        response = post_json(client, PAYMENT_URL, signed(payment_params(stale_order)))

        assert response.status_code == 200
        assert response.json()["message"] == "Order already processed"
        stale_order.refresh_from_db()
        assert stale_order.status == OrderStatus.CANCELLED
        assert stale_order.payment_status == PaymentStatus.FAILED
        assert stale_order.payment_transaction_id is None

    def test_lost_race_reported_as_processed(self, client, pending_order, signed, mocker):
        # The sweep cancels the order between the read and the write
        original = OrderTransitionApplier.confirm_payment

        def expire_first(order_id, **kwargs):
            OrderTransitionApplier.expire_payment(order_id)
            return original(order_id, **kwargs)

        mocker.patch.object(
            OrderTransitionApplier, "confirm_payment", side_effect=expire_first
        )

        response = post_json(client, PAYMENT_URL, signed(payment_params(pending_order)))

        assert response.status_code == 200
        assert response.json()["message"] == "Order already processed"
        assert not CustomerNotification.objects.filter(
            notification_type=NotificationType.PAYMENT_SUCCESS
        ).exists()


@pytest.mark.django_db
class TestPromoReleaseOnCallback:
    @pytest.fixture
    def promo_order(self, stale_order):
        promo = PromoCodeFactory(code="SAVE10", usage_count=5)
        PromoCodeUsageFactory(promo_code=promo, order=stale_order, user=stale_order.customer)
        stale_order.promo_code = "SAVE10"
        stale_order.save(update_fields=["promo_code"])
        return stale_order

    def test_failure_releases_promo(self, client, promo_order, signed):
        response = post_json(client, PAYMENT_URL, signed(payment_params(promo_order, status="FAILED")))

        assert response.status_code == 200
        assert PromoCode.objects.get(code="SAVE10").usage_count == 4
        assert not PromoCodeUsage.objects.filter(order=promo_order).exists()

    def test_success_keeps_promo(self, client, promo_order, signed):
        post_json(client, PAYMENT_URL, signed(payment_params(promo_order)))

        assert PromoCode.objects.get(code="SAVE10").usage_count == 5
        assert PromoCodeUsage.objects.filter(order=promo_order).exists()

    def test_compensation_failure_still_acknowledged(self, client, promo_order, signed, mocker):
        mocker.patch(
            "payments.webhooks.handlers.PromoUsageCompensator.compensate",
            side_effect=PromoCompensationError("Could not decrement promo usage counter"),
        )

        response = post_json(client, PAYMENT_URL, signed(payment_params(promo_order, status="FAILED")))

        assert response.status_code == 200
        promo_order.refresh_from_db()
        assert promo_order.status == OrderStatus.CANCELLED
        assert CustomerNotification.objects.get().notification_type == NotificationType.PAYMENT_FAILED

    def test_sweep_then_callbacks_release_once(self, client, promo_order, signed):
        PaymentExpiryService.expire_pending_payments(threshold_minutes=30)

        post_json(client, PAYMENT_URL, signed(payment_params(promo_order)))
        post_json(client, PAYMENT_URL, signed(payment_params(promo_order, status="FAILED")))

        assert PromoCode.objects.get(code="SAVE10").usage_count == 4
        assert not PromoCodeUsage.objects.exists()

    def test_callback_then_sweep_release_once(self, client, promo_order, signed):
        post_json(client, PAYMENT_URL, signed(payment_params(promo_order, status="FAILED")))

        summary = PaymentExpiryService.expire_pending_payments(threshold_minutes=30).data

        assert summary.found == 0
        assert PromoCode.objects.get(code="SAVE10").usage_count == 4


class TestHandlerRegistry:
    def test_statuses_registered(self):
        assert set(PAYMENT_HANDLERS) == {
            GatewayPaymentStatus.SUCCESS,
            GatewayPaymentStatus.PENDING,
            GatewayPaymentStatus.FAILED,
            GatewayPaymentStatus.CANCELLED,
        }

    def test_register_handler(self):
        sentinel = object()
        original = dict(PAYMENT_HANDLERS)
        try:

            @register_handler("TEST_STATUS")
            def handler(order, callback):
                return sentinel

            assert PAYMENT_HANDLERS["TEST_STATUS"] is handler
        finally:
            PAYMENT_HANDLERS.clear()
            PAYMENT_HANDLERS.update(original)


# =============================================================================
# Refund Callbacks
# =============================================================================


def refund_params(order, status="SUCCESS", refund_id="rf_200", amount=None):
    params = {"orderId": str(order.id), "refundId": refund_id, "status": status}
    if amount is not None:
        params["amount"] = amount
    return params


@pytest.mark.django_db
class TestRefundCallback:
    def test_confirmation_finalizes_paid_order(self, client, paid_order, signed):
        response = post_json(client, REFUND_URL, signed(refund_params(paid_order, amount="100.00")))

        assert response.status_code == 200
        assert response.json()["message"] == "Refund finalized"
        paid_order.refresh_from_db()
        assert paid_order.payment_status == PaymentStatus.REFUNDED
        assert paid_order.refund_amount == Decimal("100.00")
        assert paid_order.refund_transaction_id == "rf_200"
        assert CustomerNotification.objects.get().notification_type == NotificationType.REFUND_PROCESSED

    def test_confirmation_defaults_to_order_total(self, client, paid_order, signed):
        post_json(client, REFUND_URL, signed(refund_params(paid_order)))

        paid_order.refresh_from_db()
        assert paid_order.refund_amount == paid_order.total

    def test_confirmation_after_synchronous_refund(self, client, paid_order, signed):
        OrderTransitionApplier.mark_refunded(paid_order.pk, paid_order.total, "rf_sync")

        response = post_json(client, REFUND_URL, signed(refund_params(paid_order)))

        assert response.json()["message"] == "Refund already finalized"
        paid_order.refresh_from_db()
        assert paid_order.refund_transaction_id == "rf_sync"
        assert not CustomerNotification.objects.exists()

    def test_confirmation_for_unpaid_order_ignored(self, client, pending_order, signed):
        response = post_json(client, REFUND_URL, signed(refund_params(pending_order)))

        assert response.json()["message"] == "Order already processed"
        pending_order.refresh_from_db()
        assert pending_order.payment_status == PaymentStatus.PENDING

    def test_denial_reverts_and_notifies_once(self, client, user, merchant, signed):
        order = OrderFactory(customer=user, merchant=merchant, delivered=True)
        OrderTransitionApplier.mark_refunded(order.pk, order.total, "rf_1")
        params = signed(refund_params(order, status="FAILED"))

        first = post_json(client, REFUND_URL, params)
        second = post_json(client, REFUND_URL, params)

        assert first.json()["message"] == "Refund reverted"
        assert first.json()["paymentStatus"] == PaymentStatus.PAID
        assert second.json()["message"] == "Order already processed"
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.DELIVERED
        assert order.refund_transaction_id is None
        notifications = CustomerNotification.objects.filter(
            notification_type=NotificationType.REFUND_FAILED
        )
        assert notifications.count() == 1

    def test_pending_refund_status_ignored(self, client, paid_order, signed):
        response = post_json(client, REFUND_URL, signed(refund_params(paid_order, status="PROCESSING")))

        assert response.json()["message"] == "Refund status not actionable"
        assert Order.objects.get(pk=paid_order.pk).payment_status == PaymentStatus.PAID

    def test_refund_callback_requires_signature(self, client, paid_order):
        response = post_json(client, REFUND_URL, refund_params(paid_order))

        assert response.status_code == 403
