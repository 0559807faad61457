"""
DRF views for payments app.

This module provides API views for:
- Scheduler-triggered reconciliation sweeps
- Staff-issued refunds

Gateway callbacks are plain Django views in webhooks/views.py.

Related files:
    - services/refund_service.py: RefundService
    - workers/: PaymentExpiryService, SettlementOverdueService
    - permissions.py: CronSecretAuthentication, IsCronCaller
    - urls.py: URL routing

Endpoints:
    GET|POST /api/v1/payments/cron/expire-pending-payments/ - Expiry sweep
    GET|POST /api/v1/payments/cron/settlement-overdue/ - Overdue scan
    POST /api/v1/payments/orders/<order_id>/refund/ - Refund an order

Security:
    - Cron endpoints require Authorization: Bearer <CRON_SECRET> (401 otherwise)
    - Refunds require a staff user
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.permissions import CronSecretAuthentication, IsCronCaller
from payments.services import RefundService
from payments.workers import PaymentExpiryService, SettlementOverdueService

from .serializers import (
    ExpirySweepSerializer,
    OverdueSweepSerializer,
    RefundOutcomeSerializer,
    RefundRequestSerializer,
)

logger = logging.getLogger(__name__)

REFUND_ERROR_STATUS = {
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_ONLINE_PAYMENT": status.HTTP_400_BAD_REQUEST,
    "NOT_PAID": status.HTTP_400_BAD_REQUEST,
    "MISSING_TRANSACTION_ID": status.HTTP_400_BAD_REQUEST,
    "INVALID_REFUND_AMOUNT": status.HTTP_400_BAD_REQUEST,
    "ALREADY_REFUNDED": status.HTTP_409_CONFLICT,
    "GATEWAY_REFUND_FAILED": status.HTTP_502_BAD_GATEWAY,
    "REFUND_STORE_UPDATE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class CronView(APIView):
    """Base for scheduler endpoints: bearer secret, GET or POST."""

    authentication_classes = [CronSecretAuthentication]
    permission_classes = [IsCronCaller]

    def run(self) -> Response:
        raise NotImplementedError

    def get(self, request):
        return self.run()

    def post(self, request):
        return self.run()


@extend_schema(
    operation_id="cron_expire_pending_payments",
    summary="Expire abandoned online payments",
    description=(
        "Cancels online orders stuck in pending_payment past the expiry "
        "threshold and releases their promo code usage."
    ),
    request=None,
    responses={
        200: OpenApiResponse(response=ExpirySweepSerializer, description="Sweep summary"),
        401: OpenApiResponse(description="Missing or invalid cron secret"),
    },
    tags=["Payments - Cron"],
)
class ExpirePendingPaymentsCronView(CronView):
    def run(self) -> Response:
        result = PaymentExpiryService.expire_pending_payments()
        summary = result.data

        logger.info(
            "Expiry sweep triggered via HTTP",
            extra={"found": summary.found, "cancelled": summary.cancelled},
        )
        return Response({"success": True, **summary.to_dict()}, status=status.HTTP_200_OK)


@extend_schema(
    operation_id="cron_settlement_overdue",
    summary="Mark overdue settlements",
    description=(
        "Flags pending settlements past the grace window as overdue and "
        "emails each merchant. Returns 500 when any settlement failed."
    ),
    request=None,
    responses={
        200: OpenApiResponse(response=OverdueSweepSerializer, description="Scan summary"),
        401: OpenApiResponse(description="Missing or invalid cron secret"),
        500: OpenApiResponse(response=OverdueSweepSerializer, description="Scan finished with errors"),
    },
    tags=["Payments - Cron"],
)
class SettlementOverdueCronView(CronView):
    def run(self) -> Response:
        result = SettlementOverdueService.mark_overdue_settlements()
        summary = result.data

        if summary.errors:
            logger.error(
                "Settlement overdue scan finished with errors",
                extra={"errors": len(summary.errors)},
            )
            return Response(
                {"success": False, **summary.to_dict()},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"success": True, **summary.to_dict()}, status=status.HTTP_200_OK)


class OrderRefundView(APIView):
    """
    Refund a paid online order.

    POST /api/v1/payments/orders/<order_id>/refund/

    Request body:
        reason: Why the refund is issued
        amount: Optional partial amount (defaults to the order total)

    Returns:
        Refund outcome, or an error mapped from the service error code
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="order_refund",
        summary="Refund order",
        description=(
            "Issues a refund through the payment gateway. The gateway is "
            "called once; the order is updated only if it is still paid."
        ),
        request=RefundRequestSerializer,
        responses={
            200: OpenApiResponse(response=RefundOutcomeSerializer, description="Refund issued"),
            400: OpenApiResponse(description="Order not refundable or invalid amount"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order already refunded"),
            502: OpenApiResponse(description="Gateway rejected the refund"),
        },
        tags=["Payments - Refunds"],
    )
    def post(self, request, order_id):
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RefundService.create_refund(
            order_id=order_id,
            reason=serializer.validated_data["reason"],
            amount=serializer.validated_data.get("amount"),
            requested_by=request.user.pk,
        )

        if not result.success:
            return Response(
                result.to_response(),
                status=REFUND_ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
            )

        return Response(
            {"success": True, "data": RefundOutcomeSerializer(result.data).data},
            status=status.HTTP_200_OK,
        )
