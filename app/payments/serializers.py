"""
DRF serializers for payments app.

This module provides serializers for:
- Refund requests issued by staff
- Refund results
- Cron sweep summaries (schema documentation only)

Related files:
    - services/refund_service.py: RefundService, RefundOutcome
    - views.py: Payment API views

Usage:
    serializer = RefundRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers


class RefundRequestSerializer(serializers.Serializer):
    """
    Refund request body.

    Fields:
        reason: Why the refund is issued (required)
        amount: Partial amount; omitted refunds the full order total
    """

    reason = serializers.CharField(max_length=500)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=Decimal("0.01"),
    )


class RefundOutcomeSerializer(serializers.Serializer):
    """Refund result returned to the caller."""

    order_id = serializers.CharField(read_only=True)
    refund_id = serializers.CharField(read_only=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    payment_status = serializers.CharField(read_only=True)
    already_refunded = serializers.BooleanField(read_only=True)


class ExpirySweepSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    found = serializers.IntegerField()
    cancelled = serializers.IntegerField()
    skipped = serializers.IntegerField()
    compensated = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.DictField())
    cutoffTime = serializers.DateTimeField()


class OverdueSweepSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    timestamp = serializers.DateTimeField()
    overdueFound = serializers.IntegerField()
    statusUpdated = serializers.IntegerField()
    emailsSent = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.CharField())
