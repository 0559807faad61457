"""
Tests for payments app.

This package contains test modules for:
- test_transitions.py: compare-and-set and transition applier tests
- test_callbacks.py: gateway callback parsing tests
- test_webhooks.py: payment and refund webhook handler/view tests
- test_refund_service.py: RefundService tests
- test_payment_expiry.py: expiry sweep tests
- test_settlement_overdue.py: settlement overdue scanner tests
- test_views.py: cron and staff refund endpoint tests

Usage:
    pytest payments/tests/
    pytest payments/tests/test_refund_service.py
"""
