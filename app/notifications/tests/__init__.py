"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: NotificationService and EmailService tests

Usage:
    pytest notifications/tests/
"""
