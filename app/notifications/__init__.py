"""
Notifications app for customer and merchant messages.

This app provides:
- CustomerNotification model for in-app notifications about orders
- NotificationService for best-effort notification creation
- EmailService for template emails (settlement reminders)

Usage:
    from notifications.models import NotificationType
    from notifications.services import NotificationService

    NotificationService.notify_order_event(order, NotificationType.PAYMENT_SUCCESS)
"""
