"""
Notification service layer.

Services:
    NotificationService: Best-effort customer notifications about orders
    EmailService: Template emails (plain text + HTML) to merchants

Design Principles:
    - Services are stateless (use class methods)
    - Notifications never fail the operation that triggered them; a failed
      insert is logged and swallowed, the caller's state change stands
    - Email failures are reported as False so batch callers can count them

Usage:
    from notifications.services import NotificationService

    NotificationService.notify_order_event(order, NotificationType.PAYMENT_SUCCESS)

    NotificationService.notify(
        user_id=order.customer_id,
        notification_type=NotificationType.REFUND_FAILED,
        title="Refund Failed",
        body="We were unable to process your refund.",
        related_order_id=order.id,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from core.services import BaseService

from notifications.models import CustomerNotification, NotificationType

if TYPE_CHECKING:
    from uuid import UUID

    from payments.models import Order

logger = logging.getLogger(__name__)


# Title and body per order event
ORDER_MESSAGES: dict[str, tuple[str, str]] = {
    NotificationType.PAYMENT_SUCCESS: (
        "Payment Successful",
        "Your payment was received and your order has been sent to the merchant.",
    ),
    NotificationType.PAYMENT_FAILED: (
        "Payment Failed",
        "Your payment could not be completed and the order was cancelled.",
    ),
    NotificationType.PAYMENT_EXPIRED: (
        "Payment Expired",
        "Your order was cancelled because payment was not completed in time.",
    ),
    NotificationType.REFUND_PROCESSED: (
        "Refund Completed",
        "Your refund has been processed successfully. "
        "It may take 5-14 business days to appear.",
    ),
    NotificationType.REFUND_FAILED: (
        "Refund Failed",
        "We were unable to process your refund. Our support team will contact you soon.",
    ),
}


class NotificationService(BaseService):
    """
    Customer notifications for order payment events.

    Methods:
        notify: Insert one notification, never raising
        notify_order_event: notify() with the standard message for an event
    """

    @classmethod
    def notify(
        cls,
        user_id: int,
        notification_type: str,
        title: str,
        body: str,
        related_order_id: UUID | str | None = None,
        data: dict[str, Any] | None = None,
    ) -> CustomerNotification | None:
        """
        Create a notification for a customer.

        Best-effort: any failure is logged and None is returned.

        Returns:
            The created notification, or None if the insert failed
        """
        log = cls.get_logger()
        try:
            notification = CustomerNotification.objects.create(
                recipient_id=user_id,
                notification_type=notification_type,
                title=title,
                body=body,
                related_order_id=related_order_id,
                data=data or {},
            )
        except Exception:
            log.warning(
                "Failed to create customer notification",
                extra={
                    "user_id": user_id,
                    "notification_type": str(notification_type),
                    "order_id": str(related_order_id) if related_order_id else None,
                },
                exc_info=True,
            )
            return None

        log.info(
            "Customer notification created",
            extra={
                "notification_id": notification.pk,
                "user_id": user_id,
                "notification_type": str(notification_type),
            },
        )
        return notification

    @classmethod
    def notify_order_event(
        cls,
        order: Order,
        notification_type: str,
        extra_data: dict[str, Any] | None = None,
    ) -> CustomerNotification | None:
        """Notify an order's customer using the standard message for the event."""
        title, body = ORDER_MESSAGES[notification_type]
        data: dict[str, Any] = {
            "order_id": str(order.pk),
            "payment_status": order.payment_status,
        }
        if order.payment_transaction_id:
            data["transaction_id"] = order.payment_transaction_id
        data.update(extra_data or {})
        return cls.notify(
            user_id=order.customer_id,
            notification_type=notification_type,
            title=title,
            body=body,
            related_order_id=order.pk,
            data=data,
        )


class EmailService:
    """
    Template email sending.

    Templates live under templates/<template_name>.txt and .html; the plain
    text version is required, the HTML alternative is optional.
    """

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict,
        from_email: str | None = None,
    ) -> bool:
        """
        Send email using a template.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Template path without extension
            context: Template context variables
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)

        Returns:
            True if the email was handed to the backend successfully
        """
        if isinstance(to, str):
            to = [to]

        text_content = render_to_string(f"{template_name}.txt", context)
        try:
            html_content = render_to_string(f"{template_name}.html", context)
        except TemplateDoesNotExist:
            html_content = None

        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=to,
        )
        if html_content:
            email.attach_alternative(html_content, "text/html")

        try:
            email.send(fail_silently=False)
        except Exception:
            logger.error(
                "Failed to send email",
                extra={"to": to, "subject": subject, "template": template_name},
                exc_info=True,
            )
            return False

        logger.info("Email sent", extra={"to": to, "subject": subject})
        return True
