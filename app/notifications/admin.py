"""
Django admin configuration for notification models.

Registers CustomerNotification with the admin site.
"""

from django.contrib import admin

from notifications.models import CustomerNotification


@admin.register(CustomerNotification)
class CustomerNotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for CustomerNotification.

    Notifications are written by payment reconciliation; the admin is
    for inspection only.
    """

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "related_order",
        "is_read",
        "created_at",
    ]
    list_filter = ["notification_type", "is_read", "created_at"]
    search_fields = ["recipient__email", "title"]
    raw_id_fields = ["recipient", "related_order"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["-created_at"]
