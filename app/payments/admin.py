"""
Payment admin configuration.

Orders and settlements are read-mostly here: payment state changes go
through payments.transitions so gateway callbacks and sweeps stay
idempotent.
"""

from django.contrib import admin

from payments.models import Merchant, Order, Settlement


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Payment fields are read-only; use the refund endpoint to refund.
    """

    list_display = [
        "id",
        "customer",
        "merchant",
        "total_display",
        "payment_method",
        "payment_status",
        "status",
        "created_at",
    ]
    list_filter = ["payment_status", "status", "payment_method", "currency"]
    search_fields = [
        "id",
        "payment_transaction_id",
        "refund_transaction_id",
        "customer__email",
        "promo_code",
    ]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "version",
        "payment_status",
        "status",
        "payment_transaction_id",
        "payment_response",
        "payment_completed_at",
        "cancelled_at",
        "refund_amount",
        "refund_transaction_id",
        "refund_reason",
        "refunded_at",
        "status_before_refund",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "customer", "merchant", "promo_code"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("total", "currency"),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_method",
                    "payment_status",
                    "status",
                    "payment_transaction_id",
                    "payment_completed_at",
                    "cancelled_at",
                ),
            },
        ),
        (
            "Refund",
            {
                "fields": (
                    "refund_amount",
                    "refund_transaction_id",
                    "refund_reason",
                    "refunded_at",
                    "status_before_refund",
                ),
                "classes": ("collapse",),
            },
        ),
        (
            "Gateway Response",
            {
                "fields": ("payment_response", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def total_display(self, obj: Order) -> str:
        """Display the total with its currency."""
        return f"{obj.total:.2f} {obj.currency}"

    total_display.short_description = "Total"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for orders (audit trail)."""
        return False


@admin.register(Merchant)
class MerchantAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "email", "owner", "created_at"]
    search_fields = ["name", "email"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    """Admin configuration for Settlement."""

    list_display = [
        "id",
        "merchant",
        "period_start",
        "period_end",
        "net_amount_due",
        "status",
        "overdue_at",
    ]
    list_filter = ["status"]
    search_fields = ["merchant__name", "merchant__email"]
    readonly_fields = ["status", "overdue_at", "created_at", "updated_at"]
    date_hierarchy = "period_end"
    ordering = ["-period_end"]
