"""Promo code admin configuration."""

from django.contrib import admin

from promotions.models import PromoCode, PromoCodeUsage


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = ["code", "usage_count", "max_uses", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["code"]
    readonly_fields = ["usage_count", "created_at", "updated_at"]


@admin.register(PromoCodeUsage)
class PromoCodeUsageAdmin(admin.ModelAdmin):
    list_display = ["id", "promo_code", "user", "order", "created_at"]
    search_fields = ["promo_code__code", "user__email"]
    raw_id_fields = ["promo_code", "user", "order"]
    readonly_fields = ["created_at", "updated_at"]
