"""Django app configuration for promotions."""

from django.apps import AppConfig


class PromotionsConfig(AppConfig):
    """Configuration for the promotions app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "promotions"
    verbose_name = "Promotions"
