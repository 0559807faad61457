import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import payments.models.order


ORDER_STATUS_CHOICES = [
    ("pending_payment", "Pending Payment"),
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("preparing", "Preparing"),
    ("ready", "Ready"),
    ("out_for_delivery", "Out for Delivery"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Merchant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, help_text="Address that receives settlement reminders", max_length=254, null=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="merchants",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Incremented by every applied state transition")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("total", models.DecimalField(decimal_places=2, help_text="Order total charged to the customer", max_digits=12)),
                ("currency", models.CharField(default=payments.models.order.default_currency, help_text="ISO 4217 currency code", max_length=3)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash_on_delivery", "Cash on Delivery"), ("online", "Online")],
                        default="cash_on_delivery",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unset", "Unset"),
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="unset",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES,
                        db_index=True,
                        default="pending_payment",
                        help_text="Fulfillment status",
                        max_length=20,
                    ),
                ),
                ("promo_code", models.CharField(blank=True, help_text="Promo code consumed when the order was created", max_length=50, null=True)),
                ("payment_transaction_id", models.CharField(blank=True, db_index=True, help_text="Gateway transaction reference (set once)", max_length=255, null=True)),
                ("payment_response", models.JSONField(blank=True, help_text="Raw gateway callback that settled the payment", null=True)),
                ("payment_completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("refund_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("refund_transaction_id", models.CharField(blank=True, help_text="Gateway refund reference", max_length=255, null=True)),
                ("refund_reason", models.TextField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status_before_refund",
                    models.CharField(
                        blank=True,
                        choices=ORDER_STATUS_CHOICES,
                        help_text="Fulfillment status restored if the gateway denies the refund",
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="Customer who placed the order",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "merchant",
                    models.ForeignKey(
                        blank=True,
                        help_text="Merchant fulfilling the order",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="payments.merchant",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="payments_or_status_0c5a1e_idx"),
                    models.Index(fields=["payment_method", "status"], name="payments_or_payment_7d2b4f_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("total__gte", 0)), name="order_total_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Settlement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("period_start", models.DateTimeField()),
                ("period_end", models.DateTimeField(db_index=True)),
                ("net_amount_due", models.DecimalField(decimal_places=2, help_text="Commission owed to the platform for the period", max_digits=12)),
                ("total_orders", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("pending", "Pending"), ("overdue", "Overdue"), ("paid", "Paid")],
                        db_index=True,
                        default="pending",
                        max_length=50,
                    ),
                ),
                ("overdue_at", models.DateTimeField(blank=True, null=True)),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlements",
                        to="payments.merchant",
                    ),
                ),
            ],
            options={
                "ordering": ["-period_end"],
                "indexes": [
                    models.Index(fields=["status", "period_end"], name="payments_se_status_4e91b3_idx"),
                ],
            },
        ),
    ]
