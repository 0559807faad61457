"""
Add celery-beat schedules for the reconciliation sweeps.

- Expire abandoned online checkouts every PAYMENT_EXPIRY_SWEEP_INTERVAL_MINUTES
  (15 by default)
- Mark overdue merchant settlements once a day
"""

from django.conf import settings
from django.db import migrations


EXPIRY_TASK_NAME = "Expire Pending Online Payments"
OVERDUE_TASK_NAME = "Mark Overdue Settlements"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for both sweeps."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    sweep_interval, _ = IntervalSchedule.objects.get_or_create(
        every=settings.PAYMENT_EXPIRY_SWEEP_INTERVAL_MINUTES,
        period="minutes",
    )
    daily, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="days",
    )

    PeriodicTask.objects.get_or_create(
        name=EXPIRY_TASK_NAME,
        defaults={
            "task": "payments.workers.payment_expiry.expire_pending_payments",
            "interval": sweep_interval,
            "enabled": True,
            "description": (
                "Cancels online orders left in pending_payment past the "
                "expiry threshold and releases their promo code usage."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name=OVERDUE_TASK_NAME,
        defaults={
            "task": "payments.workers.settlement_overdue.mark_overdue_settlements",
            "interval": daily,
            "enabled": True,
            "description": (
                "Flags pending settlements past their grace window as overdue "
                "and emails the merchant."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[EXPIRY_TASK_NAME, OVERDUE_TASK_NAME],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
