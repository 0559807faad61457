"""
Celery tasks for payment reconciliation.

The task bodies live in payments.workers; they are re-exported here so
Celery autodiscover registers them.

Usage:
    from payments.tasks import expire_pending_payments

    expire_pending_payments.delay()
"""

from payments.workers import (  # noqa: F401
    expire_pending_payments,
    mark_overdue_settlements,
)
