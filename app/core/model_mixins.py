"""
Reusable abstract model mixins.

Available Mixins:
    UUIDPrimaryKeyMixin: UUID primary key
    VersionedMixin: Monotonic version counter bumped by every state write

Usage:
    class Order(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
        ...
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID as primary key instead of an auto-increment integer.

    Order ids travel through the payment gateway as merchant order
    references, so they must not be guessable or reveal volume.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class VersionedMixin(models.Model):
    """
    Version counter for records written through conditional updates.

    The counter is never part of a write guard; it is bumped with
    F("version") + 1 alongside each applied transition so that
    every state change is observable in audits and tests.
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented by every applied state transition",
    )

    class Meta:
        abstract = True
