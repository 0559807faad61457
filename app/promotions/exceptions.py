"""Promotion exceptions."""

from __future__ import annotations

from core.exceptions import ConflictError


class PromoCompensationError(ConflictError):
    """
    The promo counter kept changing under the compensator.

    Raised after PROMO_COMPENSATION_MAX_ATTEMPTS lost compare-and-set
    rounds. The usage row delete is rolled back so a later run retries.
    """

    default_error_code = "PROMO_COMPENSATION_FAILED"
