"""
Authentication and permission classes for the cron endpoints.

The scheduler calls the sweep endpoints with
``Authorization: Bearer <CRON_SECRET>``. There is no fallback: an unset
CRON_SECRET rejects every call.

Usage:
    class ExpirePendingPaymentsCronView(APIView):
        authentication_classes = [CronSecretAuthentication]
        permission_classes = [IsCronCaller]
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework import exceptions, permissions
from rest_framework.authentication import BaseAuthentication, get_authorization_header

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

logger = logging.getLogger(__name__)

# request.auth value for a verified scheduler call
CRON_AUTH = "cron"


class CronSecretAuthentication(BaseAuthentication):
    """
    Bearer-secret authentication for scheduler calls.

    Returns None when no bearer header is sent, so the permission check
    answers 401; raises AuthenticationFailed for a wrong or unconfigured
    secret.
    """

    keyword = "Bearer"

    def authenticate(self, request: Request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None

        if len(auth) != 2:
            raise exceptions.AuthenticationFailed("Invalid authorization header.")

        secret = settings.CRON_SECRET
        if not secret:
            logger.critical("CRON_SECRET is not configured, rejecting cron call")
            raise exceptions.AuthenticationFailed("Invalid cron secret.")

        if not hmac.compare_digest(auth[1], secret.encode()):
            logger.warning("Cron call with invalid secret", extra={"path": request.path})
            raise exceptions.AuthenticationFailed("Invalid cron secret.")

        return (AnonymousUser(), CRON_AUTH)

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class IsCronCaller(permissions.BasePermission):
    """Allows access only to requests authenticated with the cron secret."""

    message = "Cron secret required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return request.auth == CRON_AUTH
