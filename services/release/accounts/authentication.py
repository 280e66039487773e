"""DRF authentication backed by identity headers set upstream."""
from __future__ import annotations

from typing import Optional, Tuple

from rest_framework.authentication import BaseAuthentication
from rest_framework.request import Request

from .principal import Principal, resolve_principal

USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"


class HeaderPrincipalAuthentication(BaseAuthentication):
    """Trust the identity headers forwarded by the gateway.

    Requests without ``X-User-Id`` stay anonymous and are rejected by the
    default ``IsAuthenticated`` permission.
    """

    def authenticate(self, request: Request) -> Optional[Tuple[Principal, None]]:
        user_id = request.headers.get(USER_ID_HEADER, "").strip()
        if not user_id:
            return None
        display_name = request.headers.get(USER_NAME_HEADER, "").strip()
        return resolve_principal(user_id, display_name=display_name), None

    def authenticate_header(self, request: Request) -> str:
        return USER_ID_HEADER
