"""Error kinds raised by the release train core.

Every error carries a stable ``code`` so the presentation layer can tell
"already has this role" apart from a generic failure.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ReleaseError(Exception):
    """Base class for release workflow failures."""

    code = "release_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Release operation failed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class InvalidInput(ReleaseError):
    code = "invalid_input"
    default_message = "The request is missing required fields."


class PermissionDenied(ReleaseError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "No permission to edit."


class AdminRequired(PermissionDenied):
    code = "admin_required"
    default_message = "Only admins can perform this action."


class InvalidState(ReleaseError):
    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The release train is not in a state that allows this action."


class NoActiveStop(InvalidState):
    code = "no_active_stop"
    default_message = "No stop is currently in progress."


class AlreadyStarted(InvalidState):
    code = "already_started"
    default_message = "Train already started."


class NoStopsFound(InvalidState):
    code = "no_stops_found"
    default_message = "No stops found."


class IllegalTransition(InvalidState):
    code = "illegal_transition"
    default_message = "Stop status transition is not allowed."


class NotFound(ReleaseError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class ConflictDuplicate(ReleaseError):
    code = "conflict_duplicate"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists."


class StorageFailure(ReleaseError):
    code = "storage_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage is unavailable, please retry."


def release_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF exception handler that keeps the release error kind in the payload."""

    if isinstance(exc, ReleaseError):
        view = context.get("view")
        logger.warning(
            "%s rejected in %s: %s",
            exc.code,
            type(view).__name__ if view is not None else "unknown view",
            exc.message,
        )
        return Response(exc.as_payload(), status=exc.status_code)
    return exception_handler(exc, context)
