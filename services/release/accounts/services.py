"""Role administration."""
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from releases.exceptions import AdminRequired, ConflictDuplicate, NotFound

from .models import RoleAssignment
from .principal import Principal

logger = logging.getLogger(__name__)


def grant(user_id: str, role: str) -> RoleAssignment:
    """Persist a role assignment without a capability check."""

    try:
        with transaction.atomic():
            assignment = RoleAssignment.objects.create(user_id=user_id, role=role)
    except IntegrityError as exc:
        raise ConflictDuplicate("User already has this role") from exc
    logger.info("Granted role %s to %s", role, user_id)
    return assignment


def assign_role(actor: Principal, user_id: str, role: str) -> RoleAssignment:
    if not actor.is_admin:
        raise AdminRequired()
    return grant(user_id, role)


def revoke_role(actor: Principal, assignment_id: int) -> None:
    if not actor.is_admin:
        raise AdminRequired()
    deleted, _ = RoleAssignment.objects.filter(id=assignment_id).delete()
    if not deleted:
        raise NotFound("Role assignment not found.")
    logger.info("Revoked role assignment %s", assignment_id)
