"""The authenticated principal the release core acts on behalf of."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from .models import RoleAssignment


@dataclass(frozen=True)
class Principal:
    id: str
    display_name: str = ""
    roles: FrozenSet[str] = field(default_factory=frozenset)

    # Satisfies rest_framework.permissions.IsAuthenticated.
    is_authenticated = True

    @property
    def is_admin(self) -> bool:
        return RoleAssignment.ADMIN in self.roles

    @property
    def can_edit(self) -> bool:
        return bool(self.roles & RoleAssignment.EDITOR_ROLES)

    @property
    def author_name(self) -> str:
        return self.display_name or "User"

    @classmethod
    def with_roles(cls, user_id: str, roles: Iterable[str], display_name: str = "") -> "Principal":
        return cls(id=user_id, display_name=display_name, roles=frozenset(roles))


def resolve_principal(user_id: str, display_name: str = "") -> Principal:
    """Build a principal with roles loaded from storage."""

    roles = RoleAssignment.objects.filter(user_id=user_id).values_list("role", flat=True)
    return Principal.with_roles(user_id, roles, display_name=display_name)
