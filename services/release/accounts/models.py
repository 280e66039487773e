"""Database models for role assignments."""
from __future__ import annotations

from django.db import models


class RoleAssignment(models.Model):
    """Grants a role to a principal resolved by the identity provider."""

    ADMIN = "admin"
    DEV = "dev"
    QA = "qa"
    PRODUCT_MANAGER = "product_manager"

    ROLE_CHOICES = [
        (ADMIN, "Administrator"),
        (DEV, "Developer"),
        (QA, "QA"),
        (PRODUCT_MANAGER, "Product Manager"),
    ]

    EDITOR_ROLES = frozenset({ADMIN, DEV, QA, PRODUCT_MANAGER})

    user_id = models.CharField(max_length=64, db_index=True)
    role = models.CharField(max_length=32, choices=ROLE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["user_id", "role"]
        constraints = [
            models.UniqueConstraint(fields=["user_id", "role"], name="unique_user_role"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} ({self.role})"
