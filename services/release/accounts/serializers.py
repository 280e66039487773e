"""Serializers for role assignments."""
from __future__ import annotations

from rest_framework import serializers

from .models import RoleAssignment


class RoleAssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoleAssignment
        fields = [
            "id",
            "user_id",
            "role",
            "created_at",
        ]
        # Duplicates are reported by the service layer as conflict_duplicate.
        validators = []


class PrincipalSerializer(serializers.Serializer):
    id = serializers.CharField()
    display_name = serializers.CharField()
    roles = serializers.SerializerMethodField()
    is_admin = serializers.BooleanField()
    can_edit = serializers.BooleanField()

    def get_roles(self, principal) -> list:
        return sorted(principal.roles)
