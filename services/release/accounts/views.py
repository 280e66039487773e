"""API views for role administration."""
from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import api_view
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response

from releases.exceptions import AdminRequired

from . import services
from .models import RoleAssignment
from .serializers import PrincipalSerializer, RoleAssignmentSerializer


class RoleAssignmentViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = RoleAssignment.objects.all()
    serializer_class = RoleAssignmentSerializer
    lookup_value_regex = "[0-9]+"
    filter_backends = [OrderingFilter]
    ordering_fields = ["user_id", "created_at"]
    ordering = ["user_id", "role"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        if not self.request.user.is_admin:
            return queryset.filter(user_id=self.request.user.id)
        user_id = self.request.query_params.get("user_id")
        if user_id:
            queryset = queryset.filter(user_id=user_id)
        return queryset

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = services.assign_role(
            request.user,
            serializer.validated_data["user_id"],
            serializer.validated_data["role"],
        )
        return Response(self.get_serializer(assignment).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        if not request.user.is_admin:
            raise AdminRequired()
        services.revoke_role(request.user, int(kwargs["pk"]))
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET"])
def me(request: Request) -> Response:
    """Return the resolved principal and its capabilities."""

    return Response(PrincipalSerializer(request.user).data)
