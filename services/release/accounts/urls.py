"""Route registration for role endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import RoleAssignmentViewSet, me

router = DefaultRouter()
router.register("roles", RoleAssignmentViewSet, basename="role")

urlpatterns = [
    path("me/", me, name="accounts-me"),
    path("", include(router.urls)),
]
