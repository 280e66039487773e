"""Route registration for release train endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AppViewSet,
    NoteViewSet,
    ReleaseTrainViewSet,
    ReleaseViewSet,
    StopViewSet,
    health,
)

router = DefaultRouter()
router.register("apps", AppViewSet, basename="app")
router.register("trains", ReleaseTrainViewSet, basename="train")
router.register("stops", StopViewSet, basename="stop")
router.register("notes", NoteViewSet, basename="note")
router.register("releases", ReleaseViewSet, basename="release")

urlpatterns = [
    path("healthz/", health, name="release-health"),
    path("", include(router.urls)),
]
