"""URL configuration for the release train service."""
from django.urls import include, path

urlpatterns = [
    path("api/", include("accounts.urls")),
    path("api/", include("releases.urls")),
]
