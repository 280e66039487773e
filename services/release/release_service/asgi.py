"""ASGI config for the release train service."""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "release_service.settings")

application = get_asgi_application()
