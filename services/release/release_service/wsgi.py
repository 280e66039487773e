"""WSGI config for the release train service."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "release_service.settings")

application = get_wsgi_application()
