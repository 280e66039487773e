"""Celery application for the release train service."""
from __future__ import annotations

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "release_service.settings")

app = Celery("release_service")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
