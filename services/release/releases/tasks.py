"""Background tasks for the release train service."""
from __future__ import annotations

import logging

from celery import shared_task
from kombu.exceptions import OperationalError

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=5)
def warm_release_overview(self) -> int:
    """Rebuild the cached release overview after a write."""

    from .registry import ReleaseRegistry

    try:
        releases = ReleaseRegistry().list_releases_with_stats(refresh=True)
    except Exception as exc:  # pragma: no cover - retries exercised in production
        logger.exception("Rebuilding the release overview failed")
        raise self.retry(exc=exc, countdown=min(60, 2 ** self.request.retries))
    logger.info("Release overview rebuilt with %d releases", len(releases))
    return len(releases)


def schedule_overview_refresh() -> None:
    """Queue a cache rebuild; a missing broker only costs a cold cache."""

    try:
        warm_release_overview.delay()
    except OperationalError:
        logger.warning("Broker unavailable; release overview will be rebuilt on next read")
