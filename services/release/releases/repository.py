"""Storage access for the release core.

The progression engine, roster editor and registry read and write through
:class:`ReleaseRepository` only. It translates database failures into
release error kinds and keeps the cached release overview coherent with
writes.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from django.conf import settings
from django.core.cache import cache as default_cache
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, OuterRef, Q, QuerySet, Subquery
from django.utils import timezone

from .exceptions import ConflictDuplicate, NotFound, StorageFailure
from .models import App, Note, ReleaseTrain, Stop

logger = logging.getLogger(__name__)

OVERVIEW_CACHE_KEY = "releases:overview"


@contextmanager
def storage_errors(action: str, conflict_message: Optional[str] = None) -> Iterator[None]:
    """Translate ORM failures raised while performing ``action``."""

    try:
        yield
    except IntegrityError as exc:
        logger.warning("Integrity error while trying to %s: %s", action, exc)
        raise ConflictDuplicate(conflict_message) from exc
    except DatabaseError as exc:
        logger.exception("Storage failure while trying to %s", action)
        raise StorageFailure() from exc


class ReleaseRepository:
    def __init__(self, cache=None) -> None:
        self.cache = cache or default_cache

    # Apps -----------------------------------------------------------------

    def get_app(self, app_id: int) -> App:
        with storage_errors("load app"):
            try:
                return App.objects.get(pk=app_id)
            except App.DoesNotExist as exc:
                raise NotFound("App not found.") from exc

    def create_app(self, **fields: Any) -> App:
        with storage_errors("create app"), transaction.atomic():
            app = App.objects.create(**fields)
        self.invalidate()
        return app

    def save_app(self, app: App, fields: Sequence[str]) -> App:
        with storage_errors("update app"), transaction.atomic():
            app.save(update_fields=[*fields, "updated_at"])
        self.invalidate()
        return app

    def delete_app(self, app: App) -> None:
        with storage_errors("delete app"), transaction.atomic():
            app.delete()
        self.invalidate()

    # Trains ---------------------------------------------------------------

    def trains(self) -> QuerySet:
        return ReleaseTrain.objects.select_related("app")

    def list_trains(
        self,
        app_id: Optional[int] = None,
        platform: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[ReleaseTrain]:
        queryset = self.trains().order_by("-created_at", "id")
        if app_id is not None:
            queryset = queryset.filter(app_id=app_id)
        if platform is not None:
            queryset = queryset.filter(platform=platform)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        with storage_errors("list release trains"):
            return list(queryset)

    def get_train(self, train_id: int) -> ReleaseTrain:
        with storage_errors("load release train"):
            try:
                return self.trains().get(pk=train_id)
            except ReleaseTrain.DoesNotExist as exc:
                raise NotFound("Release train not found.") from exc

    def create_train(self, app: App, platform: str, version: str, **fields: Any) -> ReleaseTrain:
        with storage_errors(
            "create release train",
            f"A {platform} release {version} already exists for this app.",
        ), transaction.atomic():
            train = ReleaseTrain.objects.create(
                app=app, platform=platform, version=version, **fields
            )
        self.invalidate()
        return train

    def save_train(self, train: ReleaseTrain, fields: Sequence[str]) -> ReleaseTrain:
        with storage_errors(
            "update release train",
            "Another release in this track already uses that version.",
        ), transaction.atomic():
            train.save(update_fields=[*fields, "updated_at"])
        self.invalidate()
        return train

    def touch_train(self, train_id: int, now: Optional[datetime] = None) -> None:
        """Bump ``updated_at`` so registry recency follows stop activity."""

        with storage_errors("touch release train"):
            ReleaseTrain.objects.filter(pk=train_id).update(updated_at=now or timezone.now())

    def delete_train(self, train: ReleaseTrain) -> None:
        with storage_errors("delete release train"), transaction.atomic():
            train.delete()
        self.invalidate()

    # Stops ----------------------------------------------------------------

    def stops_for_train(self, train_id: int, for_update: bool = False) -> List[Stop]:
        queryset = Stop.objects.filter(release_train_id=train_id)
        if for_update:
            queryset = queryset.select_for_update()
        with storage_errors("load stops"):
            return list(queryset.order_by("number", "id"))

    def stops_for_trains(self, train_ids: Iterable[int]) -> Dict[int, List[Stop]]:
        grouped: Dict[int, List[Stop]] = {}
        with storage_errors("load stops"):
            for stop in Stop.objects.filter(release_train_id__in=list(train_ids)).order_by(
                "number", "id"
            ):
                grouped.setdefault(stop.release_train_id, []).append(stop)
        return grouped

    def get_stop(self, stop_id: int) -> Stop:
        with storage_errors("load stop"):
            try:
                return Stop.objects.get(pk=stop_id)
            except Stop.DoesNotExist as exc:
                raise NotFound("Stop not found.") from exc

    def save_stops(self, stops: Iterable[Stop], fields: Sequence[str]) -> List[Stop]:
        saved = []
        with storage_errors("update stops"), transaction.atomic():
            for stop in stops:
                stop.save(update_fields=list(fields))
                saved.append(stop)
        if saved:
            self.invalidate()
        return saved

    def create_stops(self, train: ReleaseTrain, specs: Sequence[Dict[str, Any]]) -> List[Stop]:
        if not specs:
            return []
        stops = [Stop(release_train=train, **spec) for spec in specs]
        with storage_errors("create stops"), transaction.atomic():
            Stop.objects.bulk_create(stops)
        self.invalidate()
        return stops

    def delete_stops(self, stop_ids: Sequence[int], train_id: Optional[int] = None) -> int:
        """Delete stops and, explicitly, their notes first."""

        if not stop_ids:
            return 0
        queryset = Stop.objects.filter(id__in=list(stop_ids))
        if train_id is not None:
            queryset = queryset.filter(release_train_id=train_id)
        with storage_errors("delete stops"), transaction.atomic():
            ids = list(queryset.values_list("id", flat=True))
            Note.objects.filter(stop_id__in=ids).delete()
            deleted, _ = Stop.objects.filter(id__in=ids).delete()
        self.invalidate()
        return deleted

    # Notes ----------------------------------------------------------------

    def notes_for_stop(self, stop_id: int) -> List[Note]:
        with storage_errors("load notes"):
            return list(Note.objects.filter(stop_id=stop_id).order_by("-created_at", "-id"))

    def notes_for_stops(self, stop_ids: Iterable[int]) -> Dict[int, List[Note]]:
        grouped: Dict[int, List[Note]] = {}
        with storage_errors("load notes"):
            for note in Note.objects.filter(stop_id__in=list(stop_ids)).order_by(
                "-created_at", "-id"
            ):
                grouped.setdefault(note.stop_id, []).append(note)
        return grouped

    def get_note(self, note_id: int) -> Note:
        with storage_errors("load note"):
            try:
                return Note.objects.get(pk=note_id)
            except Note.DoesNotExist as exc:
                raise NotFound("Note not found.") from exc

    def create_note(self, stop: Stop, author_id: str, author_name: str, text: str) -> Note:
        with storage_errors("create note"), transaction.atomic():
            return Note.objects.create(
                stop=stop, author_id=author_id, author_name=author_name, text=text
            )

    def delete_note(self, note: Note) -> None:
        with storage_errors("delete note"):
            note.delete()

    # Registry -------------------------------------------------------------

    def trains_with_stop_counts(self) -> List[ReleaseTrain]:
        """Every train annotated with stop counts and its current stop title."""

        current_title = (
            Stop.objects.filter(release_train=OuterRef("pk"), status=Stop.IN_PROGRESS)
            .order_by("number", "id")
            .values("title")[:1]
        )
        queryset = (
            ReleaseTrain.objects.select_related("app")
            .annotate(
                total_stops=Count("stops", distinct=True),
                completed_stops=Count("stops", filter=Q(stops__status=Stop.DONE), distinct=True),
                in_progress_stops=Count(
                    "stops", filter=Q(stops__status=Stop.IN_PROGRESS), distinct=True
                ),
                blocked_stops=Count("stops", filter=Q(stops__status=Stop.BLOCKED), distinct=True),
                current_stop_title=Subquery(current_title),
            )
            .order_by("-updated_at", "-id")
        )
        with storage_errors("list releases"):
            return list(queryset)

    def cached_overview(self, build: Callable[[], Any], refresh: bool = False) -> Any:
        if not refresh:
            cached = self.cache.get(OVERVIEW_CACHE_KEY)
            if cached is not None:
                return cached
        value = build()
        self.cache.set(OVERVIEW_CACHE_KEY, value, getattr(settings, "RELEASE_CACHE_TIMEOUT", 60))
        return value

    def invalidate(self) -> None:
        """Drop the cached overview now and again once the transaction commits."""

        self.cache.delete(OVERVIEW_CACHE_KEY)
        transaction.on_commit(self._after_commit)

    def _after_commit(self) -> None:
        from .tasks import schedule_overview_refresh

        self.cache.delete(OVERVIEW_CACHE_KEY)
        schedule_overview_refresh()
