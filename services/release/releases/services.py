"""Administrative operations on apps, trains and notes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from django.db import transaction
from django.utils import timezone

from accounts.principal import Principal

from . import aggregate
from .engine import require_editor
from .exceptions import InvalidInput, PermissionDenied
from .models import App, Note, ReleaseTrain, Stop
from .repository import ReleaseRepository
from .roster import number_stop_specs, require_admin
from .stop_templates import get_stop_template

logger = logging.getLogger(__name__)

OVERDUE = "overdue"
DUE_SOON = "due_soon"
SCHEDULED = "scheduled"
DUE_SOON_DAYS = 3

PLATFORMS = frozenset(value for value, _ in ReleaseTrain.PLATFORM_CHOICES)


@dataclass(frozen=True)
class DeadlineState:
    state: str
    days_left: int


def deadline_state(deadline: Optional[date], today: Optional[date] = None) -> Optional[DeadlineState]:
    if deadline is None:
        return None
    today = today or timezone.localdate()
    days_left = (deadline - today).days
    if days_left < 0:
        return DeadlineState(OVERDUE, days_left)
    if days_left <= DUE_SOON_DAYS:
        return DeadlineState(DUE_SOON, days_left)
    return DeadlineState(SCHEDULED, days_left)


@dataclass
class TrainView:
    train: ReleaseTrain
    stops: List[Stop]
    notes: Dict[int, List[Note]] = field(default_factory=dict)

    @property
    def progress(self) -> aggregate.TrainProgress:
        return aggregate.TrainProgress.of(self.stops)

    @property
    def current_stop(self) -> Optional[Stop]:
        return aggregate.current_stop(self.stops)

    @property
    def head_stop(self) -> Optional[Stop]:
        return aggregate.head_stop(self.stops)

    @property
    def deadline_state(self) -> Optional[DeadlineState]:
        return deadline_state(self.train.deadline)


class ReleaseService:
    def __init__(self, repository: Optional[ReleaseRepository] = None) -> None:
        self.repository = repository or ReleaseRepository()

    # Apps -----------------------------------------------------------------

    def create_app(self, actor: Principal, name: str, description: Optional[str] = None) -> App:
        require_admin(actor)
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Please enter an app name")
        app = self.repository.create_app(name=name, description=(description or "").strip() or None)
        logger.info("App %s created by %s", app.pk, actor.id)
        return app

    def update_app(self, actor: Principal, app_id: int, **changes: Any) -> App:
        require_admin(actor)
        app = self.repository.get_app(app_id)
        fields = []
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise InvalidInput("Please enter an app name")
            app.name = name
            fields.append("name")
        if "description" in changes:
            app.description = (changes["description"] or "").strip() or None
            fields.append("description")
        if fields:
            self.repository.save_app(app, fields)
        return app

    def delete_app(self, actor: Principal, app_id: int) -> None:
        """Delete an app together with its trains, stops and notes."""

        require_admin(actor)
        app = self.repository.get_app(app_id)
        self.repository.delete_app(app)
        logger.info("App %s deleted by %s", app_id, actor.id)

    # Trains ---------------------------------------------------------------

    def create_train(
        self,
        actor: Principal,
        app_id: int,
        platform: str,
        version: str,
        deadline: Optional[date] = None,
        stops: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> TrainView:
        """Create a train with its stops, all ``not_started``.

        ``stops`` defaults to the configured template; specs carrying
        ``enabled: False`` are skipped and the rest are numbered 1..M.
        """

        require_admin(actor)
        version = (version or "").strip()
        if not version:
            raise InvalidInput("Please enter a version")
        if platform not in PLATFORMS:
            raise InvalidInput(f"Unknown platform: {platform}")
        specs = number_stop_specs(get_stop_template() if stops is None else stops)
        with transaction.atomic():
            app = self.repository.get_app(app_id)
            train = self.repository.create_train(
                app, platform, version, deadline=deadline, is_active=True
            )
            self.repository.create_stops(train, specs)
            created = self.repository.stops_for_train(train.pk)
        logger.info(
            "Train %s (%s %s) created for app %s with %d stops",
            train.pk,
            platform,
            version,
            app_id,
            len(created),
        )
        return TrainView(train=train, stops=created)

    def get_train_view(self, train_id: int, with_notes: bool = True) -> TrainView:
        train = self.repository.get_train(train_id)
        stops = self.repository.stops_for_train(train_id)
        notes = self.repository.notes_for_stops([stop.pk for stop in stops]) if with_notes else {}
        return TrainView(train=train, stops=stops, notes=notes)

    def list_train_views(
        self,
        app_id: Optional[int] = None,
        platform: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[TrainView]:
        trains = self.repository.list_trains(app_id=app_id, platform=platform, is_active=is_active)
        stops = self.repository.stops_for_trains([train.pk for train in trains])
        return [TrainView(train=train, stops=stops.get(train.pk, [])) for train in trains]

    def update_version(self, actor: Principal, train_id: int, version: str) -> ReleaseTrain:
        require_admin(actor)
        version = (version or "").strip()
        if not version:
            raise InvalidInput("Please enter a version")
        train = self.repository.get_train(train_id)
        train.version = version
        return self.repository.save_train(train, ["version"])

    def update_deadline(self, actor: Principal, train_id: int, deadline: Optional[date]) -> ReleaseTrain:
        require_admin(actor)
        train = self.repository.get_train(train_id)
        train.deadline = deadline
        return self.repository.save_train(train, ["deadline"])

    def set_active(self, actor: Principal, train_id: int, is_active: bool) -> ReleaseTrain:
        require_admin(actor)
        train = self.repository.get_train(train_id)
        train.is_active = bool(is_active)
        return self.repository.save_train(train, ["is_active"])

    def delete_release(self, actor: Principal, train_id: int) -> None:
        require_admin(actor)
        train = self.repository.get_train(train_id)
        self.repository.delete_train(train)
        logger.info("Train %s deleted by %s", train_id, actor.id)

    # Notes ----------------------------------------------------------------

    def add_note(self, actor: Principal, stop_id: int, text: str) -> Note:
        require_editor(actor)
        text = (text or "").strip()
        if not text:
            raise InvalidInput("Note text cannot be empty")
        stop = self.repository.get_stop(stop_id)
        note = self.repository.create_note(stop, actor.id, actor.author_name, text)
        logger.info("Note %s added to stop %s by %s", note.pk, stop_id, actor.id)
        return note

    def list_notes(self, stop_id: int) -> List[Note]:
        self.repository.get_stop(stop_id)
        return self.repository.notes_for_stop(stop_id)

    def delete_note(self, actor: Principal, note_id: int) -> None:
        note = self.repository.get_note(note_id)
        if actor is None or not (actor.is_admin or note.author_id == actor.id):
            raise PermissionDenied("Only the author or an admin can delete this note.")
        self.repository.delete_note(note)
