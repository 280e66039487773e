"""Runtime progression of release trains.

This is the only module that changes stop statuses. Every mutation runs in a
single database transaction that locks the train's stop rows first, so two
collaborators advancing the same train cannot both observe the same current
stop.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.principal import Principal

from . import aggregate
from .exceptions import AlreadyStarted, InvalidState, NoActiveStop, NoStopsFound, PermissionDenied
from .models import Stop
from .repository import ReleaseRepository
from .transitions import check_transition, normalize_status

logger = logging.getLogger(__name__)


def require_editor(actor: Principal) -> None:
    if actor is None or not actor.can_edit:
        raise PermissionDenied()


@dataclass(frozen=True)
class AdvanceResult:
    completed: Stop
    started: Optional[Stop]

    @property
    def train_complete(self) -> bool:
        return self.started is None


class ProgressionEngine:
    def __init__(
        self,
        repository: Optional[ReleaseRepository] = None,
        clock: Callable[[], datetime] = timezone.now,
        strict: Optional[bool] = None,
    ) -> None:
        self.repository = repository or ReleaseRepository()
        self.clock = clock
        if strict is None:
            strict = getattr(settings, "RELEASE_STRICT_TRANSITIONS", False)
        self.strict = strict

    def start_train(
        self, actor: Principal, train_id: int, now: Optional[datetime] = None
    ) -> List[Stop]:
        """Put stop #1 of an untouched train in progress."""

        require_editor(actor)
        now = now or self.clock()
        with transaction.atomic():
            self.repository.get_train(train_id)
            stops = self.repository.stops_for_train(train_id, for_update=True)
            first = next((stop for stop in stops if stop.number == 1), None)
            if first is None:
                raise NoStopsFound()
            if first.status != Stop.NOT_STARTED or aggregate.head_stop(stops) is not None:
                raise AlreadyStarted()
            first.apply_status(Stop.IN_PROGRESS, actor.id, now)
            self.repository.save_stops([first], Stop.STATUS_FIELDS)
            self.repository.touch_train(train_id, now)
        logger.info("Train %s started by %s", train_id, actor.id)
        return stops

    def update_stop_status(
        self,
        actor: Principal,
        stop_id: int,
        new_status: str,
        now: Optional[datetime] = None,
    ) -> Stop:
        """Set one stop's status without touching its neighbours.

        Moving a stop to ``in_progress`` or ``blocked`` is refused while
        another stop of the same train holds the head.
        """

        require_editor(actor)
        try:
            new_status = normalize_status(new_status)
        except ValueError as exc:
            raise InvalidState(str(exc)) from exc
        now = now or self.clock()
        with transaction.atomic():
            stop = self.repository.get_stop(stop_id)
            stops = self.repository.stops_for_train(stop.release_train_id, for_update=True)
            stop = next(item for item in stops if item.pk == stop.pk)
            if self.strict:
                check_transition(stop.status, new_status)
            if new_status in Stop.ACTIVE_STATUSES:
                other = next(
                    (item for item in stops if item.is_active and item.pk != stop.pk), None
                )
                if other is not None:
                    raise InvalidState(
                        f"Stop {other.number} is already {other.status}; "
                        "only one stop can be active at a time."
                    )
            previous = stop.status
            stop.apply_status(new_status, actor.id, now)
            self.repository.save_stops([stop], Stop.STATUS_FIELDS)
            self.repository.touch_train(stop.release_train_id, now)
        logger.info(
            "Stop %s (train %s) moved %s -> %s by %s",
            stop.pk,
            stop.release_train_id,
            previous,
            new_status,
            actor.id,
        )
        return stop

    def advance_to_next_stop(
        self, actor: Principal, train_id: int, now: Optional[datetime] = None
    ) -> Optional[AdvanceResult]:
        """Finish the current stop and start the one after it.

        Returns ``None`` without writing anything when no stop is in
        progress, so repeated calls only advance once.
        """

        require_editor(actor)
        now = now or self.clock()
        with transaction.atomic():
            self.repository.get_train(train_id)
            stops = self.repository.stops_for_train(train_id, for_update=True)
            current = aggregate.current_stop(stops)
            if current is None:
                logger.info("Train %s has no stop in progress; nothing to advance", train_id)
                return None
            following = next((stop for stop in stops if stop.number > current.number), None)
            current.apply_status(Stop.DONE, actor.id, now)
            changed = [current]
            if following is not None:
                following.apply_status(Stop.IN_PROGRESS, actor.id, now)
                changed.append(following)
            self.repository.save_stops(changed, Stop.STATUS_FIELDS)
            self.repository.touch_train(train_id, now)

        if following is None:
            logger.info("Train %s complete: stop %s done", train_id, current.number)
        else:
            logger.info(
                "Train %s advanced: stop %s done, stop %s started",
                train_id,
                current.number,
                following.number,
            )
        return AdvanceResult(completed=current, started=following)

    def reset_train(
        self, actor: Principal, train_id: int, now: Optional[datetime] = None
    ) -> List[Stop]:
        """Return every stop to ``not_started``. Notes are kept."""

        require_editor(actor)
        now = now or self.clock()
        with transaction.atomic():
            self.repository.get_train(train_id)
            stops = self.repository.stops_for_train(train_id, for_update=True)
            for stop in stops:
                stop.clear_progress(actor.id)
            self.repository.save_stops(stops, Stop.STATUS_FIELDS)
            self.repository.touch_train(train_id, now)
        logger.info("Train %s reset by %s (%d stops)", train_id, actor.id, len(stops))
        return stops

    def head_of(self, train_id: int) -> Stop:
        """The stop currently in progress or blocked."""

        self.repository.get_train(train_id)
        head = aggregate.head_stop(self.repository.stops_for_train(train_id))
        if head is None:
            raise NoActiveStop()
        return head
