"""Read-only projections over a release train's stops.

Every function takes the stops of a single train, in any order, and never
touches storage.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .models import Stop

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
BLOCKED = "blocked"
COMPLETE = "complete"


def ordered(stops: Iterable[Stop]) -> List[Stop]:
    return sorted(stops, key=lambda stop: (stop.number, stop.pk or 0))


def count_status(stops: Iterable[Stop], status: str) -> int:
    return sum(1 for stop in stops if stop.status == status)


def completed_count(stops: Sequence[Stop]) -> int:
    return count_status(stops, Stop.DONE)


def in_progress_count(stops: Sequence[Stop]) -> int:
    return count_status(stops, Stop.IN_PROGRESS)


def blocked_count(stops: Sequence[Stop]) -> int:
    return count_status(stops, Stop.BLOCKED)


def current_stop(stops: Iterable[Stop]) -> Optional[Stop]:
    """Lowest-numbered stop that is in progress."""

    for stop in ordered(stops):
        if stop.status == Stop.IN_PROGRESS:
            return stop
    return None


def head_stop(stops: Iterable[Stop]) -> Optional[Stop]:
    """Lowest-numbered stop that is in progress or blocked."""

    for stop in ordered(stops):
        if stop.is_active:
            return stop
    return None


def is_complete(stops: Sequence[Stop]) -> bool:
    total = len(stops)
    return total > 0 and completed_count(stops) == total


def progress_percent(stops: Sequence[Stop]) -> float:
    total = len(stops)
    if total == 0:
        return 0.0
    return completed_count(stops) / total * 100


def derived_status(stops: Sequence[Stop]) -> str:
    if is_complete(stops):
        return COMPLETE
    if blocked_count(stops):
        return BLOCKED
    if in_progress_count(stops) or completed_count(stops):
        return IN_PROGRESS
    return NOT_STARTED


@dataclass(frozen=True)
class TrainProgress:
    total: int
    completed: int
    in_progress: int
    blocked: int
    percent: float
    is_complete: bool
    status: str

    @classmethod
    def of(cls, stops: Sequence[Stop]) -> "TrainProgress":
        stops = list(stops)
        return cls(
            total=len(stops),
            completed=completed_count(stops),
            in_progress=in_progress_count(stops),
            blocked=blocked_count(stops),
            percent=progress_percent(stops),
            is_complete=is_complete(stops),
            status=derived_status(stops),
        )
