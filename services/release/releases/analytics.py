"""Elapsed-time analytics derived from stop timestamps."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from django.utils import timezone

from .aggregate import ordered
from .models import Stop


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``, truncated toward zero."""

    return int((end - start).total_seconds() / 60)


@dataclass(frozen=True)
class StopDuration:
    number: int
    title: str
    status: str
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    minutes: Optional[int]
    running: bool


@dataclass(frozen=True)
class TrainAnalytics:
    started_at: Optional[datetime]
    total_minutes: Optional[int]
    completed_stops: int
    average_stop_minutes: Optional[int]
    stops: List[StopDuration] = field(default_factory=list)


def stop_duration(stop: Stop, now: datetime) -> StopDuration:
    minutes: Optional[int] = None
    running = False
    if stop.started_at and stop.completed_at:
        minutes = minutes_between(stop.started_at, stop.completed_at)
    elif stop.started_at and stop.status != Stop.NOT_STARTED:
        minutes = minutes_between(stop.started_at, now)
        running = True
    return StopDuration(
        number=stop.number,
        title=stop.title,
        status=stop.status,
        started_at=stop.started_at,
        completed_at=stop.completed_at,
        minutes=minutes,
        running=running,
    )


def train_analytics(stops: Sequence[Stop], now: Optional[datetime] = None) -> TrainAnalytics:
    """Per-stop and whole-train durations.

    The train clock starts at stop #1's ``started_at`` and ends at the latest
    completion, or at ``now`` while nothing has completed yet. An unstarted
    train yields no durations.
    """

    now = now or timezone.now()
    stops = ordered(stops)
    first = next((stop for stop in stops if stop.number == 1), None)
    completed = [stop for stop in stops if stop.status == Stop.DONE]
    if first is None or first.started_at is None:
        return TrainAnalytics(
            started_at=None,
            total_minutes=None,
            completed_stops=len(completed),
            average_stop_minutes=None,
        )

    finished = [stop.completed_at for stop in completed if stop.completed_at]
    end = max(finished) if finished else now
    durations = [stop_duration(stop, now) for stop in stops]
    completed_minutes = [
        item.minutes for item in durations if item.status == Stop.DONE and item.minutes is not None
    ]
    average = (
        round(sum(completed_minutes) / len(completed_minutes)) if completed_minutes else None
    )
    return TrainAnalytics(
        started_at=first.started_at,
        total_minutes=minutes_between(first.started_at, end),
        completed_stops=len(completed),
        average_stop_minutes=average,
        stops=durations,
    )


def format_minutes(minutes: Optional[int]) -> str:
    """Compact label such as ``45m``, ``3h 5m`` or ``2d 4h``."""

    if minutes is None:
        return "-"
    if minutes < 60:
        return f"{minutes}m"
    if minutes < 1440:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes // 1440}d {(minutes % 1440) // 60}h"
