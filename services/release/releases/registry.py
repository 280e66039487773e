"""Cross-train view of every release track.

A track is the (app, platform) pair. Per track the registry shows at most one
current release (the highest version that is not complete) and at most one
recently completed release (the most recently updated complete one). Every
other train of the track is archived.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

from .repository import ReleaseRepository
from .versioning import sort_by_version


@dataclass(frozen=True)
class ReleaseSummary:
    id: int
    app_id: int
    app_name: str
    platform: str
    version: str
    is_active: bool
    deadline: Optional[date]
    created_at: datetime
    updated_at: datetime
    total_stops: int
    completed_stops: int
    in_progress_stops: int
    blocked_stops: int
    current_stop_title: Optional[str]

    @property
    def track_key(self) -> Tuple[int, str]:
        return (self.app_id, self.platform)

    @property
    def is_complete(self) -> bool:
        return self.total_stops > 0 and self.completed_stops == self.total_stops

    @property
    def is_blocked(self) -> bool:
        return self.blocked_stops > 0

    @property
    def progress_percent(self) -> float:
        if self.total_stops == 0:
            return 0.0
        return self.completed_stops / self.total_stops * 100


@dataclass
class Track:
    app_id: int
    app_name: str
    platform: str
    releases: List[ReleaseSummary] = field(default_factory=list)
    current: Optional[ReleaseSummary] = None
    recently_completed: Optional[ReleaseSummary] = None
    archived: List[ReleaseSummary] = field(default_factory=list)


@dataclass
class ReleaseBoard:
    current: List[ReleaseSummary] = field(default_factory=list)
    recently_completed: List[ReleaseSummary] = field(default_factory=list)
    archived: List[ReleaseSummary] = field(default_factory=list)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "total_active": len(self.current),
            "total_blocked": sum(1 for release in self.current if release.is_blocked),
            "total_completed": len(self.recently_completed),
            "total_archived": len(self.archived),
        }


def _by_recency(release: ReleaseSummary) -> Tuple[datetime, int]:
    return (release.updated_at, release.id)


def group_by_track(releases: Sequence[ReleaseSummary]) -> List[Track]:
    """Group releases per (app, platform), highest version first, and classify them."""

    tracks: "OrderedDict[Tuple[int, str], Track]" = OrderedDict()
    for release in releases:
        track = tracks.get(release.track_key)
        if track is None:
            track = Track(app_id=release.app_id, app_name=release.app_name, platform=release.platform)
            tracks[release.track_key] = track
        track.releases.append(release)

    for track in tracks.values():
        track.releases = sort_by_version(track.releases, key=lambda release: release.version)
        pending = [release for release in track.releases if not release.is_complete]
        complete = [release for release in track.releases if release.is_complete]
        track.current = pending[0] if pending else None
        if complete:
            track.recently_completed = max(complete, key=_by_recency)
        track.archived = [
            release
            for release in track.releases
            if release is not track.current and release is not track.recently_completed
        ]
    return list(tracks.values())


def build_board(tracks: Sequence[Track]) -> ReleaseBoard:
    board = ReleaseBoard()
    for track in tracks:
        if track.current is not None:
            board.current.append(track.current)
        if track.recently_completed is not None:
            board.recently_completed.append(track.recently_completed)
        board.archived.extend(track.archived)
    for section in (board.current, board.recently_completed, board.archived):
        section.sort(key=_by_recency, reverse=True)
    return board


class ReleaseRegistry:
    def __init__(self, repository: Optional[ReleaseRepository] = None) -> None:
        self.repository = repository or ReleaseRepository()

    def _load(self) -> List[ReleaseSummary]:
        return [
            ReleaseSummary(
                id=train.pk,
                app_id=train.app_id,
                app_name=train.app.name,
                platform=train.platform,
                version=train.version,
                is_active=train.is_active,
                deadline=train.deadline,
                created_at=train.created_at,
                updated_at=train.updated_at,
                total_stops=train.total_stops,
                completed_stops=train.completed_stops,
                in_progress_stops=train.in_progress_stops,
                blocked_stops=train.blocked_stops,
                current_stop_title=train.current_stop_title,
            )
            for train in self.repository.trains_with_stop_counts()
        ]

    def list_releases_with_stats(self, refresh: bool = False) -> List[ReleaseSummary]:
        """Every train with stop counts, most recently updated first."""

        return self.repository.cached_overview(self._load, refresh=refresh)

    def group_by_track(self, refresh: bool = False) -> List[Track]:
        return group_by_track(self.list_releases_with_stats(refresh=refresh))
