from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.test import SimpleTestCase
from django.utils import timezone

from ..models import ReleaseTrain, Stop
from ..engine import ProgressionEngine
from ..registry import ReleaseRegistry, build_board
from ..versioning import compare_versions, parse_version, sort_by_version
from .base import ADMIN, EDITOR, ReleaseTestCase, T0, at

DONE, IN_PROGRESS, BLOCKED = Stop.DONE, Stop.IN_PROGRESS, Stop.BLOCKED
TWO_STOPS = [{"title": "Build", "owner_name": "CI"}, {"title": "Ship", "owner_name": "Ops"}]


class VersioningTests(SimpleTestCase):
    def test_numeric_segment_comparison(self) -> None:
        self.assertEqual(compare_versions("v1.10.0", "v1.2.0"), 1)
        self.assertEqual(compare_versions("1.2", "1.2.0"), 0)
        self.assertEqual(compare_versions("2.1-beta", "2.1"), 0)
        self.assertEqual(compare_versions("0.9", "1"), -1)

    def test_parse_strips_non_numeric(self) -> None:
        self.assertEqual(parse_version("release-3.4.5"), (3, 4, 5))
        self.assertEqual(parse_version(""), (0,))

    def test_sort_descending(self) -> None:
        labels = ["1.2.0", "1.10.0", "1.9.9", "v2"]
        self.assertEqual(sort_by_version(labels, key=str), ["v2", "1.10.0", "1.9.9", "1.2.0"])
        self.assertEqual(
            sort_by_version(labels, key=str, descending=False), ["1.2.0", "1.9.9", "1.10.0", "v2"]
        )


class RegistryTests(ReleaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.registry = ReleaseRegistry()

    def train(self, version, statuses, platform=ReleaseTrain.IOS, app=None):
        train = self.make_train(version=version, platform=platform, app=app, stops=TWO_STOPS)
        self.set_statuses(train, statuses)
        return train

    def test_versions_compare_numerically_per_track(self) -> None:
        done = self.train("v1.2.0", [DONE, DONE])
        pending = self.train("v1.10.0", [IN_PROGRESS])

        [track] = self.registry.group_by_track()

        self.assertEqual(track.current.id, pending.pk)
        self.assertEqual(track.recently_completed.id, done.pk)
        self.assertEqual(track.archived, [])

    def test_only_one_current_per_track(self) -> None:
        newest = self.train("3.0.0", [])
        older = self.train("2.0.0", [IN_PROGRESS])

        [track] = self.registry.group_by_track()

        self.assertEqual(track.current.id, newest.pk)
        self.assertEqual([release.id for release in track.archived], [older.pk])

    def test_recently_completed_is_latest_update(self) -> None:
        first = self.train("1.0.0", [DONE, DONE])
        second = self.train("1.1.0", [DONE, DONE])
        ReleaseTrain.objects.filter(pk=first.pk).update(
            updated_at=timezone.now() + timedelta(hours=1)
        )

        [track] = self.registry.group_by_track(refresh=True)

        self.assertIsNone(track.current)
        self.assertEqual(track.recently_completed.id, first.pk)
        self.assertEqual([release.id for release in track.archived], [second.pk])

    def test_tracks_are_split_by_app_and_platform(self) -> None:
        other_app = self.service.create_app(ADMIN, "Rewards")
        self.train("1.0.0", [IN_PROGRESS])
        self.train("1.0.0", [IN_PROGRESS], platform=ReleaseTrain.ANDROID)
        self.train("4.2.0", [BLOCKED], app=other_app)

        tracks = self.registry.group_by_track()

        self.assertEqual(
            sorted((track.app_name, track.platform) for track in tracks),
            [("Rewards", "ios"), ("Wallet", "android"), ("Wallet", "ios")],
        )
        self.assertTrue(all(track.current is not None for track in tracks))

    def test_board_stats(self) -> None:
        self.train("2.0.0", [BLOCKED])
        self.train("1.0.0", [DONE, DONE])
        self.train("0.9.0", [DONE, DONE])
        self.train("5.0.0", [IN_PROGRESS], platform=ReleaseTrain.ANDROID)

        board = build_board(self.registry.group_by_track())

        self.assertEqual(
            board.stats,
            {"total_active": 2, "total_blocked": 1, "total_completed": 1, "total_archived": 1},
        )
        recency = [release.updated_at for release in board.current]
        self.assertEqual(recency, sorted(recency, reverse=True))

    def test_summary_counts(self) -> None:
        train = self.train("1.0.0", [DONE, IN_PROGRESS])

        [summary] = self.registry.list_releases_with_stats()

        self.assertEqual(summary.id, train.pk)
        self.assertEqual(summary.app_name, "Wallet")
        self.assertEqual(summary.total_stops, 2)
        self.assertEqual(summary.completed_stops, 1)
        self.assertEqual(summary.in_progress_stops, 1)
        self.assertEqual(summary.current_stop_title, "Ship")
        self.assertEqual(summary.progress_percent, 50.0)
        self.assertFalse(summary.is_complete)

    def test_recency_follows_engine_clock(self) -> None:
        engine = ProgressionEngine()
        older = self.make_train(version="1.0.0", stops=TWO_STOPS[:1])
        newer = self.make_train(version="1.1.0", stops=TWO_STOPS[:1])
        engine.start_train(EDITOR, newer.pk, now=T0)
        engine.advance_to_next_stop(EDITOR, newer.pk, now=at(10))
        engine.start_train(EDITOR, older.pk, now=at(20))
        engine.advance_to_next_stop(EDITOR, older.pk, now=at(30))

        [track] = self.registry.group_by_track()

        self.assertEqual(track.recently_completed.id, older.pk)
        self.assertEqual(track.recently_completed.updated_at, at(30))
        self.assertEqual([release.id for release in track.archived], [newer.pk])


class OverviewCacheTests(ReleaseTestCase):
    def test_mutations_invalidate_cached_overview(self) -> None:
        registry = ReleaseRegistry()
        self.assertEqual(registry.list_releases_with_stats(), [])

        self.make_train(version="1.0.0", stops=TWO_STOPS)

        self.assertEqual(len(registry.list_releases_with_stats()), 1)

    def test_direct_writes_need_refresh(self) -> None:
        registry = ReleaseRegistry()
        train = self.make_train(stops=TWO_STOPS)
        registry.list_releases_with_stats()
        ReleaseTrain.objects.filter(pk=train.pk).update(version="1.0.1")

        self.assertEqual(registry.list_releases_with_stats()[0].version, "1.0.0")
        self.assertEqual(registry.list_releases_with_stats(refresh=True)[0].version, "1.0.1")

    def test_commit_schedules_overview_rebuild(self) -> None:
        with mock.patch("releases.tasks.warm_release_overview") as task:
            with self.captureOnCommitCallbacks(execute=True):
                self.make_train(version="2.0.0", stops=TWO_STOPS)
        self.assertTrue(task.delay.called)
