"""Tests for the stop transform, train projections and status vocabulary."""
from __future__ import annotations

from django.test import SimpleTestCase

from .. import aggregate
from ..exceptions import IllegalTransition
from ..models import Stop
from ..transitions import check_transition, is_allowed, normalize_status
from .base import T0, at


def make_stops(*statuses: str):
    return [Stop(number=index, title=f"Stop {index}", owner_name="Team", status=status)
            for index, status in enumerate(statuses, start=1)]


class StopTransformTests(SimpleTestCase):
    def test_first_start_stamps_started_at(self) -> None:
        stop = Stop(number=1, title="Build", owner_name="CI")
        stop.apply_status(Stop.IN_PROGRESS, "dev-1", T0)
        self.assertEqual(stop.status, Stop.IN_PROGRESS)
        self.assertEqual(stop.started_at, T0)
        self.assertIsNone(stop.completed_at)
        self.assertEqual(stop.updated_by, "dev-1")

    def test_restart_keeps_original_started_at_and_clears_completion(self) -> None:
        stop = Stop(number=1, title="Build", owner_name="CI")
        stop.apply_status(Stop.IN_PROGRESS, "dev-1", T0)
        stop.apply_status(Stop.DONE, "dev-1", at(10))
        self.assertEqual(stop.completed_at, at(10))

        stop.apply_status(Stop.IN_PROGRESS, "qa-1", at(20))
        self.assertEqual(stop.started_at, T0)
        self.assertIsNone(stop.completed_at)
        self.assertEqual(stop.updated_by, "qa-1")

    def test_blocking_keeps_timestamps(self) -> None:
        stop = Stop(number=1, title="Build", owner_name="CI")
        stop.apply_status(Stop.IN_PROGRESS, "dev-1", T0)
        stop.apply_status(Stop.BLOCKED, "dev-2", at(5))
        self.assertEqual(stop.status, Stop.BLOCKED)
        self.assertEqual(stop.started_at, T0)
        self.assertIsNone(stop.completed_at)
        self.assertEqual(stop.updated_by, "dev-2")

    def test_any_pair_is_accepted(self) -> None:
        stop = Stop(number=1, title="Build", owner_name="CI", status=Stop.DONE)
        stop.apply_status(Stop.NOT_STARTED, "admin-1", T0)
        self.assertEqual(stop.status, Stop.NOT_STARTED)


class AggregateTests(SimpleTestCase):
    def test_counts_and_progress(self) -> None:
        stops = make_stops(Stop.DONE, Stop.DONE, Stop.BLOCKED, Stop.NOT_STARTED)
        self.assertEqual(aggregate.completed_count(stops), 2)
        self.assertEqual(aggregate.blocked_count(stops), 1)
        self.assertEqual(aggregate.in_progress_count(stops), 0)
        self.assertEqual(aggregate.progress_percent(stops), 50.0)
        self.assertFalse(aggregate.is_complete(stops))
        self.assertEqual(aggregate.derived_status(stops), aggregate.BLOCKED)

    def test_empty_train(self) -> None:
        self.assertEqual(aggregate.progress_percent([]), 0.0)
        self.assertFalse(aggregate.is_complete([]))
        self.assertIsNone(aggregate.current_stop([]))
        self.assertEqual(aggregate.derived_status([]), aggregate.NOT_STARTED)

    def test_current_stop_prefers_lowest_number(self) -> None:
        stops = make_stops(Stop.DONE, Stop.IN_PROGRESS, Stop.IN_PROGRESS)
        self.assertEqual(aggregate.current_stop(list(reversed(stops))).number, 2)

    def test_head_stop_includes_blocked(self) -> None:
        stops = make_stops(Stop.DONE, Stop.BLOCKED, Stop.NOT_STARTED)
        self.assertIsNone(aggregate.current_stop(stops))
        self.assertEqual(aggregate.head_stop(stops).number, 2)

    def test_derived_status(self) -> None:
        self.assertEqual(
            aggregate.derived_status(make_stops(Stop.NOT_STARTED, Stop.NOT_STARTED)),
            aggregate.NOT_STARTED,
        )
        self.assertEqual(
            aggregate.derived_status(make_stops(Stop.DONE, Stop.NOT_STARTED)),
            aggregate.IN_PROGRESS,
        )
        self.assertEqual(
            aggregate.derived_status(make_stops(Stop.DONE, Stop.DONE)),
            aggregate.COMPLETE,
        )

    def test_train_progress_snapshot(self) -> None:
        progress = aggregate.TrainProgress.of(make_stops(Stop.DONE, Stop.IN_PROGRESS))
        self.assertEqual(progress.total, 2)
        self.assertEqual(progress.completed, 1)
        self.assertEqual(progress.in_progress, 1)
        self.assertEqual(progress.percent, 50.0)
        self.assertEqual(progress.status, aggregate.IN_PROGRESS)


class StatusVocabularyTests(SimpleTestCase):
    def test_normalize_external_spellings(self) -> None:
        self.assertEqual(normalize_status("in-progress"), Stop.IN_PROGRESS)
        self.assertEqual(normalize_status(" Not Started "), Stop.NOT_STARTED)
        self.assertEqual(normalize_status("DONE"), Stop.DONE)

    def test_unknown_status_rejected(self) -> None:
        with self.assertRaises(ValueError):
            normalize_status("paused")

    def test_transition_table(self) -> None:
        self.assertTrue(is_allowed(Stop.NOT_STARTED, Stop.IN_PROGRESS))
        self.assertTrue(is_allowed(Stop.BLOCKED, Stop.IN_PROGRESS))
        self.assertTrue(is_allowed(Stop.DONE, Stop.DONE))
        self.assertFalse(is_allowed(Stop.BLOCKED, Stop.DONE))
        with self.assertRaises(IllegalTransition):
            check_transition(Stop.DONE, Stop.NOT_STARTED)
