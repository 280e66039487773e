from __future__ import annotations

from datetime import date

from django.test import SimpleTestCase

from accounts.principal import Principal

from ..exceptions import AdminRequired, ConflictDuplicate, InvalidInput, NotFound, PermissionDenied
from ..models import App, Note, ReleaseTrain, Stop
from ..services import DUE_SOON, OVERDUE, SCHEDULED, deadline_state
from .base import ADMIN, EDITOR, VIEWER, ReleaseTestCase

TWO_STOPS = [{"title": "Build", "owner_name": "CI"}, {"title": "Ship", "owner_name": "Ops"}]


class DeadlineStateTests(SimpleTestCase):
    def test_states(self) -> None:
        today = date(2026, 3, 10)
        self.assertIsNone(deadline_state(None, today))
        self.assertEqual(deadline_state(date(2026, 3, 9), today).state, OVERDUE)
        self.assertEqual(deadline_state(date(2026, 3, 9), today).days_left, -1)
        self.assertEqual(deadline_state(date(2026, 3, 10), today).state, DUE_SOON)
        self.assertEqual(deadline_state(date(2026, 3, 13), today).state, DUE_SOON)
        self.assertEqual(deadline_state(date(2026, 3, 14), today).state, SCHEDULED)


class AppServiceTests(ReleaseTestCase):
    def test_blank_name_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.service.create_app(ADMIN, "   ")

    def test_only_admins_manage_apps(self) -> None:
        with self.assertRaises(AdminRequired):
            self.service.create_app(EDITOR, "Rewards")
        with self.assertRaises(AdminRequired):
            self.service.delete_app(EDITOR, self.app.pk)

    def test_update_app(self) -> None:
        app = self.service.update_app(ADMIN, self.app.pk, name=" Wallet Pro ", description="")
        self.assertEqual(app.name, "Wallet Pro")
        self.assertIsNone(App.objects.get(pk=self.app.pk).description)

    def test_delete_app_cascades(self) -> None:
        train = self.make_train(stops=TWO_STOPS)
        stop = self.stops_of(train)[0]
        self.service.add_note(EDITOR, stop.pk, "Build green")

        self.service.delete_app(ADMIN, self.app.pk)

        self.assertFalse(ReleaseTrain.objects.filter(pk=train.pk).exists())
        self.assertFalse(Stop.objects.filter(release_train_id=train.pk).exists())
        self.assertFalse(Note.objects.exists())


class TrainServiceTests(ReleaseTestCase):
    def test_default_template_is_used(self) -> None:
        view = self.service.create_train(ADMIN, self.app.pk, ReleaseTrain.IOS, "1.0.0")
        self.assertEqual([stop.number for stop in view.stops], list(range(1, 11)))
        self.assertEqual(view.stops[0].title, "Build dev for QA")
        self.assertTrue(all(stop.status == Stop.NOT_STARTED for stop in view.stops))
        self.assertEqual(view.progress.percent, 0.0)

    def test_disabled_stops_are_left_out(self) -> None:
        view = self.service.create_train(
            ADMIN,
            self.app.pk,
            ReleaseTrain.ANDROID,
            "1.0.0",
            stops=[
                {"title": "Build", "owner_name": "CI"},
                {"title": "Manual QA", "owner_name": "QA", "enabled": False},
                {"title": "Ship", "owner_name": "Ops"},
            ],
        )
        self.assertEqual([(stop.number, stop.title) for stop in view.stops], [(1, "Build"), (2, "Ship")])

    def test_duplicate_version_per_track(self) -> None:
        self.make_train(version="1.0.0", stops=TWO_STOPS)
        with self.assertRaises(ConflictDuplicate):
            self.make_train(version="1.0.0", stops=TWO_STOPS)
        self.make_train(version="1.0.0", platform=ReleaseTrain.ANDROID, stops=TWO_STOPS)

    def test_version_rename_onto_existing_release(self) -> None:
        self.make_train(version="1.0.0", stops=TWO_STOPS)
        other = self.make_train(version="1.1.0", stops=TWO_STOPS)

        with self.assertRaises(ConflictDuplicate):
            self.service.update_version(ADMIN, other.pk, "1.0.0")

        other.refresh_from_db()
        self.assertEqual(other.version, "1.1.0")

    def test_invalid_input(self) -> None:
        with self.assertRaises(InvalidInput):
            self.service.create_train(ADMIN, self.app.pk, "windows", "1.0.0")
        with self.assertRaises(InvalidInput):
            self.service.create_train(ADMIN, self.app.pk, ReleaseTrain.IOS, " ")
        with self.assertRaises(NotFound):
            self.service.create_train(ADMIN, 999999, ReleaseTrain.IOS, "1.0.0")

    def test_editors_cannot_create_trains(self) -> None:
        with self.assertRaises(AdminRequired):
            self.service.create_train(EDITOR, self.app.pk, ReleaseTrain.IOS, "1.0.0")

    def test_train_attributes(self) -> None:
        train = self.make_train(stops=TWO_STOPS)
        self.service.update_version(ADMIN, train.pk, "1.0.1")
        self.service.update_deadline(ADMIN, train.pk, date(2026, 4, 1))
        self.service.set_active(ADMIN, train.pk, False)

        train.refresh_from_db()
        self.assertEqual(train.version, "1.0.1")
        self.assertEqual(train.deadline, date(2026, 4, 1))
        self.assertFalse(train.is_active)
        self.assertEqual(len(self.service.list_train_views(is_active=False)), 1)
        self.assertEqual(self.service.list_train_views(is_active=True), [])

    def test_delete_release(self) -> None:
        train = self.make_train(stops=TWO_STOPS)
        self.service.delete_release(ADMIN, train.pk)
        self.assertFalse(Stop.objects.filter(release_train_id=train.pk).exists())
        with self.assertRaises(NotFound):
            self.service.get_train_view(train.pk)


class NoteServiceTests(ReleaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.stop = self.stops_of(self.make_train(stops=TWO_STOPS))[0]

    def test_add_and_list_newest_first(self) -> None:
        self.service.add_note(EDITOR, self.stop.pk, "First")
        self.service.add_note(ADMIN, self.stop.pk, "  Second  ")

        notes = self.service.list_notes(self.stop.pk)

        self.assertEqual([note.text for note in notes], ["Second", "First"])
        self.assertEqual(notes[0].author_name, "Ada Admin")
        self.assertEqual(notes[1].author_id, EDITOR.id)

    def test_blank_note_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.service.add_note(EDITOR, self.stop.pk, " ")

    def test_viewer_cannot_add(self) -> None:
        with self.assertRaises(PermissionDenied):
            self.service.add_note(VIEWER, self.stop.pk, "Hi")

    def test_delete_by_author_or_admin(self) -> None:
        mine = self.service.add_note(EDITOR, self.stop.pk, "Mine")
        other = self.service.add_note(EDITOR, self.stop.pk, "Other")
        qa = Principal.with_roles("qa-1", ["qa"])

        with self.assertRaises(PermissionDenied):
            self.service.delete_note(qa, mine.pk)

        self.service.delete_note(EDITOR, mine.pk)
        self.service.delete_note(ADMIN, other.pk)
        self.assertFalse(Note.objects.exists())
