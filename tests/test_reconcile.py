"""
Unit tests for collection reconciliation and lecturer synthesis.

Stores live in temporary directories so no real data is touched.
"""

import random
import tempfile
import unittest

from campusfiles.model import AcademicTrack
from campusfiles.reconcile import Reconciler, Validity, unrepairable_reason
from campusfiles.storage import EntityStore

NOW = "2026-01-01T00:00:00+00:00"

TRACKS = {
    "cs-undergrad": AcademicTrack("cs-undergrad", "Computer Science (B.Sc.)", "Sciences and Engineering"),
    "law-undergrad": AcademicTrack("law-undergrad", "Law (LL.B.)", "Law"),
}


def _file(**overrides):
    rec = {
        "id": "f1",
        "original_name": "Summary",
        "course_id": "c1",
        "uploader_id": "s1",
        "uploader_type": "student",
        "status": "approved",
        "file_type": "note",
        "download_count": 0,
        "created_at": NOW,
        "updated_at": NOW,
    }
    rec.update(overrides)
    return rec


class ReconcilerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = EntityStore(self._tmp.name, clock=lambda: NOW)
        self.store.set_all("courses", [{"id": "c1", "course_code": "CS101", "academic_track_ids": ["cs-undergrad"]}])
        self.reconciler = Reconciler(self.store, TRACKS, rng=random.Random(7))

    def tearDown(self) -> None:
        self._tmp.cleanup()


class TestFileReconciliation(ReconcilerTestCase):
    def test_file_without_any_name_is_removed(self) -> None:
        bad = _file(id="f2", original_name="", filename="", title="")
        result = self.reconciler.reconcile("files", [_file(file_code="CS101-N001"), bad])
        self.assertEqual([r["id"] for r in result.kept], ["f1"])
        self.assertEqual(len(result.removed), 1)
        self.assertEqual(result.removed[0].record_id, "f2")
        self.assertEqual(result.removed[0].reason, "missing display name")

    def test_missing_course_and_uploader_reasons(self) -> None:
        self.assertEqual(unrepairable_reason("files", _file(course_id=" ")), "missing course id")
        self.assertEqual(unrepairable_reason("files", _file(uploader_id=None)), "missing uploader id")
        self.assertIsNone(unrepairable_reason("files", _file()))

    def test_invalid_role_and_status_are_repaired_not_removed(self) -> None:
        rec = _file(uploader_type="robot", status="lost", file_code="CS101-N001")
        result = self.reconciler.reconcile("files", [rec])
        self.assertEqual(result.removed, [])
        self.assertEqual(result.fixed, 1)
        self.assertEqual(result.kept[0]["uploader_type"], "student")
        self.assertEqual(result.kept[0]["status"], "pending")

    def test_duplicate_codes_get_new_ones(self) -> None:
        files = [
            _file(id="f1", file_code="CS101-N001"),
            _file(id="f2", file_code="CS101-N001"),
            _file(id="f3", file_code="CS101-N002"),
        ]
        result = self.reconciler.reconcile("files", files)
        kept_codes = [r["file_code"] for r in result.kept]
        self.assertEqual(kept_codes[0], "CS101-N001")
        self.assertEqual(kept_codes[2], "CS101-N002")
        self.assertEqual(len(set(kept_codes)), 3)
        self.assertEqual(kept_codes[1], "CS101-N003")
        self.assertEqual(result.fixed, 1)

    def test_classify(self) -> None:
        self.assertEqual(self.reconciler.classify("files", _file(file_code="CS101-N001")), (Validity.VALID, None))
        self.assertEqual(self.reconciler.classify("files", _file())[0], Validity.REPAIRABLE)
        self.assertEqual(
            self.reconciler.classify("files", _file(original_name="")),
            (Validity.UNREPAIRABLE, "missing display name"),
        )


class TestTextRecords(ReconcilerTestCase):
    def test_messages_and_notifications(self) -> None:
        msgs = [
            {"id": "m1", "subject": "Hi", "content": "Text", "sender_id": "s1"},
            {"id": "m2", "subject": "Hi", "content": "Text", "sender_id": ""},
            {"id": "m3", "subject": "", "content": "Text", "sender_id": "s1"},
        ]
        result = self.reconciler.reconcile("messages", msgs)
        self.assertEqual([r["id"] for r in result.kept], ["m1"])
        self.assertEqual([r.reason for r in result.removed], ["missing sender", "missing subject"])

        notes = [{"id": "n1", "message": "x", "user_id": ""}, {"id": "n2", "message": " ", "user_id": "u"}]
        result = self.reconciler.reconcile("notifications", notes)
        self.assertEqual(result.kept, [])
        self.assertEqual([r.reason for r in result.removed], ["missing user id", "missing message"])


class TestCourseReconciliation(ReconcilerTestCase):
    def test_tracks_restored_and_lecturer_synthesized(self) -> None:
        courses = [{"id": "c9", "course_code": "LAW201", "credits": 4}]
        result = self.reconciler.reconcile("courses", courses)

        course = result.kept[0]
        self.assertEqual(course["academic_track_ids"], ["law-undergrad"])
        self.assertEqual(len(result.created), 1)
        lecturer = result.created[0]
        self.assertEqual(course["lecturer_ids"], [lecturer["id"]])
        self.assertEqual(lecturer["academic_track_ids"], ["law-undergrad"])
        self.assertEqual(lecturer["department"], "Law")
        self.assertEqual(lecturer["status"], "active")
        self.assertEqual(lecturer["employee_id"], "EMP0001")
        self.assertEqual(len(self.store.list("lecturers")), 1)

        again = self.reconciler.reconcile("courses", result.kept)
        self.assertEqual(again.created, [])
        self.assertEqual(again.fixed, 0)
        self.assertEqual(again.kept, result.kept)

    def test_existing_lecturer_is_linked(self) -> None:
        self.store.set_all("lecturers", [{"id": "l1", "full_name": "Dr. A", "academic_track_ids": ["cs-undergrad"]}])
        courses = [{"id": "c2", "course_code": "CS201", "academic_track_ids": ["cs-undergrad"], "credits": 5}]
        result = self.reconciler.reconcile("courses", courses)
        self.assertEqual(result.created, [])
        self.assertEqual(result.kept[0]["lecturer_ids"], ["l1"])

    def test_lecturer_with_single_track_string_is_reused(self) -> None:
        self.store.set_all("lecturers", [{"id": "l1", "academic_track_ids": "cs-undergrad"}])
        courses = [{"id": "c2", "course_code": "CS201", "academic_track_ids": ["cs-undergrad"], "credits": 5}]
        result = self.reconciler.reconcile("courses", courses)
        self.assertEqual(result.created, [])
        self.assertEqual(result.kept[0]["lecturer_ids"], ["l1"])
        self.assertEqual(len(self.store.list("lecturers")), 1)

    def test_unknown_track_creates_nothing(self) -> None:
        courses = [{"id": "c3", "course_code": "PHYS101", "credits": 5}]
        result = self.reconciler.reconcile("courses", courses)
        self.assertEqual(result.kept[0]["academic_track_ids"], ["physics-undergrad"])
        self.assertEqual(result.created, [])
        self.assertNotIn("lecturer_ids", result.kept[0])
        self.assertEqual(self.store.list("lecturers"), [])

    def test_duplicate_course_codes(self) -> None:
        courses = [
            {"id": "a", "course_code": "CS101", "academic_track_ids": ["cs-undergrad"], "credits": 3},
            {"id": "b", "course_code": "CS101", "academic_track_ids": ["cs-undergrad"], "credits": 3},
        ]
        result = self.reconciler.reconcile("courses", courses)
        self.assertEqual([c["course_code"] for c in result.kept], ["CS101", "CS102"])


class TestUserReconciliation(ReconcilerTestCase):
    def test_admin_codes_assigned_and_deduplicated(self) -> None:
        users = [
            {"id": "u1", "role": "admin", "admin_id": "ADM0002"},
            {"id": "u2", "role": "admin"},
            {"id": "u3", "role": "student"},
            {"id": "u4", "roles": ["admin"], "admin_id": "ADM0002"},
        ]
        result = self.reconciler.reconcile("users", users)
        by_id = {u["id"]: u for u in result.kept}
        self.assertEqual(by_id["u1"]["admin_id"], "ADM0002")
        self.assertEqual(by_id["u2"]["admin_id"], "ADM0003")
        self.assertNotIn("admin_id", by_id["u3"])
        self.assertEqual(by_id["u4"]["admin_id"], "ADM0004")
        self.assertEqual(result.fixed, 2)


class TestLecturerSynthesis(ReconcilerTestCase):
    def test_unknown_track_returns_none_and_writes_nothing(self) -> None:
        version = self.store.version("lecturers")
        self.assertIsNone(self.reconciler.ensure_lecturer_for_track("unknown-track-id"))
        self.assertEqual(self.store.list("lecturers"), [])
        self.assertEqual(self.store.version("lecturers"), version)

    def test_existing_lecturer_is_returned_without_write(self) -> None:
        self.store.set_all("lecturers", [{"id": "l1", "academic_track_ids": ["law-undergrad"]}])
        version = self.store.version("lecturers")
        lecturer = self.reconciler.ensure_lecturer_for_track("law-undergrad")
        self.assertEqual(lecturer["id"], "l1")
        self.assertEqual(self.store.version("lecturers"), version)

    def test_synthesized_lecturers_are_distinct(self) -> None:
        first = self.reconciler.ensure_lecturer_for_track("cs-undergrad")
        self.store.update("lecturers", first["id"], {"academic_track_ids": ["law-undergrad"]})
        second = self.reconciler.ensure_lecturer_for_track("cs-undergrad")
        self.assertNotEqual(first["id"], second["id"])
        self.assertNotEqual(first["email"], second["email"])
        self.assertEqual(second["employee_id"], "EMP0002")


if __name__ == "__main__":
    unittest.main()
