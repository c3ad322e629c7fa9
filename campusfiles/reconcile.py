"""
Integrity reconciliation over whole collections.

Every record is classified as:

    VALID         nothing to do
    REPAIRABLE    normalization changes it, the repaired copy is kept
    UNREPAIRABLE  a required text field is empty and no safe default exists,
                  the record is dropped and the reason recorded

Only files, messages and notifications can be unrepairable. An invalid
uploader_type or status on a file is always repaired with a default, never a
reason for removal.

Duplicate natural keys (file codes, course codes, admin codes) are repaired:
the first occurrence keeps its code, later ones get a fresh one.

Course reconciliation is the one place that may create a brand-new entity:
if no lecturer teaches any of a course's tracks, one is synthesized.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from typing import Any, Optional

from campusfiles import codes
from campusfiles.model import (
    COURSES,
    FILES,
    LECTURERS,
    MESSAGES,
    NOTIFICATIONS,
    USERS,
    AcademicTrack,
    ReconcileResult,
    RemovedRecord,
    check_kind,
    is_admin,
)
from campusfiles.normalize import NormalizeContext, blank, normalize, track_list
from campusfiles.storage import EntityStore

logger = logging.getLogger(__name__)


class Validity(enum.Enum):
    VALID = "valid"
    REPAIRABLE = "repairable"
    UNREPAIRABLE = "unrepairable"


# kind -> [(field, reason)], checked in order; the first empty field wins
REQUIRED_FIELDS: dict[str, list[tuple[str, str]]] = {
    FILES: [
        ("original_name", "missing display name"),
        ("course_id", "missing course id"),
        ("uploader_id", "missing uploader id"),
    ],
    MESSAGES: [
        ("subject", "missing subject"),
        ("content", "missing content"),
        ("sender_id", "missing sender"),
    ],
    NOTIFICATIONS: [
        ("message", "missing message"),
        ("user_id", "missing user id"),
    ],
}

NATURAL_KEYS = {
    FILES: "file_code",
    COURSES: "course_code",
    USERS: "admin_id",
}

SAMPLE_LECTURER_NAMES = [
    "Sarah Levy",
    "Michael Cohen",
    "Rachel Abrams",
    "David Rosenberg",
    "Michal Goldstein",
    "Yael Shahar",
    "Avi Gold",
    "Noa Barak",
    "Amit Katz",
    "Hadar Rosen",
]
HONORIFICS = ["Dr.", "Prof.", "Mr.", "Ms."]
LECTURER_EMAIL_DOMAIN = "ono.ac.il"


def unrepairable_reason(kind: str, record: dict[str, Any]) -> Optional[str]:
    """
    Return why a record cannot be kept, or None if it can.
    """
    for field_name, reason in REQUIRED_FIELDS.get(kind, []):
        if blank(record.get(field_name)):
            return reason
    return None


def _key_applies(kind: str, record: dict[str, Any]) -> bool:
    # admin codes are only unique within the admin subset of users
    return kind != USERS or is_admin(record)


class Reconciler:
    """
    Brings whole collections into compliance with their invariants.

    store:      used to look up courses (for files), lecturers (for courses)
                and to persist synthesized lecturers
    tracks:     academic track lookup table
    synthesize: when False, missing lecturers are only reported (dry runs)
    """

    def __init__(
        self,
        store: EntityStore,
        tracks: dict[str, AcademicTrack],
        synthesize: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.tracks = tracks
        self.synthesize = synthesize
        self.rng = rng or random.Random()

    # -- classification -----------------------------------------------------

    def _context(self, kind: str, collection: list[dict[str, Any]]) -> NormalizeContext:
        key = NATURAL_KEYS.get(kind)
        existing = {
            r[key] for r in collection if key and isinstance(r.get(key), str) and r[key] and _key_applies(kind, r)
        }
        if kind == FILES:
            return NormalizeContext.for_courses(self.store.list(COURSES), file_codes=existing, clock=self.store.clock)
        if kind == COURSES:
            return NormalizeContext(course_codes=existing, clock=self.store.clock)
        if kind == USERS:
            return NormalizeContext(admin_codes=existing, clock=self.store.clock)
        return NormalizeContext(clock=self.store.clock)

    def classify(
        self, kind: str, record: dict[str, Any], ctx: NormalizeContext | None = None
    ) -> tuple[Validity, Optional[str]]:
        """
        Classify a single record. Returns (validity, removal reason).
        """
        reason = unrepairable_reason(kind, record)
        if reason:
            return Validity.UNREPAIRABLE, reason
        _, changed = normalize(kind, record, ctx or self._context(kind, [record]))
        return (Validity.REPAIRABLE if changed else Validity.VALID), None

    # -- reconciliation -----------------------------------------------------

    def reconcile(self, kind: str, collection: list[dict[str, Any]]) -> ReconcileResult:
        """
        Repair or drop every record of a collection. Input order is preserved.
        """
        check_kind(kind)
        result = ReconcileResult()
        ctx = self._context(kind, collection)
        key = NATURAL_KEYS.get(kind)
        seen: set[str] = set()
        lecturers = self.store.list(LECTURERS) if kind == COURSES else []

        for record in collection:
            reason = unrepairable_reason(kind, record)
            if reason:
                logger.info("Removing %s %s: %s", kind, record.get("id"), reason)
                result.removed.append(RemovedRecord(kind=kind, record_id=record.get("id"), reason=reason))
                continue

            current = record
            duplicate = False
            if key and _key_applies(kind, record) and not blank(record.get(key)) and record[key] in seen:
                logger.info("Duplicate %s %r on %s %s, assigning a new one", key, record[key], kind, record.get("id"))
                current = {**record, key: ""}
                duplicate = True

            repaired, changed = normalize(kind, current, ctx)

            if kind == COURSES:
                repaired, linked = self._link_lecturer(repaired, lecturers, result)
                changed = changed or linked

            if key and not blank(repaired.get(key)) and _key_applies(kind, repaired):
                seen.add(repaired[key])

            if changed or duplicate:
                result.fixed += 1
            result.kept.append(repaired)

        logger.info(
            "Reconciled %s: %d kept, %d fixed, %d removed, %d created",
            kind,
            len(result.kept),
            result.fixed,
            len(result.removed),
            len(result.created),
        )
        return result

    # -- lecturers ----------------------------------------------------------

    def _link_lecturer(
        self, course: dict[str, Any], lecturers: list[dict[str, Any]], result: ReconcileResult
    ) -> tuple[dict[str, Any], bool]:
        """
        Make sure some lecturer teaches one of the course's tracks.
        Fills lecturer_ids when the course has none.
        """
        track_ids = track_list(course.get("academic_track_ids"))
        match = next(
            (l for l in lecturers if set(track_list(l.get("academic_track_ids"))) & set(track_ids)),
            None,
        )

        if match is None:
            if not self.synthesize:
                logger.warning("Course %s has no lecturer for tracks %s", course.get("id"), track_ids)
                return course, False
            known = {l.get("id") for l in lecturers}
            for track_id in track_ids:
                match = self.ensure_lecturer_for_track(track_id, lecturers)
                if match is not None:
                    if match["id"] not in known:
                        lecturers.append(match)
                        result.created.append(match)
                    break
            if match is None:
                logger.warning("Course %s: no lecturer available for tracks %s", course.get("id"), track_ids)
                return course, False

        if course.get("lecturer_ids"):
            return course, False
        return {**course, "lecturer_ids": [match["id"]]}, True

    def ensure_lecturer_for_track(
        self, track_id: str, lecturers: list[dict[str, Any]] | None = None
    ) -> Optional[dict[str, Any]]:
        """
        Return a lecturer teaching track_id, creating one if necessary.

        Returns None (and writes nothing) when the track id does not resolve.
        """
        if lecturers is None:
            lecturers = self.store.list(LECTURERS)

        for lecturer in lecturers:
            if track_id in track_list(lecturer.get("academic_track_ids")):
                return lecturer

        track = self.tracks.get(track_id)
        if track is None:
            logger.warning("Academic track %r not found, cannot synthesize a lecturer", track_id)
            return None

        name = f"{self.rng.choice(HONORIFICS)} {self.rng.choice(SAMPLE_LECTURER_NAMES)}"
        lecturer = {
            "full_name": name,
            "email": f"lecturer.{uuid.uuid4().hex[:10]}@{LECTURER_EMAIL_DOMAIN}",
            "employee_id": codes.generate_employee_id(l.get("employee_id") for l in lecturers),
            "department": track.department,
            "academic_track_ids": [track_id],
            "status": "active",
        }
        created = self.store.create(LECTURERS, lecturer)
        logger.info("Synthesized lecturer %s (%s) for track %s", created["id"], name, track_id)
        return created
