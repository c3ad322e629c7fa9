"""
Bulk maintenance operations.

Each operation is a complete read -> reconcile -> write cycle over one
collection (or all of them) and returns a MaintenanceReport with counts:

    deduplicate(store, "students")      drop repeated emails, student ids, national ids
    remove_invalid(store, kind, tracks) drop unrepairable records, repair the rest
    clear_entity(store, kind)           empty one collection
    refresh_all_data(store)             empty everything and reseed

Running deduplicate or remove_invalid twice in a row changes nothing the
second time. The write carries the version that was read, so a concurrent
writer surfaces as ConflictError instead of being overwritten.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Optional

from campusfiles.model import COLLECTIONS, STUDENTS, AcademicTrack, MaintenanceReport, check_kind
from campusfiles.reconcile import Reconciler
from campusfiles.seed import generate_dataset
from campusfiles.storage import EntityStore

logger = logging.getLogger(__name__)

DatasetProvider = Callable[[Optional[int]], dict[str, list[dict[str, Any]]]]


# student field -> label used in the removal reason, checked in this order
STUDENT_KEYS = [
    ("email", "email"),
    ("student_id", "student id"),
    ("national_id", "national id"),
]


def _student_key(student: dict[str, Any], field_name: str) -> str:
    value = str(student.get(field_name) or "").strip()
    return value.lower() if field_name == "email" else value


def deduplicate(store: EntityStore, kind: str = STUDENTS) -> MaintenanceReport:
    """
    Keep the first student per email, student id and national id, drop the rest.

    A student is a duplicate if any one of the three keys was already seen on
    a kept student. Emails compare case-insensitively. Blank keys never match,
    so students without a national id are never treated as duplicates.
    """
    check_kind(kind)
    if kind != STUDENTS:
        raise ValueError(f"Deduplication is only supported for {STUDENTS!r}, not {kind!r}")

    version, records = store.read(kind)
    kept: list[dict[str, Any]] = []
    seen: dict[str, set[str]] = {field_name: set() for field_name, _ in STUDENT_KEYS}
    report = MaintenanceReport(operation="deduplicate", kind=kind, before=len(records))

    for student in records:
        keys = {field_name: _student_key(student, field_name) for field_name, _ in STUDENT_KEYS}
        clash = next(
            ((f, label) for f, label in STUDENT_KEYS if keys[f] and keys[f] in seen[f]),
            None,
        )
        if clash is not None:
            field_name, label = clash
            logger.info("Removing duplicate student %s (%s %s)", student.get("id"), label, keys[field_name])
            report.reasons.append(f"{student.get('id')}: duplicate {label}")
            continue
        for field_name, value in keys.items():
            if value:
                seen[field_name].add(value)
        kept.append(student)

    report.after = len(kept)
    report.removed = report.before - report.after
    if report.removed:
        store.set_all(kind, kept, expected_version=version)
    return report


def remove_invalid(
    store: EntityStore,
    kind: str,
    tracks: dict[str, AcademicTrack],
    dry_run: bool = False,
    rng: random.Random | None = None,
) -> MaintenanceReport:
    """
    Reconcile a collection and persist the kept records.

    With dry_run nothing is written and no lecturers are synthesized;
    the report shows what would happen.
    """
    check_kind(kind)
    version, records = store.read(kind)
    reconciler = Reconciler(store, tracks, synthesize=not dry_run, rng=rng)
    result = reconciler.reconcile(kind, records)

    report = MaintenanceReport(
        operation="remove-invalid",
        kind=kind,
        before=len(records),
        after=len(result.kept),
        removed=len(result.removed),
        fixed=result.fixed,
        created=len(result.created),
        reasons=[f"{r.record_id}: {r.reason}" for r in result.removed],
    )

    if not dry_run and (report.removed or report.fixed):
        store.set_all(kind, result.kept, expected_version=version)
    return report


def clear_entity(store: EntityStore, kind: str) -> MaintenanceReport:
    check_kind(kind)
    before = len(store.list(kind))
    store.clear(kind)
    logger.info("Cleared %s (%d records)", kind, before)
    return MaintenanceReport(operation="clear", kind=kind, before=before, after=0, removed=before)


def refresh_all_data(
    store: EntityStore,
    provider: DatasetProvider = generate_dataset,
    seed: Optional[int] = None,
) -> MaintenanceReport:
    """
    Clear every collection, then reseed from the synthetic dataset provider.
    """
    before = sum(len(store.list(kind)) for kind in COLLECTIONS)
    store.clear_all()

    dataset = provider(seed)
    after = 0
    for kind, records in dataset.items():
        check_kind(kind)
        store.set_all(kind, records)
        after += len(records)

    logger.info("Refreshed all data: %d records replaced by %d", before, after)
    return MaintenanceReport(operation="refresh", kind=None, before=before, after=after, removed=before, created=after)
