"""
Entity store: named collections persisted as JSON files.

Each collection lives in one file:

    <data_dir>/<kind>.json   ->   {"version": 3, "records": [ ... ]}

Design rationale:
- the store is the only component that touches the filesystem; everything
  else works on in-memory copies and writes back a whole collection
- every write replaces the complete file (write temp file, then os.replace),
  so a failed write never leaves a half-repaired collection behind
- every write bumps the collection version; callers may pass the version they
  read to set_all() and get a ConflictError instead of a silent overwrite

Legacy records (older field names such as "name"/"code" on courses) are
mapped to the canonical field names once, when they are read.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from campusfiles.config import resolve_data_dir
from campusfiles.model import COLLECTIONS, COURSES, FILES, LECTURERS, STUDENTS, check_kind

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A collection could not be persisted."""


class ConflictError(StorageError):
    """The collection changed between read and write."""

    def __init__(self, kind: str, expected: int, actual: int) -> None:
        super().__init__(f"{kind}: expected version {expected}, found {actual}")
        self.kind = kind
        self.expected = expected
        self.actual = actual


class NotFoundError(KeyError):
    """Requested id is absent from a collection."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind}/{record_id}")
        self.kind = kind
        self.record_id = record_id


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Legacy field adapter
# ---------------------------------------------------------------------------


def _rename(record: dict[str, Any], legacy: str, canonical: str) -> None:
    """
    Move record[legacy] to record[canonical] unless the canonical field is set.
    The legacy key is dropped either way.
    """
    if legacy not in record:
        return
    value = record.pop(legacy)
    if _blank(record.get(canonical)) and not _blank(value):
        record[canonical] = value


def migrate_record(kind: str, record: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of record with legacy field names mapped to canonical ones.

    Canonical fields always win when both spellings are present.
    """
    out = copy.deepcopy(record)

    if kind == COURSES:
        _rename(out, "name", "course_name")
        _rename(out, "code", "course_code")
        if "lecturer_id" in out:
            lecturer_id = out.pop("lecturer_id")
            if not out.get("lecturer_ids") and not _blank(lecturer_id):
                out["lecturer_ids"] = [lecturer_id]
        credits = out.get("credits")
        if isinstance(credits, str) and credits.strip().isdigit():
            out["credits"] = int(credits.strip())

    elif kind == FILES:
        _rename(out, "created_date", "created_at")
        if _blank(out.get("original_name")):
            # older uploads only carried a stored filename or a title
            for alt in ("filename", "title"):
                if not _blank(out.get(alt)):
                    out["original_name"] = out[alt]
                    break

    elif kind == LECTURERS:
        _rename(out, "academic_tracks", "academic_track_ids")

    elif kind == STUDENTS:
        if not out.get("academic_track_ids") and not _blank(out.get("academic_track")):
            out["academic_track_ids"] = [out["academic_track"]]

    return out


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class EntityStore:
    """
    Generic get/list/filter/create/update/delete over named JSON collections.
    """

    def __init__(self, data_dir: str | Path | None = None, clock: Callable[[], str] | None = None) -> None:
        self.data_dir = resolve_data_dir(data_dir)
        self.clock = clock or utc_now_iso

    def path(self, kind: str) -> Path:
        return self.data_dir / f"{check_kind(kind)}.json"

    # -- raw file access ----------------------------------------------------

    def _read(self, kind: str) -> tuple[int, list[dict[str, Any]]]:
        """
        Load (version, records) for a collection.

        Missing file -> (0, []). A corrupted file is logged and read as empty,
        so one broken collection never takes the whole application down.
        """
        p = self.path(kind)
        if not p.exists():
            return 0, []

        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("Could not read collection %s from %s: %s", kind, p, exc)
            return 0, []

        # bare array = legacy format without version
        if isinstance(data, list):
            version, records = 0, data
        elif isinstance(data, dict):
            version = data.get("version", 0)
            records = data.get("records", [])
            if not isinstance(version, int):
                version = 0
        else:
            return 0, []

        if not isinstance(records, list):
            return version, []
        return version, [r for r in records if isinstance(r, dict)]

    def _write(self, kind: str, records: list[dict[str, Any]], version: int) -> None:
        p = self.path(kind)
        payload = {"version": version, "records": records}
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{kind}-", suffix=".json", dir=p.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_name, p)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Could not write collection %s to %s: %s", kind, p, exc)
            raise StorageError(f"Could not write {kind}: {exc}") from exc

    # -- read operations ----------------------------------------------------

    def version(self, kind: str) -> int:
        return self._read(kind)[0]

    def list(self, kind: str) -> list[dict[str, Any]]:
        """
        Return all records of a collection, migrated to canonical field names.
        """
        _, records = self._read(kind)
        return [migrate_record(kind, r) for r in records]

    def read(self, kind: str) -> tuple[int, list[dict[str, Any]]]:
        """
        Like list(), but also return the version for a later set_all().
        """
        version, records = self._read(kind)
        return version, [migrate_record(kind, r) for r in records]

    def filter(self, kind: str, criteria: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Return records whose fields equal every key/value in criteria.
        """
        return [r for r in self.list(kind) if all(r.get(k) == v for k, v in criteria.items())]

    def get(self, kind: str, record_id: str) -> dict[str, Any]:
        for r in self.list(kind):
            if r.get("id") == record_id:
                return r
        raise NotFoundError(kind, record_id)

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {kind: self.list(kind) for kind in COLLECTIONS}

    # -- write operations ---------------------------------------------------

    def set_all(self, kind: str, records: list[dict[str, Any]], expected_version: int | None = None) -> int:
        """
        Replace a whole collection. Returns the new version.

        With expected_version, raise ConflictError if somebody else wrote the
        collection since it was read.
        """
        current, _ = self._read(kind)
        if expected_version is not None and expected_version != current:
            raise ConflictError(kind, expected_version, current)
        self._write(kind, list(records), current + 1)
        return current + 1

    def create(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        """
        Append a record. Assigns an id and timestamps when absent.
        """
        version, records = self._read(kind)
        new = copy.deepcopy(record)
        if _blank(new.get("id")):
            new["id"] = f"{kind[:-1]}-{uuid.uuid4().hex[:12]}"
        now = self.clock()
        new.setdefault("created_at", now)
        new.setdefault("updated_at", now)
        records.append(new)
        self._write(kind, records, version + 1)
        return copy.deepcopy(new)

    def update(self, kind: str, record_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        version, records = self._read(kind)
        for i, r in enumerate(records):
            if r.get("id") == record_id:
                merged = {**r, **copy.deepcopy(patch), "id": record_id, "updated_at": self.clock()}
                records[i] = merged
                self._write(kind, records, version + 1)
                return copy.deepcopy(merged)
        raise NotFoundError(kind, record_id)

    def delete(self, kind: str, record_id: str) -> None:
        version, records = self._read(kind)
        remaining = [r for r in records if r.get("id") != record_id]
        if len(remaining) == len(records):
            raise NotFoundError(kind, record_id)
        self._write(kind, remaining, version + 1)

    def clear(self, kind: str) -> None:
        """
        Drop every record of a collection.

        The file is rewritten empty rather than deleted so the version keeps
        counting up and stale writers still get a ConflictError.
        """
        version, _ = self._read(kind)
        self._write(kind, [], version + 1)

    def clear_all(self) -> None:
        for kind in COLLECTIONS:
            self.clear(kind)
