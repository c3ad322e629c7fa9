"""
Per-record repair of missing or invalid fields.

normalize(kind, record, ctx) returns (repaired_copy, changed). The input dict
is never modified. Each repair is applied independently, so one file can get
a new code, a default status and fresh timestamps in the same pass.

The NormalizeContext carries what a single record cannot know by itself:
the courses a file points to, the codes already in use and the clock.
Codes generated during a pass are added to the context, so normalizing a
whole collection with one context never hands out the same code twice.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from campusfiles import codes
from campusfiles.model import (
    COURSES,
    DEFAULT_CREDITS,
    DEFAULT_FILE_STATUS,
    DEFAULT_TRACK_ID,
    DEFAULT_UPLOADER_ROLE,
    FILE_STATUSES,
    FILES,
    LECTURERS,
    MAX_CREDITS,
    MIN_CREDITS,
    STUDENTS,
    UPLOADER_ROLES,
    USERS,
    check_kind,
    is_admin,
)
from campusfiles.storage import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class NormalizeContext:
    courses_by_id: dict[str, dict[str, Any]] = field(default_factory=dict)
    file_codes: set[str] = field(default_factory=set)
    course_codes: set[str] = field(default_factory=set)
    admin_codes: set[str] = field(default_factory=set)
    clock: Callable[[], str] = utc_now_iso

    @classmethod
    def for_courses(cls, courses: list[dict[str, Any]], **kwargs: Any) -> "NormalizeContext":
        ctx = cls(**kwargs)
        for c in courses:
            cid = c.get("id")
            if isinstance(cid, str) and cid:
                ctx.courses_by_id[cid] = c
        return ctx


def blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and any(not blank(x) for x in value)


def track_list(value: Any) -> list[str]:
    """
    Track ids of a record field as a clean list. A bare string counts as one id.
    """
    if isinstance(value, str):
        return [] if blank(value) else [value.strip()]
    if isinstance(value, list):
        return [t.strip() for t in value if isinstance(t, str) and not blank(t)]
    return []


# ---------------------------------------------------------------------------
# Per-kind rules
# ---------------------------------------------------------------------------


def _normalize_file(rec: dict[str, Any], ctx: NormalizeContext) -> list[str]:
    repairs: list[str] = []

    course_id = rec.get("course_id")
    course = ctx.courses_by_id.get(course_id) if isinstance(course_id, str) else None
    course_code = course.get("course_code") if course else None
    current = rec.get("file_code")

    if course is not None:
        # a course without a usable code falls back to the FILE-NNN series
        if blank(current) or not codes.file_code_matches(current, course_code, rec.get("file_type")):
            new_code = codes.generate_file_code(course_code, rec.get("file_type"), ctx.file_codes)
            ctx.file_codes.add(new_code)
            rec["file_code"] = new_code
            repairs.append(f"file_code {current!r} -> {new_code!r}")
    elif blank(current):
        logger.warning(
            "File %s: course %r does not resolve, file code not generated",
            rec.get("id"),
            course_id,
        )

    if rec.get("uploader_type") not in UPLOADER_ROLES:
        repairs.append(f"uploader_type {rec.get('uploader_type')!r} -> {DEFAULT_UPLOADER_ROLE!r}")
        rec["uploader_type"] = DEFAULT_UPLOADER_ROLE

    if rec.get("status") not in FILE_STATUSES:
        repairs.append(f"status {rec.get('status')!r} -> {DEFAULT_FILE_STATUS!r}")
        rec["status"] = DEFAULT_FILE_STATUS

    now: Optional[str] = None
    for ts in ("created_at", "updated_at"):
        if blank(rec.get(ts)):
            now = now or ctx.clock()
            rec[ts] = now
            repairs.append(f"{ts} stamped")

    count = rec.get("download_count")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        rec["download_count"] = 0
        repairs.append(f"download_count {count!r} -> 0")

    return repairs


def _normalize_course(rec: dict[str, Any], ctx: NormalizeContext) -> list[str]:
    repairs: list[str] = []

    if not _non_empty_list(rec.get("academic_track_ids")):
        legacy = rec.get("academic_track")
        if not blank(legacy):
            tracks = [str(legacy).strip()]
        else:
            tracks = [codes.track_for_course_code(rec.get("course_code"), default=DEFAULT_TRACK_ID)]
        rec["academic_track_ids"] = tracks
        repairs.append(f"academic_track_ids -> {tracks}")
    else:
        cleaned = [t for t in rec["academic_track_ids"] if not blank(t)]
        if cleaned != rec["academic_track_ids"]:
            rec["academic_track_ids"] = cleaned
            repairs.append(f"academic_track_ids -> {cleaned}")

    if blank(rec.get("course_code")):
        new_code = codes.generate_course_code(rec["academic_track_ids"][0], ctx.course_codes)
        ctx.course_codes.add(new_code)
        rec["course_code"] = new_code
        repairs.append(f"course_code -> {new_code!r}")

    credits = rec.get("credits")
    if isinstance(credits, bool) or not isinstance(credits, (int, float)):
        fixed = DEFAULT_CREDITS
    else:
        fixed = min(max(int(credits), MIN_CREDITS), MAX_CREDITS)
    if type(credits) is not int or fixed != credits:
        rec["credits"] = fixed
        repairs.append(f"credits {credits!r} -> {fixed}")

    return repairs


def _normalize_lecturer(rec: dict[str, Any], ctx: NormalizeContext) -> list[str]:
    current = rec.get("academic_track_ids")
    if _non_empty_list(current):
        return []
    tracks = track_list(current) or [DEFAULT_TRACK_ID]
    rec["academic_track_ids"] = tracks
    return [f"academic_track_ids {current!r} -> {tracks}"]


def _normalize_student(rec: dict[str, Any], ctx: NormalizeContext) -> list[str]:
    if _non_empty_list(rec.get("academic_track_ids")):
        return []
    legacy = rec.get("academic_track")
    if blank(legacy):
        return []
    rec["academic_track_ids"] = [str(legacy).strip()]
    return [f"academic_track_ids -> [{legacy!r}]"]


def _normalize_user(rec: dict[str, Any], ctx: NormalizeContext) -> list[str]:
    if not is_admin(rec) or not blank(rec.get("admin_id")):
        return []
    new_code = codes.generate_admin_code(ctx.admin_codes)
    ctx.admin_codes.add(new_code)
    rec["admin_id"] = new_code
    return [f"admin_id -> {new_code!r}"]


_RULES: dict[str, Callable[[dict[str, Any], NormalizeContext], list[str]]] = {
    FILES: _normalize_file,
    COURSES: _normalize_course,
    LECTURERS: _normalize_lecturer,
    STUDENTS: _normalize_student,
    USERS: _normalize_user,
}


def normalize(
    kind: str, record: dict[str, Any], ctx: NormalizeContext | None = None
) -> tuple[dict[str, Any], bool]:
    """
    Repair one record of the given collection kind.

    Kinds without rules (messages, notifications) come back unchanged.
    """
    check_kind(kind)
    ctx = ctx if ctx is not None else NormalizeContext()
    out = copy.deepcopy(record)

    rule = _RULES.get(kind)
    if rule is None:
        return out, False

    repairs = rule(out, ctx)
    for r in repairs:
        logger.debug("Repaired %s %s: %s", kind, out.get("id"), r)
    return out, bool(repairs)
