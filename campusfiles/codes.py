"""
Business identifier generation.

Formats:
    file code      <COURSE_CODE>-<TYPE_PREFIX><NNN>     e.g. CS101-E001
    course code    <PREFIX><NUMBER>                     e.g. CS101, CS501
    admin code     ADM<NNNN>                            e.g. ADM0001
    employee id    EMP<NNNN>                            e.g. EMP0012

Every generator takes the collection of codes that already exist and returns
a code that is not in it. Nothing is reserved globally: two callers working
from the same snapshot can produce the same code.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Tuple

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

TYPE_PREFIXES = {
    "note": "N",
    "exam": "E",
    "formulas": "F",
    "assignment": "A",
    "other": "O",
}
UNKNOWN_TYPE_PREFIX = "O"

# track id -> (course code prefix, base number)
COURSE_CODE_TABLE: dict[str, Tuple[str, int]] = {
    "cs-undergrad": ("CS", 100),
    "cs-grad": ("CS", 500),
    "swe-undergrad": ("SE", 100),
    "math-undergrad": ("MATH", 100),
    "physics-undergrad": ("PHYS", 100),
    "law-undergrad": ("LAW", 100),
    "business-undergrad": ("BUS", 100),
    "business-grad": ("BUS", 500),
    "psychology-undergrad": ("PSY", 100),
    "education-grad": ("EDU", 500),
}

# course code prefix -> default track, checked in this order
COURSE_PREFIX_TRACKS: list[Tuple[str, str]] = [
    ("CS", "cs-undergrad"),
    ("SE", "swe-undergrad"),
    ("MATH", "math-undergrad"),
    ("PHYS", "physics-undergrad"),
    ("LAW", "law-undergrad"),
    ("BUS", "business-undergrad"),
    ("PSY", "psychology-undergrad"),
]

FILE_FALLBACK = ("FILE-", 1, 3)  # FILE-001
COURSE_FALLBACK = ("GEN", 101, 0)  # GEN101
ADMIN_PREFIX = "ADM"
EMPLOYEE_PREFIX = "EMP"

_TRAILING_DIGITS = re.compile(r"(\d+)$")

FILE_CODE_RE = re.compile(r"^[A-Z0-9]+-[NEFAO]\d{3}$")
FALLBACK_FILE_CODE_RE = re.compile(r"^FILE-\d{3}$")
ADMIN_CODE_RE = re.compile(r"^ADM\d{4}$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_set(existing: Iterable[Any]) -> set[str]:
    return {c for c in existing if isinstance(c, str) and c}


def _trailing_number(code: str) -> int:
    m = _TRAILING_DIGITS.search(code)
    return int(m.group(1)) if m else 0


def _next_literal(prefix: str, start: int, width: int, existing: set[str]) -> str:
    """
    First code of the form prefix+number (number >= start) not in existing.

    With a fixed width, running past the largest number raises ValueError.
    """
    n = start
    while True:
        if width and n >= 10**width:
            raise ValueError(f"No free {prefix} code left (limit {10**width - 1})")
        code = f"{prefix}{n:0{width}d}" if width else f"{prefix}{n}"
        if code not in existing:
            return code
        n += 1


def _next_sequence(prefix: str, width: int, existing: set[str]) -> str:
    """
    Highest trailing number among codes starting with prefix, plus one.
    """
    nums = [_trailing_number(c) for c in existing if c.startswith(prefix)]
    n = max(nums, default=0) + 1
    return _next_literal(prefix, n, width, existing)


def type_prefix(file_type: Any) -> str:
    key = str(file_type or "").strip().lower()
    return TYPE_PREFIXES.get(key, UNKNOWN_TYPE_PREFIX)


def code_stem(course_code: Any) -> str:
    """
    Course code reduced to the characters allowed inside a file code.
    """
    return re.sub(r"[^A-Z0-9]", "", str(course_code or "").upper())


def file_code_matches(code: Any, course_code: Any, file_type: Any) -> bool:
    """
    True if code has the exact shape expected for this course and file type.

    Courses without a usable course code accept the FILE-NNN series.
    """
    if not isinstance(code, str):
        return False
    stem = code_stem(course_code)
    if not stem:
        return bool(FALLBACK_FILE_CODE_RE.match(code))
    if not FILE_CODE_RE.match(code):
        return False
    return code.startswith(f"{stem}-{type_prefix(file_type)}")


def track_for_course_code(course_code: Any, default: str = "cs-undergrad") -> str:
    """
    Derive an academic track from a course code prefix (MATH201 -> math-undergrad).
    """
    code = str(course_code or "").strip().upper()
    for prefix, track_id in COURSE_PREFIX_TRACKS:
        if code.startswith(prefix):
            return track_id
    return default


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def generate_file_code(course_code: Optional[str], file_type: Any, existing: Iterable[Any]) -> str:
    """
    Next file code for (course code, file type).

    The numeric suffix continues after the highest one already used for the
    same course and type prefix. Without a course code the FILE-001 series is
    used instead.
    """
    codes = _as_set(existing)
    stem = code_stem(course_code)
    if not stem:
        prefix, start, width = FILE_FALLBACK
        return _next_literal(prefix, start, width, codes)
    return _next_sequence(f"{stem}-{type_prefix(file_type)}", 3, codes)


def generate_course_code(track_id: Optional[str], existing: Iterable[Any]) -> str:
    """
    Smallest free course number strictly above the track's base number.

    Unknown tracks get GEN101 (or the next free GEN number).
    """
    codes = _as_set(existing)
    entry = COURSE_CODE_TABLE.get(str(track_id or ""))
    if entry is None:
        prefix, start, width = COURSE_FALLBACK
        return _next_literal(prefix, start, width, codes)

    prefix, base = entry
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    used: set[int] = set()
    for c in codes:
        m = pattern.match(c.strip().upper())
        if m and int(m.group(1)) >= base:
            used.add(int(m.group(1)))

    n = base + 1
    while n in used or f"{prefix}{n}" in codes:
        n += 1
    return f"{prefix}{n}"


def generate_admin_code(existing: Iterable[Any]) -> str:
    return _next_sequence(ADMIN_PREFIX, 4, _as_set(existing))


def generate_employee_id(existing: Iterable[Any]) -> str:
    return _next_sequence(EMPLOYEE_PREFIX, 4, _as_set(existing))


def generate_code(kind: str, classifier: Any, existing: Iterable[Any]) -> str:
    """
    Single entry point: kind is "file", "course", "admin" or "employee".

    classifier:
        file     -> (course_code, file_type)
        course   -> academic track id
        admin    -> ignored
        employee -> ignored
    """
    if kind == "file":
        course_code, file_type = classifier
        return generate_file_code(course_code, file_type, existing)
    if kind == "course":
        return generate_course_code(classifier, existing)
    if kind == "admin":
        return generate_admin_code(existing)
    if kind == "employee":
        return generate_employee_id(existing)
    raise ValueError(f"Unknown code kind: {kind!r}")
