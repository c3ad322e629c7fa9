"""
Central data model definitions used across the project.

Records themselves travel as plain dicts (exactly what is stored in the JSON
collections). This module defines:
- the fixed collection names and the enumerations used by the records
- small dataclasses for reference data and reconciliation results

Keeping these in one place means the store, the normalizer and the reconciler
all agree on the same field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

STUDENTS = "students"
LECTURERS = "lecturers"
COURSES = "courses"
FILES = "files"
MESSAGES = "messages"
NOTIFICATIONS = "notifications"
USERS = "users"

COLLECTIONS = (STUDENTS, LECTURERS, COURSES, FILES, MESSAGES, NOTIFICATIONS, USERS)


def check_kind(kind: str) -> str:
    """
    Validate a collection name and return it.
    Raises ValueError for unknown names.
    """
    if kind not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {kind!r} (expected one of {', '.join(COLLECTIONS)})")
    return kind


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

UPLOADER_ROLES = ("student", "lecturer", "admin")
FILE_STATUSES = ("pending", "approved", "rejected")
FILE_TYPES = ("note", "exam", "formulas", "assignment", "other")

DEFAULT_UPLOADER_ROLE = "student"
DEFAULT_FILE_STATUS = "pending"
DEFAULT_TRACK_ID = "cs-undergrad"
DEFAULT_CREDITS = 3
MIN_CREDITS = 1
MAX_CREDITS = 10

ADMIN_ROLE = "admin"


def is_admin(user: dict[str, Any]) -> bool:
    """
    A user counts as admin if its role is "admin" or "admin" is listed in roles.
    """
    if user.get("role") == ADMIN_ROLE:
        return True
    roles = user.get("roles")
    return isinstance(roles, list) and ADMIN_ROLE in roles


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AcademicTrack:
    """
    Read-only reference record loaded from academic-tracks.json.
    """

    id: str
    name: str
    department: str


@dataclass
class RemovedRecord:
    """
    A record dropped by reconciliation, with the reason it could not be repaired.
    """

    kind: str
    record_id: Optional[str]
    reason: str


@dataclass
class ReconcileResult:
    """
    Outcome of reconciling one collection.

    kept:    records to persist (repaired where needed)
    removed: records dropped, each with a reason
    fixed:   number of kept records that were changed
    created: entities synthesized as a side effect (lecturers)
    """

    kept: List[Dict[str, Any]] = field(default_factory=list)
    removed: List[RemovedRecord] = field(default_factory=list)
    fixed: int = 0
    created: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class MaintenanceReport:
    """
    Aggregate counts returned by a bulk maintenance operation.
    """

    operation: str
    kind: Optional[str]
    before: int = 0
    after: int = 0
    removed: int = 0
    fixed: int = 0
    created: int = 0
    reasons: List[str] = field(default_factory=list)

    def summary(self) -> str:
        target = self.kind or "all collections"
        parts = [f"{self.operation} on {target}:"]
        parts.append(f"{self.removed} removed")
        parts.append(f"{self.fixed} fixed")
        if self.created:
            parts.append(f"{self.created} created")
        parts.append(f"({self.before} -> {self.after} records)")
        return " ".join(parts)
