"""
Synthetic dataset used by refresh_all_data().

Produces a consistent set of collections: every file points to an existing
course and student, every course track is covered by at least one lecturer,
every student has a valid check-digit national id and every admin has a code.
Pass a seed for reproducible output.
"""

from __future__ import annotations

import random
from datetime import timezone
from typing import Any, Optional

from faker import Faker

from campusfiles import codes
from campusfiles.model import (
    COURSES,
    FILE_STATUSES,
    FILE_TYPES,
    FILES,
    LECTURERS,
    MESSAGES,
    NOTIFICATIONS,
    STUDENTS,
    USERS,
)

# (course name, course code, credits, tracks)
COURSE_CATALOG = [
    ("Introduction to Computer Science", "CS101", 4, ["cs-undergrad", "swe-undergrad"]),
    ("Data Structures and Algorithms", "CS201", 5, ["cs-undergrad", "swe-undergrad"]),
    ("Databases", "CS301", 4, ["cs-undergrad", "swe-undergrad"]),
    ("Software Engineering", "SE301", 4, ["swe-undergrad"]),
    ("Computer Networks", "CS401", 3, ["cs-undergrad", "cs-grad"]),
    ("Artificial Intelligence", "CS501", 4, ["cs-grad"]),
    ("Discrete Mathematics", "MATH101", 4, ["math-undergrad", "cs-undergrad"]),
    ("Statistics", "MATH201", 3, ["math-undergrad", "psychology-undergrad"]),
    ("General Physics", "PHYS101", 5, ["physics-undergrad"]),
    ("Contract Law", "LAW201", 4, ["law-undergrad"]),
    ("Corporate Law", "LAW301", 3, ["law-undergrad"]),
    ("Management and Strategy", "BUS101", 4, ["business-undergrad", "business-grad"]),
    ("Digital Marketing", "BUS301", 3, ["business-undergrad", "business-grad"]),
    ("General Psychology", "PSY101", 4, ["psychology-undergrad"]),
    ("Developmental Psychology", "PSY201", 3, ["psychology-undergrad"]),
    ("Counselling and Guidance", "EDU501", 4, ["education-grad"]),
]

TRACK_DEPARTMENTS = {
    "cs-undergrad": "Sciences and Engineering",
    "cs-grad": "Sciences and Engineering",
    "swe-undergrad": "Sciences and Engineering",
    "math-undergrad": "Exact Sciences",
    "physics-undergrad": "Exact Sciences",
    "law-undergrad": "Law",
    "business-undergrad": "Management and Economics",
    "business-grad": "Management and Economics",
    "psychology-undergrad": "Social Sciences",
    "education-grad": "Social Sciences",
}
STUDENT_TRACKS = [
    "cs-undergrad",
    "swe-undergrad",
    "math-undergrad",
    "physics-undergrad",
    "law-undergrad",
    "business-undergrad",
    "psychology-undergrad",
]
TITLES = ["Dr.", "Prof.", "Mr.", "Ms."]
MESSAGE_SUBJECTS = [
    "Help with an exercise",
    "Question about the lecture",
    "Technical problem",
    "Extension request",
    "Question about a grade",
    "Meeting request",
]
NOTIFICATION_TEMPLATES = [
    ("New file uploaded", "A new file was uploaded to one of your courses", "info"),
    ("File approved", "Your file was approved by the lecturer", "success"),
    ("Submission reminder", "Three days left to submit the assignment", "warning"),
    ("System update", "The system was updated to a new version", "info"),
]


def national_id(rng: random.Random) -> str:
    """
    Nine-digit national id with a valid check digit.
    """
    digits = [rng.randint(0, 9) for _ in range(8)]
    total = 0
    for i, d in enumerate(digits):
        v = d * ((i % 2) + 1)
        total += v // 10 + v % 10
    digits.append((10 - total % 10) % 10)
    return "".join(str(d) for d in digits)


def generate_dataset(
    seed: Optional[int] = None,
    students: int = 15,
    lecturers: int = 12,
    files: int = 50,
    messages: int = 30,
    notifications: int = 25,
) -> dict[str, list[dict[str, Any]]]:
    """
    Build all collections at once, keyed by collection name.
    """
    fake = Faker()
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    def stamp() -> str:
        return fake.date_time_between(start_date="-1y", end_date="now", tzinfo=timezone.utc).isoformat()

    # students --------------------------------------------------------------
    used_nids: set[str] = set()
    student_rows: list[dict[str, Any]] = []
    for i in range(students):
        nid = national_id(rng)
        while nid in used_nids:
            nid = national_id(rng)
        used_nids.add(nid)
        track = STUDENT_TRACKS[i % len(STUDENT_TRACKS)]
        created = stamp()
        student_rows.append(
            {
                "id": f"student-{i + 1:03d}",
                "full_name": fake.name(),
                "email": f"student{i + 1}@ono.ac.il",
                "student_id": f"STU{2024 + i:04d}{i + 1:03d}",
                "national_id": nid,
                "academic_track": track,
                "academic_track_ids": [track],
                "year": rng.randint(1, 4),
                "status": "active",
                "created_at": created,
                "updated_at": created,
            }
        )

    # lecturers (tracks assigned round-robin so every track is covered) -----
    track_ids = list(TRACK_DEPARTMENTS)
    lecturer_rows: list[dict[str, Any]] = []
    for i in range(lecturers):
        track = track_ids[i % len(track_ids)]
        created = stamp()
        lecturer_rows.append(
            {
                "id": f"lecturer-{i + 1:03d}",
                "full_name": f"{TITLES[i % len(TITLES)]} {fake.name()}",
                "email": f"lecturer{i + 1}@ono.ac.il",
                "employee_id": f"EMP{1001 + i:04d}",
                "national_id": national_id(rng),
                "department": TRACK_DEPARTMENTS[track],
                "academic_track_ids": [track],
                "status": "active",
                "created_at": created,
                "updated_at": created,
            }
        )

    # courses ---------------------------------------------------------------
    course_rows: list[dict[str, Any]] = []
    for i, (name, code, credits, tracks) in enumerate(COURSE_CATALOG):
        teaching = [l["id"] for l in lecturer_rows if set(l["academic_track_ids"]) & set(tracks)]
        created = stamp()
        course_rows.append(
            {
                "id": f"course-{i + 1:03d}",
                "course_name": name,
                "course_code": code,
                "description": fake.sentence(),
                "credits": credits,
                "academic_track_ids": list(tracks),
                "lecturer_ids": teaching[:1],
                "status": "active",
                "created_at": created,
                "updated_at": created,
            }
        )

    # files -----------------------------------------------------------------
    file_codes: set[str] = set()
    file_rows: list[dict[str, Any]] = []
    for i in range(files):
        course = course_rows[i % len(course_rows)] if course_rows else None
        uploader = student_rows[i % len(student_rows)] if student_rows else None
        if course is None or uploader is None:
            break
        file_type = FILE_TYPES[i % len(FILE_TYPES)]
        code = codes.generate_file_code(course["course_code"], file_type, file_codes)
        file_codes.add(code)
        title = fake.catch_phrase()
        created = stamp()
        file_rows.append(
            {
                "id": f"file-{i + 1:03d}",
                "original_name": f"{title}.pdf",
                "filename": f"{title.replace(' ', '_')}.pdf",
                "file_type": file_type,
                "file_size": rng.randint(100_000, 5_000_000),
                "course_id": course["id"],
                "uploader_id": uploader["id"],
                "uploader_type": "student",
                "status": rng.choice(FILE_STATUSES),
                "file_code": code,
                "download_count": rng.randint(0, 50),
                "tags": [],
                "created_at": created,
                "updated_at": created,
            }
        )

    # messages --------------------------------------------------------------
    message_rows: list[dict[str, Any]] = []
    for i in range(messages):
        sender = student_rows[i % len(student_rows)] if student_rows else None
        if sender is None:
            break
        subject = MESSAGE_SUBJECTS[i % len(MESSAGE_SUBJECTS)]
        created = stamp()
        message_rows.append(
            {
                "id": f"message-{i + 1:03d}",
                "sender_id": sender["id"],
                "sender_type": "student",
                "subject": subject,
                "content": fake.paragraph(),
                "message_type": rng.choice(["inquiry", "support", "general"]),
                "status": rng.choice(["open", "in_progress", "closed"]),
                "priority": rng.choice(["low", "medium", "high"]),
                "created_at": created,
                "updated_at": created,
            }
        )

    # notifications ---------------------------------------------------------
    notification_rows: list[dict[str, Any]] = []
    for i in range(notifications):
        user = student_rows[i % len(student_rows)] if student_rows else None
        if user is None:
            break
        title, message, kind = NOTIFICATION_TEMPLATES[i % len(NOTIFICATION_TEMPLATES)]
        created = stamp()
        notification_rows.append(
            {
                "id": f"notification-{i + 1:03d}",
                "user_id": user["id"],
                "title": title,
                "message": message,
                "type": kind,
                "read": rng.random() > 0.4,
                "created_at": created,
                "updated_at": created,
            }
        )

    # users: two admins plus one plain student account ----------------------
    user_rows: list[dict[str, Any]] = []
    for i in range(2):
        created = stamp()
        user_rows.append(
            {
                "id": f"user-{i + 1:03d}",
                "full_name": fake.name(),
                "email": f"admin{i + 1}@ono.ac.il",
                "national_id": national_id(rng),
                "role": "admin",
                "roles": ["admin"],
                "admin_id": f"ADM{i + 1:04d}",
                "created_at": created,
                "updated_at": created,
            }
        )
    created = stamp()
    user_rows.append(
        {
            "id": "user-003",
            "full_name": fake.name(),
            "email": "student.account@ono.ac.il",
            "national_id": national_id(rng),
            "role": "student",
            "roles": ["student"],
            "created_at": created,
            "updated_at": created,
        }
    )

    return {
        STUDENTS: student_rows,
        LECTURERS: lecturer_rows,
        COURSES: course_rows,
        FILES: file_rows,
        MESSAGES: message_rows,
        NOTIFICATIONS: notification_rows,
        USERS: user_rows,
    }
