"""
CLI (Command Line Interface).

This module is the user-facing trigger for the maintenance operations, e.g.:

    campusfiles stats
    campusfiles dedupe students
    campusfiles remove-invalid files [--dry-run]
    campusfiles clear files [--yes]
    campusfiles refresh [--yes] [--seed 42]
    campusfiles export <dump.json>
    campusfiles ensure-lecturer <track_id>
    campusfiles gen-code file <course_id> <file_type>

Note:
- destructive commands (clear, refresh) ask for confirmation unless --yes is given
- output is plain text with aggregate counts only; per-record details go to
  the log (use -v to see them)
"""

from __future__ import annotations

import argparse
import logging
from typing import Callable

from campusfiles import codes
from campusfiles.export import collection_sizes, export_snapshot
from campusfiles.maintenance import clear_entity, deduplicate, refresh_all_data, remove_invalid
from campusfiles.model import COLLECTIONS, COURSES, FILES, LECTURERS, USERS, MaintenanceReport, is_admin
from campusfiles.reconcile import Reconciler
from campusfiles.storage import EntityStore, NotFoundError, StorageError
from campusfiles.tracks import load_tracks

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Operation failed, try again."


def _confirm(prompt: str, assume_yes: bool, input_fn: Callable[[str], str] | None = None) -> bool:
    """
    Ask the user to type 'yes'. EOF (no terminal) counts as no.
    """
    if assume_yes:
        return True
    try:
        answer = (input_fn or input)(f"{prompt} Type 'yes' to continue: ")
    except EOFError:
        return False
    return answer.strip().lower() == "yes"


def _print_report(report: MaintenanceReport) -> None:
    print(report.summary())


def _cmd_stats(args: argparse.Namespace, store: EntityStore) -> int:
    for kind, n in collection_sizes(store).items():
        print(f"{kind:<14} {n}")
    return 0


def _cmd_dedupe(args: argparse.Namespace, store: EntityStore) -> int:
    report = deduplicate(store, args.kind)
    _print_report(report)
    return 0


def _cmd_remove_invalid(args: argparse.Namespace, store: EntityStore) -> int:
    tracks = load_tracks(args.tracks)
    report = remove_invalid(store, args.kind, tracks, dry_run=args.dry_run)
    if args.dry_run:
        print("(dry run, nothing written)")
    _print_report(report)
    return 0


def _cmd_clear(args: argparse.Namespace, store: EntityStore) -> int:
    if not _confirm(f"This deletes every record in '{args.kind}' and cannot be undone.", args.yes):
        print("Cancelled.")
        return 1
    _print_report(clear_entity(store, args.kind))
    return 0


def _cmd_refresh(args: argparse.Namespace, store: EntityStore) -> int:
    if not _confirm("This replaces ALL data with a fresh synthetic dataset.", args.yes):
        print("Cancelled.")
        return 1
    _print_report(refresh_all_data(store, seed=args.seed))
    return 0


def _cmd_export(args: argparse.Namespace, store: EntityStore) -> int:
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide an output .json path.")
        return 1
    n = export_snapshot(store, out_path)
    print(f"Exported {n} records to: {out_path}")
    return 0


def _cmd_ensure_lecturer(args: argparse.Namespace, store: EntityStore) -> int:
    track_id = (args.track_id or "").strip()
    if not track_id:
        print("Please provide a track id.")
        return 1
    lecturer = Reconciler(store, load_tracks(args.tracks)).ensure_lecturer_for_track(track_id)
    if lecturer is None:
        print(f"Lecturer unavailable: unknown academic track '{track_id}'.")
        return 1
    print(f"{lecturer['id']} | {lecturer.get('full_name', '')} | {', '.join(lecturer.get('academic_track_ids', []))}")
    return 0


def _cmd_gen_code(args: argparse.Namespace, store: EntityStore) -> int:
    if args.code_kind == "file":
        course = store.get(COURSES, args.course_id)
        existing = [f.get("file_code") for f in store.list(FILES)]
        code = codes.generate_file_code(course.get("course_code"), args.file_type, existing)
    elif args.code_kind == "course":
        existing = [c.get("course_code") for c in store.list(COURSES)]
        code = codes.generate_course_code(args.track_id, existing)
    elif args.code_kind == "admin":
        existing = [u.get("admin_id") for u in store.list(USERS) if is_admin(u)]
        code = codes.generate_admin_code(existing)
    else:
        existing = [l.get("employee_id") for l in store.list(LECTURERS)]
        code = codes.generate_employee_id(existing)
    print(code)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="campusfiles", description="Campus file-sharing data maintenance")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory holding the JSON collections")
    parser.add_argument("--tracks", type=str, default=None, help="Academic tracks JSON (path or http(s) URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every repair and removal")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Show collection sizes")

    p_dedupe = sub.add_parser("dedupe", help="Remove duplicate students (same national id)")
    p_dedupe.add_argument("kind", type=str, choices=COLLECTIONS, help="Collection (only 'students' is supported)")

    p_invalid = sub.add_parser("remove-invalid", help="Repair records and drop unrepairable ones")
    p_invalid.add_argument("kind", type=str, choices=COLLECTIONS, help="Collection name")
    p_invalid.add_argument("--dry-run", action="store_true", help="Report only, write nothing")

    p_clear = sub.add_parser("clear", help="Delete every record of a collection")
    p_clear.add_argument("kind", type=str, choices=COLLECTIONS, help="Collection name")
    p_clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p_refresh = sub.add_parser("refresh", help="Clear everything and reseed with synthetic data")
    p_refresh.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_refresh.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")

    p_export = sub.add_parser("export", help="Dump all collections to a JSON file")
    p_export.add_argument("out", type=str, help="Output file path (e.g. dump.json)")

    p_lect = sub.add_parser("ensure-lecturer", help="Find or synthesize a lecturer for a track")
    p_lect.add_argument("track_id", type=str, help="Academic track id (e.g. cs-undergrad)")

    p_code = sub.add_parser("gen-code", help="Print the next free code")
    code_sub = p_code.add_subparsers(dest="code_kind", required=True)
    p_file = code_sub.add_parser("file", help="Next file code for a course and file type")
    p_file.add_argument("course_id", type=str)
    p_file.add_argument("file_type", type=str, help="note, exam, formulas, assignment or other")
    p_course = code_sub.add_parser("course", help="Next course code for an academic track")
    p_course.add_argument("track_id", type=str)
    code_sub.add_parser("admin", help="Next admin code")
    code_sub.add_parser("employee", help="Next lecturer employee id")

    return parser


COMMANDS: dict[str, Callable[[argparse.Namespace, EntityStore], int]] = {
    "stats": _cmd_stats,
    "dedupe": _cmd_dedupe,
    "remove-invalid": _cmd_remove_invalid,
    "clear": _cmd_clear,
    "refresh": _cmd_refresh,
    "export": _cmd_export,
    "ensure-lecturer": _cmd_ensure_lecturer,
    "gen-code": _cmd_gen_code,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    store = EntityStore(args.data_dir)
    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, store)
    except NotFoundError as exc:
        print(f"Not found: {exc.kind}/{exc.record_id}")
        raise SystemExit(1)
    except ValueError as exc:
        print(str(exc))
        raise SystemExit(1)
    except StorageError:
        logger.exception("Command %s failed", args.command)
        print(FAILURE_MESSAGE)
        raise SystemExit(1)

    raise SystemExit(code)
