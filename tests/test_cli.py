"""
Tests for CLI entry points.

Every test points --data-dir at a temporary directory so real data is never
touched. Output is captured and checked for the aggregate counts.
"""

import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from campusfiles.cli import main
from campusfiles.storage import EntityStore


def _run(argv: list[str]) -> tuple[int, str]:
    """
    Run the CLI and return (exit code, captured stdout).
    """
    buf = io.StringIO()
    code = None
    with redirect_stdout(buf):
        try:
            main(argv)
        except SystemExit as exc:
            code = exc.code
    return code, buf.getvalue()


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name
        self.store = EntityStore(self.dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_stats(self) -> None:
        self.store.set_all("students", [{"id": "s1"}, {"id": "s2"}])
        code, out = _run(["--data-dir", self.dir, "stats"])
        self.assertEqual(code, 0)
        self.assertIn("students", out)
        self.assertIn("2", out)

    def test_dedupe(self) -> None:
        self.store.set_all("students", [{"id": "A", "national_id": "1"}, {"id": "B", "national_id": "1"}])
        code, out = _run(["--data-dir", self.dir, "dedupe", "students"])
        self.assertEqual(code, 0)
        self.assertIn("1 removed", out)
        self.assertEqual(len(self.store.list("students")), 1)

    def test_dedupe_other_kind_fails(self) -> None:
        code, _ = _run(["--data-dir", self.dir, "dedupe", "files"])
        self.assertEqual(code, 1)

    def test_clear_needs_confirmation(self) -> None:
        self.store.set_all("messages", [{"id": "m1"}])
        with mock.patch("builtins.input", return_value="no"):
            code, out = _run(["--data-dir", self.dir, "clear", "messages"])
        self.assertEqual(code, 1)
        self.assertIn("Cancelled", out)
        self.assertEqual(len(self.store.list("messages")), 1)

        code, _ = _run(["--data-dir", self.dir, "clear", "messages", "--yes"])
        self.assertEqual(code, 0)
        self.assertEqual(self.store.list("messages"), [])

    def test_export(self) -> None:
        self.store.set_all("files", [{"id": "f1"}])
        out_path = Path(self.dir) / "out" / "dump.json"
        code, out = _run(["--data-dir", self.dir, "export", str(out_path)])
        self.assertEqual(code, 0)
        self.assertIn("Exported 1 records", out)
        data = json.loads(out_path.read_text(encoding="utf-8"))
        self.assertEqual(data["collections"]["files"], [{"id": "f1"}])
        self.assertEqual(data["versions"]["files"], 1)

    def test_gen_code(self) -> None:
        self.store.set_all("users", [{"id": "u1", "role": "admin", "admin_id": "ADM0004"}])
        code, out = _run(["--data-dir", self.dir, "gen-code", "admin"])
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "ADM0005")

        self.store.set_all("courses", [{"id": "c1", "course_code": "CS101"}])
        code, out = _run(["--data-dir", self.dir, "gen-code", "file", "c1", "exam"])
        self.assertEqual(out.strip(), "CS101-E001")

    def test_gen_code_unknown_course(self) -> None:
        code, out = _run(["--data-dir", self.dir, "gen-code", "file", "missing", "exam"])
        self.assertEqual(code, 1)
        self.assertIn("Not found", out)

    def test_ensure_lecturer_unknown_track(self) -> None:
        code, out = _run(["--data-dir", self.dir, "ensure-lecturer", "unknown-track-id"])
        self.assertEqual(code, 1)
        self.assertIn("unknown academic track", out)
        self.assertEqual(self.store.list("lecturers"), [])

    def test_ensure_lecturer_creates_one(self) -> None:
        code, out = _run(["--data-dir", self.dir, "ensure-lecturer", "law-undergrad"])
        self.assertEqual(code, 0)
        self.assertIn("law-undergrad", out)
        self.assertEqual(len(self.store.list("lecturers")), 1)


if __name__ == "__main__":
    unittest.main()
