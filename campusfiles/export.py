"""
Diagnostic JSON export.

Dumps the current state of every collection into one file, e.g. to attach
to a bug report. Read-only: nothing in the store is changed.
"""

from __future__ import annotations

import json
from pathlib import Path

from campusfiles.model import COLLECTIONS
from campusfiles.storage import EntityStore, utc_now_iso


def collection_sizes(store: EntityStore) -> dict[str, int]:
    return {kind: len(store.list(kind)) for kind in COLLECTIONS}


def export_snapshot(store: EntityStore, out_path: str | Path) -> int:
    """
    Write all collections to out_path. Returns the number of exported records.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    snapshot = store.snapshot()
    payload = {
        "exported_at": utc_now_iso(),
        "versions": {kind: store.version(kind) for kind in COLLECTIONS},
        "collections": snapshot,
    }
    out.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return sum(len(records) for records in snapshot.values())
