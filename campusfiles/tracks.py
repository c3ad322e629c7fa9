"""
Academic track reference data.

Tracks are read-only: they come from a static JSON resource (a list of
{"id", "name", "department"} objects) and are never repaired or written.
The source is either a local file or an http(s) URL.

A source that cannot be loaded yields an empty table. Callers treat a track
id that does not resolve as "reference unavailable".
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import requests

from campusfiles.config import resolve_tracks_source
from campusfiles.model import AcademicTrack

logger = logging.getLogger(__name__)


def _parse_tracks(data: Any) -> dict[str, AcademicTrack]:
    if not isinstance(data, list):
        return {}
    out: dict[str, AcademicTrack] = {}
    for item in data:
        if not isinstance(item, dict):
            continue
        tid = str(item.get("id", "") or "").strip()
        if not tid:
            continue
        out[tid] = AcademicTrack(
            id=tid,
            name=str(item.get("name", "") or ""),
            department=str(item.get("department", "") or ""),
        )
    return out


def _fetch_json(url: str) -> Any:
    resp = requests.get(url, timeout=30)
    resp.raise_for_status()
    return resp.json()


def load_tracks(source: str | Path | None = None) -> dict[str, AcademicTrack]:
    """
    Load the track table keyed by track id.
    """
    src = resolve_tracks_source(source)

    if src.startswith(("http://", "https://")):
        try:
            data = _fetch_json(src)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Failed to fetch academic tracks from %s: %s", src, exc)
            return {}
    else:
        try:
            data = json.loads(Path(src).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("Failed to read academic tracks from %s: %s", src, exc)
            return {}

    tracks = _parse_tracks(data)
    logger.debug("Loaded %d academic tracks from %s", len(tracks), src)
    return tracks
