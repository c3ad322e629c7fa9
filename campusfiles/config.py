"""
Path configuration.

There are no config files. Every location is resolved by a small function
that returns a package-relative default, which can be overridden:

    explicit argument  >  environment variable  >  package default

Using functions instead of constants makes testing easier,
because tests can pass temporary directories.
"""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR_ENV = "CAMPUSFILES_DATA_DIR"
TRACKS_ENV = "CAMPUSFILES_TRACKS"


def package_data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"


def resolve_data_dir(path: str | Path | None = None) -> Path:
    """
    Return the directory holding the JSON collections.
    """
    if path is not None:
        return Path(path)
    env = os.environ.get(DATA_DIR_ENV, "").strip()
    if env:
        return Path(env)
    return package_data_dir() / "store"


def resolve_tracks_source(source: str | Path | None = None) -> str:
    """
    Return the academic track source: a filesystem path or an http(s) URL.
    """
    if source is not None:
        return str(source)
    env = os.environ.get(TRACKS_ENV, "").strip()
    if env:
        return env
    return str(package_data_dir() / "academic-tracks.json")
