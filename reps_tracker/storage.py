from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping, Protocol

from pydantic_core import to_jsonable_python


class StorageBackend(Protocol):
    """Abstraction for persisting and restoring state."""

    def load_state(self) -> Mapping[str, object]:
        """Return a mapping representing the stored state."""

    def save_state(self, state: Mapping[str, object]) -> None:
        """Persist the provided state mapping."""


DEFAULT_STATE_FILENAME = "reps_state.json"
TRACKER_FOLDER_NAME = "RepsTracker"
DATA_DIR_ENV = "REPS_DATA_DIR"


def resolve_tracker_directory(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> Path:
    """Resolve the tracker root directory from an explicit path, ``REPS_DATA_DIR`` or the local default."""

    if path is not None:
        explicit_path = Path(path).expanduser()
        if explicit_path.is_dir():
            return explicit_path
        return explicit_path.parent

    env_map: Mapping[str, str] = env if env is not None else os.environ
    raw_dir = env_map.get(DATA_DIR_ENV)
    if raw_dir:
        candidate = Path(raw_dir).expanduser()
        if candidate.name.lower() == TRACKER_FOLDER_NAME.lower():
            return candidate
        return candidate / TRACKER_FOLDER_NAME

    return Path(".data") / TRACKER_FOLDER_NAME


def resolve_state_file_path(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> Path:
    if path is not None:
        explicit_path = Path(path).expanduser()
        if explicit_path.is_dir():
            return explicit_path / DEFAULT_STATE_FILENAME
        return explicit_path

    return resolve_tracker_directory(env=env) / DEFAULT_STATE_FILENAME


class FileStorageBackend:
    """Persist state to a JSON file on disk."""

    def __init__(self, path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> None:
        self.path = resolve_state_file_path(path, env=env)
        self._last_fingerprint: str | None = None

    def load_state(self) -> Mapping[str, object]:
        if not self.path.exists():
            return {}

        with self.path.open("r", encoding="utf-8") as file_handle:
            return json.load(file_handle)

    def save_state(self, state: Mapping[str, object]) -> None:
        serialized = json.dumps(state, default=to_jsonable_python, ensure_ascii=False, sort_keys=True)
        if serialized == self._last_fingerprint:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as file_handle:
            file_handle.write(serialized)

        self._last_fingerprint = serialized


__all__ = [
    "DATA_DIR_ENV",
    "DEFAULT_STATE_FILENAME",
    "FileStorageBackend",
    "StorageBackend",
    "TRACKER_FOLDER_NAME",
    "resolve_state_file_path",
    "resolve_tracker_directory",
]
