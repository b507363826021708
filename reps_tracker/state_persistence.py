"""Bridge between the Streamlit session state and a storage backend.

The stored payload is the record lists of :mod:`reps_tracker.state` plus the
settings mapping, tagged with ``STATE_VERSION``. Files written before the
version tag existed are read as version 0 and migrated record by record when
``state.get_*`` first touches them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

import streamlit as st
from pydantic_core import to_jsonable_python

from reps_tracker.constants import SS_CATEGORIES, SS_COMPLETIONS, SS_SETTINGS, SS_TASKS
from reps_tracker.storage import StorageBackend

LOGGER = logging.getLogger(__name__)

STATE_VERSION = 1
VERSION_KEY = "version"
RECORD_KEYS: tuple[str, ...] = (SS_TASKS, SS_COMPLETIONS, SS_CATEGORIES)
PERSISTED_KEYS: tuple[str, ...] = (*RECORD_KEYS, SS_SETTINGS)

_storage_backend: StorageBackend | None = None
_last_persisted_fingerprint: str | None = None


def configure_storage(backend: StorageBackend | None) -> None:
    """Register a storage backend to persist state changes."""

    global _storage_backend, _last_persisted_fingerprint

    _storage_backend = backend
    _last_persisted_fingerprint = None


def stored_version(persisted: Mapping[str, Any]) -> int:
    raw = persisted.get(VERSION_KEY, 0)
    return raw if isinstance(raw, int) and not isinstance(raw, bool) else 0


def extract_records(persisted: Mapping[str, Any]) -> dict[str, Any]:
    """Pick the managed keys out of a stored payload, dropping values of the wrong shape.

    Record keys must hold lists and the settings a mapping. Everything else in
    the payload is ignored.
    """

    records: dict[str, Any] = {}
    for key in RECORD_KEYS:
        if key not in persisted:
            continue
        value = persisted[key]
        if isinstance(value, list):
            records[key] = value
        else:
            LOGGER.warning("Ignoring stored %s: expected a list, got %s", key, type(value).__name__)

    settings = persisted.get(SS_SETTINGS)
    if isinstance(settings, Mapping):
        records[SS_SETTINGS] = dict(settings)
    elif settings is not None:
        LOGGER.warning("Ignoring stored settings: expected a mapping, got %s", type(settings).__name__)
    return records


def load_persisted_state() -> None:
    """Hydrate the Streamlit session state from the configured backend."""

    if _storage_backend is None:
        return

    try:
        persisted = _storage_backend.load_state()
    except Exception as exc:  # pragma: no cover - defensive logging
        LOGGER.warning("Failed to load persisted state: %s", exc)
        st.warning("Saved data could not be loaded.", icon="⚠️")
        return

    if not isinstance(persisted, Mapping):
        return

    version = stored_version(persisted)
    if version > STATE_VERSION:
        LOGGER.warning("Stored state has version %s, newer than supported %s", version, STATE_VERSION)
        st.warning("Saved data was written by a newer version and was not loaded.", icon="⚠️")
        return

    st.session_state.update(extract_records(persisted))


def persist_state() -> None:
    """Persist the managed session state keys using the configured backend."""

    global _last_persisted_fingerprint

    if _storage_backend is None:
        return

    payload: dict[str, Any] = {VERSION_KEY: STATE_VERSION}
    payload.update({key: st.session_state.get(key) for key in PERSISTED_KEYS if key in st.session_state})
    serialized_payload = json.dumps(payload, default=to_jsonable_python, sort_keys=True)
    if _last_persisted_fingerprint == serialized_payload:
        return

    try:
        _storage_backend.save_state(payload)
        _last_persisted_fingerprint = serialized_payload
    except Exception as exc:  # pragma: no cover - defensive logging
        LOGGER.warning("Failed to persist state: %s", exc)


__all__ = [
    "PERSISTED_KEYS",
    "RECORD_KEYS",
    "STATE_VERSION",
    "configure_storage",
    "extract_records",
    "load_persisted_state",
    "persist_state",
    "stored_version",
]
