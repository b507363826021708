from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Dict

import pytest
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reps_tracker.days import CalendarContext  # noqa: E402
from reps_tracker.state_persistence import configure_storage  # noqa: E402

TODAY = date(2026, 1, 31)


@pytest.fixture()
def session_state(monkeypatch: pytest.MonkeyPatch) -> Dict[str, object]:
    state: Dict[str, object] = {}
    monkeypatch.setattr(st, "session_state", state, raising=False)
    configure_storage(None)
    return state


@pytest.fixture()
def calendar() -> CalendarContext:
    return CalendarContext.fixed(TODAY)
