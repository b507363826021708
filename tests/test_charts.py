from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from reps_tracker.charts import (
    PRIMARY_COLOR,
    build_category_rate_figure,
    build_monthly_trend_figure,
    build_weekly_rhythm_figure,
    build_year_in_pixels_figure,
)
from reps_tracker.days import CalendarContext
from reps_tracker.history import MonthlyTrend, RhythmEntry, year_in_pixels
from reps_tracker.models import Completion
from reps_tracker.stats import EMPTY_ROLLUP


def test_weekly_rhythm_highlights_busiest_day() -> None:
    rhythm: list[RhythmEntry] = [
        {"weekday": 2, "label": "Mon", "completions": 4},
        {"weekday": 3, "label": "Tue", "completions": 1},
    ]

    figure = build_weekly_rhythm_figure(rhythm)

    trace = figure.data[0]
    assert trace.type == "bar"
    assert list(trace.x) == ["Mon", "Tue"]
    assert list(trace.marker.color)[0] == PRIMARY_COLOR


def test_monthly_trend_title_shows_change() -> None:
    figure = build_monthly_trend_figure(MonthlyTrend(this_month=6, last_month=4, change_percent=50))

    assert "+50%" in figure.layout.title.text
    assert list(figure.data[0].y) == [4, 6]


def test_year_in_pixels_heatmap_has_month_rows(calendar: CalendarContext) -> None:
    records = [Completion(task_id="t", completed_at=datetime(2026, 1, 2, 8, tzinfo=timezone.utc))]

    figure = build_year_in_pixels_figure(year_in_pixels(records, 2026, calendar))

    trace = figure.data[0]
    assert trace.type == "heatmap"
    assert len(trace.z) == 12
    assert trace.z[0][1] == 1
    assert trace.z[1][0] is None
    assert trace.z[0][0] == 0


def test_category_rate_skips_groups_without_rate() -> None:
    health = replace(EMPTY_ROLLUP, task_count=1, completion_rate=80)

    figure = build_category_rate_figure({"Health": health, "Chores": EMPTY_ROLLUP, None: health})

    assert list(figure.data[0].x) == ["Health", "Uncategorized"]
    assert list(figure.data[0].y) == [80, 80]
