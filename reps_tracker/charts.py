from __future__ import annotations

from calendar import month_abbr
from typing import Mapping, Optional, Sequence

import plotly.graph_objects as go

from reps_tracker.history import MonthlyTrend, RhythmEntry, YearInPixels
from reps_tracker.stats import RollupStats

PRIMARY_COLOR = "#1C9C82"
MUTED_COLOR = "#4B6F67"
CATEGORY_COLORS = [
    "#1C9C82",
    "#1B7F6D",
    "#2FA48E",
    "#146853",
    "#35C2A1",
]
FONT_COLOR = "#E6F2EC"
GRID_COLOR = "#24544B"
EMPTY_CELL_COLOR = "#16302B"
UNCATEGORIZED_LABEL = "Uncategorized"


def _apply_dark_theme(figure: go.Figure) -> go.Figure:
    figure.update_layout(
        template="plotly_dark",
        font=dict(color=FONT_COLOR),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        xaxis=dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
        yaxis=dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
    )
    return figure


def build_weekly_rhythm_figure(rhythm: Sequence[RhythmEntry]) -> go.Figure:
    """Bar chart of completions per weekday; the busiest day is highlighted."""

    counts = [int(entry["completions"]) for entry in rhythm]
    peak = max(counts, default=0)
    colors = [PRIMARY_COLOR if peak and count == peak else MUTED_COLOR for count in counts]

    bar = go.Bar(
        x=[entry["label"] for entry in rhythm],
        y=counts,
        marker_color=colors,
        hovertemplate="<b>%{x}</b><br>Completions: %{y}<extra></extra>",
    )
    figure = go.Figure(data=[bar])
    figure.update_layout(
        title_text="Weekly rhythm",
        xaxis_title="Weekday",
        yaxis_title="Completions",
        bargap=0.35,
        margin=dict(t=60, r=10, b=40, l=10),
        showlegend=False,
    )
    figure.update_yaxes(rangemode="tozero")
    _apply_dark_theme(figure)
    return figure


def build_monthly_trend_figure(trend: MonthlyTrend) -> go.Figure:
    if trend.change_percent is None:
        title = "This month vs. last month"
    else:
        title = f"This month vs. last month ({trend.change_percent:+d}%)"

    bar = go.Bar(
        x=["Last month", "This month"],
        y=[trend.last_month, trend.this_month],
        marker_color=[MUTED_COLOR, PRIMARY_COLOR if trend.is_positive else "#E45858"],
        text=[str(trend.last_month), str(trend.this_month)],
        textposition="outside",
    )
    figure = go.Figure(data=[bar])
    figure.update_layout(
        title_text=title,
        yaxis_title="Completions",
        margin=dict(t=60, r=10, b=40, l=10),
        showlegend=False,
    )
    figure.update_yaxes(rangemode="tozero")
    _apply_dark_theme(figure)
    return figure


def build_year_in_pixels_figure(pixels: YearInPixels) -> go.Figure:
    """Heatmap with one row per month and one column per day of the month."""

    z: list[list[Optional[int]]] = []
    hover: list[list[str]] = []
    for month in pixels.months:
        row: list[Optional[int]] = [None] * 31
        labels: list[str] = [""] * 31
        for index, entry in enumerate(month):
            row[index] = None if entry["is_future"] else entry["completions"]
            labels[index] = f"{entry['date']}: {entry['completions']}"
        z.append(row)
        hover.append(labels)

    heatmap = go.Heatmap(
        z=z,
        x=list(range(1, 32)),
        y=[month_abbr[number] for number in range(1, 13)],
        text=hover,
        hovertemplate="%{text}<extra></extra>",
        colorscale=[[0.0, EMPTY_CELL_COLOR], [1.0, PRIMARY_COLOR]],
        zmin=0,
        zmax=max(pixels.best_day, 1),
        xgap=2,
        ygap=2,
        showscale=False,
    )
    figure = go.Figure(data=[heatmap])
    figure.update_layout(
        title_text=f"{pixels.year} in pixels",
        margin=dict(t=60, r=10, b=30, l=10),
    )
    figure.update_yaxes(autorange="reversed")
    _apply_dark_theme(figure)
    return figure


def build_category_rate_figure(rollups: Mapping[Optional[str], RollupStats]) -> go.Figure:
    """Completion rate per category; categories without recurring tasks are left out."""

    labels: list[str] = []
    rates: list[int] = []
    for category, rollup in rollups.items():
        if rollup.completion_rate is None:
            continue
        labels.append(category or UNCATEGORIZED_LABEL)
        rates.append(rollup.completion_rate)

    bar = go.Bar(
        x=labels,
        y=rates,
        marker_color=[CATEGORY_COLORS[index % len(CATEGORY_COLORS)] for index in range(len(labels))],
        text=[f"{rate}%" for rate in rates],
        textposition="outside",
    )
    figure = go.Figure(data=[bar])
    figure.update_layout(
        title_text="Completion rate by category",
        xaxis_title="Category",
        yaxis_title="Rate (%)",
        margin=dict(t=60, r=10, b=60, l=10),
    )
    figure.update_yaxes(range=[0, 110])
    _apply_dark_theme(figure)
    return figure


__all__ = [
    "build_category_rate_figure",
    "build_monthly_trend_figure",
    "build_weekly_rhythm_figure",
    "build_year_in_pixels_figure",
    "CATEGORY_COLORS",
    "PRIMARY_COLOR",
]
