from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Optional, Sequence

import streamlit as st

from reps_tracker.charts import (
    build_category_rate_figure,
    build_monthly_trend_figure,
    build_weekly_rhythm_figure,
    build_year_in_pixels_figure,
)
from reps_tracker.constants import (
    DEFAULT_HEATMAP_DAYS,
    NEW_TASK_CATEGORY_KEY,
    NEW_TASK_MONTH_DAYS_KEY,
    NEW_TASK_RECURRENCE_KEY,
    NEW_TASK_START_DATE_KEY,
    NEW_TASK_TITLE_KEY,
    NEW_TASK_WEEKDAYS_KEY,
    PENDING_DELETE_TASK_KEY,
    SETTINGS_FIRST_WEEKDAY_KEY,
    SETTINGS_TIMEZONE_KEY,
    STATS_PAGE_LABEL,
    STATS_SELECTED_TASK_KEY,
    STATS_SELECTED_YEAR_KEY,
    STORAGE_LOADED_KEY,
    TASKS_PAGE_LABEL,
    TODAY_PAGE_LABEL,
)
from reps_tracker.days import CalendarContext, Weekday, resolve_timezone
from reps_tracker.history import (
    completion_heatmap,
    month_grid,
    monthly_trend,
    weekly_rhythm,
    year_in_pixels,
)
from reps_tracker.models import Completion, Task
from reps_tracker.recurrence import RecurrenceKind, describe_rule
from reps_tracker.state import (
    configure_storage,
    get_calendar,
    get_categories,
    get_completions,
    get_settings,
    get_tasks,
    init_state,
    load_persisted_state,
    reset_state,
    update_settings,
)
from reps_tracker.stats import StatisticsEngine
from reps_tracker.storage import FileStorageBackend
from reps_tracker.tasks import (
    add_category,
    add_task,
    deactivate_task,
    delete_category,
    delete_task,
    get_active_tasks,
    get_today_tasks,
    reorder_tasks,
    toggle_completion,
    update_task,
)

LOGGER = logging.getLogger(__name__)

NO_CATEGORY_LABEL = "No category"


def _inject_dark_theme_styles() -> None:
    st.markdown(
        """
        <style>
            :root {
                --reps-primary: #1c9c82;
                --reps-surface: #10211f;
                --reps-surface-alt: #0e1917;
                --reps-border: #1f4a42;
                --reps-text: #f3f7f5;
            }

            .stApp {
                background: linear-gradient(160deg, #0f1b19 0%, #0c1412 60%, #0b1311 100%);
                color: var(--reps-text);
            }

            div[data-testid="stMetric"] {
                background: linear-gradient(145deg, var(--reps-surface), var(--reps-surface-alt));
                border: 1px solid var(--reps-border);
                border-radius: 14px;
                padding: 12px;
            }

            .reps-badge {
                color: var(--reps-primary);
                font-size: 0.8rem;
                font-weight: 600;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _configure_logging() -> None:
    level_name = os.getenv("REPS_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING))


def _bootstrap_storage() -> FileStorageBackend:
    backend = FileStorageBackend()
    configure_storage(backend)
    if not st.session_state.get(STORAGE_LOADED_KEY, False):
        load_persisted_state()
        st.session_state[STORAGE_LOADED_KEY] = True
    return backend


def _category_options() -> list[Optional[str]]:
    return [None, *(category.name for category in get_categories())]


def _category_label(name: Optional[str]) -> str:
    return name or NO_CATEGORY_LABEL


def _toggle_task(task_id: str, day: Optional[date] = None) -> None:
    completed = toggle_completion(task_id, day)
    LOGGER.debug("Task %s toggled on %s: %s", task_id, day or "today", completed)


def _render_delete_confirmation(task: Task, *, key_prefix: str) -> None:
    pending_key = f"{PENDING_DELETE_TASK_KEY}_{task.id}"

    if st.session_state.get(pending_key):
        st.warning("Are you sure? The task and its whole history will be removed.")
        confirm_cols = st.columns(2)
        if confirm_cols[0].button("Yes, delete", key=f"{key_prefix}_confirm_{task.id}"):
            st.session_state.pop(pending_key, None)
            delete_task(task.id)
            st.success("Task deleted.")
            st.rerun()

        if confirm_cols[1].button("Cancel", key=f"{key_prefix}_cancel_{task.id}"):
            st.session_state.pop(pending_key, None)
            st.rerun()
        return

    if st.button("Delete", key=f"{key_prefix}_delete_{task.id}", help="Remove task and completions"):
        st.session_state[pending_key] = True
        st.rerun()


def _render_task_badge(task: Task) -> None:
    badge = describe_rule(task.recurrence)
    details = [part for part in (badge, task.category) if part]
    if details:
        st.markdown(f"<span class='reps-badge'>{' · '.join(details)}</span>", unsafe_allow_html=True)


def render_today_section(calendar: CalendarContext) -> None:
    st.header("Today")
    st.caption(calendar.today().strftime("%A, %d %B %Y"))

    today_tasks = get_today_tasks(calendar=calendar)
    if not today_tasks:
        st.success("Nothing left for today.")
        return

    for task in today_tasks:
        with st.container(border=True):
            columns = st.columns([0.1, 0.9])
            with columns[0]:
                st.checkbox(
                    "Done",
                    value=False,
                    label_visibility="collapsed",
                    key=f"today_done_{task.id}",
                    on_change=_toggle_task,
                    kwargs={"task_id": task.id},
                )
            with columns[1]:
                st.markdown(f"**{task.title}**")
                _render_task_badge(task)


def render_add_task_form(calendar: CalendarContext) -> None:
    with st.expander("New task", expanded=False):
        title = st.text_input("Title", key=NEW_TASK_TITLE_KEY)
        category = st.selectbox(
            "Category",
            _category_options(),
            format_func=_category_label,
            key=NEW_TASK_CATEGORY_KEY,
        )
        kind = st.radio(
            "Repeat",
            list(RecurrenceKind),
            format_func=lambda option: option.label,
            horizontal=True,
            key=NEW_TASK_RECURRENCE_KEY,
        )
        st.caption(kind.subtitle)

        weekdays: list[Weekday] = []
        month_days: list[int] = []
        start_date: Optional[date] = None
        if kind is RecurrenceKind.WEEKLY:
            weekdays = st.multiselect(
                "Weekdays",
                calendar.weekday_order(),
                format_func=lambda weekday: weekday.short_label,
                key=NEW_TASK_WEEKDAYS_KEY,
            )
        elif kind is RecurrenceKind.MONTHLY:
            month_days = st.multiselect("Days of the month", list(range(1, 32)), key=NEW_TASK_MONTH_DAYS_KEY)
        else:
            start_date = st.date_input(
                "Start date (optional)",
                value=None,
                min_value=calendar.today(),
                key=NEW_TASK_START_DATE_KEY,
            )

        if st.button("Add task", type="primary"):
            try:
                task = add_task(
                    title,
                    category=category,
                    recurrence=kind,
                    weekdays=[int(weekday) for weekday in weekdays],
                    month_days=month_days,
                    start_date=start_date,
                    calendar=calendar,
                )
            except ValueError as exc:
                st.error(str(exc))
            else:
                st.success(f"Added “{task.title}”.")
                for key in (NEW_TASK_TITLE_KEY, NEW_TASK_WEEKDAYS_KEY, NEW_TASK_MONTH_DAYS_KEY, NEW_TASK_START_DATE_KEY):
                    st.session_state.pop(key, None)
                st.rerun()


def _render_task_editor(task: Task, *, calendar: CalendarContext) -> None:
    with st.form(key=f"edit_form_{task.id}"):
        title = st.text_input("Title", value=task.title)
        options = _category_options()
        category = st.selectbox(
            "Category",
            options,
            index=options.index(task.category) if task.category in options else 0,
            format_func=_category_label,
        )
        kinds = list(RecurrenceKind)
        kind = st.selectbox(
            "Repeat",
            kinds,
            index=kinds.index(task.recurrence_kind),
            format_func=lambda option: option.label,
        )
        current_weekdays = [Weekday(day) for day in sorted(getattr(task.recurrence, "weekdays", ()))]
        weekdays = st.multiselect(
            "Weekdays (weekly)",
            calendar.weekday_order(),
            default=current_weekdays,
            format_func=lambda weekday: weekday.short_label,
        )
        month_days = st.multiselect(
            "Days of the month (monthly)",
            list(range(1, 32)),
            default=sorted(getattr(task.recurrence, "month_days", ())),
        )
        start_date = st.date_input("Start date (one-time and daily)", value=task.start_date)
        reactivate = False
        if task.recurrence_kind is RecurrenceKind.NONE:
            reactivate = st.checkbox("Reopen task (clears its completion)")

        if st.form_submit_button("Save"):
            try:
                update_task(
                    task.id,
                    title=title,
                    category=category,
                    recurrence=kind,
                    weekdays=[int(weekday) for weekday in weekdays],
                    month_days=month_days,
                    start_date=start_date,
                    reactivate=reactivate,
                )
            except ValueError as exc:
                st.error(str(exc))
            else:
                st.rerun()


def _move_task(tasks: Sequence[Task], index: int, offset: int) -> None:
    ids = [task.id for task in tasks]
    target = index + offset
    if not 0 <= target < len(ids):
        return
    ids[index], ids[target] = ids[target], ids[index]
    reorder_tasks(ids)


def render_task_list(calendar: CalendarContext) -> None:
    st.header("Tasks")
    render_add_task_form(calendar)

    tasks = get_active_tasks()
    if not tasks:
        st.info("No tasks yet.")
        return

    engine = StatisticsEngine(calendar)
    completions = get_completions()
    for index, task in enumerate(tasks):
        records = [completion for completion in completions if completion.task_id == task.id]
        with st.container(border=True):
            columns = st.columns([0.1, 0.6, 0.15, 0.15])
            with columns[0]:
                st.checkbox(
                    "Done today",
                    value=engine.is_completed_today(task, records),
                    label_visibility="collapsed",
                    key=f"list_done_{task.id}",
                    on_change=_toggle_task,
                    kwargs={"task_id": task.id},
                )
            with columns[1]:
                st.markdown(f"**{task.title}**")
                _render_task_badge(task)
            with columns[2]:
                if st.button("↑", key=f"up_{task.id}", disabled=index == 0):
                    _move_task(tasks, index, -1)
                    st.rerun()
            with columns[3]:
                if st.button("↓", key=f"down_{task.id}", disabled=index == len(tasks) - 1):
                    _move_task(tasks, index, 1)
                    st.rerun()

            with st.expander("Edit"):
                _render_task_editor(task, calendar=calendar)
                action_cols = st.columns(2)
                with action_cols[0]:
                    if st.button("Archive", key=f"archive_{task.id}", help="Hide task, keep history"):
                        deactivate_task(task.id)
                        st.rerun()
                with action_cols[1]:
                    _render_delete_confirmation(task, key_prefix="list")


def _render_heatmap_strip(days: set[date], *, today: date) -> None:
    cells = completion_heatmap(sorted(days), window=DEFAULT_HEATMAP_DAYS, today=today)
    strip = "".join("🟩" if cell["completed"] else "⬛" for cell in cells)
    st.markdown(strip)
    st.caption(f"Last {DEFAULT_HEATMAP_DAYS} days")


def _render_month_calendar(task: Task, records: Sequence[Completion], *, calendar: CalendarContext) -> None:
    today = calendar.today()
    done_days = {calendar.day_of(completion.completed_at) for completion in records}
    st.markdown(f"#### {today.strftime('%B %Y')}")

    header = st.columns(7)
    for column, weekday in zip(header, calendar.weekday_order()):
        column.caption(weekday.short_label)

    for week in month_grid(today.year, today.month, calendar.first_weekday):
        columns = st.columns(7)
        for column, day_number in zip(columns, week):
            if day_number is None:
                continue
            day = today.replace(day=day_number)
            label = f"✓ {day_number}" if day in done_days else str(day_number)
            column.button(
                label,
                key=f"cal_{task.id}_{day.isoformat()}",
                disabled=day > today,
                on_click=_toggle_task,
                kwargs={"task_id": task.id, "day": day},
            )


def render_task_statistics(task: Task, *, calendar: CalendarContext) -> None:
    engine = StatisticsEngine(calendar)
    records = get_completions(task.id)
    stats = engine.task_stats(task, records)

    metric_cols = st.columns(4)
    metric_cols[0].metric("Current streak", f"{stats.current_streak} d")
    metric_cols[1].metric("Best streak", f"{stats.best_streak} d")
    metric_cols[2].metric("Total", stats.total_completions)
    metric_cols[3].metric("Rate", "-" if stats.completion_rate is None else f"{stats.completion_rate}%")

    days = engine.ledger_for(task, records).occurrence_days()
    _render_heatmap_strip(days, today=calendar.today())
    _render_month_calendar(task, records, calendar=calendar)

    chart_cols = st.columns(2)
    with chart_cols[0]:
        st.plotly_chart(build_weekly_rhythm_figure(weekly_rhythm(records, calendar)), use_container_width=True)
    with chart_cols[1]:
        st.plotly_chart(build_monthly_trend_figure(monthly_trend(records, calendar)), use_container_width=True)

    current_year = calendar.today().year
    year = st.selectbox(
        "Year",
        list(range(current_year, current_year - 5, -1)),
        key=f"{STATS_SELECTED_YEAR_KEY}_{task.id}",
    )
    st.plotly_chart(build_year_in_pixels_figure(year_in_pixels(records, year, calendar)), use_container_width=True)


def render_overview(calendar: CalendarContext) -> None:
    engine = StatisticsEngine(calendar)
    tasks = get_active_tasks()
    completions = get_completions()

    overall = engine.rollup(tasks, completions)
    metric_cols = st.columns(4)
    metric_cols[0].metric("Active days", overall.active_days)
    metric_cols[1].metric("Current streak", f"{overall.current_streak} d")
    metric_cols[2].metric("Best streak", f"{overall.best_streak} d")
    metric_cols[3].metric("Rate", "-" if overall.completion_rate is None else f"{overall.completion_rate}%")

    rollups = engine.category_rollups(tasks, completions)
    if any(rollup.completion_rate is not None for rollup in rollups.values()):
        st.plotly_chart(build_category_rate_figure(rollups), use_container_width=True)


def render_statistics_section(calendar: CalendarContext) -> None:
    st.header("Statistics")
    render_overview(calendar)

    tasks = get_tasks()
    if not tasks:
        st.info("Add a task to see its statistics.")
        return

    task_by_id = {task.id: task for task in tasks}
    selected_id = st.selectbox(
        "Task",
        list(task_by_id),
        format_func=lambda task_id: task_by_id[task_id].title,
        key=STATS_SELECTED_TASK_KEY,
    )
    if selected_id in task_by_id:
        render_task_statistics(task_by_id[selected_id], calendar=calendar)


def render_settings_panel(panel: Any) -> None:
    settings = get_settings()
    with panel:
        weekdays = list(Weekday)
        current_first = settings.get(SETTINGS_FIRST_WEEKDAY_KEY) or int(Weekday.MONDAY)
        first_weekday = st.selectbox(
            "First day of the week",
            weekdays,
            index=weekdays.index(Weekday(int(current_first))),
            format_func=lambda weekday: weekday.name.title(),
        )
        timezone_name = st.text_input(
            "Time zone (IANA, empty for system)",
            value=settings.get(SETTINGS_TIMEZONE_KEY) or "",
        )
        if st.button("Save settings"):
            try:
                resolve_timezone(timezone_name.strip() or None)
            except ValueError as exc:
                st.error(str(exc))
            else:
                update_settings(
                    **{
                        SETTINGS_FIRST_WEEKDAY_KEY: int(first_weekday),
                        SETTINGS_TIMEZONE_KEY: timezone_name.strip() or None,
                    }
                )
                st.rerun()

        st.markdown("#### Categories")
        new_category = st.text_input("New category")
        if st.button("Add category") and new_category.strip():
            try:
                add_category(new_category)
            except ValueError as exc:
                st.error(str(exc))
            else:
                st.rerun()
        for category in get_categories():
            if st.button(f"Remove {category.name}", key=f"remove_category_{category.id}"):
                delete_category(category.name)
                st.rerun()

        st.divider()
        if st.button("Reset all data", help="Deletes every task and completion"):
            reset_state()
            st.rerun()


def render_navigation() -> str:
    st.sidebar.title("Navigation")
    navigation_options = [TODAY_PAGE_LABEL, TASKS_PAGE_LABEL, STATS_PAGE_LABEL]
    selection = st.sidebar.radio(
        "Section",
        navigation_options,
        index=0,
        label_visibility="collapsed",
    )
    st.sidebar.divider()
    return selection


def main() -> None:
    st.set_page_config(
        page_title="Reps Tracker",
        page_icon="✅",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    _configure_logging()
    _inject_dark_theme_styles()
    storage_backend = _bootstrap_storage()
    init_state()

    selection = render_navigation()
    render_settings_panel(st.sidebar.expander("Settings", expanded=False))
    st.sidebar.caption(f"Data: {storage_backend.path}")

    calendar = get_calendar()
    st.title("Reps Tracker")

    if selection == TODAY_PAGE_LABEL:
        render_today_section(calendar)
    elif selection == TASKS_PAGE_LABEL:
        render_task_list(calendar)
    else:
        render_statistics_section(calendar)


if __name__ == "__main__":
    main()
