"""Central constants for Streamlit session state keys and defaults."""

SS_TASKS: str = "tasks"
SS_COMPLETIONS: str = "completions"
SS_CATEGORIES: str = "categories"
SS_SETTINGS: str = "settings"

SETTINGS_FIRST_WEEKDAY_KEY: str = "first_weekday"
SETTINGS_TIMEZONE_KEY: str = "timezone"

NEW_TASK_TITLE_KEY: str = "new_task_title"
NEW_TASK_CATEGORY_KEY: str = "new_task_category"
NEW_TASK_RECURRENCE_KEY: str = "new_task_recurrence"
NEW_TASK_WEEKDAYS_KEY: str = "new_task_weekdays"
NEW_TASK_MONTH_DAYS_KEY: str = "new_task_month_days"
NEW_TASK_START_DATE_KEY: str = "new_task_start_date"
STATS_SELECTED_TASK_KEY: str = "stats_selected_task"
STATS_SELECTED_YEAR_KEY: str = "stats_selected_year"

DEFAULT_HEATMAP_DAYS: int = 30
PENDING_DELETE_TASK_KEY: str = "pending_delete_task"
STORAGE_LOADED_KEY: str = "_storage_loaded"

TODAY_PAGE_LABEL: str = "Today"
TASKS_PAGE_LABEL: str = "Tasks"
STATS_PAGE_LABEL: str = "Statistics"
