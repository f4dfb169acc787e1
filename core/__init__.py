"""Routinely core library: routines, completion history, and derived views.

Public API re-exports for convenient imports:
    from core import open_store, save_routine, complete_task, get_next_task, ...
"""

# Workspace, settings & logging
from core.workspace import (
    workspace_root,
    configure_logging,
    load_settings,
    save_settings,
    get_user_timezone,
    config_path,
    data_dir,
    history_dir,
    database_path,
)

# Errors
from core.errors import StoreError, CorruptRecordError

# Timestamps
from core.timestamps import (
    format_utc,
    utc_now,
    parse_timestamp,
    normalize_timestamp,
    local_date,
)

# Persistence
from core.store import RoutineStore, open_store
from core.store_json import JsonRoutineStore
from core.store_sqlite import SqliteRoutineStore

# Routines
from core.routines import (
    validate_routine,
    list_routines,
    get_routine,
    save_routine,
    delete_routine,
    find_task,
    new_task,
    add_task,
    update_task,
    remove_task,
    move_task,
    reindex_tasks,
)

# Completion history
from core.history import (
    complete_task,
    get_history,
    get_task_history,
    get_all_histories,
    delete_completion,
    delete_completion_by_id,
)

# Derived views
from core.views import (
    get_completions_for_task,
    completion_counts,
    get_next_task,
    get_next_task_for_day,
    completions_on,
    is_completed_today,
)
from core.calendar_view import (
    generate_month_grid,
    month_range,
    shift_month,
    aggregate_completions_by_date,
)

# Models
from core.models import (
    UNKNOWN_TASK,
    UNKNOWN_ROUTINE,
    Task,
    Routine,
    RoutineSummary,
    Completion,
    CalendarDay,
    RoutineDayGroup,
    Settings,
)
