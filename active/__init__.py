"""Active core library — habit tracking model, storage and queries.

Public API re-exports for convenient imports:
    from active import Store, HabitStorage, HabitsQuery, ...
"""

# Workspace & paths
from active.workspace import (
    workspace_root,
    get_user_timezone,
    store_path,
    profile_path,
    hooks_config_path,
)

# Errors
from active.errors import (
    ActiveError,
    ContractViolation,
    StoreError,
    SchedulingError,
)

# Dates
from active.dates import (
    beginning_of_day,
    end_of_day,
    add_days,
    add_minutes,
    add_years,
    difference_in_days,
    is_in_range,
    is_in_today,
    parse_fire_time,
    format_fire_time,
)

# Models
from active.models import (
    HabitColor,
    DayStatus,
    User,
    Day,
    HabitDay,
    DaysChallenge,
    Notification,
    Habit,
    ChallengeProgress,
)

# Store
from active.store import (
    Store,
    Context,
    ChangeSet,
)

# Days & challenges
from active.days import (
    DayStorage,
    DaysChallengeStorage,
    challenge_days,
    habit_days,
    execution_status,
)

# Notifications
from active.notifications import (
    NotificationScheduler,
    HookNotificationScheduler,
    NotificationStorage,
)

# Habits, users & queries
from active.habits import HabitStorage
from active.users import UserStorage
from active.queries import HabitsQuery, HabitsChange

# Progress
from active.progress import (
    challenge_progress,
    habit_progress,
    current_streak,
)
