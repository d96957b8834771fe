from .duration import format_duration
from .executor import (
    Executor,
    TaskExecution,
    TaskExecutions,
    default_exit_handler,
    default_start_handler,
    run,
)
from .naming import format_task_name, get_color, prepare_tasks
from .types import (
    DEFAULT_COLORS,
    ChildOptions,
    ExecutionResult,
    Options,
    PreparedTask,
    Task,
)

__all__ = [
    "DEFAULT_COLORS",
    "ChildOptions",
    "ExecutionResult",
    "Executor",
    "Options",
    "PreparedTask",
    "Task",
    "TaskExecution",
    "TaskExecutions",
    "default_exit_handler",
    "default_start_handler",
    "format_duration",
    "format_task_name",
    "get_color",
    "prepare_tasks",
    "run",
]
