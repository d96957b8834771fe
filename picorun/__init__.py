from .executor import (
    DEFAULT_COLORS,
    ChildOptions,
    ExecutionResult,
    Options,
    Task,
    TaskExecution,
    TaskExecutions,
    default_exit_handler,
    default_start_handler,
    format_duration,
    format_task_name,
    get_color,
    run,
)

__all__ = [
    "DEFAULT_COLORS",
    "ChildOptions",
    "ExecutionResult",
    "Options",
    "Task",
    "TaskExecution",
    "TaskExecutions",
    "default_exit_handler",
    "default_start_handler",
    "format_duration",
    "format_task_name",
    "get_color",
    "run",
]
