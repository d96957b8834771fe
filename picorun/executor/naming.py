from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Sequence

from rich.color import ColorSystem
from rich.style import Style
from rich.text import Text

from .types import DEFAULT_COLORS, Options, PreparedTask, Task

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\S+")


def get_color(index: int, colors: Sequence[str] = DEFAULT_COLORS) -> str:
    return colors[index % len(colors)]


def style_text(color: str, text: str) -> str:
    """Wrap ``text`` in the ANSI codes for ``color`` (any rich color name)."""
    return Style(color=color).render(text, color_system=ColorSystem.STANDARD)


def format_task_name(
    task: PreparedTask, index: int, colors: Sequence[str] = DEFAULT_COLORS
) -> str:
    color = task.color or get_color(index, colors)
    return style_text(color, task.name)


def visible_width(label: str) -> int:
    return Text.from_ansi(label).cell_len


def compile_filter(pattern: str) -> re.Pattern[str]:
    """Glob to regex: ``*`` is any run, ``?`` any one character."""
    parts = []
    for char in pattern:
        match char:
            case "*":
                parts.append(".*")
            case "?":
                parts.append(".")
            case _:
                parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _command_token(command: str) -> str:
    match = _TOKEN.match(command)
    return match.group(0) if match else ""


def resolve_names(tasks: Sequence[Task]) -> list[str]:
    """Name every task, falling back to ``[index]`` on empty or clashing names.

    Clashes are checked against the whole list, before any filtering.
    """
    explicit = {task.name for task in tasks if task.name}
    derived = Counter(_command_token(task.command) for task in tasks if not task.name)

    names: list[str] = []
    for index, task in enumerate(tasks):
        if task.name:
            names.append(task.name)
            continue

        token = _command_token(task.command)
        if not token or token in explicit or derived[token] > 1:
            names.append(f"[{index}]")
        else:
            names.append(token)

    return names


def prepare_tasks(tasks: Sequence[Task], options: Options) -> list[PreparedTask]:
    patterns = [compile_filter(pattern) for pattern in options.filter]
    formatter = options.format_task_name or format_task_name
    colors = tuple(options.colors)

    prepared: list[PreparedTask] = []
    for index, (task, name) in enumerate(zip(tasks, resolve_names(tasks))):
        if patterns and not any(p.fullmatch(name) for p in patterns):
            logger.debug("Task %s filtered out", name)
            continue

        item = PreparedTask(
            command=task.command,
            index=index,
            name=name,
            color=task.color,
        )
        item.label = formatter(item, index, colors)
        prepared.append(item)

    if options.pad_task_names and prepared:
        width = max(visible_width(item.label) for item in prepared)
        for item in prepared:
            item.label = " " * (width - visible_width(item.label)) + item.label

    return prepared
