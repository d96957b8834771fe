from __future__ import annotations

import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

DEFAULT_COLORS: tuple[str, ...] = ("yellow", "blue", "magenta", "cyan")


def _default_local_bin_dir() -> Path:
    return Path(".venv") / ("Scripts" if os.name == "nt" else "bin")


@dataclass(frozen=True)
class Task:
    command: str
    name: str | None = None
    color: str | None = None


@dataclass
class PreparedTask:
    command: str
    index: int
    name: str
    color: str | None = None
    label: str = ""
    # Partial line and the id of the stream it came from
    buffer: str = ""
    stream: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    exit_code: int | None
    signal_code: str | None
    duration_ms: float


@dataclass
class ChildOptions:
    cwd: str | Path | None = None
    env: dict[str, str] = field(default_factory=dict)


StartHandler = Callable[[Any, PreparedTask], None]
ExitHandler = Callable[[ExecutionResult, PreparedTask], None]
NameFormatter = Callable[[PreparedTask, int, tuple[str, ...]], str]
DurationFormatter = Callable[[float], str]


@dataclass
class Options:
    child_options: ChildOptions = field(default_factory=ChildOptions)
    stdout: TextIO | None = None
    stderr: TextIO | None = None
    colors: tuple[str, ...] = DEFAULT_COLORS
    pad_task_names: bool = False
    on_start: StartHandler | None = None
    on_exit: ExitHandler | None = None
    format_task_name: NameFormatter | None = None
    format_duration: DurationFormatter | None = None
    filter: list[str] = field(default_factory=list)
    local_bin_dir: str | Path = field(default_factory=_default_local_bin_dir)

    def stdout_stream(self) -> TextIO:
        return self.stdout if self.stdout is not None else sys.stdout

    def stderr_stream(self) -> TextIO:
        return self.stderr if self.stderr is not None else sys.stderr
