from dataclasses import dataclass, field

from picorun.executor.types import DEFAULT_COLORS, ChildOptions, Options, Task


@dataclass
class ProjectConfig:
    tasks: list[Task]
    pad_task_names: bool = True
    filter: list[str] = field(default_factory=list)
    colors: tuple[str, ...] = DEFAULT_COLORS
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __iter__(self):
        yield from self.tasks

    def __len__(self):
        return len(self.tasks)

    def to_options(self, **overrides) -> Options:
        options = Options(
            child_options=ChildOptions(cwd=self.cwd, env=dict(self.env)),
            colors=self.colors,
            pad_task_names=self.pad_task_names,
            filter=list(self.filter),
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options


class ConfigError(Exception):
    """A task file that can't be read or doesn't describe a valid batch."""


class UnsupportedConfigFormatError(ConfigError):
    pass
