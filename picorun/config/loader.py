import json
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from picorun.executor.types import Task

from .types import ConfigError, ProjectConfig, UnsupportedConfigFormatError

TASK_KEYS = {"command", "name", "color"}
OPTION_KEYS = {"pad_task_names", "filter", "colors", "cwd", "env"}

FORMATS = {".yaml": "yaml", ".yml": "yaml", ".toml": "toml", ".json": "json"}


def load_project(path: str | Path) -> ProjectConfig:
    """Read a task file and build its ProjectConfig.

    Every problem with the file, from a missing path to a bad option value,
    surfaces as a ConfigError naming where it went wrong.
    """
    resolved = Path(path).expanduser().resolve()

    if not resolved.is_file():
        reason = "is not a file" if resolved.exists() else "does not exist"
        raise ConfigError(f"Task file {resolved} {reason}")

    raw = _parse_file(resolved, _detect_format(resolved))
    return _build_project_config(raw)


def _detect_format(path: Path) -> str:
    try:
        return FORMATS[path.suffix.lower()]
    except KeyError:
        supported = ", ".join(sorted(FORMATS))
        raise UnsupportedConfigFormatError(
            f"Unsupported task file extension {path.suffix or '(none)'!r}; use one of {supported}"
        ) from None


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        match fmt:
            case "yaml":
                raw = yaml.safe_load(text)
            case "toml":
                raw = tomllib.loads(text)
            case _:
                raw = json.loads(text)
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"{path}: cannot parse as {fmt.upper()}: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise ConfigError(
            f"{path}: expected a mapping at the top level, got {type(raw).__name__}"
        )

    return raw


def _build_project_config(raw: Mapping[str, Any]) -> ProjectConfig:
    if "tasks" not in raw:
        raise ConfigError("Task file has no 'tasks' list")

    if not isinstance(raw["tasks"], list):
        raise ConfigError(f"'tasks' must be a list, got {type(raw['tasks']).__name__}")

    if len(raw["tasks"]) < 1:
        raise ConfigError("'tasks' is empty")

    for key in raw.keys():
        if key not in ("tasks", "options"):
            raise ConfigError(f"Unknown top-level key {key!r}")

    tasks = [_build_task(index, entry) for index, entry in enumerate(raw["tasks"])]
    project = ProjectConfig(tasks=tasks)

    if "options" in raw:
        _apply_options(project, raw["options"])

    return project


def _build_task(index: int, entry: Any) -> Task:
    where = f"tasks[{index}]"

    if isinstance(entry, str):
        entry = {"command": entry}

    if not isinstance(entry, Mapping):
        raise ConfigError(f"{where}: a task must be a command string or a mapping")

    for field in entry.keys():
        if field not in TASK_KEYS:
            raise ConfigError(f"{where}: unknown key {field!r}")

    if "command" not in entry:
        raise ConfigError(f"{where}: missing 'command'")

    if not isinstance(entry["command"], str):
        raise ConfigError(f"{where}: 'command' must be a string")

    if len(entry["command"].strip()) < 1:
        raise ConfigError(f"{where}: 'command' is blank")

    name = _optional_string(entry, "name", where)
    color = _optional_string(entry, "color", where)

    return Task(command=entry["command"].strip(), name=name, color=color)


def _optional_string(entry: Mapping[str, Any], key: str, where: str) -> str | None:
    if key not in entry or entry[key] is None:
        return None

    if not isinstance(entry[key], str):
        raise ConfigError(f"{where}: '{key}' must be a string")

    value = entry[key].strip()
    return value or None


def _apply_options(project: ProjectConfig, raw: Any) -> None:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'options' must be a mapping, got {type(raw).__name__}")

    for key in raw.keys():
        if key not in OPTION_KEYS:
            raise ConfigError(f"options: unknown key {key!r}")

    if "pad_task_names" in raw:
        if not isinstance(raw["pad_task_names"], bool):
            raise ConfigError("options: 'pad_task_names' must be true or false")
        project.pad_task_names = raw["pad_task_names"]

    if "filter" in raw:
        project.filter = _string_list(raw["filter"], "filter")

    if "colors" in raw:
        colors = _string_list(raw["colors"], "colors")
        if len(colors) < 1:
            raise ConfigError("options: 'colors' is empty")
        project.colors = tuple(colors)

    if "cwd" in raw:
        if not isinstance(raw["cwd"], str):
            raise ConfigError("options: 'cwd' must be a string")

        if len(raw["cwd"].strip()) < 1:
            raise ConfigError("options: 'cwd' is blank")

        project.cwd = raw["cwd"].strip()

    if "env" in raw:
        if not isinstance(raw["env"], Mapping):
            raise ConfigError("options: 'env' must be a mapping")

        for key, item in raw["env"].items():
            if not isinstance(key, str):
                raise ConfigError(f"options: env key {key!r} must be a string")

            if len(key.strip()) < 1:
                raise ConfigError("options: env keys can't be blank")

            if not isinstance(item, str):
                raise ConfigError(f"options: env value for {key!r} must be a string")

            project.env[key.strip()] = item


def _string_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"options: '{key}' must be a list")

    for item in value:
        if not isinstance(item, str) or len(item.strip()) < 1:
            raise ConfigError(f"options: {item!r} in '{key}' must be a non-empty string")

    return [item.strip() for item in value]
