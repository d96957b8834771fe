from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from picorun.config import ConfigError, load_project
from picorun.executor import Options, Task, prepare_tasks, run

from .args import build_parser, with_default_subcommand

logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(
            with_default_subcommand(sys.argv[1:] if argv is None else argv)
        )
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        match args.command:
            case "run":
                return cmd_run(args)
            case "list":
                return cmd_list(args)
            case _:
                return 2

    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def cmd_run(args: argparse.Namespace) -> int:
    tasks, options = _collect(args)
    if args.no_pad:
        options.pad_task_names = False
    return asyncio.run(_run_batch(tasks, options))


def cmd_list(args: argparse.Namespace) -> int:
    tasks, options = _collect(args)
    options.pad_task_names = False
    options.format_task_name = lambda task, index, colors: task.name
    for task in prepare_tasks(tasks, options):
        print(task.name)
    return 0


def _collect(args: argparse.Namespace) -> tuple[list[Task], Options]:
    tasks: list[Task] = []
    options = Options(pad_task_names=True)

    if args.config:
        project = load_project(args.config)
        tasks.extend(project.tasks)
        options = project.to_options()

    names = args.names.split(",") if args.names else []
    for index, command in enumerate(args.commands):
        name = names[index].strip() if index < len(names) else ""
        tasks.append(Task(command=command, name=name or None))

    if not tasks:
        raise ConfigError("No commands given")

    options.filter = [*options.filter, *args.filter]
    return tasks, options


async def _run_batch(tasks: list[Task], options: Options) -> int:
    executions = await run(tasks, options)
    results = await executions
    failed = [r for r in results if r.exit_code != 0]
    logger.debug("%d of %d tasks failed", len(failed), len(results))
    return 1 if failed else 0
