from __future__ import annotations

import argparse

SUBCOMMANDS = ("run", "list")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="picorun",
        description="Run commands in parallel with labelled output",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to a task file (.yml/.yaml, .toml, .json)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    # shared by run and list
    tasks = argparse.ArgumentParser(add_help=False)
    tasks.add_argument(
        "commands",
        nargs="*",
        help="Shell commands to run",
    )
    tasks.add_argument(
        "--names",
        default="",
        help="Comma separated names for the commands, in order",
    )
    tasks.add_argument(
        "-f",
        "--filter",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Only keep tasks whose name matches this glob (repeatable)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", parents=[tasks], help="Run commands in parallel")
    run.add_argument(
        "--no-pad",
        action="store_true",
        help="Do not pad task names to the same width",
    )

    # list
    subparsers.add_parser("list", parents=[tasks], help="List task names")

    return parser


def with_default_subcommand(argv: list[str]) -> list[str]:
    """Insert ``run`` when no subcommand is given, e.g. ``picorun "make a"``."""
    argv = list(argv)
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg == "--config":
            index += 2
        elif arg.startswith("--config=") or arg in ("-v", "--verbose"):
            index += 1
        else:
            break

    if index >= len(argv):
        if argv:
            argv.append("run")
        return argv

    if argv[index] not in SUBCOMMANDS and argv[index] not in ("-h", "--help"):
        argv.insert(index, "run")
    return argv
