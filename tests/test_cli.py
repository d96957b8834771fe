# tests/test_cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from picorun.cli import run_cli
from picorun.cli.args import with_default_subcommand


def _py(code: str) -> str:
    exe = str(Path(sys.executable))
    # This returns a shell command string. JSON will escape it safely.
    return f'"{exe}" -c "{code}"'


def _write_json_config(path: Path, tasks: list, **options) -> None:
    raw: dict = {"tasks": tasks}
    if options:
        raw["options"] = options
    path.write_text(json.dumps(raw), encoding="utf-8")


@pytest.mark.parametrize(
    "argv, expected",
    [
        (["echo hi"], ["run", "echo hi"]),
        (["run", "echo hi"], ["run", "echo hi"]),
        (["list"], ["list"]),
        (["--config", "x.yml"], ["--config", "x.yml", "run"]),
        (["-v", "--config=x.yml", "ls"], ["-v", "--config=x.yml", "run", "ls"]),
        (["--names", "a", "ls"], ["run", "--names", "a", "ls"]),
        (["--help"], ["--help"]),
        ([], []),
    ],
)
def test_default_subcommand(argv: list[str], expected: list[str]) -> None:
    assert with_default_subcommand(argv) == expected


def test_run_reports_success(capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli([_py("print('hello')"), "--names", "greet"])
    out = capsys.readouterr().out

    assert code == 0
    assert "greet hello" in out
    assert "started pid=" in out
    assert "exitCode=0" in out


def test_run_failure_returns_1(capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["run", "exit 0", _py("raise SystemExit(5)"), "--names", "ok,bad"])
    out = capsys.readouterr().out

    assert code == 1
    assert "exitCode=5" in out


def test_names_are_padded_by_default(capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli([_py("print('x')"), _py("print('y')"), "--names", "a,long"])
    out = capsys.readouterr().out

    assert code == 0
    assert any(line.startswith("   ") and line.endswith(" x") for line in out.splitlines())


def test_filter_limits_run(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = tmp_path / "log.txt"
    code = run_cli(
        [
            _py(f"open(r'{log}','a').write('build')"),
            _py(f"open(r'{log}','a').write('test')"),
            "--names",
            "build,test",
            "--filter",
            "BUI*",
        ]
    )
    _ = capsys.readouterr()

    assert code == 0
    assert log.read_text(encoding="utf-8") == "build"


def test_config_tasks_run_before_positional(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "picorun.json"
    _write_json_config(cfg, [{"command": "exit 0", "name": "from-file"}])

    code = run_cli(["--config", str(cfg), "run", "exit 0", "--names", "extra"])
    out = capsys.readouterr().out

    assert code == 0
    assert out.index("from-file") < out.index("extra")


def test_list_prints_resolved_names(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "picorun.json"
    _write_json_config(
        cfg,
        ["echo a", "echo b", "ls -la", {"command": "make", "name": "build"}],
    )

    code = run_cli(["--config", str(cfg), "list"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["[0]", "[1]", "ls", "build"]


def test_list_applies_config_filter(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "picorun.yml"
    cfg.write_text(
        "tasks:\n  - command: a\n    name: build\n  - command: b\n    name: test\n"
        "options:\n  filter: [te*]\n",
        encoding="utf-8",
    )

    code = run_cli(["--config", str(cfg), "list"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["test"]


def test_invalid_config_path_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = tmp_path / "missing.json"

    code = run_cli(["--config", str(missing), "list"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


def test_no_commands_returns_2(capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["run"])
    captured = capsys.readouterr()

    assert code == 2
    assert "No commands" in captured.err
