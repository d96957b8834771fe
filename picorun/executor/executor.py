from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import signal
import sys
import time
from collections.abc import Generator, Iterable, Sequence
from functools import partial
from pathlib import Path
from typing import Any, TextIO, cast, overload

from .duration import format_duration
from .naming import prepare_tasks, style_text
from .output import StreamHandler
from .signals import SignalForwarder, forwarder_for
from .types import ExecutionResult, Options, PreparedTask, Task

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
DRAIN_TIMEOUT = 0.5
MUTED_COLOR = "bright_black"


def default_start_handler(
    process: asyncio.subprocess.Process,
    task: PreparedTask,
    *,
    stream: TextIO | None = None,
) -> None:
    message = style_text(MUTED_COLOR, f"started pid={process.pid}")
    print(f"{task.label} {message}", file=stream or sys.stdout, flush=True)


def default_exit_handler(
    result: ExecutionResult,
    task: PreparedTask,
    *,
    stream: TextIO | None = None,
    format_duration=format_duration,
) -> None:
    color = MUTED_COLOR if result.exit_code == 0 else "red"
    message = style_text(
        color,
        f"cmd='{task.command}' exitCode={result.exit_code} "
        f"signalCode={result.signal_code} "
        f"duration={format_duration(result.duration_ms)}",
    )
    print(f"{task.label} {message}", file=stream or sys.stdout, flush=True)


def build_env(options: Options) -> dict[str, str]:
    overrides = options.child_options.env
    env = {**os.environ, **overrides}
    inherited = overrides.get("PATH", os.environ.get("PATH", ""))
    local_bin = str(Path(options.local_bin_dir).resolve())
    env["PATH"] = f"{local_bin}{os.pathsep}{inherited}" if inherited else local_bin
    return env


def decode_returncode(returncode: int) -> tuple[int | None, str | None]:
    if returncode >= 0:
        return returncode, None

    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, str(-returncode)


class TaskExecution:
    """Handle on one running task; await it for the task's result."""

    def __init__(
        self,
        task: PreparedTask,
        process: asyncio.subprocess.Process | None,
        watcher: asyncio.Task[ExecutionResult],
    ):
        self.task = task
        self.process = process
        self._watcher = watcher

    @property
    def name(self) -> str:
        return self.task.label

    def done(self) -> bool:
        return self._watcher.done()

    def __await__(self) -> Generator[Any, None, ExecutionResult]:
        # Shielded so a cancelled awaiter leaves the watcher running
        return asyncio.shield(self._watcher).__await__()

    def __repr__(self) -> str:
        pid = self.process.pid if self.process is not None else None
        return f"TaskExecution(name={self.task.name!r}, pid={pid}, done={self.done()})"


class TaskExecutions(Sequence[TaskExecution]):
    """Ordered handles for a batch, in submission order after filtering.

    Awaiting the collection gives every result in the same order. The
    aggregate is computed once; later awaits return the same list.
    """

    def __init__(self, executions: Sequence[TaskExecution]):
        self._executions = tuple(executions)
        self._aggregate: asyncio.Future[list[ExecutionResult]] | None = None

    @overload
    def __getitem__(self, index: int) -> TaskExecution: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[TaskExecution]: ...

    def __getitem__(self, index):
        return self._executions[index]

    def __len__(self) -> int:
        return len(self._executions)

    def results(self) -> asyncio.Future[list[ExecutionResult]]:
        if self._aggregate is None:
            self._aggregate = asyncio.gather(
                *(execution._watcher for execution in self._executions)
            )
        return self._aggregate

    def __await__(self) -> Generator[Any, None, list[ExecutionResult]]:
        return asyncio.shield(self.results()).__await__()


class _ExitProtocol(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol that also resolves ``exited`` once the child is reaped.

    The pipes may outlive the child when it leaves a background process
    holding them, so exit is observed separately from end of output.
    """

    def __init__(self, limit: int, loop: asyncio.AbstractEventLoop):
        super().__init__(limit=limit, loop=loop)
        self.exited: asyncio.Future[None] = loop.create_future()

    def process_exited(self) -> None:
        super().process_exited()
        if not self.exited.done():
            self.exited.set_result(None)


class Executor:
    def __init__(self, options: Options | None = None):
        self.options = options or Options()
        stdout = self.options.stdout_stream()
        stderr = self.options.stderr_stream()

        self.stdout_handler = StreamHandler("stdout", stdout)
        self.stderr_handler = StreamHandler("stderr", stderr)
        self.on_start = self.options.on_start or partial(
            default_start_handler, stream=stdout
        )
        self.on_exit = self.options.on_exit or partial(
            default_exit_handler,
            stream=stdout,
            format_duration=self.options.format_duration or format_duration,
        )

    async def start(self, tasks: Sequence[Task]) -> TaskExecutions:
        prepared = prepare_tasks(tasks, self.options)
        loop = asyncio.get_running_loop()
        forwarder = forwarder_for(loop)
        env = build_env(self.options)

        executions: list[TaskExecution] = []
        try:
            for task in prepared:
                started = time.monotonic()
                process, exited = await self._spawn(task, env, loop, forwarder)
                watcher = loop.create_task(
                    self._watch(task, process, exited, started, forwarder),
                    name=f"picorun:{task.name}",
                )
                executions.append(TaskExecution(task, process, watcher))
        except BaseException:
            await self._abort(executions, forwarder)
            raise

        return TaskExecutions(executions)

    async def _spawn(
        self,
        task: PreparedTask,
        env: dict[str, str],
        loop: asyncio.AbstractEventLoop,
        forwarder: SignalForwarder,
    ) -> tuple[asyncio.subprocess.Process | None, asyncio.Future[None] | None]:
        try:
            transport, protocol = await loop.subprocess_shell(
                lambda: _ExitProtocol(limit=READ_CHUNK_SIZE, loop=loop),
                task.command,
                stdin=None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.options.child_options.cwd,
                env=env,
            )
        except OSError as exc:
            logger.error("Failed to start %r: %s", task.command, exc)
            self.stderr_handler.feed(task, f"{exc}\n")
            return None, None

        process = asyncio.subprocess.Process(transport, protocol, loop)
        logger.debug("Started %r as pid %s", task.command, process.pid)
        forwarder.add(process)
        try:
            self.on_start(process, task)
        except BaseException:
            _abandon(process, forwarder)
            raise
        return process, protocol.exited

    async def _abort(
        self, executions: Sequence[TaskExecution], forwarder: SignalForwarder
    ) -> None:
        for execution in executions:
            execution._watcher.cancel()
            if execution.process is not None:
                _abandon(execution.process, forwarder)
        await asyncio.gather(
            *(execution._watcher for execution in executions), return_exceptions=True
        )

    async def _watch(
        self,
        task: PreparedTask,
        process: asyncio.subprocess.Process | None,
        exited: asyncio.Future[None] | None,
        started: float,
        forwarder: SignalForwarder,
    ) -> ExecutionResult:
        pumps: list[asyncio.Task[None]] = []
        try:
            exit_code: int | None = None
            signal_code: str | None = None
            if process is not None and exited is not None:
                pumps = [
                    asyncio.ensure_future(
                        self._pump(
                            cast(asyncio.StreamReader, process.stdout),
                            self.stdout_handler,
                            task,
                        )
                    ),
                    asyncio.ensure_future(
                        self._pump(
                            cast(asyncio.StreamReader, process.stderr),
                            self.stderr_handler,
                            task,
                        )
                    ),
                ]
                await exited
                finished = time.monotonic()
                exit_code, signal_code = decode_returncode(cast(int, process.returncode))

                # Output already written is drained; a grandchild keeping the
                # pipes open is not waited for
                done, _ = await asyncio.wait(pumps, timeout=DRAIN_TIMEOUT)
                for pump in done:
                    pump.result()
            else:
                finished = time.monotonic()

            self.stdout_handler.flush(task)
            self.stderr_handler.flush(task)

            result = ExecutionResult(
                exit_code=exit_code,
                signal_code=signal_code,
                duration_ms=(finished - started) * 1000,
            )
            logger.debug("Task %s finished: %s", task.name, result)
            self.on_exit(result, task)
            return result

        except asyncio.CancelledError:
            if process is not None:
                logger.debug("Killing pid %s after cancellation", process.pid)
                _abandon(process, forwarder)
            raise

        finally:
            for pump in pumps:
                pump.cancel()
            if process is not None:
                forwarder.discard(process)

    async def _pump(
        self,
        reader: asyncio.StreamReader,
        handler: StreamHandler,
        task: PreparedTask,
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while chunk := await reader.read(READ_CHUNK_SIZE):
            handler.feed(task, decoder.decode(chunk))
        handler.feed(task, decoder.decode(b"", final=True))


def _abandon(process: asyncio.subprocess.Process, forwarder: SignalForwarder) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    forwarder.discard(process)


async def run(
    tasks: Iterable[Task | None], options: Options | None = None
) -> TaskExecutions:
    """Spawn every task at once and return their handles.

    Falsy entries are skipped, so callers can write ``cond and Task(...)``.
    """
    executor = Executor(options)
    return await executor.start([task for task in tasks if task])
