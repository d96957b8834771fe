from __future__ import annotations

from typing import TextIO

from .types import PreparedTask


class StreamHandler:
    """Turns arbitrary chunks from one child pipe into prefixed lines.

    One instance per destination; task state lives on the task itself, so a
    single handler serves every task in the batch.
    """

    def __init__(self, stream_id: str, destination: TextIO):
        self.stream_id = stream_id
        self.destination = destination

    def feed(self, task: PreparedTask, chunk: str) -> None:
        if not chunk:
            return

        if task.stream != self.stream_id:
            # A partial line from the other pipe is dropped, not merged
            task.stream = self.stream_id
            task.buffer = ""

        lines = (task.buffer + chunk).split("\n")
        for line in lines[:-1]:
            self._write_line(task, line)
        task.buffer = lines[-1]

    def flush(self, task: PreparedTask) -> None:
        if task.stream == self.stream_id and task.buffer:
            self._write_line(task, task.buffer)
            task.buffer = ""

    def _write_line(self, task: PreparedTask, line: str) -> None:
        self.destination.write(f"{task.label} {line}\n" if line else f"{task.label}\n")
        self.destination.flush()
