from __future__ import annotations

import asyncio
import logging
import signal
import weakref
from collections.abc import Iterable

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS: tuple[signal.Signals, ...] = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT")
    if hasattr(signal, name)
)

_forwarders: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, SignalForwarder] = (
    weakref.WeakKeyDictionary()
)


class SignalForwarder:
    """Relays terminal signals received by this process to every live child.

    One loop handler per signal, shared by every child on the loop. Handlers
    go in with the first child and come out when the last one is discarded,
    so concurrent batches never replace or remove each other's handlers.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[signal.Signals] = FORWARDED_SIGNALS,
    ):
        self.loop = loop
        self.signals = tuple(signals)
        self._processes: list[asyncio.subprocess.Process] = []
        self._installed: list[signal.Signals] = []
        self._active = False

    def add(self, process: asyncio.subprocess.Process) -> None:
        if not self._processes:
            self.install()
        self._processes.append(process)

    def discard(self, process: asyncio.subprocess.Process) -> None:
        if process not in self._processes:
            return
        self._processes.remove(process)
        if not self._processes:
            self.uninstall()

    def install(self) -> None:
        if self._active:
            return
        self._active = True

        for sig in self.signals:
            try:
                self.loop.add_signal_handler(sig, self.forward, sig)
            except (NotImplementedError, RuntimeError, ValueError) as exc:
                logger.debug("Cannot forward %s: %s", sig.name, exc)
                continue
            self._installed.append(sig)

    def uninstall(self) -> None:
        if not self._active:
            return

        for sig in self._installed:
            self.loop.remove_signal_handler(sig)
        self._installed.clear()
        self._active = False

    def forward(self, sig: signal.Signals) -> None:
        for process in list(self._processes):
            if process.returncode is not None:
                continue
            logger.debug("Forwarding %s to pid %s", sig.name, process.pid)
            try:
                process.send_signal(sig)
            except ProcessLookupError:
                # Exited between the returncode check and the kill
                pass

    @property
    def installed(self) -> tuple[signal.Signals, ...]:
        return tuple(self._installed)

    def __len__(self) -> int:
        return len(self._processes)


def forwarder_for(loop: asyncio.AbstractEventLoop) -> SignalForwarder:
    forwarder = _forwarders.get(loop)
    if forwarder is None:
        forwarder = _forwarders[loop] = SignalForwarder(loop)
    return forwarder
