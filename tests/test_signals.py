from __future__ import annotations

import signal

from picorun.executor.signals import FORWARDED_SIGNALS, SignalForwarder, forwarder_for


class FakeLoop:
    def __init__(self, unsupported: bool = False) -> None:
        self.handlers: dict[signal.Signals, tuple] = {}
        self.add_calls = 0
        self.unsupported = unsupported

    def add_signal_handler(self, sig, callback, *args) -> None:
        self.add_calls += 1
        if self.unsupported:
            raise NotImplementedError
        self.handlers[sig] = (callback, args)

    def remove_signal_handler(self, sig) -> bool:
        return self.handlers.pop(sig, None) is not None


class FakeProcess:
    def __init__(self, pid: int, returncode: int | None = None) -> None:
        self.pid = pid
        self.returncode = returncode
        self.received: list[signal.Signals] = []

    def send_signal(self, sig: signal.Signals) -> None:
        self.received.append(sig)


class GoneProcess(FakeProcess):
    def send_signal(self, sig: signal.Signals) -> None:
        raise ProcessLookupError


def test_forwarded_signals_include_interrupt_and_terminate() -> None:
    assert signal.SIGINT in FORWARDED_SIGNALS
    assert signal.SIGTERM in FORWARDED_SIGNALS


def test_handlers_installed_once_for_many_children() -> None:
    loop = FakeLoop()
    forwarder = SignalForwarder(loop)

    for pid in (1, 2, 3):
        forwarder.add(FakeProcess(pid))

    assert loop.add_calls == len(FORWARDED_SIGNALS)
    assert set(loop.handlers) == set(FORWARDED_SIGNALS)
    assert forwarder.installed == FORWARDED_SIGNALS
    assert len(forwarder) == 3


def test_handlers_stay_until_last_child_is_discarded() -> None:
    loop = FakeLoop()
    forwarder = SignalForwarder(loop)
    first, second = FakeProcess(1), FakeProcess(2)
    forwarder.add(first)
    forwarder.add(second)

    forwarder.discard(first)
    assert set(loop.handlers) == set(FORWARDED_SIGNALS)

    forwarder.discard(second)
    assert loop.handlers == {}
    assert forwarder.installed == ()
    assert len(forwarder) == 0


def test_discarding_unknown_child_is_a_no_op() -> None:
    loop = FakeLoop()
    forwarder = SignalForwarder(loop)
    forwarder.add(FakeProcess(1))

    forwarder.discard(FakeProcess(2))

    assert len(forwarder) == 1
    assert forwarder.installed == FORWARDED_SIGNALS


def test_handlers_reinstalled_for_a_later_batch() -> None:
    loop = FakeLoop()
    forwarder = SignalForwarder(loop)
    first = FakeProcess(1)
    forwarder.add(first)
    forwarder.discard(first)

    forwarder.add(FakeProcess(2))

    assert loop.add_calls == 2 * len(FORWARDED_SIGNALS)
    assert set(loop.handlers) == set(FORWARDED_SIGNALS)


def test_forward_reaches_every_live_child() -> None:
    loop = FakeLoop()
    forwarder = SignalForwarder(loop)
    live_a, live_b = FakeProcess(1), FakeProcess(2)
    finished = FakeProcess(3, returncode=0)
    for process in (live_a, finished, live_b):
        forwarder.add(process)

    callback, args = loop.handlers[signal.SIGTERM]
    callback(*args)

    assert live_a.received == [signal.SIGTERM]
    assert live_b.received == [signal.SIGTERM]
    assert finished.received == []


def test_forward_tolerates_child_exiting_concurrently() -> None:
    forwarder = SignalForwarder(FakeLoop(), [signal.SIGINT])
    survivor = FakeProcess(2)
    forwarder.add(GoneProcess(1))
    forwarder.add(survivor)

    forwarder.forward(signal.SIGINT)

    assert survivor.received == [signal.SIGINT]


def test_unsupported_loop_is_skipped() -> None:
    loop = FakeLoop(unsupported=True)
    forwarder = SignalForwarder(loop)
    process = FakeProcess(1)

    forwarder.add(process)
    assert forwarder.installed == ()

    forwarder.discard(process)
    assert len(forwarder) == 0


def test_forwarder_is_shared_per_loop() -> None:
    loop, other = FakeLoop(), FakeLoop()

    assert forwarder_for(loop) is forwarder_for(loop)
    assert forwarder_for(loop) is not forwarder_for(other)
    assert forwarder_for(loop).loop is loop
