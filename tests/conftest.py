"""Shared test fixtures."""

import threading
import time
from typing import Optional

import pytest

from packages.core.dns.manager import DnsManager
from packages.core.dns.resolver_port import MODE_KEY, SPECIFIER_KEY, ResolverConfigPort
from packages.core.dns.types import DnsMode
from packages.core.monitor.session_monitor import SessionMonitor
from packages.shared.store import ConfigStore


class InMemoryResolverPort(ResolverConfigPort):
    """Settings store stand-in that records every write."""

    def __init__(self, mode: str = "off", specifier: Optional[str] = None, writable: bool = True):
        self.values = {MODE_KEY: mode}
        if specifier is not None:
            self.values[SPECIFIER_KEY] = specifier
        self.writable = writable
        self.writes = []

    def has_write_permission(self) -> bool:
        return self.writable

    def _read(self, key):
        return self.values.get(key)

    def _write(self, key, value):
        self.writes.append((key, value))
        self.values[key] = value
        return True

    def pin_externally(self, hostname):
        self.values[SPECIFIER_KEY] = hostname
        self.values[MODE_KEY] = DnsMode.PINNED.value

    def turn_off_externally(self):
        self.values[MODE_KEY] = DnsMode.OFF.value


class SpyProbe:
    """Probe returning scripted latencies; optionally blocks until released."""

    def __init__(self, results=None, default=12):
        self.calls = []
        self.results = list(results or [])
        self.default = default
        self.gate: Optional[threading.Event] = None
        self.finished = threading.Event()

    def measure(self, hostname, timeout_ms=5000):
        self.calls.append(hostname)
        if self.gate is not None:
            self.gate.wait(5)
        self.finished.set()
        return self.results.pop(0) if self.results else self.default


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EventRecorder:
    def __init__(self):
        self.events = []
        self._cond = threading.Condition()

    def __call__(self, evt):
        with self._cond:
            self.events.append(evt)
            self._cond.notify_all()

    @property
    def types(self):
        return [e["type"] for e in self.events]

    def wait_for(self, event_type, timeout=3.0) -> bool:
        deadline = time.monotonic() + timeout
        with self._cond:
            while event_type not in self.types:
                left = deadline - time.monotonic()
                if left <= 0:
                    return False
                self._cond.wait(left)
            return True


def wait_for(predicate, timeout=3.0, interval=0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def store(tmp_path):
    return ConfigStore(path=tmp_path / "monitor.json")


@pytest.fixture
def port():
    return InMemoryResolverPort()


@pytest.fixture
def probe():
    return SpyProbe()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_clock():
    return FakeClock(start=1_700_000_000_000)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def monitor(store, port, probe, clock, wall_clock, recorder):
    m = SessionMonitor(
        store=store,
        port=port,
        probe=probe,
        clock=clock,
        wall_clock_ms=lambda: int(wall_clock()),
    )
    m.subscribe(recorder)
    yield m
    m.shutdown()


@pytest.fixture
def manager(port, store, monitor, probe):
    return DnsManager(port=port, store=store, monitor=monitor, probe=probe)
