"""Tests for the session monitor state machine."""

import threading
import time
from pathlib import Path

import pytest

from conftest import wait_for
from packages.core.monitor.session_monitor import SessionMonitor
from packages.core.monitor.types import (
    EVENT_EXTERNALLY_DISABLED,
    EVENT_STATUS_CHANGED,
    EVENT_STOPPED,
)
from packages.shared.config import AppConfig, SessionRecord
from packages.shared.store import PersistenceError


def _settle(monitor):
    """Let any stray tick or probe surface before asserting on counts."""
    monitor.flush()
    time.sleep(0.1)
    monitor.flush()


def test_start_probes_immediately_and_publishes(monitor, port, probe, recorder, store):
    port.pin_externally("1.1.1.1")

    assert monitor.start("Cloudflare", "1.1.1.1", 30)
    assert recorder.wait_for(EVENT_STATUS_CHANGED)

    snap = monitor.snapshot()
    assert snap.is_running
    assert snap.session.server_label == "Cloudflare"
    assert snap.session.last_latency_ms == 12
    assert probe.calls == ["1.1.1.1"]

    status = port.get_status()
    assert status.enabled and status.hostname == "1.1.1.1"

    cfg = store.load()
    assert cfg.monitor.enabled is True
    assert cfg.monitor.interval_seconds == 30
    assert cfg.session.hostname == "1.1.1.1"


def test_start_without_hostname_is_rejected(monitor, probe):
    assert not monitor.start("Google", "  ", 30)
    assert not monitor.is_running
    assert probe.calls == []


def test_start_clamps_short_interval(monitor, store):
    assert monitor.start("Google", "dns.google", 3)
    assert monitor.snapshot().session.interval_seconds == 10
    assert store.load().monitor.interval_seconds == 10


def test_start_accepts_custom_interval(monitor):
    assert monitor.start("Google", "dns.google", 45)
    assert monitor.snapshot().session.interval_seconds == 45


def test_restart_same_hostname_keeps_started_at(monitor, wall_clock):
    monitor.start("Google", "dns.google", 30)
    started = monitor.snapshot().session.started_at

    wall_clock.advance(60_000)
    monitor.start("Google", "dns.google", 60)
    assert monitor.snapshot().session.started_at == started


def test_restart_other_hostname_resets_started_at(monitor, wall_clock):
    monitor.start("Google", "dns.google", 30)
    started = monitor.snapshot().session.started_at

    wall_clock.advance(60_000)
    monitor.start("Quad9", "dns.quad9.net", 30)
    assert monitor.snapshot().session.started_at == started + 60_000


def test_update_same_hostname_keeps_started_at(monitor, wall_clock):
    monitor.start("Google", "dns.google", 30)
    started = monitor.snapshot().session.started_at

    wall_clock.advance(5_000)
    assert monitor.update(hostname="dns.google")
    assert monitor.snapshot().session.started_at == started


def test_update_new_hostname_resets_started_at(monitor, wall_clock, probe, store):
    monitor.start("Google", "dns.google", 30)
    started = monitor.snapshot().session.started_at

    wall_clock.advance(5_000)
    assert monitor.update(server_label="Quad9", hostname="dns.quad9.net")

    session = monitor.snapshot().session
    assert session.started_at == started + 5_000
    assert session.server_label == "Quad9"
    assert store.load().session.hostname == "dns.quad9.net"
    assert store.load().session.started_at == started + 5_000
    assert wait_for(lambda: "dns.quad9.net" in probe.calls)


def test_update_label_only_keeps_hostname(monitor):
    monitor.start("Google", "dns.google", 30)
    assert monitor.update(server_label="Google DNS")
    session = monitor.snapshot().session
    assert session.hostname == "dns.google"
    assert session.server_label == "Google DNS"


def test_update_when_stopped_is_noop(monitor, store):
    assert not monitor.update(hostname="dns.google")
    assert not monitor.is_running
    assert store.load().session.hostname == ""


@pytest.mark.parametrize("bad", [0, 5, 9, -30])
def test_set_interval_below_minimum_is_rejected(monitor, store, bad):
    monitor.start("Google", "dns.google", 30)

    assert not monitor.set_interval(bad)
    assert monitor.snapshot().session.interval_seconds == 30
    assert monitor.pending_ticks == 1
    assert store.load().monitor.interval_seconds == 30


def test_set_interval_when_stopped_only_remembers_value(monitor, store, probe):
    assert monitor.set_interval(120)
    assert not monitor.is_running
    assert monitor.pending_ticks == 0
    assert store.load().monitor.interval_seconds == 120
    assert probe.calls == []


def test_rapid_interval_changes_leave_one_pending_tick(monitor, probe, clock):
    probe.results.extend([12, 13, 14])
    monitor.start("Google", "dns.google", 30)
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == 12)

    for seconds in (60, 120, 10, 300, 45, 60):
        assert monitor.set_interval(seconds)
        assert monitor.pending_ticks == 1

    clock.advance(59)
    monitor.wake()
    _settle(monitor)
    assert len(probe.calls) == 1

    clock.advance(1)
    monitor.wake()
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == 13)
    assert len(probe.calls) == 2

    clock.advance(60)
    monitor.wake()
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == 14)
    _settle(monitor)
    assert len(probe.calls) == 3


def test_tick_updates_latency_and_rearms(monitor, probe, clock, recorder):
    probe.results.extend([20, -1])
    monitor.start("Google", "dns.google", 30)
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == 20)

    clock.advance(30)
    monitor.wake()
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == -1)
    # unreachable resolver does not stop the session
    assert monitor.is_running
    assert monitor.pending_ticks == 1


def test_stop_clears_session_and_persists(monitor, store, recorder):
    monitor.start("Google", "dns.google", 30)
    assert monitor.stop()

    snap = monitor.snapshot()
    assert not snap.is_running
    assert snap.session is None
    assert monitor.pending_ticks == 0
    assert store.load().monitor.enabled is False
    assert recorder.wait_for(EVENT_STOPPED)


def test_stop_when_stopped_is_idempotent(monitor, recorder):
    assert monitor.stop()
    assert monitor.stop()
    _settle(monitor)
    assert recorder.types == []


def test_stop_discards_in_flight_probe(monitor, probe, store, recorder):
    probe.gate = threading.Event()
    monitor.start("Google", "dns.google", 30)
    assert wait_for(lambda: probe.calls)

    assert monitor.stop()
    probe.gate.set()
    assert probe.finished.wait(2)
    _settle(monitor)

    snap = monitor.snapshot()
    assert not snap.is_running
    assert snap.session is None
    assert store.load().monitor.enabled is False
    assert recorder.wait_for(EVENT_STOPPED)
    assert EVENT_STATUS_CHANGED not in recorder.types


def test_stale_probe_after_hostname_change_is_dropped(store, port, clock):
    gate = threading.Event()
    old_host_done = threading.Event()

    class SlowOldHost:
        def __init__(self):
            self.calls = []

        def measure(self, hostname, timeout_ms=5000):
            self.calls.append(hostname)
            if hostname == "dns.google":
                gate.wait(5)
                old_host_done.set()
                return 99
            return 15

    probe = SlowOldHost()
    m = SessionMonitor(store=store, port=port, probe=probe, clock=clock)
    try:
        m.start("Google", "dns.google", 30)
        assert wait_for(lambda: probe.calls == ["dns.google"])

        m.update(hostname="dns.quad9.net")
        assert wait_for(lambda: m.snapshot().session.last_latency_ms == 15)

        gate.set()
        assert old_host_done.wait(2)
        _settle(m)
        assert m.snapshot().session.last_latency_ms == 15
    finally:
        gate.set()
        m.shutdown()


def test_external_disable_is_reported_but_monitor_keeps_running(monitor, port, clock, recorder):
    port.pin_externally("dns.google")
    monitor.start("Google", "dns.google", 30)
    assert recorder.wait_for(EVENT_STATUS_CHANGED)
    assert EVENT_EXTERNALLY_DISABLED not in recorder.types

    port.turn_off_externally()
    clock.advance(30)
    monitor.wake()

    assert recorder.wait_for(EVENT_EXTERNALLY_DISABLED)
    assert monitor.is_running
    assert monitor.pending_ticks == 1


def test_pinned_to_other_hostname_counts_as_external_change(monitor, port, recorder):
    port.pin_externally("dns.quad9.net")
    monitor.start("Google", "dns.google", 30)
    assert recorder.wait_for(EVENT_EXTERNALLY_DISABLED)
    assert monitor.is_running


def test_resume_after_restart(monitor, store, probe, clock):
    cfg = AppConfig()
    cfg.monitor.enabled = True
    cfg.monitor.interval_seconds = 60
    cfg.session = SessionRecord(server_label="Google", hostname="dns.google", started_at=1_600_000_000_000)
    store.save(cfg)

    assert monitor.resume()

    session = monitor.snapshot().session
    assert monitor.is_running
    assert session.hostname == "dns.google"
    assert session.started_at == 1_600_000_000_000
    assert session.interval_seconds == 60
    assert monitor.pending_ticks == 1
    assert wait_for(lambda: monitor.snapshot().session.last_latency_ms == 12)

    clock.advance(59)
    monitor.wake()
    _settle(monitor)
    assert len(probe.calls) == 1

    clock.advance(1)
    monitor.wake()
    assert wait_for(lambda: len(probe.calls) == 2)


def test_resume_does_nothing_when_disabled(monitor, store, probe):
    cfg = AppConfig()
    cfg.session = SessionRecord(hostname="dns.google", started_at=1)
    store.save(cfg)

    assert not monitor.resume()
    assert not monitor.is_running
    assert probe.calls == []


def test_start_persistence_failure_leaves_monitor_stopped(monitor, store, probe, monkeypatch):
    def fail(cfg):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "save", fail)

    assert not monitor.start("Google", "dns.google", 30)
    assert not monitor.is_running
    assert monitor.pending_ticks == 0
    assert probe.calls == []


def test_unreadable_config_is_not_overwritten(monitor, store):
    cfg = AppConfig(last_hostname="one.one.one.one", last_server_name="Cloudflare")
    store.save(cfg)
    path = Path(store.path())
    path.write_text(path.read_text(encoding="utf-8")[:20], encoding="utf-8")
    damaged = path.read_text(encoding="utf-8")

    assert not monitor.set_interval(30)
    assert not monitor.start("Google", "dns.google", 30)
    assert not monitor.is_running
    assert path.read_text(encoding="utf-8") == damaged


def test_stop_persistence_failure_keeps_session(monitor, store, monkeypatch):
    monitor.start("Google", "dns.google", 30)

    def fail(cfg):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "save", fail)

    assert not monitor.stop()
    assert monitor.is_running
    assert monitor.snapshot().session.hostname == "dns.google"


def test_listener_failure_does_not_break_monitor(monitor, port, clock, recorder):
    def broken(evt):
        raise RuntimeError("renderer crashed")

    monitor.subscribe(broken)
    port.pin_externally("dns.google")
    monitor.start("Google", "dns.google", 30)
    assert recorder.wait_for(EVENT_STATUS_CHANGED)

    assert monitor.set_interval(60)
    assert monitor.stop()
    assert recorder.wait_for(EVENT_STOPPED)


def test_timed_out_command_is_cancelled_not_applied(store, port, probe, clock, monkeypatch):
    m = SessionMonitor(store=store, port=port, probe=probe, clock=clock, command_timeout=0.3)
    saving = threading.Event()
    release = threading.Event()
    real_save = store.save

    def slow_save(cfg):
        saving.set()
        release.wait(5)
        real_save(cfg)

    monkeypatch.setattr(store, "save", slow_save)
    started = []
    worker = threading.Thread(target=lambda: started.append(m.start("Google", "dns.google", 30)))
    try:
        worker.start()
        assert saving.wait(2)

        # owner thread is busy, so this one never gets picked up in time
        assert not m.set_interval(120)

        release.set()
        worker.join(5)
        # start outlived its timeout but was already running, so it reports success
        assert started == [True]

        assert m.flush()
        assert m.snapshot().session.interval_seconds == 30
        assert store.load().monitor.interval_seconds == 30
    finally:
        release.set()
        m.shutdown()


def test_pending_ticks_tracks_deadline(monitor):
    assert monitor.pending_ticks == 0
    monitor.start("Google", "dns.google", 30)
    assert monitor.pending_ticks == 1
    monitor.stop()
    assert monitor.pending_ticks == 0


def test_commands_after_shutdown_fail(store, port, probe):
    m = SessionMonitor(store=store, port=port, probe=probe)
    m.shutdown()
    assert not m.start("Google", "dns.google", 30)
