"""
Private DNS session monitor.

A single owner thread serializes every state transition: commands from the
UI, poll deadlines and probe results all go through one queue. Latency probes
run on a small worker pool and post their result back to that queue, so the
session is only ever mutated by the owner thread.

State machine: STOPPED <-> RUNNING
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Optional

from packages.core.dns.latency_probe import DEFAULT_TIMEOUT_MS, UNREACHABLE, LatencyProbe
from packages.core.dns.resolver_port import ResolverConfigPort
from packages.core.dns.types import DnsMode, ResolverConfig
from packages.shared.config import (
    DEFAULT_SERVER_LABEL,
    MIN_INTERVAL_SECONDS,
    AppConfig,
    SessionRecord,
    clamp_interval,
)
from packages.shared.store import ConfigStore, PersistenceError

from .broadcast import ChangeBroadcaster, Listener
from .types import (
    EVENT_EXTERNALLY_DISABLED,
    EVENT_STATUS_CHANGED,
    EVENT_STOPPED,
    MonitorSnapshot,
    MonitorStatus,
    Session,
)

log = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SessionMonitor:
    """
    Background monitor that keeps the active resolver session, polls its
    latency and publishes STATUS_CHANGED / EXTERNALLY_DISABLED / STOPPED.

    Public commands block until the owner thread has applied them and return
    a bool ack. Failures never escape to the caller and never stop the loop.
    """

    def __init__(
        self,
        store: ConfigStore,
        port: ResolverConfigPort,
        probe: Optional[LatencyProbe] = None,
        events: Optional[ChangeBroadcaster] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock_ms: Callable[[], int] = _epoch_ms,
        probe_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        command_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._port = port
        self._probe = probe or LatencyProbe()
        self._owns_events = events is None
        self._events = events or ChangeBroadcaster()
        self._clock = clock
        self._wall_clock_ms = wall_clock_ms
        self._probe_timeout_ms = probe_timeout_ms
        self._command_timeout = command_timeout

        self._lock = threading.Lock()
        self._status: MonitorStatus = "STOPPED"
        self._session: Optional[Session] = None

        # written by the owner thread only; _deadline is also read under _lock
        self._deadline: Optional[float] = None
        self._generation = 0
        self._inflight: Optional[int] = None

        self._inbox: "queue.Queue[tuple]" = queue.Queue()
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="LatencyProbe")
        self._thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()

    @property
    def events(self) -> ChangeBroadcaster:
        return self._events

    def subscribe(self, cb: Listener) -> Callable[[], None]:
        return self._events.subscribe(cb)

    # -- reads (any thread) -------------------------------------------------

    def snapshot(self) -> MonitorSnapshot:
        with self._lock:
            return MonitorSnapshot(status=self._status, session=self._session)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._status == "RUNNING"

    @property
    def pending_ticks(self) -> int:
        with self._lock:
            return 0 if self._deadline is None else 1

    # -- commands -----------------------------------------------------------

    def start(self, server_label: str, hostname: str, interval_seconds: int) -> bool:
        return self._submit(self._do_start, server_label, hostname, interval_seconds)

    def stop(self) -> bool:
        return self._submit(self._do_stop)

    def update(self, server_label: Optional[str] = None, hostname: Optional[str] = None) -> bool:
        return self._submit(self._do_update, server_label, hostname)

    def set_interval(self, seconds: int) -> bool:
        return self._submit(self._do_set_interval, seconds)

    def resume(self) -> bool:
        """Re-enter RUNNING from persisted state after a process restart."""
        return self._submit(self._do_resume)

    def remember_resolver(self, hostname: str, server_name: Optional[str] = None) -> bool:
        """Persist the last successfully pinned resolver."""
        return self._submit(self._do_remember_resolver, hostname, server_name)

    def flush(self) -> bool:
        """Wait until everything queued before this call has been handled."""
        return self._submit(lambda: True)

    def wake(self) -> None:
        """Make the owner thread re-check its poll deadline."""
        self._ensure_thread()
        self._inbox.put(("wake",))

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the owner thread. Persisted state is left as is for resume()."""
        self._stop_evt.set()
        self._inbox.put(("shutdown",))
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._pool.shutdown(wait=False, cancel_futures=True)
        if self._owns_events:
            self._events.close()

    # -- owner thread -------------------------------------------------------

    def _ensure_thread(self) -> None:
        with self._lock:
            if self._thread is not None or self._stop_evt.is_set():
                return
            self._thread = threading.Thread(target=self._run, name="SessionMonitor", daemon=True)
            self._thread.start()

    def _submit(self, fn: Callable[..., bool], *args: Any) -> bool:
        if threading.current_thread() is self._thread:
            return self._call(fn, args)
        if self._stop_evt.is_set():
            log.warning("Monitor is shut down, ignoring %s", getattr(fn, "__name__", fn))
            return False
        self._ensure_thread()
        fut: Future = Future()
        self._inbox.put(("call", fn, args, fut))
        try:
            return bool(fut.result(timeout=self._command_timeout))
        except FutureTimeout:
            if fut.cancel():
                log.warning("Monitor command %s timed out, cancelled", getattr(fn, "__name__", fn))
                return False
            # already picked up by the owner thread, report its real outcome
            return bool(fut.result())
        except Exception:
            log.exception("Monitor command did not complete")
            return False

    def _call(self, fn: Callable[..., bool], args: tuple) -> bool:
        try:
            return bool(fn(*args))
        except Exception:
            log.exception("Monitor command failed")
            return False

    def _run(self) -> None:
        while not self._stop_evt.is_set():
            timeout = None
            if self._deadline is not None:
                timeout = max(0.0, self._deadline - self._clock())
            try:
                msg = self._inbox.get(timeout=timeout)
            except queue.Empty:
                msg = None

            try:
                if msg is not None:
                    kind = msg[0]
                    if kind == "shutdown":
                        break
                    if kind == "call":
                        _, fn, args, fut = msg
                        if fut.set_running_or_notify_cancel():
                            fut.set_result(self._call(fn, args))
                    elif kind == "probe":
                        _, generation, latency, config = msg
                        self._apply_probe(generation, latency, config)

                if self._deadline is not None and self._clock() >= self._deadline:
                    self._tick()
            except Exception:
                log.exception("Monitor loop error")

    def _set_state(self, status: MonitorStatus, session: Optional[Session]) -> None:
        with self._lock:
            self._status = status
            self._session = session

    def _persist(self, mutate: Callable[[AppConfig], None]) -> bool:
        try:
            cfg = self._store.load(strict=True)
            mutate(cfg)
            self._store.save(cfg)
        except PersistenceError:
            log.exception("Could not persist monitor state")
            return False
        return True

    def _set_deadline(self, deadline: Optional[float]) -> None:
        with self._lock:
            self._deadline = deadline

    def _arm(self, interval_seconds: int) -> None:
        # single deadline: re-arming replaces any pending tick
        self._set_deadline(self._clock() + interval_seconds)

    def _do_start(self, server_label: str, hostname: str, interval_seconds: int) -> bool:
        hostname = (hostname or "").strip()
        if not hostname:
            log.error("Cannot start monitoring without a hostname")
            return False
        label = server_label or DEFAULT_SERVER_LABEL
        interval = clamp_interval(interval_seconds)

        current = self._session
        same_session = self._status == "RUNNING" and current is not None and current.hostname == hostname
        started_at = current.started_at if same_session else self._wall_clock_ms()
        last_latency = current.last_latency_ms if same_session else None

        def mutate(cfg: AppConfig) -> None:
            cfg.monitor.enabled = True
            cfg.monitor.interval_seconds = interval
            cfg.session = SessionRecord(server_label=label, hostname=hostname, started_at=started_at)

        if not self._persist(mutate):
            return False

        self._generation += 1
        self._set_state("RUNNING", Session(label, hostname, started_at, interval, last_latency))
        self._arm(interval)
        self._launch_probe()
        log.info("Monitoring %s (%s) every %ss", label, hostname, interval)
        return True

    def _do_stop(self) -> bool:
        if self._status == "STOPPED":
            if self._store.load().monitor.enabled:
                return self._persist(lambda cfg: setattr(cfg.monitor, "enabled", False))
            return True

        if not self._persist(lambda cfg: setattr(cfg.monitor, "enabled", False)):
            return False

        self._set_deadline(None)
        self._generation += 1
        self._set_state("STOPPED", None)
        self._events.publish(EVENT_STOPPED)
        log.info("Monitoring stopped")
        return True

    def _do_update(self, server_label: Optional[str], hostname: Optional[str]) -> bool:
        session = self._session
        if self._status != "RUNNING" or session is None:
            return False

        label = server_label if server_label else session.server_label
        new_host = (hostname or "").strip() or session.hostname
        host_changed = new_host != session.hostname
        updated = session.with_changes(
            server_label=label,
            hostname=new_host,
            started_at=self._wall_clock_ms() if host_changed else session.started_at,
            last_latency_ms=None if host_changed else session.last_latency_ms,
        )

        def mutate(cfg: AppConfig) -> None:
            cfg.session = SessionRecord(
                server_label=updated.server_label,
                hostname=updated.hostname,
                started_at=updated.started_at,
            )

        if not self._persist(mutate):
            return False

        if host_changed:
            self._generation += 1
            log.info("Session moved to %s (%s)", label, new_host)
        self._set_state("RUNNING", updated)
        self._launch_probe()
        return True

    def _do_set_interval(self, seconds: int) -> bool:
        if seconds < MIN_INTERVAL_SECONDS:
            log.warning("Rejected poll interval %ss (minimum %ss)", seconds, MIN_INTERVAL_SECONDS)
            return False

        session = self._session
        if self._status != "RUNNING" or session is None:
            # remembered for the next start
            return self._persist(lambda cfg: setattr(cfg.monitor, "interval_seconds", seconds))
        if seconds == session.interval_seconds:
            return True

        if not self._persist(lambda cfg: setattr(cfg.monitor, "interval_seconds", seconds)):
            return False
        self._set_state("RUNNING", session.with_changes(interval_seconds=seconds))
        self._arm(seconds)
        log.info("Poll interval set to %ss", seconds)
        return True

    def _do_resume(self) -> bool:
        if self._status == "RUNNING":
            return True
        cfg = self._store.load()
        if not cfg.should_resume():
            return False

        interval = clamp_interval(cfg.monitor.interval_seconds)
        record = cfg.session
        session = Session(
            server_label=record.server_label or DEFAULT_SERVER_LABEL,
            hostname=record.hostname.strip(),
            started_at=record.started_at or self._wall_clock_ms(),
            interval_seconds=interval,
        )
        self._generation += 1
        self._set_state("RUNNING", session)
        self._arm(interval)
        self._launch_probe()
        log.info("Resumed monitoring %s (%s) every %ss", session.server_label, session.hostname, interval)
        return True

    def _do_remember_resolver(self, hostname: str, server_name: Optional[str]) -> bool:
        def mutate(cfg: AppConfig) -> None:
            cfg.last_hostname = hostname
            if server_name:
                cfg.last_server_name = server_name

        return self._persist(mutate)

    def _tick(self) -> None:
        session = self._session
        if self._status != "RUNNING" or session is None:
            self._set_deadline(None)
            return
        self._arm(session.interval_seconds)
        self._launch_probe()

    def _launch_probe(self) -> None:
        session = self._session
        if session is None:
            return
        if self._inflight == self._generation:
            log.debug("Probe for %s still running, skipping", session.hostname)
            return
        self._inflight = self._generation
        self._pool.submit(self._probe_job, self._generation, session.hostname)

    def _probe_job(self, generation: int, hostname: str) -> None:
        latency = UNREACHABLE
        config: Optional[ResolverConfig] = None
        try:
            latency = self._probe.measure(hostname, self._probe_timeout_ms)
            config = self._port.get_resolver_config()
        except Exception:
            log.exception("Probe job failed for %s", hostname)
        finally:
            self._inbox.put(("probe", generation, latency, config))

    def _apply_probe(self, generation: int, latency: int, config: Optional[ResolverConfig]) -> None:
        if self._inflight == generation:
            self._inflight = None
        session = self._session
        if self._status != "RUNNING" or session is None or generation != self._generation:
            log.debug("Dropping stale probe result (%sms)", latency)
            return

        self._set_state("RUNNING", session.with_changes(last_latency_ms=latency))
        self._events.publish(EVENT_STATUS_CHANGED)

        if config is None:
            return
        pinned_here = (
            config.mode is DnsMode.PINNED
            and (config.specifier or "").lower() == session.hostname.lower()
        )
        if not pinned_here:
            log.info("Private DNS no longer pinned to %s (mode=%s)", session.hostname, config.mode.value)
            self._events.publish(EVENT_EXTERNALLY_DISABLED)
