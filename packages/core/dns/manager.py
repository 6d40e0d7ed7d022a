"""
Command surface used by the desktop panel, the tray toggle and scripts.

Everything that changes the host's Private DNS setting goes through here so
that the "last used resolver" bookkeeping and the change broadcast happen in
one place. Status is always read live from the resolver port.
"""

from __future__ import annotations

import logging
from typing import Optional

from packages.core.monitor.session_monitor import SessionMonitor
from packages.core.monitor.types import EVENT_STATUS_CHANGED
from packages.shared.config import DEFAULT_SERVER_LABEL, MIN_INTERVAL_SECONDS
from packages.shared.store import ConfigStore

from .latency_probe import DEFAULT_TIMEOUT_MS, UNREACHABLE, LatencyProbe
from .resolver_port import ResolverConfigPort
from .servers import display_name
from .types import DnsMode, DnsStatus

log = logging.getLogger(__name__)


class InvalidArgument(ValueError):
    """A required argument was missing or blank."""


def _require_hostname(hostname: Optional[str]) -> str:
    hostname = (hostname or "").strip()
    if not hostname:
        raise InvalidArgument("hostname is required")
    return hostname


class DnsManager:
    def __init__(
        self,
        port: ResolverConfigPort,
        store: ConfigStore,
        monitor: SessionMonitor,
        probe: Optional[LatencyProbe] = None,
    ) -> None:
        self._port = port
        self._store = store
        self._monitor = monitor
        self._probe = probe or LatencyProbe()

    @property
    def monitor(self) -> SessionMonitor:
        return self._monitor

    def has_permission(self) -> bool:
        return self._port.has_write_permission()

    def get_status(self) -> DnsStatus:
        return self._port.get_status()

    def set_dns(self, hostname: str, server_name: Optional[str] = None) -> bool:
        hostname = _require_hostname(hostname)
        if not self._port.set_pinned(hostname):
            log.warning("Could not pin Private DNS to %s", hostname)
            return False

        self._monitor.remember_resolver(hostname, server_name)
        self._monitor.events.publish(EVENT_STATUS_CHANGED)
        if self._monitor.is_running:
            self._monitor.update(server_label=server_name, hostname=hostname)
        log.info("Private DNS pinned to %s", hostname)
        return True

    def set_opportunistic(self) -> bool:
        if not self._port.set_mode(DnsMode.OPPORTUNISTIC):
            return False
        self._monitor.events.publish(EVENT_STATUS_CHANGED)
        return True

    def disable_dns(self) -> bool:
        if not self._port.set_mode(DnsMode.OFF):
            return False
        self._monitor.events.publish(EVENT_STATUS_CHANGED)
        self._monitor.stop()
        log.info("Private DNS disabled")
        return True

    def toggle(self) -> Optional[DnsStatus]:
        """Quick toggle: pinned -> off, anything else -> last used resolver."""
        if not self._port.has_write_permission():
            log.warning("Toggle refused: no write permission")
            return None
        if self._port.is_enabled():
            ok = self.disable_dns()
        else:
            cfg = self._store.load()
            ok = self.set_dns(cfg.last_hostname, cfg.last_server_name)
        return self.get_status() if ok else None

    def get_last_hostname(self) -> str:
        return self._store.load().last_hostname

    def save_last_hostname(self, hostname: str) -> bool:
        return self._monitor.remember_resolver(_require_hostname(hostname))

    def server_display_name(self, hostname: str) -> str:
        cfg = self._store.load()
        return display_name(hostname, cfg.last_server_name, cfg.last_hostname)

    def start_monitor(
        self,
        hostname: Optional[str] = None,
        server_name: Optional[str] = None,
        interval: Optional[int] = None,
    ) -> bool:
        cfg = self._store.load()
        host = (hostname or "").strip() or cfg.last_hostname
        name = server_name or DEFAULT_SERVER_LABEL
        seconds = interval if interval is not None else cfg.monitor.interval_seconds
        return self._monitor.start(name, host, seconds)

    def stop_monitor(self) -> bool:
        return self._monitor.stop()

    def is_monitor_active(self) -> bool:
        return self._monitor.is_running

    def is_monitor_enabled(self) -> bool:
        return self._store.load().monitor.enabled

    def set_interval(self, seconds: int) -> bool:
        if seconds is None or seconds < MIN_INTERVAL_SECONDS:
            log.warning("Invalid interval %s (minimum %ss)", seconds, MIN_INTERVAL_SECONDS)
            return False
        return self._monitor.set_interval(seconds)

    def get_interval(self) -> int:
        return self._store.load().monitor.interval_seconds

    def update_monitor_hostname(self, hostname: str) -> bool:
        hostname = _require_hostname(hostname)
        if not self._monitor.is_running:
            return True
        return self._monitor.update(hostname=hostname)

    def test_latency(self, hostname: str, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> int:
        if not (hostname or "").strip():
            return UNREACHABLE
        return self._probe.measure(hostname, timeout_ms)
