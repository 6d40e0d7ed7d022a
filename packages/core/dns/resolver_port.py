"""
Access to the host's Private DNS setting.

The setting is shared, externally mutable state: any other process (or the
user) may rewrite it between two reads. Callers should re-read it whenever
they need to know whether Private DNS is enabled instead of caching it.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .types import DnsMode, DnsStatus, ResolverConfig

log = logging.getLogger(__name__)

MODE_KEY = "private_dns_mode"
SPECIFIER_KEY = "private_dns_specifier"


class ResolverConfigPort(ABC):
    """
    Read/write capability over the OS-level Private DNS setting.

    Subclasses implement the raw key access; mode parsing, permission
    short-circuits and the specifier-before-mode write order live here.
    """

    @abstractmethod
    def has_write_permission(self) -> bool:
        ...

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the stored value, None if unset. May raise on I/O failure."""
        ...

    @abstractmethod
    def _write(self, key: str, value: str) -> bool:
        """Store one value. May raise on I/O failure."""
        ...

    def get_mode(self) -> DnsMode:
        try:
            return DnsMode.parse(self._read(MODE_KEY))
        except Exception:
            log.warning("Could not read %s, assuming off", MODE_KEY, exc_info=True)
            return DnsMode.OFF

    def get_specifier(self) -> Optional[str]:
        """Pinned hostname, None when the mode is not PINNED."""
        if self.get_mode() is not DnsMode.PINNED:
            return None
        return self._read_specifier()

    def _read_specifier(self) -> Optional[str]:
        try:
            value = self._read(SPECIFIER_KEY)
        except Exception:
            log.warning("Could not read %s", SPECIFIER_KEY, exc_info=True)
            return None
        return value or None

    def get_resolver_config(self) -> ResolverConfig:
        mode = self.get_mode()
        if mode is not DnsMode.PINNED:
            return ResolverConfig(mode)
        specifier = self._read_specifier()
        if not specifier:
            # hostname mode without a hostname resolves nothing
            return ResolverConfig(DnsMode.OFF)
        return ResolverConfig(mode, specifier)

    def is_enabled(self) -> bool:
        # OPPORTUNISTIC is reported as not enabled on purpose.
        return self.get_mode() is DnsMode.PINNED

    def get_status(self) -> DnsStatus:
        mode = self.get_mode()
        return DnsStatus(
            enabled=mode is DnsMode.PINNED,
            mode=mode,
            hostname=self._read_specifier() if mode is DnsMode.PINNED else None,
        )

    def set_pinned(self, hostname: str) -> bool:
        hostname = (hostname or "").strip()
        if not hostname:
            log.error("set_pinned called without a hostname")
            return False
        if not self.has_write_permission():
            log.error("No write permission for the Private DNS setting")
            return False
        try:
            # specifier first so mode=hostname never points at a stale value
            specifier_ok = self._write(SPECIFIER_KEY, hostname)
            log.debug("set_pinned specifier=%s result=%s", hostname, specifier_ok)
            if not specifier_ok:
                return False
            mode_ok = self._write(MODE_KEY, DnsMode.PINNED.value)
            log.debug("set_pinned mode=hostname result=%s", mode_ok)
            return mode_ok
        except Exception:
            log.exception("Failed to pin Private DNS to %s", hostname)
            return False

    def set_mode(self, mode: DnsMode) -> bool:
        if mode is DnsMode.PINNED:
            log.error("set_mode cannot pin a resolver, use set_pinned")
            return False
        if not self.has_write_permission():
            log.error("No write permission for the Private DNS setting")
            return False
        try:
            ok = self._write(MODE_KEY, mode.value)
            log.debug("set_mode mode=%s result=%s", mode.value, ok)
            return ok
        except Exception:
            log.exception("Failed to set Private DNS mode to %s", mode.value)
            return False


class SettingsFileResolverPort(ResolverConfigPort):
    """Private DNS setting kept as a flat JSON object of global settings."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def has_write_permission(self) -> bool:
        if self._path.exists():
            return os.access(self._path, os.W_OK)
        parent = self._path.parent
        return parent.is_dir() and os.access(parent, os.W_OK)

    def _load(self) -> dict:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not hold a settings object")
        return data

    def _read(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def _write(self, key: str, value: str) -> bool:
        data = self._load()
        data[key] = value
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)
        return True
