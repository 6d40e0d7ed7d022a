"""
Reachability probe for encrypted-DNS resolvers.

Measures how long a TCP connect to the DNS-over-TLS port takes. No TLS
handshake and no DNS query is performed; the connect time is only a proxy
for "is this resolver reachable from here, and how far away is it".
"""

from __future__ import annotations

import logging
import socket
import time
from typing import Callable

log = logging.getLogger(__name__)

DOT_PORT = 853
DEFAULT_TIMEOUT_MS = 5000
UNREACHABLE = -1


class LatencyProbe:
    """Stateless TCP-connect timer. All failures collapse to UNREACHABLE."""

    def __init__(
        self,
        port: int = DOT_PORT,
        connect: Callable[..., socket.socket] = socket.create_connection,
    ) -> None:
        self._port = port
        self._connect = connect

    def measure(self, hostname: str, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> int:
        hostname = (hostname or "").strip()
        if not hostname:
            return UNREACHABLE

        start = time.monotonic()
        try:
            sock = self._connect((hostname, self._port), timeout=timeout_ms / 1000.0)
            sock.close()
        except (OSError, ValueError) as e:
            log.debug("Probe %s:%d failed: %s", hostname, self._port, e)
            return UNREACHABLE
        except Exception:
            log.exception("Unexpected probe failure for %s", hostname)
            return UNREACHABLE
        return int((time.monotonic() - start) * 1000)


_default_probe = LatencyProbe()


def measure_latency(hostname: str, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> int:
    return _default_probe.measure(hostname, timeout_ms)
