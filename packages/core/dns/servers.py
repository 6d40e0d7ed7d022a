"""Well-known DNS-over-TLS resolvers offered as presets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class KnownServer:
    name: str
    hostname: str
    match: str  # substring identifying the provider in a hostname


KNOWN_SERVERS: List[KnownServer] = [
    KnownServer("Cloudflare", "one.one.one.one", "cloudflare"),
    KnownServer("Google", "dns.google", "google"),
    KnownServer("Quad9", "dns.quad9.net", "quad9"),
    KnownServer("AdGuard", "dns.adguard-dns.com", "adguard"),
    KnownServer("NextDNS", "dns.nextdns.io", "nextdns"),
    KnownServer("OpenDNS", "dns.opendns.com", "opendns"),
]

MAX_FALLBACK_NAME = 20


def find_by_hostname(hostname: str) -> Optional[KnownServer]:
    host = (hostname or "").strip().lower()
    for server in KNOWN_SERVERS:
        if host == server.hostname:
            return server
    return None


def display_name(
    hostname: str,
    saved_name: Optional[str] = None,
    saved_hostname: Optional[str] = None,
) -> str:
    """Friendly name for a hostname.

    A name the user saved together with this exact hostname wins; otherwise
    the provider is guessed from the hostname, falling back to the hostname
    itself (truncated).
    """
    if saved_name and saved_hostname == hostname:
        return saved_name
    host = (hostname or "").lower()
    if host == "one.one.one.one":
        return "Cloudflare"
    for server in KNOWN_SERVERS:
        if server.match in host:
            return server.name
    return hostname[:MAX_FALLBACK_NAME]
