"""
Latency check for DNS-over-TLS resolvers.
Run this to verify that port 853 is reachable from this machine.

Usage:
    python scripts/probe_latency.py                 # all preset resolvers
    python scripts/probe_latency.py dns.google -n 5 # one host, five rounds
"""

import argparse
import logging
import os
import sys
import time

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from packages.core.dns.latency_probe import DEFAULT_TIMEOUT_MS, LatencyProbe
from packages.core.dns.servers import KNOWN_SERVERS, display_name
from packages.core.notify.status_text import format_latency

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)


def main():
    parser = argparse.ArgumentParser(description="Measure TCP connect time to port 853")
    parser.add_argument("hosts", nargs="*", help="hostnames (default: all presets)")
    parser.add_argument("-n", "--rounds", type=int, default=1)
    parser.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    args = parser.parse_args()

    hosts = args.hosts or [s.hostname for s in KNOWN_SERVERS]
    probe = LatencyProbe()

    print("=" * 60)
    print("DNS-over-TLS reachability")
    print("=" * 60)

    unreachable = 0
    for host in hosts:
        results = []
        for _ in range(max(1, args.rounds)):
            results.append(probe.measure(host, args.timeout_ms))
            time.sleep(0.2)
        ok = [r for r in results if r >= 0]
        if not ok:
            unreachable += 1
        summary = ", ".join(format_latency(r) for r in results)
        best = f"best {min(ok)}ms" if ok else "unreachable"
        print(f"{display_name(host):<12} {host:<24} {summary}  ({best})")

    print("-" * 60)
    return 1 if unreachable == len(hosts) else 0


if __name__ == "__main__":
    sys.exit(main())
