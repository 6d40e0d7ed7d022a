from __future__ import annotations

from typing import Optional

from packages.core.dns.types import DnsStatus
from packages.core.monitor.types import MonitorSnapshot


def format_latency(latency_ms: Optional[int]) -> str:
    if latency_ms is None:
        return "Testing…"
    if latency_ms < 0:
        return "No connection"
    return f"{latency_ms}ms"


def format_duration(duration_ms: int) -> str:
    total = max(0, duration_ms) // 1000
    days, hours = total // 86400, (total % 86400) // 3600
    minutes, seconds = (total % 3600) // 60, total % 60
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}min"
    if minutes > 0:
        return f"{minutes}min"
    return f"{seconds}s"


def build_status_payload(snapshot: MonitorSnapshot, now_ms: int) -> dict:
    """Title/body for the persistent status display."""
    session = snapshot.session
    if not snapshot.is_running or session is None:
        return {"title": "Private DNS", "body": "Monitoring stopped"}
    body = format_latency(session.last_latency_ms)
    if session.hostname:
        body = f"{body} • {format_duration(now_ms - session.started_at)}"
    return {"title": f"{session.server_label} active", "body": body, "subtext": session.hostname}


def build_toggle_label(status: DnsStatus) -> dict:
    """Label/subtitle for the quick toggle."""
    if status.enabled:
        return {"label": "Private DNS", "subtitle": status.hostname or "Active", "active": True}
    return {"label": "Private DNS", "subtitle": "Disabled", "active": False}
