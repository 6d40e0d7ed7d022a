from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional

MonitorStatus = Literal["STOPPED", "RUNNING"]

EVENT_STATUS_CHANGED = "STATUS_CHANGED"
EVENT_EXTERNALLY_DISABLED = "EXTERNALLY_DISABLED"
EVENT_STOPPED = "STOPPED"


@dataclass(frozen=True)
class Session:
    server_label: str
    hostname: str
    started_at: int  # epoch ms
    interval_seconds: int
    last_latency_ms: Optional[int] = None  # None = not measured yet, -1 = unreachable

    def with_changes(self, **changes) -> "Session":
        return replace(self, **changes)


@dataclass(frozen=True)
class MonitorSnapshot:
    status: MonitorStatus = "STOPPED"
    session: Optional[Session] = None

    @property
    def is_running(self) -> bool:
        return self.status == "RUNNING"
