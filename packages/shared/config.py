from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field

INTERVAL_PRESETS: List[int] = [10, 30, 60, 120, 300]
MIN_INTERVAL_SECONDS = 10
DEFAULT_INTERVAL_SECONDS = 60
DEFAULT_HOSTNAME = "dns.google"
DEFAULT_SERVER_LABEL = "Private DNS"


def clamp_interval(seconds: int) -> int:
    """Custom values are accepted, only the lower bound is enforced."""
    return max(MIN_INTERVAL_SECONDS, int(seconds))


class MonitorSettings(BaseModel):
    enabled: bool = False
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS


class SessionRecord(BaseModel):
    server_label: str = DEFAULT_SERVER_LABEL
    hostname: str = ""
    started_at: int = 0  # epoch ms


class AppConfig(BaseModel):
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    session: SessionRecord = Field(default_factory=SessionRecord)
    last_hostname: str = DEFAULT_HOSTNAME
    last_server_name: Optional[str] = None

    def should_resume(self) -> bool:
        return self.monitor.enabled and bool(self.session.hostname.strip())
