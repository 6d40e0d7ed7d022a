from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DnsMode(str, Enum):
    """Private DNS modes, valued as they are stored in the settings store."""
    OFF = "off"
    OPPORTUNISTIC = "opportunistic"
    PINNED = "hostname"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "DnsMode":
        """Unknown or missing values read as OFF."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.OFF


@dataclass(frozen=True)
class ResolverConfig:
    mode: DnsMode = DnsMode.OFF
    specifier: Optional[str] = None  # only set when mode is PINNED

    def __post_init__(self) -> None:
        if self.mode is DnsMode.PINNED and not self.specifier:
            raise ValueError("PINNED mode requires a specifier")
        if self.mode is not DnsMode.PINNED and self.specifier is not None:
            raise ValueError(f"{self.mode.name} mode takes no specifier")


@dataclass(frozen=True)
class DnsStatus:
    enabled: bool
    mode: DnsMode
    hostname: Optional[str]

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "mode": self.mode.value, "hostname": self.hostname}
