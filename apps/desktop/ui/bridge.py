from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class EventBridge(QObject):
    """Carries monitor events and probe results from worker threads to the GUI thread."""

    event_received = Signal(dict)
    latency_ready = Signal(str, int)
