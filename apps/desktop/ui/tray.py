"""
System tray surface: persistent status line plus a one-click Private DNS toggle.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from packages.core.dns.manager import DnsManager
from packages.core.monitor.types import EVENT_EXTERNALLY_DISABLED
from packages.core.notify.notifier import Notifier, build_external_change_payload
from packages.core.notify.status_text import build_status_payload, build_toggle_label

from .bridge import EventBridge

log = logging.getLogger(__name__)


class TrayNotifier:
    def __init__(self, tray: QSystemTrayIcon) -> None:
        self._tray = tray

    def notify(self, title: str, body: str) -> None:
        self._tray.showMessage(title, body, QSystemTrayIcon.Information, 6000)


class DnsTray(QSystemTrayIcon):
    def __init__(
        self,
        manager: DnsManager,
        bridge: EventBridge,
        open_panel: Callable[[], None],
        notifier: Optional[Notifier] = None,
    ) -> None:
        app = QApplication.instance()
        super().__init__(app.style().standardIcon(QStyle.SP_DriveNetIcon))
        self.manager = manager
        self.notifier: Notifier = notifier or TrayNotifier(self)
        self._drift_notified: Optional[str] = None

        menu = QMenu()
        self._status_action = QAction("", menu)
        self._status_action.setEnabled(False)
        menu.addAction(self._status_action)
        menu.addSeparator()

        self._toggle_action = QAction("Private DNS", menu)
        self._toggle_action.setCheckable(True)
        self._toggle_action.triggered.connect(self._toggle)
        menu.addAction(self._toggle_action)

        self._stop_action = QAction("Stop monitoring", menu)
        self._stop_action.triggered.connect(self.manager.stop_monitor)
        menu.addAction(self._stop_action)

        open_action = QAction("Open panel", menu)
        open_action.triggered.connect(open_panel)
        menu.addAction(open_action)
        menu.addSeparator()

        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(app.quit)
        menu.addAction(quit_action)

        menu.aboutToShow.connect(self.refresh)
        self.setContextMenu(menu)
        self._menu = menu
        self.activated.connect(lambda reason: open_panel() if reason == QSystemTrayIcon.DoubleClick else None)

        bridge.event_received.connect(self._on_monitor_event)
        self.refresh()

    def refresh(self) -> None:
        status = self.manager.get_status()
        toggle = build_toggle_label(status)
        self._toggle_action.setChecked(toggle["active"])
        self._toggle_action.setText(f"{toggle['label']}: {toggle['subtitle']}")
        self._toggle_action.setEnabled(self.manager.has_permission())

        snap = self.manager.monitor.snapshot()
        payload = build_status_payload(snap, int(time.time() * 1000))
        line = f"{payload['title']} · {payload['body']}"
        self._status_action.setText(line)
        self._stop_action.setEnabled(snap.is_running)
        self.setToolTip(line)

    def _toggle(self) -> None:
        if self.manager.toggle() is None:
            self.notifier.notify("Private DNS", "Could not change Private DNS (permission denied?)")
        self.refresh()

    def _on_monitor_event(self, evt: dict) -> None:
        if evt.get("type") == EVENT_EXTERNALLY_DISABLED:
            session = self.manager.monitor.snapshot().session
            # one notification per drifted session, not one per poll
            if session is not None and self._drift_notified != session.hostname:
                self._drift_notified = session.hostname
                payload = build_external_change_payload(session.hostname)
                self.notifier.notify(payload["title"], payload["body"])
        elif self.manager.get_status().enabled:
            self._drift_notified = None
        self.refresh()
