"""
Main panel: resolver selection, live status and monitoring controls.
"""

from __future__ import annotations

import logging
import threading
import time

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QComboBox,
    QSpinBox,
)

from packages.core.dns.manager import DnsManager, InvalidArgument
from packages.core.dns.servers import KNOWN_SERVERS
from packages.core.monitor.types import EVENT_EXTERNALLY_DISABLED
from packages.core.notify.status_text import build_status_payload, format_duration, format_latency
from packages.shared.config import INTERVAL_PRESETS, MIN_INTERVAL_SECONDS

from .bridge import EventBridge
from .components import Card, PrimaryButton, SecondaryButton, StatusPill
from .theme import Theme, latency_color

log = logging.getLogger(__name__)

CUSTOM_ENTRY = "Custom…"
MAX_ACTIVITY_ITEMS = 200


class MainWindow(QMainWindow):
    def __init__(self, manager: DnsManager, bridge: EventBridge) -> None:
        super().__init__()
        self.setWindowTitle("Private DNS")
        self.resize(760, 640)
        self.setMinimumSize(620, 520)

        self.manager = manager
        self.theme = Theme("dark")

        self._bridge = bridge
        self._bridge.event_received.connect(self._on_monitor_event)
        self._bridge.latency_ready.connect(self._on_latency_ready)

        self._build_ui()
        self.setStyleSheet(self.theme.get_stylesheet())
        self._load_to_ui()

        self._status_timer = QTimer(self)
        self._status_timer.timeout.connect(self._refresh_status)
        self._status_timer.start(1000)

    def _build_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        layout = QVBoxLayout(root)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        title = QLabel("Private DNS")
        title.setObjectName("TitleLabel")
        layout.addWidget(title)

        self.permission_label = QLabel(
            "No write access to the Private DNS setting. Changes are disabled."
        )
        self.permission_label.setObjectName("HintLabel")
        self.permission_label.setWordWrap(True)
        layout.addWidget(self.permission_label)

        pills = QHBoxLayout()
        self.dns_pill = StatusPill("DNS Inactive")
        pills.addWidget(self.dns_pill)
        self.monitor_pill = StatusPill("STOPPED")
        pills.addWidget(self.monitor_pill)
        pills.addStretch()
        layout.addLayout(pills)

        layout.addWidget(self._build_resolver_card())
        layout.addWidget(self._build_monitor_card())

        activity = Card("Activity")
        self.events = QListWidget()
        activity.layout.addWidget(self.events, 1)
        layout.addWidget(activity, 1)

    def _build_resolver_card(self) -> Card:
        card = Card("Resolver")

        row = QHBoxLayout()
        self.server_combo = QComboBox()
        for server in KNOWN_SERVERS:
            self.server_combo.addItem(server.name, server.hostname)
        self.server_combo.addItem(CUSTOM_ENTRY, "")
        self.server_combo.currentIndexChanged.connect(self._on_server_selected)
        row.addWidget(self.server_combo)

        self.hostname_input = QLineEdit()
        self.hostname_input.setPlaceholderText("Hostname, e.g. dns.google")
        row.addWidget(self.hostname_input, 1)
        card.layout.addLayout(row)

        buttons = QHBoxLayout()
        self.btn_apply = PrimaryButton("Use this resolver")
        self.btn_apply.clicked.connect(self._apply_resolver)
        buttons.addWidget(self.btn_apply)

        self.btn_auto = SecondaryButton("Automatic")
        self.btn_auto.clicked.connect(self._set_automatic)
        buttons.addWidget(self.btn_auto)

        self.btn_disable = SecondaryButton("Disable")
        self.btn_disable.clicked.connect(self._disable)
        buttons.addWidget(self.btn_disable)

        self.btn_test = SecondaryButton("Test latency")
        self.btn_test.clicked.connect(self._test_latency)
        buttons.addWidget(self.btn_test)
        buttons.addStretch()
        card.layout.addLayout(buttons)

        hint = QLabel("Automatic encrypts DNS when the network supports it, but is not counted as enabled.")
        hint.setObjectName("HintLabel")
        hint.setWordWrap(True)
        card.layout.addWidget(hint)
        return card

    def _build_monitor_card(self) -> Card:
        card = Card("Monitoring")

        row = QHBoxLayout()
        interval_label = QLabel("Check every (seconds):")
        interval_label.setObjectName("BodyLabel")
        row.addWidget(interval_label)

        self.interval_combo = QComboBox()
        for seconds in INTERVAL_PRESETS:
            self.interval_combo.addItem(f"{seconds}s", seconds)
        self.interval_combo.addItem(CUSTOM_ENTRY, 0)
        self.interval_combo.currentIndexChanged.connect(self._on_interval_selected)
        row.addWidget(self.interval_combo)

        self.interval_spin = QSpinBox()
        self.interval_spin.setRange(MIN_INTERVAL_SECONDS, 3600)
        self.interval_spin.setSingleStep(10)
        self.interval_spin.editingFinished.connect(self._apply_custom_interval)
        row.addWidget(self.interval_spin)
        row.addStretch()
        card.layout.addLayout(row)

        readout = QHBoxLayout()
        self.latency_label = QLabel("—")
        self.latency_label.setObjectName("LatencyLabel")
        readout.addWidget(self.latency_label)
        self.session_label = QLabel("")
        self.session_label.setObjectName("HintLabel")
        readout.addWidget(self.session_label)
        readout.addStretch()
        card.layout.addLayout(readout)

        buttons = QHBoxLayout()
        self.btn_start = PrimaryButton("Start monitoring")
        self.btn_start.clicked.connect(self._start_monitoring)
        buttons.addWidget(self.btn_start)

        self.btn_stop = SecondaryButton("Stop")
        self.btn_stop.clicked.connect(self._stop_monitoring)
        buttons.addWidget(self.btn_stop)
        buttons.addStretch()
        card.layout.addLayout(buttons)
        return card

    def _load_to_ui(self) -> None:
        last = self.manager.get_last_hostname()
        index = self.server_combo.findData(last)
        if index < 0:
            index = self.server_combo.count() - 1
        self.server_combo.setCurrentIndex(index)
        self.hostname_input.setText(last)

        interval = self.manager.get_interval()
        preset = self.interval_combo.findData(interval)
        self.interval_combo.blockSignals(True)
        self.interval_combo.setCurrentIndex(preset if preset >= 0 else self.interval_combo.count() - 1)
        self.interval_combo.blockSignals(False)
        self.interval_spin.setValue(interval)
        self.interval_spin.setVisible(preset < 0)

        self._refresh_status()

    def showEvent(self, event) -> None:
        super().showEvent(event)
        # events may have been missed while hidden
        self._refresh_status()

    def _refresh_status(self) -> None:
        status = self.manager.get_status()
        can_write = self.manager.has_permission()
        self.permission_label.setVisible(not can_write)
        for btn in (self.btn_apply, self.btn_auto, self.btn_disable):
            btn.setEnabled(can_write)

        if status.enabled:
            self.dns_pill.setText(f"DNS Active · {self.manager.server_display_name(status.hostname or '')}")
            self.dns_pill.set_kind("active")
        elif status.mode.value == "opportunistic":
            self.dns_pill.setText("DNS Automatic")
            self.dns_pill.set_kind("warning")
        else:
            self.dns_pill.setText("DNS Inactive")
            self.dns_pill.set_kind("neutral")

        snap = self.manager.monitor.snapshot()
        running = snap.is_running
        self.monitor_pill.setText("RUNNING" if running else "STOPPED")
        self.monitor_pill.set_kind("active" if running else "neutral")
        self.btn_start.setEnabled(not running)
        self.btn_stop.setEnabled(running)

        if running and snap.session is not None:
            session = snap.session
            self.latency_label.setText(format_latency(session.last_latency_ms))
            self.latency_label.setStyleSheet(f"color: {latency_color(session.last_latency_ms)};")
            now_ms = int(time.time() * 1000)
            self.session_label.setText(
                f"{session.server_label} · {session.hostname} · connected {format_duration(now_ms - session.started_at)}"
            )
            self.setToolTip(build_status_payload(snap, now_ms)["body"])
        else:
            self.latency_label.setText("—")
            self.latency_label.setStyleSheet("")
            self.session_label.setText("")

    def _append_event(self, line: str) -> None:
        stamp = time.strftime("%H:%M:%S", time.localtime())
        self.events.insertItem(0, QListWidgetItem(f"{stamp}  {line}"))
        # newest first; drop the oldest lines
        while self.events.count() > MAX_ACTIVITY_ITEMS:
            self.events.takeItem(self.events.count() - 1)

    def _selected_resolver(self) -> tuple[str, str]:
        hostname = self.hostname_input.text().strip()
        name = self.server_combo.currentText()
        if name == CUSTOM_ENTRY or self.server_combo.currentData() != hostname:
            name = self.manager.server_display_name(hostname)
        return name, hostname

    def _on_server_selected(self, index: int) -> None:
        hostname = self.server_combo.itemData(index)
        if hostname:
            self.hostname_input.setText(hostname)
        else:
            self.hostname_input.clear()
            self.hostname_input.setFocus()

    def _apply_resolver(self) -> None:
        name, hostname = self._selected_resolver()
        try:
            ok = self.manager.set_dns(hostname, name)
        except InvalidArgument:
            self._append_event("Enter a hostname first.")
            return
        self._append_event(f"Private DNS set to {name} ({hostname})." if ok else f"Could not set {hostname}.")
        self._refresh_status()

    def _set_automatic(self) -> None:
        ok = self.manager.set_opportunistic()
        self._append_event("Private DNS set to automatic." if ok else "Could not switch to automatic.")
        self._refresh_status()

    def _disable(self) -> None:
        ok = self.manager.disable_dns()
        self._append_event("Private DNS disabled." if ok else "Could not disable Private DNS.")
        self._refresh_status()

    def _test_latency(self) -> None:
        _, hostname = self._selected_resolver()
        if not hostname:
            self._append_event("Enter a hostname first.")
            return
        self.btn_test.setEnabled(False)
        self._append_event(f"Testing {hostname}…")

        def work() -> None:
            self._bridge.latency_ready.emit(hostname, self.manager.test_latency(hostname))

        threading.Thread(target=work, name="LatencyTest", daemon=True).start()

    def _on_latency_ready(self, hostname: str, latency: int) -> None:
        self.btn_test.setEnabled(True)
        self._append_event(f"{hostname}: {format_latency(latency)}")

    def _start_monitoring(self) -> None:
        name, hostname = self._selected_resolver()
        status = self.manager.get_status()
        if status.enabled and status.hostname:
            hostname = status.hostname
            name = self.manager.server_display_name(hostname)
        ok = self.manager.start_monitor(hostname or None, name, self._current_interval())
        self._append_event("Monitoring started." if ok else "Could not start monitoring.")
        self._refresh_status()

    def _stop_monitoring(self) -> None:
        ok = self.manager.stop_monitor()
        self._append_event("Monitoring stopped." if ok else "Could not stop monitoring.")
        self._refresh_status()

    def _current_interval(self) -> int:
        preset = self.interval_combo.currentData()
        return int(preset) if preset else int(self.interval_spin.value())

    def _on_interval_selected(self, index: int) -> None:
        preset = self.interval_combo.itemData(index)
        self.interval_spin.setVisible(not preset)
        if preset:
            self._apply_interval(int(preset))

    def _apply_custom_interval(self) -> None:
        self._apply_interval(int(self.interval_spin.value()))

    def _apply_interval(self, seconds: int) -> None:
        if self.manager.set_interval(seconds):
            self._append_event(f"Checking every {seconds}s.")
        else:
            self._append_event(f"Interval {seconds}s rejected.")

    def _on_monitor_event(self, evt: dict) -> None:
        if evt.get("type") == EVENT_EXTERNALLY_DISABLED:
            self._append_event("Private DNS was changed outside this app.")
        self._refresh_status()
