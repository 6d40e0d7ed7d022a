"""
Reusable widgets for the Private DNS panel.
"""

from __future__ import annotations

from PySide6.QtWidgets import QFrame, QVBoxLayout, QLabel, QPushButton


class Card(QFrame):
    """Rounded container grouping one section of the panel."""

    def __init__(self, title: str = "", parent=None):
        super().__init__(parent)
        self.setObjectName("Card")
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(16, 16, 16, 16)
        self.layout.setSpacing(10)
        if title:
            label = QLabel(title)
            label.setObjectName("SectionLabel")
            self.layout.addWidget(label)


class PrimaryButton(QPushButton):
    def __init__(self, text: str = "", parent=None):
        super().__init__(text, parent)
        self.setObjectName("PrimaryButton")


class SecondaryButton(QPushButton):
    def __init__(self, text: str = "", parent=None):
        super().__init__(text, parent)
        self.setObjectName("SecondaryButton")


class StatusPill(QLabel):
    """Pill label; kind is "active", "warning" or anything else for neutral."""

    _OBJECT_NAMES = {"active": "StatusPillActive", "warning": "StatusPillWarning"}

    def __init__(self, text: str = "", kind: str = "neutral", parent=None):
        super().__init__(text, parent)
        self.set_kind(kind)

    def set_kind(self, kind: str) -> None:
        self.setObjectName(self._OBJECT_NAMES.get(kind, "StatusPill"))
        # object name changes need a re-polish to pick up the new rule
        self.style().unpolish(self)
        self.style().polish(self)
