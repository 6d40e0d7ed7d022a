"""
Design tokens and QSS generator for the Private DNS desktop panel.
Light and dark palettes share the same accent colors.
"""

from __future__ import annotations

from typing import Literal

FONT_FAMILY = "Segoe UI, -apple-system, BlinkMacSystemFont, sans-serif"
FONT_SIZES = {"sm": "13px", "base": "15px", "lg": "17px", "xl": "26px"}

ACCENTS = {
    "blue": "#007AFF",
    "green": "#34C759",
    "orange": "#FF9500",
    "red": "#FF3B30",
    "gray": "#8E8E93",
}

LIGHT_COLORS = {
    "background": "#F5F5F7",
    "surface": "#FFFFFF",
    "surface_secondary": "#F2F2F7",
    "text_primary": "#000000",
    "text_secondary": "#6E6E73",
    "border": "#E5E5EA",
}

DARK_COLORS = {
    "background": "#000000",
    "surface": "#1C1C1E",
    "surface_secondary": "#2C2C2E",
    "text_primary": "#FFFFFF",
    "text_secondary": "#98989D",
    "border": "#38383A",
}

ThemeMode = Literal["light", "dark"]


def latency_color(latency_ms: int | None) -> str:
    """Accent used for the latency readout."""
    if latency_ms is None:
        return ACCENTS["gray"]
    if latency_ms < 0:
        return ACCENTS["red"]
    if latency_ms > 150:
        return ACCENTS["orange"]
    return ACCENTS["green"]


class Theme:
    """Theme manager providing QSS stylesheets for light and dark modes."""

    def __init__(self, mode: ThemeMode = "dark"):
        self.mode = mode
        self.colors = LIGHT_COLORS if mode == "light" else DARK_COLORS

    def get_stylesheet(self) -> str:
        c = self.colors
        return f"""
        QMainWindow {{
            background-color: {c["background"]};
            color: {c["text_primary"]};
        }}

        QLabel#TitleLabel {{
            font-family: {FONT_FAMILY};
            font-size: {FONT_SIZES["xl"]};
            font-weight: 700;
            color: {c["text_primary"]};
        }}

        QLabel#SectionLabel {{
            font-family: {FONT_FAMILY};
            font-size: {FONT_SIZES["lg"]};
            font-weight: 600;
            color: {c["text_primary"]};
        }}

        QLabel#BodyLabel, QLabel#LatencyLabel {{
            font-family: {FONT_FAMILY};
            font-size: {FONT_SIZES["base"]};
            color: {c["text_primary"]};
        }}

        QLabel#HintLabel {{
            font-family: {FONT_FAMILY};
            font-size: {FONT_SIZES["sm"]};
            color: {c["text_secondary"]};
        }}

        QFrame#Card {{
            background-color: {c["surface"]};
            border-radius: 16px;
            border: 1px solid {c["border"]};
        }}

        QPushButton#PrimaryButton {{
            background-color: {ACCENTS["blue"]};
            color: #FFFFFF;
            border: none;
            border-radius: 18px;
            padding: {SPACING["sm"]} {SPACING["xl"]};
            font-weight: 600;
            min-height: 34px;
        }}

        QPushButton#PrimaryButton:disabled, QPushButton#SecondaryButton:disabled {{
            background-color: {c["border"]};
            color: {c["text_secondary"]};
        }}

        QPushButton#SecondaryButton {{
            background-color: {c["surface_secondary"]};
            color: {ACCENTS["blue"]};
            border: 1px solid {c["border"]};
            border-radius: 18px;
            padding: {SPACING["sm"]} {SPACING["xl"]};
            min-height: 34px;
        }}

        QLineEdit, QComboBox, QSpinBox {{
            background-color: {c["surface"]};
            color: {c["text_primary"]};
            border: 1px solid {c["border"]};
            border-radius: 8px;
            padding: {SPACING["xs"]} {SPACING["sm"]};
            min-height: 30px;
        }}

        QLineEdit:focus, QComboBox:focus, QSpinBox:focus {{
            border-color: {ACCENTS["blue"]};
        }}

        QListWidget {{
            background-color: transparent;
            border: none;
            color: {c["text_primary"]};
        }}

        QLabel#StatusPill {{
            background-color: {self._rgba(ACCENTS["gray"], 0.15)};
            color: {c["text_secondary"]};
            border-radius: 12px;
            padding: {SPACING["xs"]} {SPACING["md"]};
            font-size: {FONT_SIZES["sm"]};
            font-weight: 500;
        }}

        QLabel#StatusPillActive {{
            background-color: {self._rgba(ACCENTS["green"], 0.15)};
            color: {ACCENTS["green"]};
            border-radius: 12px;
            padding: {SPACING["xs"]} {SPACING["md"]};
            font-size: {FONT_SIZES["sm"]};
            font-weight: 500;
        }}

        QLabel#StatusPillWarning {{
            background-color: {self._rgba(ACCENTS["orange"], 0.15)};
            color: {ACCENTS["orange"]};
            border-radius: 12px;
            padding: {SPACING["xs"]} {SPACING["md"]};
            font-size: {FONT_SIZES["sm"]};
            font-weight: 500;
        }}
        """

    def _rgba(self, hex_color: str, alpha: float) -> str:
        hex_color = hex_color.lstrip("#")
        r, g, b = int(hex_color[0:2], 16), int(hex_color[2:4], 16), int(hex_color[4:6], 16)
        return f"rgba({r}, {g}, {b}, {alpha})"
