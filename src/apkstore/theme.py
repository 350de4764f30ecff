"""
Design tokens and Qt stylesheets for the storefront.
"""

from __future__ import annotations

from typing import Dict

COLORS: Dict[str, Dict[int, str]] = {
    "dark": {
        900: "#121212",
        800: "#1e1e1e",
        700: "#2c2c2c",
    },
    "primary": {
        500: "#3b82f6",
    },
}

TEXT = "#ffffff"
TEXT_MUTED = "#94a3b8"
TEXT_DIM = "#64748b"
BORDER = "#333333"
ERROR_TEXT = "#fecaca"
ERROR_BG = "#3b1f24"
ERROR_BORDER = "#7f1d1d"


def color(token: str) -> str:
    """Resolve a ``name.shade`` token such as ``dark.800``."""
    name, _, shade = token.partition(".")
    try:
        return COLORS[name][int(shade)]
    except (KeyError, ValueError):
        raise KeyError(f"Unknown color token: {token}")


def window_stylesheet() -> str:
    return f"""
        QMainWindow, QDialog {{
            background-color: {color("dark.900")};
        }}
        QLabel {{
            color: {TEXT};
        }}
        QLineEdit {{
            background-color: {color("dark.800")};
            border: 1px solid {color("dark.700")};
            border-radius: 16px;
            padding: 8px 14px;
            color: {TEXT};
        }}
        QLineEdit:focus {{
            border-color: {color("primary.500")};
        }}
        QScrollArea {{
            border: none;
            background-color: {color("dark.900")};
        }}
    """


def card_stylesheet() -> str:
    return f"""
        AppCard {{
            background-color: {color("dark.800")};
            border: 1px solid {BORDER};
            border-radius: 16px;
        }}
        AppCard:hover {{
            border-color: {color("primary.500")};
        }}
    """


def primary_button_stylesheet() -> str:
    return f"""
        QPushButton {{
            background-color: {color("primary.500")};
            color: {TEXT};
            border: none;
            border-radius: 8px;
            padding: 8px 20px;
            font-weight: bold;
        }}
        QPushButton:hover {{
            background-color: #60a5fa;
        }}
        QPushButton:disabled {{
            background-color: {color("dark.700")};
            color: {TEXT_DIM};
        }}
    """


def banner_stylesheet() -> str:
    return f"""
        QFrame {{
            background-color: {ERROR_BG};
            border: 1px solid {ERROR_BORDER};
            border-radius: 12px;
        }}
        QLabel {{
            color: {ERROR_TEXT};
            border: none;
        }}
    """


def chip_stylesheet() -> str:
    return (
        f"background-color: {color('dark.700')}; color: {TEXT_MUTED};"
        " border-radius: 4px; padding: 1px 6px; font-size: 10px;"
    )
