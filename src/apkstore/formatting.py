"""Display formatting for sizes, counts and dates."""

from __future__ import annotations

import math
from datetime import datetime
from numbers import Real
from typing import Optional

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB"]


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def format_bytes(size, decimals: int = 2) -> str:
    """
    Human readable size using 1024-based units.

    Missing, zero or non-numeric sizes render as ``0 Bytes``.
    Trailing zeros are dropped: ``1536`` -> ``1.5 KB``.
    """
    if not _is_number(size) or size <= 0:
        return "0 Bytes"

    index = max(0, min(int(math.floor(math.log(size, 1024))), len(BYTE_UNITS) - 1))
    value = size / (1024 ** index)
    text = f"{value:.{max(decimals, 0)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[index]}"


def format_number(count) -> str:
    """Group thousands (``12000`` -> ``12,000``); missing counts render as ``0``."""
    if not _is_number(count):
        return "0"
    if float(count).is_integer():
        return f"{int(count):,}"
    return f"{round(count, 3):,}"


def format_release_date(created_at: Optional[datetime]) -> str:
    """``M/D/YYYY`` for a known creation time, ``Recently`` otherwise."""
    if created_at is None:
        return "Recently"
    return f"{created_at.month}/{created_at.day}/{created_at.year}"
