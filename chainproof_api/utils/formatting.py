"""Display helpers for listings."""

from datetime import datetime
from typing import Optional


def format_file_size(size: Optional[int]) -> str:
    """Human readable size, e.g. ``1.5 MB``."""
    if not size:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def days_since(moment: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days elapsed since `moment`."""
    if moment is None:
        return 0
    now = now or datetime.utcnow()
    return max((now - moment).days, 0)
