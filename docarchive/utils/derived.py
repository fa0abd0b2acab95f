"""
Derived values computed on read.

None of these are stored; response schemas call them when shaping output.
"""

from datetime import datetime

from docarchive.utils.dates import utcnow

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def full_name(first_name: str | None, last_name: str | None) -> str:
    return " ".join(part for part in (first_name, last_name) if part)


def is_locked(lock_until: datetime | None, now: datetime | None = None) -> bool:
    if lock_until is None:
        return False
    return lock_until > (now or utcnow())


def format_file_size(size: int | None) -> str:
    """Human readable size, e.g. ``1536`` -> ``"1.5 KB"``."""
    if not size:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"
