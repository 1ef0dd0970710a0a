"""Time helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone

HOUR_MS = 3600 * 1000


def now_ms() -> int:
    """Return current timestamp in milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(value: int) -> datetime:
    """Convert a millisecond epoch timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
