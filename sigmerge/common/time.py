from __future__ import annotations

from datetime import datetime
import time


def getNowIso() -> str:
    """Локальное время с offset, например 2026-01-11T18:22:10+01:00."""
    return datetime.now().astimezone().isoformat()


def getDurationMs(startMonotonic: float, endMonotonic: float | None = None) -> int:
    if endMonotonic is None:
        endMonotonic = time.monotonic()
    return max(0, int((endMonotonic - startMonotonic) * 1000))
