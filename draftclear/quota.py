"""
Usage Gate — Daily Scan Quotas

Counts analyses per caller per UTC day, in memory, for the life of the
process. The gate only answers "is this call permitted?"; the analysis
core receives that boolean and never tracks usage itself.

Limits per tier:
  - free: DRAFTCLEAR_FREE_DAILY_SCANS (default 5)
  - pro:  DRAFTCLEAR_PRO_DAILY_SCANS (default 0 = unlimited)
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from draftclear.config import settings

# Maximum number of callers tracked before LRU eviction
MAX_TRACKED_KEYS = 5000


@dataclass
class DailyUsage:
    """Scan counter for one caller on one day."""
    day: date
    count: int = 0


_usage: OrderedDict[str, DailyUsage] = OrderedDict()
_lock = threading.Lock()


def _today() -> date:
    return datetime.now(timezone.utc).date()


def daily_limit(tier: str) -> int:
    """Scans per day for a tier. 0 means unlimited."""
    if tier == "pro":
        return settings.PRO_DAILY_SCANS
    return settings.FREE_DAILY_SCANS


def _entry(key_id: str, today: date) -> DailyUsage:
    usage = _usage.get(key_id)
    if usage is None:
        if len(_usage) >= MAX_TRACKED_KEYS:
            _usage.popitem(last=False)
        usage = DailyUsage(day=today)
        _usage[key_id] = usage
    else:
        _usage.move_to_end(key_id)
        if usage.day != today:
            usage.day = today
            usage.count = 0
    return usage


def consume_scan(key_id: str, tier: str = "free", limit: Optional[int] = None) -> bool:
    """
    Record one scan for `key_id` if the tier allows it.

    Returns:
        True when the scan is permitted (and counted), False when the
        daily limit has already been reached.
    """
    limit = daily_limit(tier) if limit is None else limit
    with _lock:
        usage = _entry(key_id, _today())
        if limit > 0 and usage.count >= limit:
            return False
        usage.count += 1
        return True


def get_usage(key_id: str, tier: str = "free") -> dict:
    """Current day's usage for a caller."""
    limit = daily_limit(tier)
    with _lock:
        usage = _usage.get(key_id)
        used = usage.count if usage and usage.day == _today() else 0
    return {
        "used": used,
        "limit": limit,
        "remaining": None if limit == 0 else max(0, limit - used),
    }


def reset_usage(key_id: Optional[str] = None) -> None:
    """Forget usage for one caller, or everyone."""
    with _lock:
        if key_id is None:
            _usage.clear()
        else:
            _usage.pop(key_id, None)
