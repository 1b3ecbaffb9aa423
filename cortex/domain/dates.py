# cortex/domain/dates.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator


def date_key(d: date | datetime) -> int:
    """YYYYMMDD as an int, e.g. 2025-03-07 -> 20250307."""
    return d.year * 10000 + d.month * 100 + d.day


def from_date_key(key: int) -> date:
    return date(key // 10000, (key // 100) % 100, key % 100)


def window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def iter_days(first: date, last: date) -> Iterator[date]:
    """Every calendar day in [first, last], inclusive."""
    d = first
    while d <= last:
        yield d
        d += timedelta(days=1)
