from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    value = (value or "").strip()
    return parse_iso_date(value) if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing ``day``."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def iso_or_none(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
