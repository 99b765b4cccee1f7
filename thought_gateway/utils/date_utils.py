"""Date manipulation utilities"""

from datetime import date, datetime, timezone


def utc_today(now: datetime | None = None) -> date:
    """Calendar day key for banks; days roll over at midnight UTC"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()
