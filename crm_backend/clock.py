from __future__ import annotations

import datetime
from typing import Optional, Tuple


def now() -> datetime.datetime:
    """Server-local wall clock, naive. All stored timestamps use this."""
    return datetime.datetime.now()


def start_of_day(moment: Optional[datetime.datetime] = None) -> datetime.datetime:
    moment = moment or now()
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def day_bounds(day: datetime.date) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Half-open range [day 00:00, next day 00:00) covering one calendar day.

    Used instead of DATE(column) so the same filter works on SQLite and Postgres
    and can use indexes.
    """
    start = datetime.datetime.combine(day, datetime.time.min)
    return start, start + datetime.timedelta(days=1)
