# rentlead/domain/priority.py
from __future__ import annotations

import math
from datetime import date, datetime, time

from .types import Priority

HOT_MAX_DAYS = 7
WARM_MAX_DAYS = 30

_SECONDS_PER_DAY = 24 * 60 * 60


def _as_datetime(d: date | datetime) -> datetime:
    if isinstance(d, datetime):
        return d
    return datetime.combine(d, time.min)


def days_until_move_in(move_in_date: date | datetime, now: datetime) -> int:
    delta = _as_datetime(move_in_date) - now
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def classify(
    move_in_date: date | datetime,
    now: datetime,
    *,
    hot_max_days: int = HOT_MAX_DAYS,
    warm_max_days: int = WARM_MAX_DAYS,
) -> Priority:
    """
    Move-in urgency tier. A move-in date in the past is still hot.
    """
    days = days_until_move_in(move_in_date, now)
    if days <= hot_max_days:
        return Priority.hot
    if days <= warm_max_days:
        return Priority.warm
    return Priority.casual
