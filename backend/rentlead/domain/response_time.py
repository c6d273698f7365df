# rentlead/domain/response_time.py
from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime

from .parsing import round_half_up
from .types import OwnerStats

FAST_RESPONSE_MINUTE_THRESHOLD = 10


def response_minutes(lead_created_at: datetime, now: datetime) -> int:
    """Minutes from lead creation to the owner's first response, rounded up."""
    seconds = (now - lead_created_at).total_seconds()
    return max(0, math.ceil(seconds / 60.0))


def record_first_response(
    stats: OwnerStats,
    lead_created_at: datetime,
    now: datetime,
    *,
    fast_response_minute_threshold: int = FAST_RESPONSE_MINUTE_THRESHOLD,
) -> OwnerStats:
    """
    Fold one first-response latency into the owner's running statistics.

    Pure: returns a new OwnerStats with the same version; the caller owns the
    compare-and-swap against the stored aggregate.
    """
    minutes = response_minutes(lead_created_at, now)
    total = stats.total_responses + 1
    fast = stats.fast_response_count + (1 if minutes <= fast_response_minute_threshold else 0)
    avg = round_half_up(((stats.avg_response_time_minutes * (total - 1)) + minutes) / total)
    return replace(
        stats,
        avg_response_time_minutes=avg,
        total_responses=total,
        fast_response_count=fast,
        last_response_time=now,
    )
