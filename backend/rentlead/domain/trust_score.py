# rentlead/domain/trust_score.py
"""
Owner trust score (0-100), computed on demand from current properties and leads.

Four independently capped components:
  property quality     0-25
  response performance 0-25
  conversion rate      0-30
  activity level       0-20

The "prompt" window here (hours) is deliberately coarser than the 10-minute
fast-response counter kept on OwnerStats; they are different metrics.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from .parsing import round_half_up
from .types import LeadFacts, LeadStatus, PropertyFacts

PROMPT_RESPONSE_HOUR_THRESHOLD = 24
RECENT_LEAD_WINDOW_DAYS = 30

_PROPERTY_MAX = 25.0
_RESPONSE_MAX = 25.0
_CONVERSION_MAX = 30.0
_ACTIVITY_MAX = 20.0

# Neutral defaults for owners without any leads yet
_RESPONSE_DEFAULT = 15.0
_CONVERSION_DEFAULT = 10.0


@dataclass(frozen=True)
class TrustScoreBreakdown:
    property_quality: float
    response_performance: float
    conversion_rate: float
    activity_level: float

    @property
    def total(self) -> int:
        raw = self.property_quality + self.response_performance + self.conversion_rate + self.activity_level
        return min(100, max(0, round_half_up(raw)))


def _clamp(v: float, hi: float) -> float:
    return max(0.0, min(hi, v))


def property_points(p: PropertyFacts) -> int:
    pts = 0
    if p.image_count > 0:
        pts += 5
    if len(p.description or "") > 50:
        pts += 3
    if p.amenity_count > 0:
        pts += 2
    if p.is_active:
        pts += 5
    return pts  # max 15


def property_quality_score(properties: Sequence[PropertyFacts]) -> float:
    if not properties:
        return 0.0
    avg = sum(property_points(p) for p in properties) / len(properties)
    return _clamp((avg / 15.0) * _PROPERTY_MAX, _PROPERTY_MAX)


def response_score(leads: Sequence[LeadFacts], *, prompt_hours: int = PROMPT_RESPONSE_HOUR_THRESHOLD) -> float:
    if not leads:
        return _RESPONSE_DEFAULT

    responded = [l for l in leads if l.owner_responded]
    rate_term = (len(responded) / len(leads)) * 15.0

    prompt_term = 0.0
    if responded:
        limit = prompt_hours * 60
        prompt = [l for l in responded if l.response_time_minutes is not None and l.response_time_minutes <= limit]
        prompt_term = (len(prompt) / len(responded)) * 10.0

    return _clamp(rate_term + prompt_term, _RESPONSE_MAX)


def conversion_score(leads: Sequence[LeadFacts]) -> float:
    if not leads:
        return _CONVERSION_DEFAULT
    closed = sum(1 for l in leads if l.status == LeadStatus.closed)
    pct = (closed / len(leads)) * 100.0
    # 50% conversion saturates
    return _clamp((pct / 50.0) * _CONVERSION_MAX, _CONVERSION_MAX)


def activity_score(
    properties: Sequence[PropertyFacts],
    leads: Sequence[LeadFacts],
    now: datetime,
    *,
    recent_days: int = RECENT_LEAD_WINDOW_DAYS,
) -> float:
    active = sum(1 for p in properties if p.is_active)
    cutoff = now - timedelta(days=recent_days)
    recent = sum(1 for l in leads if l.created_at > cutoff)
    return _clamp(min(10, active * 2) + min(10, recent * 2), _ACTIVITY_MAX)


def score_components(
    properties: Sequence[PropertyFacts],
    leads: Sequence[LeadFacts],
    now: datetime,
    *,
    prompt_hours: int = PROMPT_RESPONSE_HOUR_THRESHOLD,
    recent_days: int = RECENT_LEAD_WINDOW_DAYS,
) -> TrustScoreBreakdown:
    if not properties:
        # No listings: nothing to vouch for, regardless of stray leads.
        return TrustScoreBreakdown(0.0, 0.0, 0.0, 0.0)
    return TrustScoreBreakdown(
        property_quality=property_quality_score(properties),
        response_performance=response_score(leads, prompt_hours=prompt_hours),
        conversion_rate=conversion_score(leads),
        activity_level=activity_score(properties, leads, now, recent_days=recent_days),
    )


def compute_trust_score(
    properties: Sequence[PropertyFacts],
    leads: Sequence[LeadFacts],
    now: datetime,
    **kwargs,
) -> int:
    return score_components(properties, leads, now, **kwargs).total
