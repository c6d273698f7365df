from datetime import datetime, timedelta

from rentlead.domain.trust_score import (
    compute_trust_score,
    property_points,
    response_score,
    score_components,
)
from rentlead.domain.types import LeadFacts, LeadStatus, PropertyFacts

NOW = datetime(2024, 1, 1, 12, 0)


def _prop(**kw) -> PropertyFacts:
    base = dict(
        property_id=1,
        owner_id=1,
        city="Pune",
        area="Baner",
        unit_type="2BHK",
        image_count=2,
        description="x" * 60,
        amenity_count=3,
        is_available=True,
        is_expired=False,
    )
    base.update(kw)
    return PropertyFacts(**base)


def _lead(status=LeadStatus.new, responded=False, minutes=None, age_days=1) -> LeadFacts:
    return LeadFacts(
        status=status,
        owner_responded=responded,
        response_time_minutes=minutes,
        created_at=NOW - timedelta(days=age_days),
    )


def test_property_points():
    assert property_points(_prop()) == 15
    assert property_points(_prop(image_count=0, description="short", amenity_count=0)) == 5
    assert property_points(_prop(is_expired=True)) == 10
    assert property_points(_prop(is_available=False)) == 10


def test_no_properties_scores_zero_even_with_closed_deals():
    leads = [_lead(LeadStatus.closed, True, 5) for _ in range(5)]
    assert compute_trust_score([], leads, NOW) == 0


def test_no_leads_uses_neutral_defaults():
    b = score_components([_prop()], [], NOW)
    assert b.property_quality == 25.0
    assert b.response_performance == 15.0
    assert b.conversion_rate == 10.0
    assert b.activity_level == 2.0
    assert b.total == 52


def test_mixed_leads():
    leads = [
        _lead(LeadStatus.closed, responded=True, minutes=30),
        _lead(LeadStatus.new),
    ]
    b = score_components([_prop()], leads, NOW)
    assert b.response_performance == 17.5
    assert b.conversion_rate == 30.0
    assert b.activity_level == 6.0
    # 25 + 17.5 + 30 + 6 = 78.5 -> 79
    assert b.total == 79


def test_prompt_window_is_hours_not_minutes():
    leads = [_lead(responded=True, minutes=23 * 60), _lead(responded=True, minutes=25 * 60)]
    # rate 15 + half of the prompt term
    assert response_score(leads) == 20.0


def test_components_are_capped():
    props = [_prop(property_id=i) for i in range(10)]
    leads = [_lead(LeadStatus.closed, True, 1) for _ in range(20)]
    b = score_components(props, leads, NOW)
    assert b.conversion_rate == 30.0
    assert b.activity_level == 20.0
    assert b.total == 100


def test_old_leads_do_not_count_as_recent():
    leads = [_lead(age_days=45)]
    b = score_components([_prop()], leads, NOW)
    assert b.activity_level == 2.0
