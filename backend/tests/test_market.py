from datetime import datetime

from rentlead.domain.market import (
    MarketStats,
    bucket_key_for,
    summarize_area,
    summarize_catalog,
    summarize_closed_deals,
)
from rentlead.domain.types import ClosedDeal

JAN = datetime(2024, 1, 15)


def test_empty_bucket_keeps_listing_counts():
    key = bucket_key_for("Pune", "Baner", "2BHK", JAN)
    assert summarize_closed_deals(key, [], total_listings=3, active_listings=2) == MarketStats(
        total_listings=3, active_listings=2
    )


def test_summary_over_all_closed_deals():
    key = bucket_key_for("Pune", "Baner", "2BHK", JAN)
    deals = [
        ClosedDeal(final_rent=20000.0, deposit=None, days_to_close=10, closed_at=datetime(2024, 1, 3)),
        ClosedDeal(final_rent=30000.0, deposit=60000.0, days_to_close=21, closed_at=datetime(2024, 1, 20)),
        ClosedDeal(final_rent=25000.0, deposit=50000.0, days_to_close=None, closed_at=datetime(2023, 12, 30)),
    ]
    s = summarize_closed_deals(key, deals, total_listings=5, active_listings=4)
    assert s.avg_rent == 25000
    assert s.min_rent == 20000.0
    assert s.max_rent == 30000.0
    # missing deposit counts as 0
    assert s.avg_deposit == 36667
    assert s.avg_days_to_rent == 16  # 15.5 rounds up
    assert s.fastest_days_to_rent == 10
    assert s.rented_this_month == 2
    assert (s.total_listings, s.active_listings) == (5, 4)


def test_summary_is_deterministic():
    key = bucket_key_for("Pune", "Baner", "2BHK", JAN)
    deals = [ClosedDeal(final_rent=1000.0, deposit=0.0, days_to_close=3, closed_at=JAN)]
    a = summarize_closed_deals(key, deals, total_listings=1, active_listings=1)
    b = summarize_closed_deals(key, deals, total_listings=1, active_listings=1)
    assert a == b


def test_area_summary_weighs_each_unit_type_once():
    buckets = [
        ("1BHK", MarketStats(avg_rent=15000, min_rent=14000.0, max_rent=16000.0, avg_deposit=30000,
                             avg_days_to_rent=3, total_listings=4, active_listings=2, rented_this_month=2)),
        ("2BHK", MarketStats(avg_rent=26001, min_rent=26001.0, max_rent=26001.0, avg_deposit=0,
                             avg_days_to_rent=6, total_listings=1, active_listings=1, rented_this_month=1)),
    ]
    s = summarize_area("Baner", 2024, 1, buckets)
    assert s.avg_rent == 20501  # 20500.5 rounds up
    assert s.avg_deposit == 15000
    assert s.avg_days_to_rent == 5  # 4.5 rounds up
    assert (s.total_deals, s.total_listings, s.active_listings) == (3, 5, 3)
    assert s.from_catalog is False
    assert list(s.by_unit_type) == ["1BHK", "2BHK"]
    assert s.by_unit_type["1BHK"].min_rent == 14000.0


def test_area_without_buckets_or_listings():
    assert summarize_area("Baner", 2024, 1, []) is None
    assert summarize_catalog("Baner", 2024, 1, listing_count=0, prices=[]) is None


def test_catalog_estimate():
    s = summarize_catalog("Baner", 2024, 1, listing_count=3, prices=[20000.0, 25000.0])
    assert s.avg_rent == 22500
    assert s.avg_deposit == 45000
    assert s.avg_days_to_rent == 15
    assert s.total_deals == 0
    assert (s.total_listings, s.active_listings) == (3, 3)
    assert s.from_catalog is True
    assert s.by_unit_type == {}

    # listings without an asking price still count
    assert summarize_catalog("Baner", 2024, 1, listing_count=1, prices=[]).avg_rent == 0
