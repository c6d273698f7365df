from datetime import datetime, timedelta

from rentlead.domain.response_time import record_first_response, response_minutes
from rentlead.domain.types import OwnerStats

T0 = datetime(2024, 1, 1, 12, 0)


def test_online_mean_example():
    stats = OwnerStats()

    stats = record_first_response(stats, T0, T0 + timedelta(minutes=8))
    assert stats.avg_response_time_minutes == 8
    assert stats.total_responses == 1
    assert stats.fast_response_count == 1

    t1 = datetime(2024, 1, 2, 9, 0)
    stats = record_first_response(stats, t1, t1 + timedelta(minutes=20))
    assert stats.avg_response_time_minutes == 14
    assert stats.total_responses == 2
    assert stats.fast_response_count == 1
    assert stats.last_response_time == t1 + timedelta(minutes=20)


def test_version_is_left_to_the_caller():
    stats = OwnerStats(version=7)
    assert record_first_response(stats, T0, T0 + timedelta(minutes=1)).version == 7


def test_minutes_round_up_and_never_negative():
    assert response_minutes(T0, T0 + timedelta(minutes=10, seconds=1)) == 11
    assert response_minutes(T0, T0) == 0
    assert response_minutes(T0, T0 - timedelta(minutes=3)) == 0


def test_fast_threshold_is_inclusive():
    stats = record_first_response(OwnerStats(), T0, T0 + timedelta(minutes=10))
    assert stats.fast_response_count == 1
    stats = record_first_response(OwnerStats(), T0, T0 + timedelta(minutes=10, seconds=30))
    assert stats.fast_response_count == 0


def test_mean_rounds_half_up():
    # (1 + 2) / 2 = 1.5 -> 2
    stats = record_first_response(OwnerStats(), T0, T0 + timedelta(minutes=1))
    stats = record_first_response(stats, T0, T0 + timedelta(minutes=2))
    assert stats.avg_response_time_minutes == 2
