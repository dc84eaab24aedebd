"""Unit tests for occupancy resolution."""

from datetime import date, timedelta
from fractions import Fraction

import pytest

from utility_settlement.errors import InvalidRange
from utility_settlement.services.occupancy_service import (
    OccupancyInterval,
    clip_interval,
    period_days,
    resolve_occupancy,
)

JAN_1 = date(2025, 1, 1)
JAN_10 = date(2025, 1, 10)
JAN_31 = date(2025, 1, 31)


class TestHelpers:
    def test_period_days_is_inclusive(self):
        assert period_days(JAN_1, JAN_31) == 31
        assert period_days(JAN_1, JAN_1) == 1

    def test_clip_open_ended_interval(self):
        assert clip_interval(None, None, JAN_1, JAN_31) == (JAN_1, JAN_31)
        assert clip_interval(date(2024, 5, 1), None, JAN_1, JAN_31) == (JAN_1, JAN_31)

    def test_clip_disjoint_interval(self):
        assert clip_interval(date(2024, 5, 1), date(2024, 12, 31), JAN_1, JAN_31) is None
        assert clip_interval(date(2025, 2, 1), None, JAN_1, JAN_31) is None


class TestResolveOccupancy:
    def test_single_tenant_full_period(self):
        occupancy = resolve_occupancy([OccupancyInterval(1, date(2024, 6, 1), None)], JAN_1, JAN_31)

        assert occupancy.total_days == 31
        assert occupancy.vacant_days == 0
        tenant = occupancy.get(1)
        assert tenant.occupied_days == 31
        assert tenant.weighted_days == 31
        assert tenant.fraction_of_period == 1

    def test_turnover_mid_period(self):
        intervals = [
            OccupancyInterval(1, date(2024, 6, 1), date(2025, 1, 15)),
            OccupancyInterval(2, date(2025, 1, 16), None),
        ]

        occupancy = resolve_occupancy(intervals, JAN_1, JAN_31)

        assert occupancy.get(1).occupied_days == 15
        assert occupancy.get(2).occupied_days == 16
        assert occupancy.vacant_days == 0
        assert [t.tenant_id for t in occupancy.tenants] == [1, 2]

    def test_shared_days_are_split_equally(self):
        intervals = [
            OccupancyInterval(1, JAN_1, JAN_10),
            OccupancyInterval(2, date(2025, 1, 6), JAN_10),
        ]

        occupancy = resolve_occupancy(intervals, JAN_1, JAN_10)

        assert occupancy.get(1).occupied_days == 10
        assert occupancy.get(1).weighted_days == Fraction(15, 2)
        assert occupancy.get(2).occupied_days == 5
        assert occupancy.get(2).weighted_days == Fraction(5, 2)
        assert occupancy.day_weights[date(2025, 1, 7)] == {1: Fraction(1, 2), 2: Fraction(1, 2)}

    def test_day_weights_sum_to_one_or_zero(self):
        intervals = [
            OccupancyInterval(1, date(2025, 1, 3), date(2025, 1, 20)),
            OccupancyInterval(2, date(2025, 1, 10), date(2025, 1, 25)),
            OccupancyInterval(3, date(2025, 1, 12), date(2025, 1, 14)),
        ]

        occupancy = resolve_occupancy(intervals, JAN_1, JAN_31)

        for offset in range(31):
            day = JAN_1 + timedelta(days=offset)
            total = sum(occupancy.day_weights[day].values(), Fraction(0))
            assert total in (0, 1)
        weighted = sum((t.weighted_days for t in occupancy.tenants), Fraction(0))
        assert weighted == occupancy.occupied_days

    def test_vacant_days_are_counted(self):
        occupancy = resolve_occupancy([OccupancyInterval(1, date(2025, 1, 5), None)], JAN_1, JAN_10)

        assert occupancy.vacant_days == 4
        assert occupancy.occupied_days == 6
        assert occupancy.get(1).fraction_of_period == Fraction(6, 10)

    def test_overlapping_intervals_of_same_tenant_merge(self):
        intervals = [
            OccupancyInterval(1, JAN_1, date(2025, 1, 6)),
            OccupancyInterval(1, date(2025, 1, 4), JAN_10),
        ]

        occupancy = resolve_occupancy(intervals, JAN_1, JAN_10)

        assert occupancy.headcount == 1
        assert occupancy.get(1).occupied_days == 10

    def test_no_intervals(self):
        occupancy = resolve_occupancy([], JAN_1, JAN_10)

        assert occupancy.tenants == ()
        assert occupancy.vacant_days == 10

    def test_tenants_ordered_by_first_day(self):
        intervals = [
            OccupancyInterval(7, date(2025, 1, 20), None),
            OccupancyInterval(9, JAN_1, None),
        ]

        occupancy = resolve_occupancy(intervals, JAN_1, JAN_31)

        assert [t.tenant_id for t in occupancy.tenants] == [9, 7]

    def test_inverted_period_rejected(self):
        with pytest.raises(InvalidRange):
            resolve_occupancy([], JAN_31, JAN_1)
