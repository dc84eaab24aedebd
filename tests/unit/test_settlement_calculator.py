"""Unit tests for the settlement calculator."""

from datetime import date
from decimal import Decimal

import pytest

from utility_settlement.errors import InvalidRange
from utility_settlement.models import BillingApproach, MeterType, SplitMethod
from utility_settlement.services.meter_service import MeterUsage, SegmentUsage
from utility_settlement.services.occupancy_service import OccupancyInterval
from utility_settlement.services.settlement_calculator import (
    FixedSource,
    MeteredSource,
    SettlementInputs,
    calculate_settlement,
)

JAN_1 = date(2025, 1, 1)
JAN_30 = date(2025, 1, 30)
JAN_31 = date(2025, 1, 31)


def metered(start, end, price="0.80", meter_id=1, readings_used=2):
    return MeteredSource(
        meter_id=meter_id,
        meter_type=MeterType.ELECTRICITY,
        label="Electricity (E-1)",
        unit="kWh",
        usage=MeterUsage(
            meter_id=meter_id,
            segments=(SegmentUsage(meter_id, Decimal(start), Decimal(end), readings_used),),
        ),
        price=Decimal(price) if price is not None else None,
    )


def fixed(cost, split=SplitMethod.BY_DAYS, utility_id=1, **kwargs):
    return FixedSource(
        fixed_utility_id=utility_id,
        label="Internet",
        period_cost=Decimal(cost),
        split_method=split,
        **kwargs,
    )


def inputs(**kwargs):
    defaults = dict(
        property_id=1,
        period_start=JAN_1,
        period_end=JAN_31,
        intervals=(OccupancyInterval(10, date(2024, 6, 1), None),),
    )
    defaults.update(kwargs)
    return SettlementInputs(**defaults)


class TestMeteredItems:
    def test_single_tenant_single_meter(self):
        """100 -> 180 kWh at 0.80 for the only tenant."""
        result = calculate_settlement(inputs(metered=(metered("100", "180"),)))

        assert len(result.items) == 1
        item = result.items[0]
        assert item.consumption == Decimal("80")
        assert item.total_cost == Decimal("64.00")
        assert item.split_method == SplitMethod.BY_DAYS
        assert [(s.tenant_id, s.amount) for s in result.shares] == [(10, Decimal("64.00"))]
        assert result.total_amount == Decimal("64.00")
        assert result.warnings == ()

    def test_missing_price_skips_item_with_warning(self):
        result = calculate_settlement(inputs(metered=(metered("100", "180", price=None),)))

        assert result.items == ()
        assert [w.code for w in result.warnings] == ["missing_price"]
        assert result.warnings[0].context == {"meter_id": 1}

    def test_insufficient_readings_skips_item(self):
        result = calculate_settlement(inputs(metered=(metered("100", "100", readings_used=1),)))

        assert result.items == ()
        assert [w.code for w in result.warnings] == ["insufficient_readings"]

    def test_negative_consumption_bills_zero(self):
        result = calculate_settlement(inputs(metered=(metered("200", "150"),)))

        assert result.items[0].consumption == Decimal("-50")
        assert result.items[0].total_cost == Decimal("0.00")
        assert [w.code for w in result.warnings] == ["negative_consumption"]

    def test_cost_rounds_half_up(self):
        # 10.5 * 0.25 = 2.625 -> 2.63
        result = calculate_settlement(inputs(metered=(metered("0", "10.5", price="0.25"),)))

        assert result.items[0].total_cost == Decimal("2.63")


class TestFixedItems:
    def test_by_days_split_between_two_halves(self):
        """60.00 over 30 days, two tenants with 15 days each."""
        intervals = (
            OccupancyInterval(1, date(2024, 9, 1), date(2025, 1, 15)),
            OccupancyInterval(2, date(2025, 1, 16), None),
        )

        result = calculate_settlement(
            inputs(period_end=JAN_30, intervals=intervals, fixed=(fixed("60.00"),))
        )

        assert {s.tenant_id: s.amount for s in result.shares} == {
            1: Decimal("30.00"),
            2: Decimal("30.00"),
        }
        assert result.shares[0].occupied_days == 15
        assert result.shares[0].share_ratio == Decimal("0.500000")

    def test_equal_split_reconciles_cents(self):
        intervals = tuple(OccupancyInterval(t, date(2024, 1, 1), None) for t in (1, 2, 3))

        result = calculate_settlement(
            inputs(intervals=intervals, fixed=(fixed("100.00", split=SplitMethod.EQUAL),))
        )

        amounts = [s.amount for s in result.shares]
        assert amounts == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
        assert sum(amounts) == result.total_amount == Decimal("100.00")

    def test_equal_split_ignores_days(self):
        intervals = (
            OccupancyInterval(1, date(2024, 1, 1), None),
            OccupancyInterval(2, date(2025, 1, 30), None),
        )

        result = calculate_settlement(
            inputs(intervals=intervals, fixed=(fixed("50.00", split=SplitMethod.BY_PERSON),))
        )

        assert [s.amount for s in result.shares] == [Decimal("25.00"), Decimal("25.00")]

    def test_per_person_cost_multiplied_by_headcount(self):
        intervals = (
            OccupancyInterval(1, date(2024, 1, 1), None),
            OccupancyInterval(2, date(2024, 1, 1), None),
        )

        result = calculate_settlement(
            inputs(
                intervals=intervals,
                fixed=(fixed("10.00", split=SplitMethod.BY_PERSON, is_per_person=True),),
            )
        )

        assert result.items[0].total_cost == Decimal("20.00")
        assert [s.amount for s in result.shares] == [Decimal("10.00"), Decimal("10.00")]

    def test_by_days_prorated_by_activation_window(self):
        result = calculate_settlement(
            inputs(period_end=JAN_30, fixed=(fixed("30.00", active_from=date(2025, 1, 16)),))
        )

        assert result.items[0].total_cost == Decimal("15.00")
        assert result.items[0].period_cost == Decimal("30.00")

    def test_equal_split_not_prorated(self):
        result = calculate_settlement(
            inputs(
                period_end=JAN_30,
                fixed=(fixed("30.00", split=SplitMethod.EQUAL, active_from=date(2025, 1, 16)),),
            )
        )

        assert result.items[0].total_cost == Decimal("30.00")


class TestShares:
    def test_vacant_days_excluded_from_denominator(self):
        """A tenant living only part of the period pays the whole BY_DAYS item."""
        intervals = (OccupancyInterval(1, date(2025, 1, 21), None),)

        result = calculate_settlement(inputs(intervals=intervals, fixed=(fixed("31.00"),)))

        assert result.shares[0].amount == Decimal("31.00")
        assert result.shares[0].occupied_days == 11

    def test_shares_sum_to_total(self):
        intervals = (
            OccupancyInterval(1, date(2024, 1, 1), date(2025, 1, 10)),
            OccupancyInterval(2, date(2025, 1, 5), date(2025, 1, 22)),
            OccupancyInterval(3, date(2025, 1, 18), None),
        )

        result = calculate_settlement(
            inputs(
                intervals=intervals,
                metered=(metered("1000", "1333.3", price="0.3333"),),
                fixed=(
                    fixed("47.11", utility_id=1),
                    fixed("13.00", split=SplitMethod.EQUAL, utility_id=2),
                ),
            )
        )

        assert sum(s.amount for s in result.shares) == result.total_amount
        assert result.total_amount == sum(i.total_cost for i in result.items)

    def test_zero_occupancy_warns_and_has_no_shares(self):
        result = calculate_settlement(inputs(intervals=(), fixed=(fixed("20.00"),)))

        assert result.shares == ()
        assert result.total_amount == Decimal("20.00")
        assert [w.code for w in result.warnings] == ["zero_occupancy"]

    def test_inactive_property_warns(self):
        result = calculate_settlement(inputs(property_active=False, fixed=(fixed("20.00"),)))

        assert "inactive_property" in [w.code for w in result.warnings]
        assert result.shares[0].amount == Decimal("20.00")

    def test_advances_only_under_advance_payment_approach(self):
        monthly = calculate_settlement(
            inputs(fixed=(fixed("64.00"),), advances={10: Decimal("50")})
        )
        advance = calculate_settlement(
            inputs(
                fixed=(fixed("64.00"),),
                advances={10: Decimal("50")},
                approach=BillingApproach.ADVANCE_PAYMENT,
            )
        )

        assert monthly.shares[0].advances_paid == Decimal("0.00")
        assert monthly.shares[0].balance_due == Decimal("64.00")
        assert advance.shares[0].advances_paid == Decimal("50.00")
        assert advance.shares[0].balance_due == Decimal("14.00")


class TestCalculation:
    def test_same_inputs_same_output(self):
        calc_inputs = inputs(metered=(metered("100", "180"),), fixed=(fixed("12.34"),))

        assert calculate_settlement(calc_inputs).to_dict() == calculate_settlement(calc_inputs).to_dict()

    def test_to_dict_is_json_ready(self):
        payload = calculate_settlement(inputs(metered=(metered("100", "180"),))).to_dict()

        assert payload["total_amount"] == "64.00"
        assert payload["items"][0]["total_cost"] == "64.00"
        assert payload["shares"][0]["tenant_id"] == 10
        assert payload["total_days"] == 31

    @pytest.mark.parametrize("end", [JAN_1, date(2024, 12, 31)])
    def test_invalid_range(self, end):
        with pytest.raises(InvalidRange) as exc_info:
            calculate_settlement(inputs(period_end=end))

        assert exc_info.value.code == "invalid_range"
        assert exc_info.value.http_status == 422
