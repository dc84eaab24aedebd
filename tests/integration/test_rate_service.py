"""Integration tests for tariff history."""

from datetime import date
from decimal import Decimal

import pytest

from utility_settlement.errors import NotFound, ValidationError
from utility_settlement.models import MeterType
from utility_settlement.services.meter_service import MeterService
from utility_settlement.services.rate_service import RateService


@pytest.fixture
def service(db_session):
    return RateService(db_session)


class TestRateService:
    def test_new_rate_closes_previous(self, service, ctx, property_obj):
        first = service.add_rate(
            ctx, property_obj.id, MeterType.ELECTRICITY, "0.75", date(2024, 1, 1), source="Invoice 2024"
        )
        second = service.add_rate(ctx, property_obj.id, MeterType.ELECTRICITY, "0.80", date(2025, 1, 1))

        assert first.effective_to == date(2024, 12, 31)
        assert second.effective_to is None
        assert [r.id for r in service.list_rates(ctx, property_obj.id)] == [second.id, first.id]

    def test_effective_rate_by_date(self, service, ctx, property_obj):
        service.add_rate(ctx, property_obj.id, MeterType.ELECTRICITY, "0.75", date(2024, 1, 1))
        service.add_rate(ctx, property_obj.id, MeterType.ELECTRICITY, "0.80", date(2025, 1, 1))

        assert service.effective_rate(
            property_obj.id, MeterType.ELECTRICITY, date(2024, 6, 30)
        ).price_per_unit == Decimal("0.75")
        assert service.effective_rate(
            property_obj.id, MeterType.ELECTRICITY, date(2025, 1, 31)
        ).price_per_unit == Decimal("0.80")
        assert service.effective_rate(property_obj.id, MeterType.ELECTRICITY, date(2023, 1, 1)) is None
        assert service.effective_rate(property_obj.id, MeterType.WATER, date(2025, 1, 31)) is None

    def test_rate_mirrored_on_active_meters(self, service, db_session, ctx, property_obj):
        meters = MeterService(db_session)
        electricity = meters.create_meter(ctx, property_obj.id, MeterType.ELECTRICITY, price_per_unit="0.50")
        water = meters.create_meter(ctx, property_obj.id, MeterType.WATER, price_per_unit="3.00")

        service.add_rate(ctx, property_obj.id, MeterType.ELECTRICITY, "0.90", date(2025, 1, 1))

        assert meters.get_meter(ctx, electricity.id).price_per_unit == Decimal("0.90")
        assert meters.get_meter(ctx, water.id).price_per_unit == Decimal("3.00")

    def test_filter_by_meter_type(self, service, ctx, property_obj):
        service.add_rate(ctx, property_obj.id, MeterType.ELECTRICITY, "0.80", date(2025, 1, 1))
        water = service.add_rate(ctx, property_obj.id, MeterType.WATER, "3.10", date(2025, 1, 1))

        assert [r.id for r in service.list_rates(ctx, property_obj.id, MeterType.WATER)] == [water.id]

    def test_inverted_window_rejected(self, service, ctx, property_obj):
        with pytest.raises(ValidationError):
            service.add_rate(
                ctx, property_obj.id, MeterType.GAS, "1.00", date(2025, 2, 1), effective_to=date(2025, 1, 1)
            )

    def test_foreign_property_not_found(self, service, other_ctx, property_obj):
        with pytest.raises(NotFound):
            service.add_rate(other_ctx, property_obj.id, MeterType.GAS, "1.00", date(2025, 1, 1))
