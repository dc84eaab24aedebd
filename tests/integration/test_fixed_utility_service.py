"""Integration tests for the fixed-utility registry."""

from datetime import date
from decimal import Decimal

import pytest

from utility_settlement.errors import NotFound, ValidationError
from utility_settlement.models import FixedUtilityType, SplitMethod
from utility_settlement.services.fixed_utility_service import FixedUtilityService


@pytest.fixture
def service(db_session):
    return FixedUtilityService(db_session)


@pytest.fixture
def internet(service, ctx, property_obj):
    return service.create(
        ctx,
        property_obj.id,
        FixedUtilityType.INTERNET,
        "Fiber 500",
        "30.00",
        active_from=date(2025, 1, 1),
        active_to=date(2025, 6, 30),
    )


class TestCreate:
    def test_create(self, internet):
        assert internet.name == "Fiber 500"
        assert internet.period_cost == Decimal("30.00")
        assert internet.split_method == SplitMethod.BY_DAYS
        assert internet.is_active

    @pytest.mark.parametrize(
        "name, cost, active_to",
        [
            ("  ", "10", None),
            ("Garbage", "-5", None),
            ("Garbage", "10", date(2024, 1, 1)),
        ],
    )
    def test_invalid_input(self, service, ctx, property_obj, name, cost, active_to):
        with pytest.raises(ValidationError):
            service.create(
                ctx,
                property_obj.id,
                FixedUtilityType.GARBAGE,
                name,
                cost,
                active_from=date(2025, 1, 1),
                active_to=active_to,
            )

    def test_foreign_property(self, service, other_ctx, property_obj):
        with pytest.raises(NotFound):
            service.create(other_ctx, property_obj.id, FixedUtilityType.OTHER, "Fee", "1")


class TestUpdate:
    def test_update_fields(self, service, ctx, internet):
        updated = service.update(
            ctx, internet.id, period_cost="35.50", split_method=SplitMethod.EQUAL, name=None
        )

        assert updated.period_cost == Decimal("35.50")
        assert updated.split_method == SplitMethod.EQUAL
        assert updated.name == "Fiber 500"

    def test_none_clears_window(self, service, ctx, internet):
        updated = service.update(ctx, internet.id, active_to=None)

        assert updated.active_to is None
        assert updated.active_from == date(2025, 1, 1)

    def test_unknown_field(self, service, ctx, internet):
        with pytest.raises(ValidationError) as exc_info:
            service.update(ctx, internet.id, property_id=99)

        assert exc_info.value.context["fields"] == ["property_id"]

    def test_inverted_window(self, service, ctx, internet):
        with pytest.raises(ValidationError):
            service.update(ctx, internet.id, active_to=date(2024, 12, 1))

    def test_foreign_owner(self, service, other_ctx, internet):
        with pytest.raises(NotFound):
            service.update(other_ctx, internet.id, name="Mine now")


class TestQueries:
    def test_deactivate_hides_from_period(self, service, ctx, property_obj, internet):
        service.deactivate(ctx, internet.id)

        assert service.active_for_period(property_obj.id, date(2025, 1, 1), date(2025, 1, 31)) == []
        assert [u.id for u in service.list_for_property(ctx, property_obj.id)] == [internet.id]
        assert service.list_for_property(ctx, property_obj.id, include_inactive=False) == []

    def test_active_for_period_respects_window(self, service, ctx, property_obj, internet):
        garbage = service.create(ctx, property_obj.id, FixedUtilityType.GARBAGE, "Garbage", "8.00")

        january = service.active_for_period(property_obj.id, date(2025, 1, 1), date(2025, 1, 31))
        august = service.active_for_period(property_obj.id, date(2025, 8, 1), date(2025, 8, 31))
        straddling = service.active_for_period(property_obj.id, date(2025, 6, 15), date(2025, 7, 14))

        assert [u.id for u in january] == [internet.id, garbage.id]
        assert [u.id for u in august] == [garbage.id]
        assert [u.id for u in straddling] == [internet.id, garbage.id]

    def test_list_active_first_then_name(self, service, ctx, property_obj, internet):
        admin_fee = service.create(ctx, property_obj.id, FixedUtilityType.OTHER, "Admin fee", "5")
        service.deactivate(ctx, admin_fee.id)
        service.create(ctx, property_obj.id, FixedUtilityType.TV_CABLE, "Cable", "12")

        names = [u.name for u in service.list_for_property(ctx, property_obj.id)]

        assert names == ["Cable", "Fiber 500", "Admin fee"]
