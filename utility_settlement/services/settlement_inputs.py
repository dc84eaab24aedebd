"""Loads a calculator input snapshot for a property and period (read-only)."""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from utility_settlement.models import AdvancePayment, BillingApproach, Property, Tenant
from utility_settlement.services.fixed_utility_service import FixedUtilityService
from utility_settlement.services.meter_service import MeterService
from utility_settlement.services.occupancy_service import OccupancyService
from utility_settlement.services.rate_service import RateService
from utility_settlement.services.settlement_calculator import (
    FixedSource,
    MeteredSource,
    SettlementInputs,
)

logger = logging.getLogger(__name__)


class SettlementInputLoader:
    """Gathers meters, tariffs, fixed utilities, occupancy and advances."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.meters = MeterService(db)
        self.rates = RateService(db)
        self.fixed_utilities = FixedUtilityService(db)
        self.occupancy = OccupancyService(db)

    def load(
        self,
        property_obj: Property,
        period_start: date,
        period_end: date,
        approach: BillingApproach = BillingApproach.MONTHLY,
    ) -> SettlementInputs:
        """Build the calculator inputs; ownership must be checked by the caller."""
        metered = []
        for meter in self.meters.active_meters(property_obj.id):
            rate = self.rates.effective_rate(property_obj.id, meter.type, period_end)
            price = rate.price_per_unit if rate is not None else meter.price_per_unit
            metered.append(
                MeteredSource(
                    meter_id=meter.id,
                    meter_type=meter.type,
                    label=meter.label,
                    unit=meter.unit,
                    usage=self.meters.usage_between(meter, period_start, period_end),
                    price=Decimal(price) if price is not None else None,
                )
            )

        fixed = [
            FixedSource(
                fixed_utility_id=utility.id,
                label=utility.name,
                period_cost=Decimal(utility.period_cost),
                split_method=utility.split_method,
                is_per_person=utility.is_per_person,
                active_from=utility.active_from,
                active_to=utility.active_to,
            )
            for utility in self.fixed_utilities.active_for_period(
                property_obj.id, period_start, period_end
            )
        ]

        advances: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        if approach == BillingApproach.ADVANCE_PAYMENT:
            payments = (
                self.db.query(AdvancePayment)
                .filter(
                    AdvancePayment.property_id == property_obj.id,
                    AdvancePayment.paid_date >= period_start,
                    AdvancePayment.paid_date <= period_end,
                )
                .all()
            )
            for payment in payments:
                advances[payment.tenant_id] += Decimal(payment.amount)

        inputs = SettlementInputs(
            property_id=property_obj.id,
            period_start=period_start,
            period_end=period_end,
            approach=approach,
            property_active=property_obj.is_active,
            metered=tuple(metered),
            fixed=tuple(fixed),
            intervals=tuple(self.occupancy.intervals_for(property_obj.id, period_start, period_end)),
            advances=dict(advances),
        )
        logger.debug(
            "Loaded inputs for property_id=%d: %d meters, %d fixed, %d intervals",
            property_obj.id,
            len(metered),
            len(fixed),
            len(inputs.intervals),
        )
        return inputs

    def tenant_names(self, tenant_ids: list[int]) -> dict[int, str]:
        """Display names for a set of tenants."""
        if not tenant_ids:
            return {}
        tenants = self.db.query(Tenant).filter(Tenant.id.in_(tenant_ids)).all()
        return {tenant.id: tenant.full_name for tenant in tenants}


__all__ = ["SettlementInputLoader"]
