"""Tariff history per property and meter type."""

import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from utility_settlement.errors import ValidationError
from utility_settlement.models import Meter, MeterStatus, MeterType, UtilityRate
from utility_settlement.services.audit_service import AuditService
from utility_settlement.services.auth_service import OwnerContext, get_owned_property
from utility_settlement.services.meter_service import parse_amount

logger = logging.getLogger(__name__)


class RateService:
    """Service for utility tariff operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def add_rate(
        self,
        ctx: OwnerContext,
        property_id: int,
        meter_type: MeterType,
        price_per_unit: Any,
        effective_from: date,
        effective_to: date | None = None,
        source: str | None = None,
        notes: str | None = None,
    ) -> UtilityRate:
        """Add a tariff and close the one it supersedes.

        The currently open rate of the same type (if it starts earlier) gets
        ``effective_to`` set to the day before the new rate. The new price is also
        copied onto the property's active meters of that type so meters keep a
        usable fallback price.

        Raises:
            NotFound: Property unknown or not owned by the caller
            ValidationError: Negative price or inverted window
        """
        get_owned_property(self.db, ctx, property_id)
        price = parse_amount(price_per_unit, "price_per_unit")
        if effective_to is not None and effective_to < effective_from:
            raise ValidationError(
                "effective_to must not be before effective_from",
                field="effective_to",
            )

        try:
            open_rates = (
                self.db.query(UtilityRate)
                .filter(
                    UtilityRate.property_id == property_id,
                    UtilityRate.meter_type == meter_type,
                    UtilityRate.effective_to.is_(None),
                    UtilityRate.effective_from < effective_from,
                )
                .all()
            )
            for previous in open_rates:
                previous.effective_to = effective_from - timedelta(days=1)

            rate = UtilityRate(
                property_id=property_id,
                meter_type=meter_type,
                price_per_unit=price,
                effective_from=effective_from,
                effective_to=effective_to,
                source=source,
                notes=notes,
            )
            self.db.add(rate)

            meters = (
                self.db.query(Meter)
                .filter(
                    Meter.property_id == property_id,
                    Meter.type == meter_type,
                    Meter.status == MeterStatus.ACTIVE,
                )
                .all()
            )
            for meter in meters:
                meter.price_per_unit = price

            self.db.flush()
            AuditService.log(
                self.db,
                "utility_rate",
                rate.id,
                "create",
                ctx.user_id,
                {
                    "meter_type": meter_type.value,
                    "price_per_unit": str(price),
                    "effective_from": effective_from.isoformat(),
                    "closed_rates": [r.id for r in open_rates],
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Added %s rate %s for property_id=%d from %s (closed %d, updated %d meters)",
            meter_type.value,
            price,
            property_id,
            effective_from,
            len(open_rates),
            len(meters),
        )
        return rate

    def list_rates(
        self, ctx: OwnerContext, property_id: int, meter_type: MeterType | None = None
    ) -> list[UtilityRate]:
        """Tariff history, newest first."""
        get_owned_property(self.db, ctx, property_id)
        query = self.db.query(UtilityRate).filter(UtilityRate.property_id == property_id)
        if meter_type is not None:
            query = query.filter(UtilityRate.meter_type == meter_type)
        return query.order_by(UtilityRate.effective_from.desc(), UtilityRate.id.desc()).all()

    def effective_rate(
        self, property_id: int, meter_type: MeterType, at_date: date
    ) -> UtilityRate | None:
        """Latest tariff whose window covers ``at_date``."""
        return (
            self.db.query(UtilityRate)
            .filter(
                UtilityRate.property_id == property_id,
                UtilityRate.meter_type == meter_type,
                UtilityRate.effective_from <= at_date,
                or_(UtilityRate.effective_to.is_(None), UtilityRate.effective_to >= at_date),
            )
            .order_by(UtilityRate.effective_from.desc(), UtilityRate.id.desc())
            .first()
        )


__all__ = ["RateService"]
