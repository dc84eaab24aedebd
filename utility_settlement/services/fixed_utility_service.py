"""Fixed-utility registry: recurring flat fees of a property."""

import logging
from datetime import date
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from utility_settlement.errors import NotFound, ValidationError
from utility_settlement.models import FixedUtility, FixedUtilityType, Property, SplitMethod
from utility_settlement.services.auth_service import OwnerContext, get_owned_property, require_owner
from utility_settlement.services.meter_service import parse_amount

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "type",
    "name",
    "period_cost",
    "split_method",
    "is_per_person",
    "is_active",
    "active_from",
    "active_to",
    "notes",
)
NULLABLE_FIELDS = ("active_from", "active_to", "notes")


def _check_window(active_from: date | None, active_to: date | None) -> None:
    if active_from is not None and active_to is not None and active_to < active_from:
        raise ValidationError("active_to must not be before active_from", field="active_to")


class FixedUtilityService:
    """Service for fixed utility operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get(self, ctx: OwnerContext, utility_id: int) -> FixedUtility:
        """Get a fixed utility on one of the caller's properties.

        Raises:
            NotFound: Unknown id or owned by someone else
        """
        owner = require_owner(ctx)
        utility = (
            self.db.query(FixedUtility)
            .join(Property, Property.id == FixedUtility.property_id)
            .filter(FixedUtility.id == utility_id, Property.owner_id == owner.user_id)
            .first()
        )
        if utility is None:
            raise NotFound("fixed_utility", utility_id)
        return utility

    def create(
        self,
        ctx: OwnerContext,
        property_id: int,
        utility_type: FixedUtilityType,
        name: str,
        period_cost: Any,
        split_method: SplitMethod = SplitMethod.BY_DAYS,
        is_per_person: bool = False,
        active_from: date | None = None,
        active_to: date | None = None,
        notes: str | None = None,
    ) -> FixedUtility:
        """Register a fixed utility on a property.

        Raises:
            NotFound: Property unknown or not owned by the caller
            ValidationError: Empty name, negative cost or inverted window
        """
        get_owned_property(self.db, ctx, property_id)
        if not name or not name.strip():
            raise ValidationError("name must not be empty", field="name")
        cost = parse_amount(period_cost, "period_cost")
        _check_window(active_from, active_to)

        try:
            utility = FixedUtility(
                property_id=property_id,
                type=utility_type,
                name=name.strip(),
                period_cost=cost,
                split_method=split_method,
                is_per_person=is_per_person,
                is_active=True,
                active_from=active_from,
                active_to=active_to,
                notes=notes,
            )
            self.db.add(utility)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Created fixed utility id=%d %r on property_id=%d", utility.id, utility.name, property_id
        )
        return utility

    def update(self, ctx: OwnerContext, utility_id: int, **changes: Any) -> FixedUtility:
        """Update fields of a fixed utility.

        ``None`` clears the nullable fields (activation window, notes) and is
        ignored for the others.

        Raises:
            NotFound: Unknown id or owned by someone else
            ValidationError: Unknown field, negative cost or inverted window
        """
        utility = self.get(ctx, utility_id)

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}", fields=sorted(unknown)
            )
        changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_FIELDS}
        if "period_cost" in changes:
            changes["period_cost"] = parse_amount(changes["period_cost"], "period_cost")
        if "name" in changes:
            if not str(changes["name"]).strip():
                raise ValidationError("name must not be empty", field="name")
            changes["name"] = str(changes["name"]).strip()
        _check_window(
            changes.get("active_from", utility.active_from),
            changes.get("active_to", utility.active_to),
        )

        try:
            for key, value in changes.items():
                setattr(utility, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Updated fixed utility id=%d fields=%s", utility_id, sorted(changes))
        return utility

    def deactivate(self, ctx: OwnerContext, utility_id: int) -> FixedUtility:
        """Soft delete: keeps the row for settlements that reference it."""
        utility = self.get(ctx, utility_id)
        try:
            utility.is_active = False
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Deactivated fixed utility id=%d", utility_id)
        return utility

    def list_for_property(
        self, ctx: OwnerContext, property_id: int, include_inactive: bool = True
    ) -> list[FixedUtility]:
        """Fixed utilities of a property, active first then by name."""
        get_owned_property(self.db, ctx, property_id)
        query = self.db.query(FixedUtility).filter(FixedUtility.property_id == property_id)
        if not include_inactive:
            query = query.filter(FixedUtility.is_active.is_(True))
        return query.order_by(FixedUtility.is_active.desc(), FixedUtility.name, FixedUtility.id).all()

    def active_for_period(
        self, property_id: int, period_start: date, period_end: date
    ) -> list[FixedUtility]:
        """Active fixed utilities whose activation window intersects the period."""
        return (
            self.db.query(FixedUtility)
            .filter(
                FixedUtility.property_id == property_id,
                FixedUtility.is_active.is_(True),
                or_(FixedUtility.active_from.is_(None), FixedUtility.active_from <= period_end),
                or_(FixedUtility.active_to.is_(None), FixedUtility.active_to >= period_start),
            )
            .order_by(FixedUtility.id)
            .all()
        )


__all__ = ["FixedUtilityService"]
