"""Occupancy resolution: which tenants lived in a property, and for how long.

Periods are inclusive calendar-day ranges. Every day a property is occupied
carries a weight of exactly 1, shared equally by the tenants covering that day;
days nobody covers are counted as vacant.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from fractions import Fraction
from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from utility_settlement.errors import InvalidRange
from utility_settlement.models import Tenant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OccupancyInterval:
    """A tenant's stay; ``None`` bounds are open-ended."""

    tenant_id: int
    start: date | None
    end: date | None


@dataclass(frozen=True)
class TenantOccupancy:
    """Occupancy of one tenant within a period."""

    tenant_id: int
    first_day: date
    occupied_days: int
    """Calendar days covered by the tenant (shared days count fully)"""

    weighted_days: Fraction
    """Sum of the tenant's day weights (shared days count 1/n)"""

    fraction_of_period: Fraction


@dataclass(frozen=True)
class Occupancy:
    """Resolved occupancy of a property over a period."""

    period_start: date
    period_end: date
    total_days: int
    vacant_days: int
    tenants: tuple[TenantOccupancy, ...] = ()
    day_weights: dict[date, dict[int, Fraction]] = field(default_factory=dict)

    @property
    def occupied_days(self) -> int:
        return self.total_days - self.vacant_days

    @property
    def headcount(self) -> int:
        return len(self.tenants)

    def get(self, tenant_id: int) -> TenantOccupancy | None:
        for tenant in self.tenants:
            if tenant.tenant_id == tenant_id:
                return tenant
        return None


def period_days(period_start: date, period_end: date) -> int:
    """Number of calendar days in an inclusive period."""
    return (period_end - period_start).days + 1


def clip_interval(
    interval_start: date | None,
    interval_end: date | None,
    period_start: date,
    period_end: date,
) -> tuple[date, date] | None:
    """Intersect an open-ended interval with a period, or None when disjoint."""
    start = max(period_start, interval_start) if interval_start else period_start
    end = min(period_end, interval_end) if interval_end else period_end
    if start > end:
        return None
    return start, end


def resolve_occupancy(
    intervals: Iterable[OccupancyInterval],
    period_start: date,
    period_end: date,
) -> Occupancy:
    """Resolve day-weighted occupancy for a period.

    Overlapping intervals of the same tenant are merged. When several tenants
    cover the same day, each gets 1/n of that day.

    Raises:
        InvalidRange: If period_start is after period_end
    """
    if period_start > period_end:
        raise InvalidRange(period_start, period_end)

    total_days = period_days(period_start, period_end)

    covered: dict[int, set[date]] = {}
    for interval in intervals:
        clipped = clip_interval(interval.start, interval.end, period_start, period_end)
        if clipped is None:
            continue
        start, end = clipped
        days = covered.setdefault(interval.tenant_id, set())
        for offset in range((end - start).days + 1):
            days.add(start + timedelta(days=offset))

    day_weights: dict[date, dict[int, Fraction]] = {}
    weighted: dict[int, Fraction] = {tenant_id: Fraction(0) for tenant_id in covered}
    vacant_days = 0
    for offset in range(total_days):
        day = period_start + timedelta(days=offset)
        present = sorted(tenant_id for tenant_id, days in covered.items() if day in days)
        if not present:
            vacant_days += 1
            day_weights[day] = {}
            continue
        weight = Fraction(1, len(present))
        day_weights[day] = {tenant_id: weight for tenant_id in present}
        for tenant_id in present:
            weighted[tenant_id] += weight

    tenants = sorted(
        (
            TenantOccupancy(
                tenant_id=tenant_id,
                first_day=min(days),
                occupied_days=len(days),
                weighted_days=weighted[tenant_id],
                fraction_of_period=weighted[tenant_id] / total_days,
            )
            for tenant_id, days in covered.items()
            if days
        ),
        key=lambda t: (t.first_day, t.tenant_id),
    )

    return Occupancy(
        period_start=period_start,
        period_end=period_end,
        total_days=total_days,
        vacant_days=vacant_days,
        tenants=tuple(tenants),
        day_weights=day_weights,
    )


class OccupancyService:
    """Loads tenant occupancy intervals for a property."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def intervals_for(
        self, property_id: int, period_start: date, period_end: date
    ) -> list[OccupancyInterval]:
        """Collect occupancy intervals intersecting the period.

        A tenant's contracts define its stay when it has any; otherwise its
        move-in/move-out dates are used. Tenants without a move-in date and
        without contracts never occupied the property.
        """
        tenants = (
            self.db.query(Tenant)
            .options(selectinload(Tenant.contracts))
            .filter(Tenant.property_id == property_id)
            .order_by(Tenant.id)
            .all()
        )

        intervals: list[OccupancyInterval] = []
        for tenant in tenants:
            if tenant.contracts:
                candidates = [
                    OccupancyInterval(tenant.id, contract.start_date, contract.end_date)
                    for contract in tenant.contracts
                ]
            elif tenant.move_in_date is not None:
                candidates = [
                    OccupancyInterval(tenant.id, tenant.move_in_date, tenant.move_out_date)
                ]
            else:
                continue

            intervals.extend(
                c
                for c in candidates
                if clip_interval(c.start, c.end, period_start, period_end) is not None
            )

        logger.debug(
            "Loaded %d occupancy intervals for property_id=%d (%s..%s)",
            len(intervals),
            property_id,
            period_start,
            period_end,
        )
        return intervals

    def resolve(self, property_id: int, period_start: date, period_end: date) -> Occupancy:
        """Resolve occupancy for a property and period."""
        return resolve_occupancy(
            self.intervals_for(property_id, period_start, period_end),
            period_start,
            period_end,
        )


__all__ = [
    "OccupancyInterval",
    "TenantOccupancy",
    "Occupancy",
    "OccupancyService",
    "resolve_occupancy",
    "clip_interval",
    "period_days",
]
