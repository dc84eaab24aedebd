"""Settlement calculator: apportions a period's utility costs among tenants.

Pure: works on a ``SettlementInputs`` snapshot and never touches the database,
so the same inputs always produce the same calculation (this is also the preview
path).
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Any, Mapping

from utility_settlement.errors import InvalidRange
from utility_settlement.models import BillingApproach, MeterType, SplitMethod
from utility_settlement.services.allocation_service import (
    ZERO,
    AllocationService,
    quantize_money,
    to_fraction,
)
from utility_settlement.services.meter_service import MeterUsage
from utility_settlement.services.occupancy_service import (
    Occupancy,
    OccupancyInterval,
    clip_interval,
    period_days,
    resolve_occupancy,
)

logger = logging.getLogger(__name__)

RATIO_QUANTUM = Decimal("0.000001")
DAYS_QUANTUM = Decimal("0.0001")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MeteredSource:
    """An active meter (head of its exchange chain) with its usage and price."""

    meter_id: int
    meter_type: MeterType
    label: str
    unit: str
    usage: MeterUsage
    price: Decimal | None


@dataclass(frozen=True)
class FixedSource:
    """A fixed utility active at some point of the period."""

    fixed_utility_id: int
    label: str
    period_cost: Decimal
    split_method: SplitMethod
    is_per_person: bool = False
    active_from: date | None = None
    active_to: date | None = None


@dataclass(frozen=True)
class SettlementInputs:
    """Everything the calculator needs, loaded up front."""

    property_id: int
    period_start: date
    period_end: date
    approach: BillingApproach = BillingApproach.MONTHLY
    property_active: bool = True
    metered: tuple[MeteredSource, ...] = ()
    fixed: tuple[FixedSource, ...] = ()
    intervals: tuple[OccupancyInterval, ...] = ()
    advances: Mapping[int, Decimal] = field(default_factory=dict)
    """Advance payments per tenant dated within the period"""


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalculationWarning:
    """Non-fatal finding that needs the owner's review."""

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": dict(self.context)}


@dataclass(frozen=True)
class CalculatedItem:
    """One cost line of a settlement."""

    label: str
    total_cost: Decimal
    split_method: SplitMethod
    meter_id: int | None = None
    fixed_utility_id: int | None = None
    unit: str | None = None
    prev_reading: Decimal | None = None
    curr_reading: Decimal | None = None
    consumption: Decimal | None = None
    rate: Decimal | None = None
    period_cost: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "meter_id": self.meter_id,
            "fixed_utility_id": self.fixed_utility_id,
            "unit": self.unit,
            "prev_reading": _str(self.prev_reading),
            "curr_reading": _str(self.curr_reading),
            "consumption": _str(self.consumption),
            "rate": _str(self.rate),
            "period_cost": _str(self.period_cost),
            "total_cost": str(self.total_cost),
            "split_method": self.split_method.value,
        }


@dataclass(frozen=True)
class CalculatedShare:
    """One tenant's portion of a settlement."""

    tenant_id: int
    occupied_days: int
    active_days: Decimal
    total_days: int
    share_ratio: Decimal
    amount: Decimal
    advances_paid: Decimal = ZERO

    @property
    def balance_due(self) -> Decimal:
        return self.amount - self.advances_paid

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "occupied_days": self.occupied_days,
            "active_days": str(self.active_days),
            "total_days": self.total_days,
            "share_ratio": str(self.share_ratio),
            "amount": str(self.amount),
            "advances_paid": str(self.advances_paid),
            "balance_due": str(self.balance_due),
        }


@dataclass(frozen=True)
class SettlementCalculation:
    """Result of a calculation: items, shares, total and warnings."""

    period_start: date
    period_end: date
    approach: BillingApproach
    items: tuple[CalculatedItem, ...]
    shares: tuple[CalculatedShare, ...]
    total_amount: Decimal
    warnings: tuple[CalculationWarning, ...]
    occupancy: Occupancy

    @property
    def shares_total(self) -> Decimal:
        return sum((share.amount for share in self.shares), ZERO)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload; equal inputs give equal payloads."""
        return {
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "approach": self.approach.value,
            "total_days": self.occupancy.total_days,
            "vacant_days": self.occupancy.vacant_days,
            "items": [item.to_dict() for item in self.items],
            "shares": [share.to_dict() for share in self.shares],
            "total_amount": str(self.total_amount),
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


def _str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _decimal(value: Fraction, quantum: Decimal) -> Decimal:
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    return exact.quantize(quantum, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


def _metered_item(
    source: MeteredSource, warnings: list[CalculationWarning]
) -> CalculatedItem | None:
    usage = source.usage
    if not usage.has_data:
        warnings.append(
            CalculationWarning(
                "insufficient_readings",
                f"{source.label}: not enough readings in the period",
                {"meter_id": source.meter_id},
            )
        )
        return None

    if source.price is None:
        warnings.append(
            CalculationWarning(
                "missing_price",
                f"{source.label}: no price per unit configured",
                {"meter_id": source.meter_id},
            )
        )
        return None

    for segment in usage.negative_segments:
        warnings.append(
            CalculationWarning(
                "negative_consumption",
                f"{source.label}: readings decrease from {segment.start_value} to {segment.end_value}",
                {
                    "meter_id": segment.meter_id,
                    "start_value": str(segment.start_value),
                    "end_value": str(segment.end_value),
                },
            )
        )

    consumption = usage.consumption
    billable = max(consumption, Decimal("0"))
    price = Decimal(source.price)
    return CalculatedItem(
        label=source.label,
        meter_id=source.meter_id,
        unit=source.unit,
        prev_reading=usage.prev_reading,
        curr_reading=usage.curr_reading,
        consumption=consumption,
        rate=price,
        total_cost=quantize_money(billable * price),
        split_method=SplitMethod.BY_DAYS,
    )


def _fixed_item(
    source: FixedSource, inputs: SettlementInputs, occupancy: Occupancy
) -> CalculatedItem | None:
    cost = to_fraction(source.period_cost)
    if source.is_per_person:
        cost *= max(1, occupancy.headcount)

    if source.split_method == SplitMethod.BY_DAYS:
        window = clip_interval(
            source.active_from, source.active_to, inputs.period_start, inputs.period_end
        )
        if window is None:
            return None
        cost = cost * period_days(*window) / occupancy.total_days

    return CalculatedItem(
        label=source.label,
        fixed_utility_id=source.fixed_utility_id,
        period_cost=Decimal(source.period_cost),
        total_cost=quantize_money(cost),
        split_method=source.split_method,
    )


def _split_item(
    item: CalculatedItem, occupancy: Occupancy
) -> dict[int, Fraction]:
    """Exact (unrounded) split of one item across occupying tenants."""
    if not occupancy.tenants:
        return {}

    total = to_fraction(item.total_cost)
    if item.split_method == SplitMethod.BY_DAYS:
        weights = {t.tenant_id: t.weighted_days for t in occupancy.tenants}
    else:
        weights = {t.tenant_id: Fraction(1) for t in occupancy.tenants}

    weight_sum = sum(weights.values(), Fraction(0))
    return {tenant_id: total * w / weight_sum for tenant_id, w in weights.items()}


def calculate_settlement(
    inputs: SettlementInputs, allocator: AllocationService | None = None
) -> SettlementCalculation:
    """Calculate items, per-tenant shares and warnings for a period.

    Metered items cost consumption x price (negative consumption bills zero) and
    are split by occupancy days. Fixed items cost ``period_cost`` (times headcount
    when per person); BY_DAYS fixed items are prorated by the part of the period
    they were active. Exact per-tenant sums are rounded half-up and the slack is
    reconciled so shares add up to the item total exactly.

    Raises:
        InvalidRange: If period_start is not before period_end
    """
    if inputs.period_start >= inputs.period_end:
        raise InvalidRange(inputs.period_start, inputs.period_end)

    allocator = allocator or AllocationService()
    warnings: list[CalculationWarning] = []

    if not inputs.property_active:
        warnings.append(
            CalculationWarning(
                "inactive_property",
                "Property is inactive",
                {"property_id": inputs.property_id},
            )
        )

    occupancy = resolve_occupancy(inputs.intervals, inputs.period_start, inputs.period_end)
    if not occupancy.tenants:
        warnings.append(
            CalculationWarning(
                "zero_occupancy",
                "No tenant occupied the property during the period",
                {
                    "property_id": inputs.property_id,
                    "period_start": inputs.period_start.isoformat(),
                    "period_end": inputs.period_end.isoformat(),
                },
            )
        )

    items: list[CalculatedItem] = []
    for metered in inputs.metered:
        item = _metered_item(metered, warnings)
        if item is not None:
            items.append(item)
    for fixed in inputs.fixed:
        item = _fixed_item(fixed, inputs, occupancy)
        if item is not None:
            items.append(item)

    total_amount = sum((item.total_cost for item in items), ZERO)

    exact: dict[int, Fraction] = {t.tenant_id: Fraction(0) for t in occupancy.tenants}
    for item in items:
        for tenant_id, amount in _split_item(item, occupancy).items():
            exact[tenant_id] += amount
    amounts = allocator.reconcile(exact, total_amount)

    advances = inputs.advances if inputs.approach == BillingApproach.ADVANCE_PAYMENT else {}
    occupied = occupancy.occupied_days
    shares = tuple(
        CalculatedShare(
            tenant_id=t.tenant_id,
            occupied_days=t.occupied_days,
            active_days=_decimal(t.weighted_days, DAYS_QUANTUM),
            total_days=occupancy.total_days,
            share_ratio=_decimal(t.weighted_days / occupied, RATIO_QUANTUM),
            amount=amounts[t.tenant_id],
            advances_paid=quantize_money(advances.get(t.tenant_id, ZERO)),
        )
        for t in occupancy.tenants
    )

    logger.debug(
        "Calculated property_id=%d %s..%s: %d items, %d shares, total=%s, %d warnings",
        inputs.property_id,
        inputs.period_start,
        inputs.period_end,
        len(items),
        len(shares),
        total_amount,
        len(warnings),
    )

    return SettlementCalculation(
        period_start=inputs.period_start,
        period_end=inputs.period_end,
        approach=inputs.approach,
        items=tuple(items),
        shares=shares,
        total_amount=total_amount,
        warnings=tuple(warnings),
        occupancy=occupancy,
    )


__all__ = [
    "MeteredSource",
    "FixedSource",
    "SettlementInputs",
    "CalculationWarning",
    "CalculatedItem",
    "CalculatedShare",
    "SettlementCalculation",
    "calculate_settlement",
]
