"""Meter ledger: meters, readings, usage across exchange chains, meter exchange."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from utility_settlement.errors import Conflict, InvalidState, NotFound, ValidationError
from utility_settlement.models import Meter, MeterReading, MeterStatus, MeterType, Property, ReadingType
from utility_settlement.models.meter import DEFAULT_UNITS
from utility_settlement.services.audit_service import AuditService
from utility_settlement.services.auth_service import OwnerContext, get_owned_property, require_owner

logger = logging.getLogger(__name__)

MAX_READINGS_PAGE = 100


def parse_amount(value: Any, field_name: str, *, allow_negative: bool = False) -> Decimal:
    """Coerce user input to Decimal.

    Raises:
        ValidationError: If the value is not a finite number (or negative when not allowed)
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field_name} must be a number", field=field_name) from e
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if amount < 0 and not allow_negative:
        raise ValidationError(f"{field_name} must not be negative", field=field_name)
    return amount


@dataclass(frozen=True)
class SegmentUsage:
    """Consumption of one meter of an exchange chain within a period."""

    meter_id: int
    start_value: Decimal
    end_value: Decimal
    readings_used: int

    @property
    def consumption(self) -> Decimal:
        return self.end_value - self.start_value


@dataclass(frozen=True)
class MeterUsage:
    """Consumption of a whole exchange chain within a period."""

    meter_id: int
    segments: tuple[SegmentUsage, ...] = ()

    @property
    def has_data(self) -> bool:
        """True when at least one segment is bounded by two distinct readings."""
        return any(segment.readings_used >= 2 for segment in self.segments)

    @property
    def consumption(self) -> Decimal:
        return sum((segment.consumption for segment in self.segments), Decimal("0"))

    @property
    def prev_reading(self) -> Decimal | None:
        return self.segments[0].start_value if self.segments else None

    @property
    def curr_reading(self) -> Decimal | None:
        return self.segments[-1].end_value if self.segments else None

    @property
    def negative_segments(self) -> tuple[SegmentUsage, ...]:
        return tuple(s for s in self.segments if s.consumption < 0)


def segment_usage(
    meter_id: int,
    readings: Sequence[MeterReading],
    period_start: date,
    period_end: date,
) -> SegmentUsage | None:
    """Consumption of a single meter within an inclusive period.

    The start value is the latest reading strictly before the period, or the
    earliest reading inside it (meter installed mid-period). The end value is the
    latest reading on or before the last day. Consecutive periods therefore share
    their boundary reading, so nothing is counted twice or skipped.

    Args:
        meter_id: Meter the readings belong to
        readings: Readings ordered by (reading_date, id)

    Returns:
        SegmentUsage, or None when the meter has no reading up to period_end
    """
    before = [r for r in readings if r.reading_date < period_start]
    within = [r for r in readings if period_start <= r.reading_date <= period_end]

    if before:
        start = before[-1]
    elif within:
        start = within[0]
    else:
        return None

    end = within[-1] if within else before[-1]
    return SegmentUsage(
        meter_id=meter_id,
        start_value=Decimal(start.value),
        end_value=Decimal(end.value),
        readings_used=1 if start is end else 2,
    )


@dataclass(frozen=True)
class NewMeterSpec:
    """Overrides for the meter installed by an exchange (None = inherit)."""

    meter_number: str | None = None
    serial_number: str | None = None
    unit: str | None = None
    price_per_unit: Decimal | None = None


@dataclass
class ReadingResult:
    """Recorded reading plus non-fatal warnings."""

    reading: MeterReading
    warnings: list[str] = field(default_factory=list)


@dataclass
class MeterExchangeResult:
    """Outcome of an exchange: both meters and both boundary readings."""

    old_meter: Meter
    new_meter: Meter
    final_reading: MeterReading
    initial_reading: MeterReading
    warnings: list[str] = field(default_factory=list)


class MeterService:
    """Service for meter and meter reading operations."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_meter(self, ctx: OwnerContext, meter_id: int, *, for_update: bool = False) -> Meter:
        """Get a meter on one of the caller's properties.

        Raises:
            NotFound: If the meter does not exist or belongs to another owner
        """
        owner = require_owner(ctx)
        query = (
            self.db.query(Meter)
            .join(Property, Property.id == Meter.property_id)
            .filter(Meter.id == meter_id, Property.owner_id == owner.user_id)
        )
        if for_update:
            query = query.with_for_update(of=Meter)
        meter = query.first()
        if meter is None:
            raise NotFound("meter", meter_id)
        return meter

    def list_meters(
        self, ctx: OwnerContext, property_id: int, include_archived: bool = False
    ) -> list[Meter]:
        """List meters of a property, active first."""
        get_owned_property(self.db, ctx, property_id)
        query = self.db.query(Meter).filter(Meter.property_id == property_id)
        if not include_archived:
            query = query.filter(Meter.status == MeterStatus.ACTIVE)
        return query.order_by(Meter.status, Meter.type, Meter.id).all()

    def active_meters(self, property_id: int) -> list[Meter]:
        """Active meters of a property (the heads of their exchange chains)."""
        return (
            self.db.query(Meter)
            .filter(Meter.property_id == property_id, Meter.status == MeterStatus.ACTIVE)
            .order_by(Meter.type, Meter.id)
            .all()
        )

    def readings_for(self, meter_id: int) -> list[MeterReading]:
        """All readings of a meter in chronological order."""
        return (
            self.db.query(MeterReading)
            .filter(MeterReading.meter_id == meter_id)
            .order_by(MeterReading.reading_date, MeterReading.id)
            .all()
        )

    def latest_reading(self, meter_id: int) -> MeterReading | None:
        return (
            self.db.query(MeterReading)
            .filter(MeterReading.meter_id == meter_id)
            .order_by(MeterReading.reading_date.desc(), MeterReading.id.desc())
            .first()
        )

    def list_readings(self, ctx: OwnerContext, meter_id: int, limit: int = 20) -> list[MeterReading]:
        """Newest readings first, at most MAX_READINGS_PAGE."""
        self.get_meter(ctx, meter_id)
        limit = max(1, min(limit, MAX_READINGS_PAGE))
        return (
            self.db.query(MeterReading)
            .filter(MeterReading.meter_id == meter_id)
            .order_by(MeterReading.reading_date.desc(), MeterReading.id.desc())
            .limit(limit)
            .all()
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_meter(
        self,
        ctx: OwnerContext,
        property_id: int,
        meter_type: MeterType,
        meter_number: str | None = None,
        serial_number: str | None = None,
        unit: str | None = None,
        price_per_unit: Any = None,
        install_date: date | None = None,
        initial_reading: Any = None,
    ) -> Meter:
        """Register a meter on a property, optionally with its INITIAL reading."""
        property_obj = get_owned_property(self.db, ctx, property_id)
        price = parse_amount(price_per_unit, "price_per_unit") if price_per_unit is not None else None
        initial = parse_amount(initial_reading, "initial_reading") if initial_reading is not None else None
        install = install_date or date.today()

        try:
            meter = Meter(
                property_id=property_obj.id,
                type=meter_type,
                meter_number=meter_number,
                serial_number=serial_number,
                unit=unit or DEFAULT_UNITS[meter_type],
                price_per_unit=price,
                status=MeterStatus.ACTIVE,
                install_date=install,
            )
            self.db.add(meter)
            self.db.flush()
            if initial is not None:
                self.db.add(
                    MeterReading(
                        meter_id=meter.id,
                        value=initial,
                        reading_date=install,
                        reading_type=ReadingType.INITIAL,
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Created meter id=%d type=%s on property_id=%d", meter.id, meter_type.value, property_id
        )
        return meter

    def record_reading(
        self,
        ctx: OwnerContext,
        meter_id: int,
        value: Any,
        reading_date: date | None = None,
        reading_type: ReadingType = ReadingType.REGULAR,
        notes: str | None = None,
    ) -> ReadingResult:
        """Append a reading to an active meter.

        A value below the latest prior reading is stored but returned with a
        warning (meters can be reset). The meter row is locked while writing so
        the reading cannot interleave with an exchange.

        Raises:
            NotFound: Unknown meter or not owned by the caller
            ValidationError: Non-numeric or negative value
            InvalidState: Meter already retired by an exchange
        """
        parsed = parse_amount(value, "value")
        meter = self.get_meter(ctx, meter_id, for_update=True)
        if meter.status != MeterStatus.ACTIVE:
            self.db.rollback()
            raise InvalidState(
                "Meter is not active, cannot submit readings",
                entity="meter",
                entity_id=meter_id,
                status=meter.status.value,
            )

        warnings: list[str] = []
        last = self.latest_reading(meter_id)
        if last is not None and parsed < Decimal(last.value):
            warnings.append(
                f"New reading ({parsed}) is lower than the previous one ({last.value})"
            )

        try:
            reading = MeterReading(
                meter_id=meter.id,
                value=parsed,
                reading_date=reading_date or date.today(),
                reading_type=reading_type,
                notes=notes,
            )
            self.db.add(reading)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Recorded reading meter_id=%d value=%s date=%s", meter_id, parsed, reading.reading_date
        )
        if warnings:
            logger.warning("meter_id=%d: %s", meter_id, warnings[0])
        return ReadingResult(reading=reading, warnings=warnings)

    def exchange_meter(
        self,
        ctx: OwnerContext,
        old_meter_id: int,
        final_reading: Any,
        new_initial_reading: Any,
        new_meter: NewMeterSpec | None = None,
        exchange_date: date | None = None,
        notes: str | None = None,
    ) -> MeterExchangeResult:
        """Replace a physical meter, keeping consumption continuous.

        In one transaction: final METER_EXCHANGE reading on the old meter, a new
        meter inheriting property/type/unit/price (unless overridden) with an
        INITIAL reading, and retirement of the old meter linked to its successor.
        Retirement is a conditional update on ``status = ACTIVE``; losing that race
        aborts the whole exchange.

        Raises:
            NotFound: Unknown meter or not owned by the caller
            ValidationError: Non-numeric readings, or exchange dated before the last reading
            Conflict: Old meter already retired
        """
        final_value = parse_amount(final_reading, "final_reading")
        initial_value = parse_amount(new_initial_reading, "new_initial_reading")
        spec = new_meter or NewMeterSpec()
        new_price = (
            parse_amount(spec.price_per_unit, "price_per_unit")
            if spec.price_per_unit is not None
            else None
        )
        on_date = exchange_date or date.today()

        old = self.get_meter(ctx, old_meter_id, for_update=True)
        if old.status != MeterStatus.ACTIVE:
            self.db.rollback()
            raise Conflict(
                f"Meter is already {old.status.value}, cannot exchange",
                entity="meter",
                entity_id=old_meter_id,
                status=old.status.value,
            )

        warnings: list[str] = []
        last = self.latest_reading(old.id)
        if last is not None:
            if on_date < last.reading_date:
                self.db.rollback()
                raise ValidationError(
                    "Exchange date is before the meter's latest reading",
                    field="exchange_date",
                    latest_reading_date=last.reading_date.isoformat(),
                )
            if final_value < Decimal(last.value):
                warnings.append(
                    f"Final reading ({final_value}) is lower than the last reading ({last.value})"
                )

        try:
            final_record = MeterReading(
                meter_id=old.id,
                value=final_value,
                reading_date=on_date,
                reading_type=ReadingType.METER_EXCHANGE,
                notes=notes or "Final reading before meter exchange",
            )
            self.db.add(final_record)

            successor = Meter(
                property_id=old.property_id,
                type=old.type,
                meter_number=spec.meter_number,
                serial_number=spec.serial_number,
                unit=spec.unit or old.unit,
                price_per_unit=new_price if new_price is not None else old.price_per_unit,
                status=MeterStatus.ACTIVE,
                install_date=on_date,
            )
            self.db.add(successor)
            self.db.flush()

            initial_record = MeterReading(
                meter_id=successor.id,
                value=initial_value,
                reading_date=on_date,
                reading_type=ReadingType.INITIAL,
                notes="Initial reading of the new meter",
            )
            self.db.add(initial_record)

            retired = self.db.execute(
                update(Meter)
                .where(Meter.id == old.id, Meter.status == MeterStatus.ACTIVE)
                .values(
                    status=MeterStatus.ARCHIVED,
                    archive_date=on_date,
                    archive_note=f"Replaced by {spec.meter_number or f'meter #{successor.id}'}",
                    replaced_by_id=successor.id,
                )
                .execution_options(synchronize_session=False)
            )
            if retired.rowcount != 1:
                raise Conflict(
                    "Meter was exchanged concurrently",
                    entity="meter",
                    entity_id=old.id,
                )

            AuditService.log(
                self.db,
                "meter",
                old.id,
                "exchange",
                ctx.user_id,
                {
                    "new_meter_id": successor.id,
                    "final_reading": str(final_value),
                    "initial_reading": str(initial_value),
                    "exchange_date": on_date.isoformat(),
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(old)
        logger.info(
            "Exchanged meter id=%d -> id=%d on %s (final=%s, initial=%s)",
            old.id,
            successor.id,
            on_date,
            final_value,
            initial_value,
        )
        return MeterExchangeResult(
            old_meter=old,
            new_meter=successor,
            final_reading=final_record,
            initial_reading=initial_record,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def meter_chain(self, meter: Meter, since: date | None = None) -> list[Meter]:
        """Walk the exchange chain back from ``meter``.

        Returns meters ordered old -> new ending with ``meter``. Predecessors
        archived before ``since`` (and everything older) are left out since they
        cannot contribute to a period starting on ``since``.
        """
        chain = [meter]
        seen = {meter.id}
        current = meter
        while True:
            predecessor = self.db.query(Meter).filter(Meter.replaced_by_id == current.id).first()
            if predecessor is None or predecessor.id in seen:
                break
            if since is not None and predecessor.archive_date is not None and predecessor.archive_date < since:
                break
            chain.append(predecessor)
            seen.add(predecessor.id)
            current = predecessor
        chain.reverse()
        return chain

    def usage_between(self, meter: Meter, period_start: date, period_end: date) -> MeterUsage:
        """Consumption of a meter's whole exchange chain within an inclusive period.

        Sums each chain member's own delta, so across an exchange the result is
        (old final - old start) + (new end - new initial).
        """
        segments = []
        for member in self.meter_chain(meter, since=period_start):
            segment = segment_usage(member.id, self.readings_for(member.id), period_start, period_end)
            if segment is not None:
                segments.append(segment)
        return MeterUsage(meter_id=meter.id, segments=tuple(segments))


__all__ = [
    "MeterService",
    "MeterUsage",
    "SegmentUsage",
    "NewMeterSpec",
    "ReadingResult",
    "MeterExchangeResult",
    "segment_usage",
    "parse_amount",
]
