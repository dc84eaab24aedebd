"""Meter and MeterReading ORM models.

Meters form a singly-linked exchange chain: when a physical meter is replaced the
old row is archived and its ``replaced_by_id`` points at the successor.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel


class MeterType(str, Enum):
    """Kind of metered utility."""

    ELECTRICITY = "ELECTRICITY"
    WATER = "WATER"
    GAS = "GAS"
    HEAT = "HEAT"
    OTHER = "OTHER"


DEFAULT_UNITS = {
    MeterType.ELECTRICITY: "kWh",
    MeterType.WATER: "m³",
    MeterType.GAS: "m³",
    MeterType.HEAT: "GJ",
    MeterType.OTHER: "unit",
}


class MeterStatus(str, Enum):
    """Meter lifecycle status."""

    ACTIVE = "ACTIVE"
    """Currently installed; accepts readings"""

    ARCHIVED = "ARCHIVED"
    """Retired by an exchange; kept for history"""


class ReadingType(str, Enum):
    """Origin of a meter reading."""

    REGULAR = "REGULAR"
    INITIAL = "INITIAL"
    """First reading of a newly installed meter"""

    METER_EXCHANGE = "METER_EXCHANGE"
    """Final reading taken when the meter was replaced"""


class Meter(Base, BaseModel):
    """Model representing a physical utility meter installed in a property."""

    __tablename__ = "meters"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[MeterType] = mapped_column(
        SQLEnum(MeterType),
        nullable=False,
    )
    meter_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    price_per_unit: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        comment="Fallback price when no tariff covers the settlement date",
    )
    status: Mapped[MeterStatus] = mapped_column(
        SQLEnum(MeterStatus),
        nullable=False,
        default=MeterStatus.ACTIVE,
    )
    install_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    archive_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    archive_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Exchange chain link (old -> new)
    replaced_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("meters.id"),
        nullable=True,
        unique=True,
        comment="Successor meter installed when this one was exchanged",
    )

    # Relationships
    property_obj: Mapped["Property"] = relationship(  # noqa: F821
        "Property",
        back_populates="meters",
    )
    replaced_by: Mapped["Meter | None"] = relationship(
        "Meter",
        remote_side="Meter.id",
        foreign_keys=[replaced_by_id],
    )
    readings: Mapped[list["MeterReading"]] = relationship(
        "MeterReading",
        back_populates="meter",
    )

    __table_args__ = (Index("idx_meter_property_status", "property_id", "status"),)

    @property
    def label(self) -> str:
        """Human readable label used on settlement items."""
        suffix = self.meter_number or f"#{self.id}"
        return f"{self.type.value.title()} ({suffix})"

    def __repr__(self) -> str:
        return (
            f"<Meter(id={self.id}, property_id={self.property_id}, type={self.type}, "
            f"status={self.status}, replaced_by_id={self.replaced_by_id})>"
        )


class MeterReading(Base, BaseModel):
    """A single meter reading; consumption is derived at read time."""

    __tablename__ = "meter_readings"

    meter_id: Mapped[int] = mapped_column(
        ForeignKey("meters.id"),
        nullable=False,
        index=True,
    )
    value: Mapped[Decimal] = mapped_column(
        Numeric(14, 3),
        nullable=False,
    )
    reading_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    reading_type: Mapped[ReadingType] = mapped_column(
        SQLEnum(ReadingType),
        nullable=False,
        default=ReadingType.REGULAR,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    meter: Mapped["Meter"] = relationship("Meter", back_populates="readings")

    __table_args__ = (Index("idx_reading_meter_date", "meter_id", "reading_date"),)

    def __repr__(self) -> str:
        return (
            f"<MeterReading(id={self.id}, meter_id={self.meter_id}, value={self.value}, "
            f"date={self.reading_date}, type={self.reading_type})>"
        )


__all__ = ["Meter", "MeterReading", "MeterType", "MeterStatus", "ReadingType", "DEFAULT_UNITS"]
