"""Utility tariff history per property and meter type."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from utility_settlement.models import Base, BaseModel
from utility_settlement.models.meter import MeterType


class UtilityRate(Base, BaseModel):
    """Price per unit valid for a date window (``effective_to`` null = still valid)."""

    __tablename__ = "utility_rates"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    meter_type: Mapped[MeterType] = mapped_column(SQLEnum(MeterType), nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    source: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Where the tariff came from (supplier invoice, price list, ...)",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_rate_property_type_from", "property_id", "meter_type", "effective_from"),
    )

    def __repr__(self) -> str:
        return (
            f"<UtilityRate(id={self.id}, property_id={self.property_id}, type={self.meter_type}, "
            f"price={self.price_per_unit}, from={self.effective_from}, to={self.effective_to})>"
        )


__all__ = ["UtilityRate"]
