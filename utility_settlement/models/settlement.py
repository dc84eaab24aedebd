"""Settlement, SettlementItem and SettlementShare ORM models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel
from utility_settlement.models.fixed_utility import SplitMethod


class SettlementStatus(str, Enum):
    """Persisted lifecycle status of a settlement (DRAFT -> FINALIZED -> VOIDED)."""

    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    VOIDED = "VOIDED"


class BillingApproach(str, Enum):
    """Billing cadence chosen for a settlement."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    ANNUAL = "ANNUAL"
    ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
    """Tenants prepaid utilities; finalization offsets their advances"""


class Settlement(Base, BaseModel):
    """Apportionment of a property's shared utility costs over one period.

    ``calculated_total`` is the sum of item costs. ``total_amount`` is the sum of
    the shares' final amounts and follows owner adjustments while in DRAFT.
    """

    __tablename__ = "settlements"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Inclusive last day of the period",
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approach: Mapped[BillingApproach] = mapped_column(
        SQLEnum(BillingApproach),
        nullable=False,
        default=BillingApproach.MONTHLY,
    )
    status: Mapped[SettlementStatus] = mapped_column(
        SQLEnum(SettlementStatus),
        nullable=False,
        default=SettlementStatus.DRAFT,
        index=True,
    )
    calculated_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    warnings: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Calculation warnings captured when the draft was (re)calculated",
    )

    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    property_obj: Mapped["Property"] = relationship("Property")  # noqa: F821
    items: Mapped[list["SettlementItem"]] = relationship(
        "SettlementItem",
        back_populates="settlement",
        cascade="all, delete-orphan",
        order_by="SettlementItem.id",
    )
    shares: Mapped[list["SettlementShare"]] = relationship(
        "SettlementShare",
        back_populates="settlement",
        cascade="all, delete-orphan",
        order_by="SettlementShare.id",
    )

    __table_args__ = (Index("idx_settlement_property_period", "property_id", "period_start"),)

    def __repr__(self) -> str:
        return (
            f"<Settlement(id={self.id}, property_id={self.property_id}, "
            f"period={self.period_start}..{self.period_end}, status={self.status}, "
            f"total={self.total_amount})>"
        )


class SettlementItem(Base, BaseModel):
    """One cost line: a meter chain's consumption or a fixed utility's cost."""

    __tablename__ = "settlement_items"

    settlement_id: Mapped[int] = mapped_column(
        ForeignKey("settlements.id"),
        nullable=False,
        index=True,
    )
    meter_id: Mapped[int | None] = mapped_column(ForeignKey("meters.id"), nullable=True)
    fixed_utility_id: Mapped[int | None] = mapped_column(
        ForeignKey("fixed_utilities.id"),
        nullable=True,
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    prev_reading: Mapped[Decimal | None] = mapped_column(Numeric(14, 3), nullable=True)
    curr_reading: Mapped[Decimal | None] = mapped_column(Numeric(14, 3), nullable=True)
    consumption: Mapped[Decimal | None] = mapped_column(Numeric(14, 3), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        comment="Price snapshot used for the calculation",
    )
    period_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    split_method: Mapped[SplitMethod] = mapped_column(SQLEnum(SplitMethod), nullable=False)

    settlement: Mapped["Settlement"] = relationship("Settlement", back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<SettlementItem(id={self.id}, settlement_id={self.settlement_id}, "
            f"label={self.label!r}, total_cost={self.total_cost})>"
        )


class SettlementShare(Base, BaseModel):
    """One tenant's portion of a settlement."""

    __tablename__ = "settlement_shares"

    settlement_id: Mapped[int] = mapped_column(
        ForeignKey("settlements.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False, index=True)
    active_days: Mapped[Decimal] = mapped_column(
        Numeric(10, 4),
        nullable=False,
        comment="Occupancy-weighted days (shared days count fractionally)",
    )
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    share_ratio: Mapped[Decimal] = mapped_column(Numeric(8, 6), nullable=False)
    calculated_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    adjusted_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    final_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    advances_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    balance_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    settlement: Mapped["Settlement"] = relationship("Settlement", back_populates="shares")
    tenant: Mapped["Tenant"] = relationship("Tenant")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<SettlementShare(id={self.id}, settlement_id={self.settlement_id}, "
            f"tenant_id={self.tenant_id}, final_amount={self.final_amount})>"
        )


__all__ = [
    "Settlement",
    "SettlementItem",
    "SettlementShare",
    "SettlementStatus",
    "BillingApproach",
]
