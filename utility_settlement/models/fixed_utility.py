"""Fixed (flat-fee) utility ORM model."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel


class FixedUtilityType(str, Enum):
    """Category of a recurring flat fee."""

    INTERNET = "INTERNET"
    GARBAGE = "GARBAGE"
    ADMIN_FEE = "ADMIN_FEE"
    PARKING = "PARKING"
    TV_CABLE = "TV_CABLE"
    SECURITY = "SECURITY"
    ELEVATOR = "ELEVATOR"
    OTHER = "OTHER"


class SplitMethod(str, Enum):
    """How a cost item is distributed across tenants."""

    BY_DAYS = "BY_DAYS"
    """Proportional to occupancy-weighted days"""

    BY_PERSON = "BY_PERSON"
    """Per head among occupying tenants, independent of days"""

    EQUAL = "EQUAL"
    """Evenly among tenants with nonzero occupancy"""


class FixedUtility(Base, BaseModel):
    """Recurring flat-fee cost item of a property (internet, garbage, ...).

    Items are never hard deleted: ``is_active=False`` removes them from future
    settlements while finalized settlements keep their snapshot line.
    """

    __tablename__ = "fixed_utilities"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[FixedUtilityType] = mapped_column(SQLEnum(FixedUtilityType), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    period_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Cost for one settlement period",
    )
    split_method: Mapped[SplitMethod] = mapped_column(
        SQLEnum(SplitMethod),
        nullable=False,
        default=SplitMethod.BY_DAYS,
    )
    is_per_person: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Cost is charged once per occupying tenant",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    active_from: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="First day the service is billed (null = always)",
    )
    active_to: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Last day the service is billed (null = open-ended)",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    property_obj: Mapped["Property"] = relationship(  # noqa: F821
        "Property",
        back_populates="fixed_utilities",
    )

    def __repr__(self) -> str:
        return (
            f"<FixedUtility(id={self.id}, property_id={self.property_id}, name={self.name!r}, "
            f"period_cost={self.period_cost}, split={self.split_method}, active={self.is_active})>"
        )


__all__ = ["FixedUtility", "FixedUtilityType", "SplitMethod"]
