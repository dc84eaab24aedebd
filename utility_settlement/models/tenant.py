"""Tenant and Contract ORM models.

Both are maintained by the property/tenant registry outside this package; the
settlement engine only reads their date ranges to derive occupancy.
"""

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel


class Tenant(Base, BaseModel):
    """A person renting (part of) a property."""

    __tablename__ = "tenants"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    move_in_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="First day the tenant occupies the property",
    )
    move_out_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Last day the tenant occupies the property (null = still living there)",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    property_obj: Mapped["Property"] = relationship(  # noqa: F821
        "Property",
        back_populates="tenants",
    )
    contracts: Mapped[list["Contract"]] = relationship(
        "Contract",
        back_populates="tenant",
        order_by="Contract.start_date",
    )

    __table_args__ = (Index("idx_tenant_property_move_in", "property_id", "move_in_date"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return (
            f"<Tenant(id={self.id}, property_id={self.property_id}, name={self.full_name!r}, "
            f"move_in={self.move_in_date}, move_out={self.move_out_date})>"
        )


class Contract(Base, BaseModel):
    """Rental contract; its dates take precedence over tenant move-in/move-out."""

    __tablename__ = "contracts"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Inclusive end date (null = open-ended)",
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="contracts")

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, tenant_id={self.tenant_id}, "
            f"start={self.start_date}, end={self.end_date})>"
        )


__all__ = ["Tenant", "Contract"]
