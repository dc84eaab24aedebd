"""Property ORM model: the unit whose shared utility costs get settled."""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel


class Property(Base, BaseModel):
    """Model representing a rented property owned by one user.

    Inactive properties can still be settled (for closing out a final period) but
    the calculator flags them with a warning.
    """

    __tablename__ = "properties"

    # Ownership and identification
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    address: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the property is currently rented out",
    )

    # Relationships
    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="properties",
        foreign_keys=[owner_id],
    )
    tenants: Mapped[list["Tenant"]] = relationship(  # noqa: F821
        "Tenant",
        back_populates="property_obj",
        order_by="Tenant.id",
    )
    meters: Mapped[list["Meter"]] = relationship(  # noqa: F821
        "Meter",
        back_populates="property_obj",
        order_by="Meter.id",
    )
    fixed_utilities: Mapped[list["FixedUtility"]] = relationship(  # noqa: F821
        "FixedUtility",
        back_populates="property_obj",
        order_by="FixedUtility.id",
    )

    __table_args__ = (Index("idx_property_owner_active", "owner_id", "is_active"),)

    def __repr__(self) -> str:
        return (
            f"<Property(id={self.id}, owner_id={self.owner_id}, name={self.name!r}, "
            f"is_active={self.is_active})>"
        )


__all__ = ["Property"]
