"""User ORM model for property owners resolved by the identity provider."""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utility_settlement.models import Base, BaseModel


class User(Base, BaseModel):
    """
    Owner identity record.

    Authentication happens outside this package; the identity provider resolves a
    caller to a row in this table. Every property, and through it every meter,
    fixed utility and settlement, hangs off one owner for authorization checks.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name (first and last name combined)",
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Login email supplied by the identity provider",
    )

    # Primary access gate
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive users are rejected as unauthorized",
    )

    __table_args__ = (Index("idx_users_is_active", "is_active"),)

    # Relationships
    properties: Mapped[list["Property"]] = relationship(  # noqa: F821
        "Property",
        back_populates="owner",
        foreign_keys="Property.owner_id",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r}, is_active={self.is_active})>"


__all__ = ["User"]
