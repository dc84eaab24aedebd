"""Advance utility payments made by tenants."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from utility_settlement.models import Base, BaseModel


class AdvancePayment(Base, BaseModel):
    """Utility prepayment received from a tenant.

    Written by the payments module; the settlement engine only sums these when a
    settlement uses the ADVANCE_PAYMENT approach.
    """

    __tablename__ = "advance_payments"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (Index("idx_advance_tenant_paid", "tenant_id", "paid_date"),)

    def __repr__(self) -> str:
        return (
            f"<AdvancePayment(id={self.id}, tenant_id={self.tenant_id}, amount={self.amount}, "
            f"paid_date={self.paid_date})>"
        )


__all__ = ["AdvancePayment"]
