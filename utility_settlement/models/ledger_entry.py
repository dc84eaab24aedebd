"""Append-only tenant ledger."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from utility_settlement.models import Base, BaseModel


class LedgerEntryType(str, Enum):
    """Kind of ledger posting."""

    CHARGE = "CHARGE"
    """Tenant owes the share's final amount"""

    ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
    """Offset of advances already paid (negative amount)"""

    REVERSAL = "REVERSAL"
    """Exact negation of an earlier posting, created by voiding"""


class LedgerEntry(Base, BaseModel):
    """Immutable accounting entry; positive amounts increase what the tenant owes.

    Rows are never updated or deleted. Voiding a settlement appends one REVERSAL
    per original posting pointing back at it via ``reverses_entry_id``.
    """

    __tablename__ = "ledger_entries"

    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id"), nullable=False)
    settlement_id: Mapped[int | None] = mapped_column(
        ForeignKey("settlements.id"),
        nullable=True,
        index=True,
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(SQLEnum(LedgerEntryType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Running tenant balance on this property after the posting",
    )
    reverses_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id"),
        nullable=True,
        unique=True,
    )

    __table_args__ = (Index("idx_ledger_tenant_property", "tenant_id", "property_id", "id"),)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry(id={self.id}, tenant_id={self.tenant_id}, type={self.entry_type}, "
            f"amount={self.amount}, balance_after={self.balance_after})>"
        )


__all__ = ["LedgerEntry", "LedgerEntryType"]
