"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from utility_settlement.models.user import User  # noqa: E402
from utility_settlement.models.property import Property  # noqa: E402
from utility_settlement.models.tenant import Contract, Tenant  # noqa: E402
from utility_settlement.models.meter import (  # noqa: E402
    Meter,
    MeterReading,
    MeterStatus,
    MeterType,
    ReadingType,
)
from utility_settlement.models.utility_rate import UtilityRate  # noqa: E402
from utility_settlement.models.fixed_utility import (  # noqa: E402
    FixedUtility,
    FixedUtilityType,
    SplitMethod,
)
from utility_settlement.models.advance_payment import AdvancePayment  # noqa: E402
from utility_settlement.models.settlement import (  # noqa: E402
    BillingApproach,
    Settlement,
    SettlementItem,
    SettlementShare,
    SettlementStatus,
)
from utility_settlement.models.ledger_entry import LedgerEntry, LedgerEntryType  # noqa: E402
from utility_settlement.models.audit_log import AuditLog  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Property",
    "Tenant",
    "Contract",
    "Meter",
    "MeterReading",
    "MeterStatus",
    "MeterType",
    "ReadingType",
    "UtilityRate",
    "FixedUtility",
    "FixedUtilityType",
    "SplitMethod",
    "AdvancePayment",
    "Settlement",
    "SettlementItem",
    "SettlementShare",
    "SettlementStatus",
    "BillingApproach",
    "LedgerEntry",
    "LedgerEntryType",
    "AuditLog",
]
