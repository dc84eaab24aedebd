"""Append-only tenant ledger with running balances."""

import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from utility_settlement.errors import NotFound
from utility_settlement.models import LedgerEntry, LedgerEntryType, Property, Tenant
from utility_settlement.services.allocation_service import ZERO, quantize_money
from utility_settlement.services.auth_service import OwnerContext, require_owner

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for ledger postings.

    Entries are only ever added. ``post`` flushes but does not commit so postings
    land in the caller's transaction.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def lock_tenant(self, tenant_id: int) -> None:
        """Row-lock the tenant so its postings are appended one writer at a time."""
        self.db.query(Tenant.id).filter(Tenant.id == tenant_id).with_for_update().first()

    def current_balance(self, tenant_id: int, property_id: int) -> Decimal:
        """Sum of the tenant's postings on a property (0 if none)."""
        total = (
            self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0))
            .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.property_id == property_id)
            .scalar()
        )
        return quantize_money(Decimal(str(total)))

    def post(
        self,
        tenant_id: int,
        property_id: int,
        entry_type: LedgerEntryType,
        amount: Decimal,
        settlement_id: int | None = None,
        description: str | None = None,
        reverses_entry_id: int | None = None,
    ) -> LedgerEntry:
        """Append an entry and compute its running balance.

        The tenant row is locked first, so the balance is read and extended by a
        single transaction at a time.
        """
        amount = quantize_money(amount)
        self.lock_tenant(tenant_id)
        balance = self.current_balance(tenant_id, property_id)
        entry = LedgerEntry(
            tenant_id=tenant_id,
            property_id=property_id,
            settlement_id=settlement_id,
            entry_type=entry_type,
            amount=amount,
            description=description,
            balance_after=balance + amount,
            reverses_entry_id=reverses_entry_id,
        )
        self.db.add(entry)
        self.db.flush()
        logger.debug(
            "Posted %s %s for tenant_id=%d (balance %s)",
            entry_type.value,
            amount,
            tenant_id,
            entry.balance_after,
        )
        return entry

    def entries_for_settlement(self, settlement_id: int) -> list[LedgerEntry]:
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.settlement_id == settlement_id)
            .order_by(LedgerEntry.id)
            .all()
        )

    def reverse_settlement(self, settlement_id: int, reason: str) -> list[LedgerEntry]:
        """Append one equal and opposite REVERSAL per posting of a settlement."""
        originals = [
            entry
            for entry in self.entries_for_settlement(settlement_id)
            if entry.entry_type != LedgerEntryType.REVERSAL
        ]
        return [
            self.post(
                tenant_id=entry.tenant_id,
                property_id=entry.property_id,
                entry_type=LedgerEntryType.REVERSAL,
                amount=-Decimal(entry.amount),
                settlement_id=settlement_id,
                description=f"Reversal: {reason}"[:255],
                reverses_entry_id=entry.id,
            )
            for entry in originals
        ]

    def tenant_balance(self, ctx: OwnerContext, tenant_id: int) -> dict:
        """Balance summary of a tenant on the caller's property.

        Raises:
            NotFound: Unknown tenant or on someone else's property
        """
        owner = require_owner(ctx)
        tenant = (
            self.db.query(Tenant)
            .join(Property, Property.id == Tenant.property_id)
            .filter(Tenant.id == tenant_id, Property.owner_id == owner.user_id)
            .first()
        )
        if tenant is None:
            raise NotFound("tenant", tenant_id)

        entries = (
            self.db.query(LedgerEntry)
            .filter(
                LedgerEntry.tenant_id == tenant.id,
                LedgerEntry.property_id == tenant.property_id,
            )
            .order_by(LedgerEntry.id)
            .all()
        )
        return {
            "tenant_id": tenant.id,
            "property_id": tenant.property_id,
            "balance": self.current_balance(tenant.id, tenant.property_id),
            "entries": entries,
        }


__all__ = ["LedgerService"]
