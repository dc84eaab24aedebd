"""Settlement lifecycle: preview, drafts, share adjustment, finalize and void."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from utility_settlement.errors import InvalidRange, InvalidState, NotFound, ValidationError
from utility_settlement.models import (
    BillingApproach,
    LedgerEntryType,
    Property,
    Settlement,
    SettlementItem,
    SettlementShare,
    SettlementStatus,
)
from utility_settlement.services import settlement_state
from utility_settlement.services.allocation_service import ZERO, quantize_money
from utility_settlement.services.audit_service import AuditService
from utility_settlement.services.auth_service import (
    OwnerContext,
    get_owned_property,
    require_owner,
)
from utility_settlement.services.ledger_service import LedgerService
from utility_settlement.services.meter_service import parse_amount
from utility_settlement.services.settlement_calculator import (
    SettlementCalculation,
    calculate_settlement,
)
from utility_settlement.services.settlement_inputs import SettlementInputLoader

logger = logging.getLogger(__name__)

MIN_VOID_REASON_LENGTH = 3


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()
"""Marks an adjust_share argument that was not provided (``None`` clears)."""


@dataclass
class SettlementPreview:
    """Calculator output plus tenant display names."""

    property_id: int
    calculation: SettlementCalculation
    tenant_names: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = self.calculation.to_dict()
        payload["property_id"] = self.property_id
        for share in payload["shares"]:
            share["tenant_name"] = self.tenant_names.get(share["tenant_id"])
        return payload


def _check_period(period_start: date, period_end: date) -> None:
    if period_start >= period_end:
        raise InvalidRange(period_start, period_end)


class SettlementService:
    """Service for settlement lifecycle operations.

    Every write runs in a single transaction; status transitions are conditional
    updates on the expected source status so concurrent callers cannot both win.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.inputs = SettlementInputLoader(db)
        self.ledger = LedgerService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, ctx: OwnerContext, settlement_id: int, *, for_update: bool = False) -> Settlement:
        """Get a settlement on one of the caller's properties.

        ``for_update`` row-locks the settlement and reloads it (and its items and
        shares) from the database, discarding anything cached in the session.

        Raises:
            NotFound: Unknown id or owned by someone else
        """
        owner = require_owner(ctx)
        query = (
            self.db.query(Settlement)
            .join(Property, Property.id == Settlement.property_id)
            .options(selectinload(Settlement.items), selectinload(Settlement.shares))
            .filter(Settlement.id == settlement_id, Property.owner_id == owner.user_id)
        )
        if for_update:
            query = query.with_for_update(of=Settlement).populate_existing()
        settlement = query.first()
        if settlement is None:
            raise NotFound("settlement", settlement_id)
        return settlement

    def list_settlements(
        self,
        ctx: OwnerContext,
        property_id: int | None = None,
        status: SettlementStatus | None = None,
    ) -> list[Settlement]:
        """Settlements of the caller's properties, newest period first."""
        owner = require_owner(ctx)
        if property_id is not None:
            get_owned_property(self.db, ctx, property_id)

        query = (
            self.db.query(Settlement)
            .join(Property, Property.id == Settlement.property_id)
            .filter(Property.owner_id == owner.user_id)
        )
        if property_id is not None:
            query = query.filter(Settlement.property_id == property_id)
        if status is not None:
            query = query.filter(Settlement.status == status)
        return query.order_by(Settlement.period_start.desc(), Settlement.id.desc()).all()

    def preview(
        self,
        ctx: OwnerContext,
        property_id: int,
        period_start: date,
        period_end: date,
        approach: BillingApproach = BillingApproach.MONTHLY,
    ) -> SettlementPreview:
        """Dry-run calculation; never writes and takes no locks."""
        property_obj = get_owned_property(self.db, ctx, property_id)
        _check_period(period_start, period_end)
        calculation = self._calculate(property_obj, period_start, period_end, approach)
        names = self.inputs.tenant_names([share.tenant_id for share in calculation.shares])
        return SettlementPreview(property_id=property_id, calculation=calculation, tenant_names=names)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def create_draft(
        self,
        ctx: OwnerContext,
        property_id: int,
        period_start: date,
        period_end: date,
        approach: BillingApproach = BillingApproach.MONTHLY,
        title: str | None = None,
        notes: str | None = None,
    ) -> Settlement:
        """Calculate and persist a DRAFT settlement with its items and shares.

        Raises:
            NotFound: Property unknown or not owned by the caller
            InvalidRange: period_start not before period_end
        """
        property_obj = get_owned_property(self.db, ctx, property_id)
        _check_period(period_start, period_end)
        calculation = self._calculate(property_obj, period_start, period_end, approach)

        try:
            settlement = Settlement(
                property_id=property_id,
                created_by_id=ctx.user_id,
                period_start=period_start,
                period_end=period_end,
                title=title or f"Utilities {period_start.isoformat()} - {period_end.isoformat()}",
                approach=approach,
                status=SettlementStatus.DRAFT,
                notes=notes,
                calculated_total=ZERO,
                total_amount=ZERO,
            )
            self.db.add(settlement)
            self._apply_calculation(settlement, calculation)
            self.db.flush()

            AuditService.log(
                self.db,
                "settlement",
                settlement.id,
                "create",
                ctx.user_id,
                {
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                    "total_amount": str(settlement.total_amount),
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Created draft settlement id=%d property_id=%d %s..%s total=%s (%d warnings)",
            settlement.id,
            property_id,
            period_start,
            period_end,
            settlement.total_amount,
            len(calculation.warnings),
        )
        return settlement

    def recalculate_draft(self, ctx: OwnerContext, settlement_id: int) -> Settlement:
        """Replace a draft's items and shares with a fresh calculation.

        Owner adjustments are discarded.
        """
        settlement = self.get(ctx, settlement_id, for_update=True)
        settlement_state.expect_draft(settlement)
        property_obj = get_owned_property(self.db, ctx, settlement.property_id)
        calculation = self._calculate(
            property_obj, settlement.period_start, settlement.period_end, settlement.approach
        )

        try:
            self._lock_draft(settlement)
            settlement.items.clear()
            settlement.shares.clear()
            self.db.flush()
            self._apply_calculation(settlement, calculation)
            AuditService.log(
                self.db,
                "settlement",
                settlement.id,
                "recalculate",
                ctx.user_id,
                {"total_amount": str(settlement.total_amount)},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Recalculated draft settlement id=%d total=%s", settlement.id, settlement.total_amount)
        return settlement

    def update_draft(
        self,
        ctx: OwnerContext,
        settlement_id: int,
        title: Any = UNSET,
        notes: Any = UNSET,
    ) -> Settlement:
        """Edit title/notes of a draft."""
        settlement = self.get(ctx, settlement_id, for_update=True)
        settlement_state.expect_draft(settlement)

        try:
            self._lock_draft(settlement)
            if title is not UNSET:
                settlement.title = title
            if notes is not UNSET:
                settlement.notes = notes
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return settlement

    def delete_draft(self, ctx: OwnerContext, settlement_id: int) -> None:
        """Delete a draft with its items and shares; finalized settlements stay forever."""
        settlement = self.get(ctx, settlement_id, for_update=True)
        settlement_state.expect_draft(settlement)

        try:
            self._lock_draft(settlement)
            AuditService.log(self.db, "settlement", settlement.id, "delete", ctx.user_id, None)
            self.db.delete(settlement)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Deleted draft settlement id=%d", settlement_id)

    def adjust_share(
        self,
        ctx: OwnerContext,
        settlement_id: int,
        share_id: int,
        adjusted_amount: Any = UNSET,
        notes: Any = UNSET,
        owner_notes: Any = UNSET,
    ) -> SettlementShare:
        """Override a share's amount and/or notes while the settlement is a draft.

        Passing ``adjusted_amount=None`` removes the override. A settlement that is
        not a draft, or a share that does not belong to it, is reported as missing.

        Raises:
            NotFound: Settlement unknown or not owned by the caller
            InvalidState: Not a draft or foreign share (HTTP 404)
            ValidationError: Non-numeric or negative amount
        """
        settlement = self.get(ctx, settlement_id, for_update=True)
        settlement_state.expect_draft(settlement, http_status=404)

        shares = self._current_shares(settlement.id)
        share = next((s for s in shares if s.id == share_id), None)
        if share is None:
            raise InvalidState(
                "Share not found in this draft settlement",
                http_status=404,
                entity="settlement_share",
                entity_id=share_id,
                settlement_id=settlement_id,
            )

        amount = UNSET
        if adjusted_amount is not UNSET and adjusted_amount is not None:
            amount = quantize_money(parse_amount(adjusted_amount, "adjusted_amount"))

        try:
            self._lock_draft(settlement, http_status=404)
            if adjusted_amount is not UNSET:
                share.adjusted_amount = None if adjusted_amount is None else amount
                share.final_amount = (
                    share.adjusted_amount
                    if share.adjusted_amount is not None
                    else share.calculated_amount
                )
                share.balance_due = Decimal(share.final_amount) - Decimal(share.advances_paid)
            if notes is not UNSET:
                share.notes = notes
            if owner_notes is not UNSET:
                share.owner_notes = owner_notes

            settlement.total_amount = sum((Decimal(s.final_amount) for s in shares), ZERO)
            AuditService.log(
                self.db,
                "settlement_share",
                share.id,
                "adjust",
                ctx.user_id,
                {
                    "settlement_id": settlement.id,
                    "adjusted_amount": None if share.adjusted_amount is None else str(share.adjusted_amount),
                    "final_amount": str(share.final_amount),
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Adjusted share id=%d of settlement id=%d: final=%s",
            share.id,
            settlement.id,
            share.final_amount,
        )
        return share

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def finalize(self, ctx: OwnerContext, settlement_id: int) -> Settlement:
        """DRAFT -> FINALIZED, posting one CHARGE per share.

        Under the ADVANCE_PAYMENT approach each tenant's advances are posted as an
        offsetting ADVANCE_PAYMENT entry.

        Raises:
            NotFound: Unknown settlement or not owned by the caller
            InvalidState: Not a draft (including a lost race), or no shares
        """
        settlement = self.get(ctx, settlement_id, for_update=True)
        draft = settlement_state.expect_draft(settlement)
        finalized = settlement_state.finalize(draft, datetime.now(timezone.utc))

        try:
            self._compare_and_set(
                settlement,
                settlement_state.status_of(draft),
                settlement_state.status_of(finalized),
                finalized_at=finalized.finalized_at,
            )

            # Post what is stored now that the status change has won
            shares = self._current_shares(settlement.id)
            total_amount = (
                self.db.query(Settlement.total_amount)
                .filter(Settlement.id == settlement.id)
                .scalar()
            )
            if not shares:
                raise InvalidState(
                    "Settlement has no tenant shares to finalize",
                    entity="settlement",
                    entity_id=settlement.id,
                )
            shares_total = sum((Decimal(s.final_amount) for s in shares), ZERO)
            if shares_total != Decimal(total_amount):
                raise InvalidState(
                    "Share amounts do not add up to the settlement total",
                    entity="settlement",
                    entity_id=settlement.id,
                    shares_total=str(shares_total),
                    total_amount=str(total_amount),
                )

            label = settlement.title or f"Settlement #{settlement.id}"
            postings = 0
            for share in shares:
                self.ledger.post(
                    tenant_id=share.tenant_id,
                    property_id=settlement.property_id,
                    entry_type=LedgerEntryType.CHARGE,
                    amount=Decimal(share.final_amount),
                    settlement_id=settlement.id,
                    description=label[:255],
                )
                postings += 1
                advances = Decimal(share.advances_paid or 0)
                if settlement.approach == BillingApproach.ADVANCE_PAYMENT and advances:
                    self.ledger.post(
                        tenant_id=share.tenant_id,
                        property_id=settlement.property_id,
                        entry_type=LedgerEntryType.ADVANCE_PAYMENT,
                        amount=-advances,
                        settlement_id=settlement.id,
                        description=f"Advances: {label}"[:255],
                    )
                    postings += 1

            AuditService.log(
                self.db,
                "settlement",
                settlement.id,
                "finalize",
                ctx.user_id,
                {"status": SettlementStatus.FINALIZED.value, "postings": postings},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(settlement)
        logger.info(
            "Finalized settlement id=%d total=%s with %d postings",
            settlement.id,
            settlement.total_amount,
            postings,
        )
        return settlement

    def void(self, ctx: OwnerContext, settlement_id: int, reason: str) -> Settlement:
        """FINALIZED -> VOIDED, reversing every posting of the settlement.

        Raises:
            ValidationError: Reason shorter than three characters
            NotFound: Unknown settlement or not owned by the caller
            InvalidState: Not finalized (including a lost race)
        """
        reason = (reason or "").strip()
        if len(reason) < MIN_VOID_REASON_LENGTH:
            raise ValidationError(
                f"Void reason must be at least {MIN_VOID_REASON_LENGTH} characters",
                field="reason",
            )

        settlement = self.get(ctx, settlement_id, for_update=True)
        finalized = settlement_state.expect_finalized(settlement)
        voided = settlement_state.void(finalized, datetime.now(timezone.utc), reason)

        try:
            self._compare_and_set(
                settlement,
                settlement_state.status_of(finalized),
                settlement_state.status_of(voided),
                voided_at=voided.voided_at,
                void_reason=voided.reason,
            )
            reversals = self.ledger.reverse_settlement(settlement.id, reason)
            AuditService.log(
                self.db,
                "settlement",
                settlement.id,
                "void",
                ctx.user_id,
                {"status": SettlementStatus.VOIDED.value, "reason": reason, "reversals": len(reversals)},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(settlement)
        logger.info("Voided settlement id=%d (%d reversals): %s", settlement.id, len(reversals), reason)
        return settlement

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _calculate(
        self,
        property_obj: Property,
        period_start: date,
        period_end: date,
        approach: BillingApproach,
    ) -> SettlementCalculation:
        inputs = self.inputs.load(property_obj, period_start, period_end, approach)
        return calculate_settlement(inputs)

    def _apply_calculation(self, settlement: Settlement, calculation: SettlementCalculation) -> None:
        """Attach items and shares of a calculation to a draft."""
        for item in calculation.items:
            settlement.items.append(
                SettlementItem(
                    meter_id=item.meter_id,
                    fixed_utility_id=item.fixed_utility_id,
                    label=item.label,
                    unit=item.unit,
                    prev_reading=item.prev_reading,
                    curr_reading=item.curr_reading,
                    consumption=item.consumption,
                    rate=item.rate,
                    period_cost=item.period_cost,
                    total_cost=item.total_cost,
                    split_method=item.split_method,
                )
            )
        for share in calculation.shares:
            settlement.shares.append(
                SettlementShare(
                    tenant_id=share.tenant_id,
                    active_days=share.active_days,
                    total_days=share.total_days,
                    share_ratio=share.share_ratio,
                    calculated_amount=share.amount,
                    adjusted_amount=None,
                    final_amount=share.amount,
                    advances_paid=share.advances_paid,
                    balance_due=share.balance_due,
                )
            )
        settlement.calculated_total = calculation.total_amount
        settlement.total_amount = calculation.shares_total
        settlement.warnings = [warning.to_dict() for warning in calculation.warnings]

    def _compare_and_set(
        self,
        settlement: Settlement,
        from_status: SettlementStatus,
        to_status: SettlementStatus,
        *,
        http_status: int | None = None,
        **values: Any,
    ) -> None:
        """Conditional status update; raises InvalidState when another writer won."""
        result = self.db.execute(
            update(Settlement)
            .where(Settlement.id == settlement.id, Settlement.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(
                f"Settlement is no longer {from_status.value}",
                http_status=http_status,
                entity="settlement",
                entity_id=settlement.id,
                expected_status=from_status.value,
            )

    def _lock_draft(self, settlement: Settlement, http_status: int | None = None) -> None:
        """Claim the settlement row for a draft edit, failing if it left DRAFT.

        Finalize and void update the same row, so they wait for (or beat) this
        transaction instead of interleaving with it.
        """
        self._compare_and_set(
            settlement,
            SettlementStatus.DRAFT,
            SettlementStatus.DRAFT,
            http_status=http_status,
        )

    def _current_shares(self, settlement_id: int) -> list[SettlementShare]:
        return (
            self.db.query(SettlementShare)
            .filter(SettlementShare.settlement_id == settlement_id)
            .order_by(SettlementShare.id)
            .populate_existing()
            .all()
        )


__all__ = ["SettlementService", "SettlementPreview", "UNSET"]
