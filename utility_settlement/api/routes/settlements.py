"""Settlement API routes: preview, drafts, adjustment, finalize and void."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from utility_settlement.api.dependencies import get_owner_context
from utility_settlement.api.schemas import (
    AdjustSharePayload,
    CalculatePayload,
    CreateSettlementPayload,
    SettlementResponse,
    SettlementShareResponse,
    SettlementSummaryResponse,
    UpdateSettlementPayload,
    VoidPayload,
)
from utility_settlement.database import get_db
from utility_settlement.models import SettlementStatus
from utility_settlement.services.auth_service import OwnerContext
from utility_settlement.services.settlement_service import UNSET, SettlementService

router = APIRouter(prefix="/api/settlements", tags=["settlements"])


@router.post("/calculate")
async def calculate_settlement(
    payload: CalculatePayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Preview a settlement without saving anything.

    Returns:
        200: Items, tenant shares (with names), total and warnings
        404: Property not found
        422: Invalid period
    """
    preview = SettlementService(db).preview(
        ctx, payload.property_id, payload.period_start, payload.period_end, payload.approach
    )
    return preview.to_dict()


@router.get("", response_model=list[SettlementSummaryResponse])
async def list_settlements(
    property_id: int | None = None,
    status_filter: SettlementStatus | None = Query(None, alias="status"),
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> list[SettlementSummaryResponse]:
    """List the caller's settlements, optionally by property and status."""
    settlements = SettlementService(db).list_settlements(ctx, property_id, status_filter)
    return [SettlementSummaryResponse.model_validate(s) for s in settlements]


@router.post("", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(
    payload: CreateSettlementPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    """
    Create a DRAFT settlement from a fresh calculation.

    Returns:
        201: Draft settlement with items, shares and warnings
        404: Property not found
        422: Invalid period
    """
    settlement = SettlementService(db).create_draft(
        ctx,
        payload.property_id,
        payload.period_start,
        payload.period_end,
        payload.approach,
        title=payload.title,
        notes=payload.notes,
    )
    return SettlementResponse.model_validate(settlement)


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    settlement_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    return SettlementResponse.model_validate(SettlementService(db).get(ctx, settlement_id))


@router.patch("/{settlement_id}", response_model=SettlementResponse)
async def update_settlement(
    settlement_id: int,
    payload: UpdateSettlementPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    """Edit a draft's title and notes."""
    fields = payload.model_fields_set
    settlement = SettlementService(db).update_draft(
        ctx,
        settlement_id,
        title=payload.title if "title" in fields else UNSET,
        notes=payload.notes if "notes" in fields else UNSET,
    )
    return SettlementResponse.model_validate(settlement)


@router.post("/{settlement_id}/recalculate", response_model=SettlementResponse)
async def recalculate_settlement(
    settlement_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    """Replace a draft's items and shares with a fresh calculation."""
    settlement = SettlementService(db).recalculate_draft(ctx, settlement_id)
    return SettlementResponse.model_validate(settlement)


@router.delete("/{settlement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_settlement(
    settlement_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> Response:
    """Delete a draft settlement (409 once finalized)."""
    SettlementService(db).delete_draft(ctx, settlement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{settlement_id}/shares/{share_id}", response_model=SettlementShareResponse)
async def adjust_share(
    settlement_id: int,
    share_id: int,
    payload: AdjustSharePayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementShareResponse:
    """
    Override a tenant share of a draft.

    Returns:
        200: Updated share
        404: Settlement or share not found, or settlement no longer a draft
    """
    fields = payload.model_fields_set
    share = SettlementService(db).adjust_share(
        ctx,
        settlement_id,
        share_id,
        adjusted_amount=payload.adjusted_amount if "adjusted_amount" in fields else UNSET,
        notes=payload.notes if "notes" in fields else UNSET,
        owner_notes=payload.owner_notes if "owner_notes" in fields else UNSET,
    )
    return SettlementShareResponse.model_validate(share)


@router.post("/{settlement_id}/finalize", response_model=SettlementResponse)
async def finalize_settlement(
    settlement_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    """
    Finalize a draft and post the tenant charges.

    Returns:
        200: Finalized settlement
        409: Settlement is not a draft or has no shares
    """
    settlement = SettlementService(db).finalize(ctx, settlement_id)
    return SettlementResponse.model_validate(settlement)


@router.post("/{settlement_id}/void", response_model=SettlementResponse)
async def void_settlement(
    settlement_id: int,
    payload: VoidPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> SettlementResponse:
    """
    Void a finalized settlement and reverse its postings.

    Returns:
        200: Voided settlement
        409: Settlement is not finalized
        422: Reason shorter than three characters
    """
    settlement = SettlementService(db).void(ctx, settlement_id, payload.reason)
    return SettlementResponse.model_validate(settlement)
