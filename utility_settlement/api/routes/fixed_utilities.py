"""Fixed utility API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from utility_settlement.api.dependencies import get_owner_context
from utility_settlement.api.schemas import (
    CreateFixedUtilityPayload,
    FixedUtilityResponse,
    UpdateFixedUtilityPayload,
)
from utility_settlement.database import get_db
from utility_settlement.services.auth_service import OwnerContext
from utility_settlement.services.fixed_utility_service import FixedUtilityService

router = APIRouter(prefix="/api", tags=["fixed-utilities"])


@router.get("/properties/{property_id}/fixed-utilities", response_model=list[FixedUtilityResponse])
async def list_fixed_utilities(
    property_id: int,
    include_inactive: bool = True,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> list[FixedUtilityResponse]:
    utilities = FixedUtilityService(db).list_for_property(
        ctx, property_id, include_inactive=include_inactive
    )
    return [FixedUtilityResponse.model_validate(u) for u in utilities]


@router.post(
    "/properties/{property_id}/fixed-utilities",
    response_model=FixedUtilityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fixed_utility(
    property_id: int,
    payload: CreateFixedUtilityPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> FixedUtilityResponse:
    utility = FixedUtilityService(db).create(
        ctx,
        property_id,
        payload.type,
        payload.name,
        payload.period_cost,
        split_method=payload.split_method,
        is_per_person=payload.is_per_person,
        active_from=payload.active_from,
        active_to=payload.active_to,
        notes=payload.notes,
    )
    return FixedUtilityResponse.model_validate(utility)


@router.put("/fixed-utilities/{utility_id}", response_model=FixedUtilityResponse)
async def update_fixed_utility(
    utility_id: int,
    payload: UpdateFixedUtilityPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> FixedUtilityResponse:
    utility = FixedUtilityService(db).update(
        ctx, utility_id, **payload.model_dump(exclude_unset=True)
    )
    return FixedUtilityResponse.model_validate(utility)


@router.delete("/fixed-utilities/{utility_id}", response_model=FixedUtilityResponse)
async def deactivate_fixed_utility(
    utility_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> FixedUtilityResponse:
    """Soft delete: the utility stops being billed but stays on past settlements."""
    utility = FixedUtilityService(db).deactivate(ctx, utility_id)
    return FixedUtilityResponse.model_validate(utility)
