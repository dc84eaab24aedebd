"""Tariff API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from utility_settlement.api.dependencies import get_owner_context
from utility_settlement.api.schemas import CreateRatePayload, RateResponse
from utility_settlement.database import get_db
from utility_settlement.models import MeterType
from utility_settlement.services.auth_service import OwnerContext
from utility_settlement.services.rate_service import RateService

router = APIRouter(prefix="/api/properties/{property_id}/rates", tags=["rates"])


@router.get("", response_model=list[RateResponse])
async def list_rates(
    property_id: int,
    meter_type: MeterType | None = None,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> list[RateResponse]:
    """Tariff history of a property, newest first."""
    rates = RateService(db).list_rates(ctx, property_id, meter_type)
    return [RateResponse.model_validate(r) for r in rates]


@router.post("", response_model=RateResponse, status_code=status.HTTP_201_CREATED)
async def add_rate(
    property_id: int,
    payload: CreateRatePayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> RateResponse:
    """Add a tariff; the previous open tariff of that type is closed the day before."""
    rate = RateService(db).add_rate(
        ctx,
        property_id,
        payload.meter_type,
        payload.price_per_unit,
        payload.effective_from,
        effective_to=payload.effective_to,
        source=payload.source,
        notes=payload.notes,
    )
    return RateResponse.model_validate(rate)
