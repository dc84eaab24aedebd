"""Meter API routes: meters, readings and meter exchange."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from utility_settlement.api.dependencies import get_owner_context
from utility_settlement.api.schemas import (
    CreateMeterPayload,
    CreateReadingPayload,
    ExchangeMeterPayload,
    ExchangeMeterResponse,
    MeterResponse,
    ReadingResponse,
    ReadingResultResponse,
)
from utility_settlement.database import get_db
from utility_settlement.services.auth_service import OwnerContext
from utility_settlement.services.meter_service import MAX_READINGS_PAGE, MeterService, NewMeterSpec

router = APIRouter(prefix="/api", tags=["meters"])


@router.get("/properties/{property_id}/meters", response_model=list[MeterResponse])
async def list_meters(
    property_id: int,
    include_archived: bool = False,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> list[MeterResponse]:
    meters = MeterService(db).list_meters(ctx, property_id, include_archived=include_archived)
    return [MeterResponse.model_validate(m) for m in meters]


@router.post(
    "/properties/{property_id}/meters",
    response_model=MeterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_meter(
    property_id: int,
    payload: CreateMeterPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> MeterResponse:
    """Register a meter, optionally with its initial reading."""
    meter = MeterService(db).create_meter(
        ctx,
        property_id,
        payload.type,
        meter_number=payload.meter_number,
        serial_number=payload.serial_number,
        unit=payload.unit,
        price_per_unit=payload.price_per_unit,
        install_date=payload.install_date,
        initial_reading=payload.initial_reading,
    )
    return MeterResponse.model_validate(meter)


@router.get("/meters/{meter_id}", response_model=MeterResponse)
async def get_meter(
    meter_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> MeterResponse:
    return MeterResponse.model_validate(MeterService(db).get_meter(ctx, meter_id))


@router.get("/meters/{meter_id}/readings", response_model=list[ReadingResponse])
async def list_readings(
    meter_id: int,
    limit: int = Query(20, ge=1, le=MAX_READINGS_PAGE),
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> list[ReadingResponse]:
    """Latest readings of a meter, newest first."""
    readings = MeterService(db).list_readings(ctx, meter_id, limit=limit)
    return [ReadingResponse.model_validate(r) for r in readings]


@router.post(
    "/meters/{meter_id}/readings",
    response_model=ReadingResultResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_reading(
    meter_id: int,
    payload: CreateReadingPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> ReadingResultResponse:
    """
    Submit a meter reading.

    Returns:
        201: Stored reading plus warnings (e.g. value lower than the previous one)
        404: Meter not found
        409: Meter archived
    """
    result = MeterService(db).record_reading(
        ctx, meter_id, payload.value, reading_date=payload.reading_date, notes=payload.notes
    )
    return ReadingResultResponse.model_validate(result)


@router.post("/meters/{meter_id}/exchange", response_model=ExchangeMeterResponse)
async def exchange_meter(
    meter_id: int,
    payload: ExchangeMeterPayload,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> ExchangeMeterResponse:
    """
    Replace a meter with a new one.

    Returns:
        200: Retired and new meter with both boundary readings
        404: Meter not found
        409: Meter already exchanged
        422: Exchange dated before the meter's latest reading
    """
    result = MeterService(db).exchange_meter(
        ctx,
        meter_id,
        payload.final_reading,
        payload.new_initial_reading,
        new_meter=NewMeterSpec(
            meter_number=payload.new_meter_number,
            serial_number=payload.new_serial_number,
            unit=payload.new_unit,
            price_per_unit=payload.new_price_per_unit,
        ),
        exchange_date=payload.exchange_date,
        notes=payload.notes,
    )
    return ExchangeMeterResponse.model_validate(result)
