"""Pydantic schemas for the settlement API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from utility_settlement.models import (
    BillingApproach,
    FixedUtilityType,
    LedgerEntryType,
    MeterStatus,
    MeterType,
    ReadingType,
    SettlementStatus,
    SplitMethod,
)


# ---------------------------------------------------------------------------
# Settlements
# ---------------------------------------------------------------------------


class CalculatePayload(BaseModel):
    """Request payload for POST /api/settlements/calculate."""

    property_id: int = Field(..., description="Property to settle")
    period_start: date = Field(..., description="First day of the period")
    period_end: date = Field(..., description="Last day of the period (inclusive)")
    approach: BillingApproach = Field(BillingApproach.MONTHLY, description="Billing approach")


class CreateSettlementPayload(CalculatePayload):
    """Request payload for POST /api/settlements."""

    title: str | None = Field(None, max_length=255)
    notes: str | None = None


class UpdateSettlementPayload(BaseModel):
    """Request payload for PATCH /api/settlements/{id}; omitted fields are kept."""

    title: str | None = Field(None, max_length=255)
    notes: str | None = None


class AdjustSharePayload(BaseModel):
    """Request payload for PUT /api/settlements/{id}/shares/{share_id}.

    Omitted fields are left unchanged; ``adjusted_amount: null`` removes the override.
    """

    adjusted_amount: Decimal | None = Field(None, ge=0, description="Owner override of the amount")
    notes: str | None = Field(None, description="Note visible to the tenant")
    owner_notes: str | None = Field(None, description="Private note of the owner")


class VoidPayload(BaseModel):
    """Request payload for POST /api/settlements/{id}/void."""

    reason: str = Field(..., min_length=3, description="Why the settlement is voided")

    model_config = ConfigDict(str_strip_whitespace=True)


class SettlementItemResponse(BaseModel):
    id: int
    meter_id: int | None = None
    fixed_utility_id: int | None = None
    label: str
    unit: str | None = None
    prev_reading: Decimal | None = None
    curr_reading: Decimal | None = None
    consumption: Decimal | None = None
    rate: Decimal | None = None
    period_cost: Decimal | None = None
    total_cost: Decimal
    split_method: SplitMethod

    model_config = ConfigDict(from_attributes=True)


class SettlementShareResponse(BaseModel):
    id: int
    tenant_id: int
    active_days: Decimal
    total_days: int
    share_ratio: Decimal
    calculated_amount: Decimal
    adjusted_amount: Decimal | None = None
    final_amount: Decimal
    advances_paid: Decimal
    balance_due: Decimal
    notes: str | None = None
    owner_notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SettlementSummaryResponse(BaseModel):
    """Settlement without items and shares (list view)."""

    id: int
    property_id: int
    title: str | None = None
    period_start: date
    period_end: date
    approach: BillingApproach
    status: SettlementStatus
    calculated_total: Decimal
    total_amount: Decimal
    finalized_at: datetime | None = None
    voided_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SettlementResponse(SettlementSummaryResponse):
    """Full settlement with its items, shares and calculation warnings."""

    notes: str | None = None
    void_reason: str | None = None
    warnings: list[dict[str, Any]] | None = None
    items: list[SettlementItemResponse] = []
    shares: list[SettlementShareResponse] = []


# ---------------------------------------------------------------------------
# Meters
# ---------------------------------------------------------------------------


class CreateMeterPayload(BaseModel):
    """Request payload for POST /api/properties/{id}/meters."""

    type: MeterType
    meter_number: str | None = Field(None, max_length=100)
    serial_number: str | None = Field(None, max_length=100)
    unit: str | None = Field(None, max_length=20)
    price_per_unit: Decimal | None = Field(None, ge=0)
    install_date: date | None = None
    initial_reading: Decimal | None = Field(None, ge=0)


class MeterResponse(BaseModel):
    id: int
    property_id: int
    type: MeterType
    meter_number: str | None = None
    serial_number: str | None = None
    unit: str
    price_per_unit: Decimal | None = None
    status: MeterStatus
    install_date: date | None = None
    archive_date: date | None = None
    archive_note: str | None = None
    replaced_by_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class CreateReadingPayload(BaseModel):
    """Request payload for POST /api/meters/{id}/readings."""

    value: Decimal = Field(..., ge=0)
    reading_date: date | None = Field(None, description="Defaults to today")
    notes: str | None = None


class ReadingResponse(BaseModel):
    id: int
    meter_id: int
    value: Decimal
    reading_date: date
    reading_type: ReadingType
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ReadingResultResponse(BaseModel):
    reading: ReadingResponse
    warnings: list[str] = []

    model_config = ConfigDict(from_attributes=True)


class ExchangeMeterPayload(BaseModel):
    """Request payload for POST /api/meters/{id}/exchange."""

    final_reading: Decimal = Field(..., ge=0, description="Last reading of the old meter")
    new_initial_reading: Decimal = Field(..., ge=0, description="First reading of the new meter")
    exchange_date: date | None = Field(None, description="Defaults to today")
    new_meter_number: str | None = Field(None, max_length=100)
    new_serial_number: str | None = Field(None, max_length=100)
    new_unit: str | None = Field(None, max_length=20)
    new_price_per_unit: Decimal | None = Field(None, ge=0)
    notes: str | None = None


class ExchangeMeterResponse(BaseModel):
    old_meter: MeterResponse
    new_meter: MeterResponse
    final_reading: ReadingResponse
    initial_reading: ReadingResponse
    warnings: list[str] = []

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Fixed utilities and rates
# ---------------------------------------------------------------------------


class CreateFixedUtilityPayload(BaseModel):
    """Request payload for POST /api/properties/{id}/fixed-utilities."""

    type: FixedUtilityType
    name: str = Field(..., min_length=1, max_length=100)
    period_cost: Decimal = Field(..., ge=0)
    split_method: SplitMethod = SplitMethod.BY_DAYS
    is_per_person: bool = False
    active_from: date | None = None
    active_to: date | None = None
    notes: str | None = None


class UpdateFixedUtilityPayload(BaseModel):
    """Request payload for PUT /api/fixed-utilities/{id}; omitted fields are kept."""

    type: FixedUtilityType | None = None
    name: str | None = Field(None, min_length=1, max_length=100)
    period_cost: Decimal | None = Field(None, ge=0)
    split_method: SplitMethod | None = None
    is_per_person: bool | None = None
    is_active: bool | None = None
    active_from: date | None = None
    active_to: date | None = None
    notes: str | None = None


class FixedUtilityResponse(BaseModel):
    id: int
    property_id: int
    type: FixedUtilityType
    name: str
    period_cost: Decimal
    split_method: SplitMethod
    is_per_person: bool
    is_active: bool
    active_from: date | None = None
    active_to: date | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CreateRatePayload(BaseModel):
    """Request payload for POST /api/properties/{id}/rates."""

    meter_type: MeterType
    price_per_unit: Decimal = Field(..., ge=0)
    effective_from: date
    effective_to: date | None = None
    source: str | None = Field(None, max_length=255)
    notes: str | None = None


class RateResponse(BaseModel):
    id: int
    property_id: int
    meter_type: MeterType
    price_per_unit: Decimal
    effective_from: date
    effective_to: date | None = None
    source: str | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerEntryResponse(BaseModel):
    id: int
    settlement_id: int | None = None
    entry_type: LedgerEntryType
    amount: Decimal
    balance_after: Decimal
    description: str | None = None
    reverses_entry_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TenantBalanceResponse(BaseModel):
    tenant_id: int
    property_id: int
    balance: Decimal
    entries: list[LedgerEntryResponse] = []

    model_config = ConfigDict(from_attributes=True)
