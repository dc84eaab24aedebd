"""Tenant ledger API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from utility_settlement.api.dependencies import get_owner_context
from utility_settlement.api.schemas import TenantBalanceResponse
from utility_settlement.database import get_db
from utility_settlement.services.auth_service import OwnerContext
from utility_settlement.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.get("/{tenant_id}/balance", response_model=TenantBalanceResponse)
async def tenant_balance(
    tenant_id: int,
    ctx: OwnerContext = Depends(get_owner_context),
    db: Session = Depends(get_db),
) -> TenantBalanceResponse:
    """Current utility balance of a tenant with its ledger entries."""
    return TenantBalanceResponse.model_validate(LedgerService(db).tenant_balance(ctx, tenant_id))
