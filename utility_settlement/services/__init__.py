"""Domain services of the settlement engine."""

from utility_settlement.services.allocation_service import AllocationService
from utility_settlement.services.audit_service import AuditService
from utility_settlement.services.auth_service import OwnerContext, resolve_owner
from utility_settlement.services.fixed_utility_service import FixedUtilityService
from utility_settlement.services.ledger_service import LedgerService
from utility_settlement.services.meter_service import MeterService, NewMeterSpec
from utility_settlement.services.occupancy_service import OccupancyService
from utility_settlement.services.rate_service import RateService
from utility_settlement.services.settlement_calculator import calculate_settlement
from utility_settlement.services.settlement_service import UNSET, SettlementService

__all__ = [
    "AllocationService",
    "AuditService",
    "OwnerContext",
    "resolve_owner",
    "FixedUtilityService",
    "LedgerService",
    "MeterService",
    "NewMeterSpec",
    "OccupancyService",
    "RateService",
    "calculate_settlement",
    "SettlementService",
    "UNSET",
]
