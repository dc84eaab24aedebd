"""Settlement lifecycle as a tagged union: Draft -> Finalized -> Voided.

Transitions are plain functions typed on their source state, so an operation
that needs a draft has to obtain one through ``expect_draft`` first.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from utility_settlement.errors import InvalidState
from utility_settlement.models import Settlement, SettlementStatus


@dataclass(frozen=True)
class Draft:
    settlement_id: int


@dataclass(frozen=True)
class Finalized:
    settlement_id: int
    finalized_at: datetime


@dataclass(frozen=True)
class Voided:
    settlement_id: int
    finalized_at: datetime | None
    voided_at: datetime
    reason: str


SettlementState = Union[Draft, Finalized, Voided]


def state_of(settlement: Settlement) -> SettlementState:
    """Tagged state of a persisted settlement."""
    if settlement.status == SettlementStatus.DRAFT:
        return Draft(settlement.id)
    if settlement.status == SettlementStatus.FINALIZED:
        return Finalized(settlement.id, settlement.finalized_at)
    return Voided(
        settlement.id,
        settlement.finalized_at,
        settlement.voided_at,
        settlement.void_reason or "",
    )


def status_of(state: SettlementState) -> SettlementStatus:
    if isinstance(state, Draft):
        return SettlementStatus.DRAFT
    if isinstance(state, Finalized):
        return SettlementStatus.FINALIZED
    return SettlementStatus.VOIDED


def finalize(state: Draft, at: datetime) -> Finalized:
    return Finalized(state.settlement_id, at)


def void(state: Finalized, at: datetime, reason: str) -> Voided:
    return Voided(state.settlement_id, state.finalized_at, at, reason)


def expect_draft(settlement: Settlement, *, http_status: int | None = None) -> Draft:
    """Return the Draft state or raise InvalidState.

    ``http_status`` lets callers report a non-draft as missing (share adjustment).
    """
    state = state_of(settlement)
    if not isinstance(state, Draft):
        raise InvalidState(
            f"Settlement is {settlement.status.value}, expected DRAFT",
            http_status=http_status,
            entity="settlement",
            entity_id=settlement.id,
            status=settlement.status.value,
        )
    return state


def expect_finalized(settlement: Settlement) -> Finalized:
    """Return the Finalized state or raise InvalidState."""
    state = state_of(settlement)
    if not isinstance(state, Finalized):
        raise InvalidState(
            f"Settlement is {settlement.status.value}, expected FINALIZED",
            entity="settlement",
            entity_id=settlement.id,
            status=settlement.status.value,
        )
    return state


__all__ = [
    "Draft",
    "Finalized",
    "Voided",
    "SettlementState",
    "state_of",
    "status_of",
    "finalize",
    "void",
    "expect_draft",
    "expect_finalized",
]
