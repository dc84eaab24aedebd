"""Shared FastAPI dependencies."""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from utility_settlement.database import get_db
from utility_settlement.services.auth_service import OwnerContext, resolve_owner


def get_owner_context(
    x_user_id: str | None = Header(None, description="Authenticated owner id"),
    db: Session = Depends(get_db),
) -> OwnerContext:
    """Resolve the caller from the identity provider's ``X-User-Id`` header."""
    return resolve_owner(db, x_user_id)


__all__ = ["get_owner_context"]
