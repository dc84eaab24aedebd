"""Caller identity and ownership checks.

Authentication itself lives in the identity provider. Core operations receive an
explicit ``OwnerContext`` and every lookup is scoped to properties owned by it;
foreign entities are reported as missing so their existence does not leak.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from utility_settlement.errors import NotFound, Unauthorized
from utility_settlement.models import Property, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerContext:
    """Resolved identity of the owner performing an operation."""

    user_id: int


def require_owner(ctx: OwnerContext | None) -> OwnerContext:
    """Return ``ctx`` or raise Unauthorized when no identity was resolved."""
    if ctx is None or ctx.user_id is None:
        raise Unauthorized("Owner identity required")
    return ctx


def resolve_owner(db: Session, raw_user_id: str | int | None) -> OwnerContext:
    """Resolve the identity provider's user id into an OwnerContext.

    Raises:
        Unauthorized: If the id is missing, malformed, unknown or inactive
    """
    if raw_user_id is None or str(raw_user_id).strip() == "":
        raise Unauthorized()

    try:
        user_id = int(str(raw_user_id).strip())
    except ValueError as e:
        raise Unauthorized("Malformed user id") from e

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        logger.info("Rejected unknown or inactive user_id=%s", user_id)
        raise Unauthorized()

    return OwnerContext(user_id=user.id)


def get_owned_property(db: Session, ctx: OwnerContext | None, property_id: int) -> Property:
    """Fetch a property owned by the caller.

    Raises:
        Unauthorized: If no caller identity
        NotFound: If the property does not exist or belongs to another owner
    """
    owner = require_owner(ctx)
    property_obj = (
        db.query(Property)
        .filter(Property.id == property_id, Property.owner_id == owner.user_id)
        .first()
    )
    if property_obj is None:
        raise NotFound("property", property_id)
    return property_obj


__all__ = ["OwnerContext", "require_owner", "resolve_owner", "get_owned_property"]
