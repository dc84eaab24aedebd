"""Unit tests for caller identity and ownership checks."""

import pytest

from utility_settlement.errors import NotFound, Unauthorized
from utility_settlement.models import User
from utility_settlement.services.auth_service import (
    OwnerContext,
    get_owned_property,
    require_owner,
    resolve_owner,
)


class TestResolveOwner:
    def test_resolves_known_user(self, db_session, owner):
        assert resolve_owner(db_session, str(owner.id)) == OwnerContext(user_id=owner.id)

    @pytest.mark.parametrize("raw", [None, "", "  ", "abc", "999"])
    def test_rejects_missing_malformed_or_unknown(self, db_session, owner, raw):
        with pytest.raises(Unauthorized) as exc_info:
            resolve_owner(db_session, raw)

        assert exc_info.value.http_status == 401

    def test_rejects_inactive_user(self, db_session):
        user = User(name="Inactive Owner", is_active=False)
        db_session.add(user)
        db_session.commit()

        with pytest.raises(Unauthorized):
            resolve_owner(db_session, user.id)


class TestOwnership:
    def test_require_owner(self):
        ctx = OwnerContext(user_id=3)

        assert require_owner(ctx) is ctx
        with pytest.raises(Unauthorized):
            require_owner(None)

    def test_owned_property(self, db_session, ctx, property_obj):
        assert get_owned_property(db_session, ctx, property_obj.id).id == property_obj.id

    def test_foreign_property_is_not_found(self, db_session, other_ctx, property_obj):
        with pytest.raises(NotFound) as exc_info:
            get_owned_property(db_session, other_ctx, property_obj.id)

        assert exc_info.value.context == {"entity": "property", "entity_id": property_obj.id}
