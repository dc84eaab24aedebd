"""Contract tests for the settlement API endpoints."""

from datetime import date
from decimal import Decimal

import pytest

JAN = {"period_start": "2025-01-01", "period_end": "2025-01-31"}


@pytest.fixture
def billed_property(client, auth_headers, property_obj, make_tenant):
    """Property with one tenant and an electricity meter reading 100 -> 180 at 0.80."""
    tenant = make_tenant("Tara", date(2024, 6, 1))
    response = client.post(
        f"/api/properties/{property_obj.id}/meters",
        json={
            "type": "ELECTRICITY",
            "meter_number": "E-1",
            "price_per_unit": "0.80",
            "install_date": "2024-12-31",
            "initial_reading": "100",
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    meter_id = response.json()["id"]
    response = client.post(
        f"/api/meters/{meter_id}/readings",
        json={"value": "180", "reading_date": "2025-01-31"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return {"property_id": property_obj.id, "tenant_id": tenant.id, "meter_id": meter_id}


@pytest.fixture
def draft(client, auth_headers, billed_property):
    response = client.post(
        "/api/settlements",
        json={"property_id": billed_property["property_id"], **JAN},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()


class TestHealthAndAuth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.parametrize("headers", [{}, {"X-User-Id": "999"}, {"X-User-Id": "abc"}])
    def test_unauthorized(self, client, owner, headers):
        response = client.get("/api/settlements", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"


class TestCalculate:
    def test_preview(self, client, auth_headers, billed_property):
        response = client.post(
            "/api/settlements/calculate",
            json={"property_id": billed_property["property_id"], **JAN},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_amount"] == "64.00"
        assert Decimal(data["items"][0]["consumption"]) == Decimal("80")
        assert data["shares"][0]["tenant_id"] == billed_property["tenant_id"]
        assert data["shares"][0]["tenant_name"] == "Tara Tenant"
        assert data["warnings"] == []

        listing = client.get("/api/settlements", headers=auth_headers)
        assert listing.json() == []

    def test_invalid_range(self, client, auth_headers, property_obj):
        response = client.post(
            "/api/settlements/calculate",
            json={"property_id": property_obj.id, "period_start": "2025-01-31", "period_end": "2025-01-01"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "invalid_range"

    def test_foreign_property(self, client, other_owner, property_obj):
        response = client.post(
            "/api/settlements/calculate",
            json={"property_id": property_obj.id, **JAN},
            headers={"X-User-Id": str(other_owner.id)},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_malformed_payload(self, client, auth_headers):
        response = client.post(
            "/api/settlements/calculate", json={"property_id": "x"}, headers=auth_headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"


class TestDrafts:
    def test_create_draft(self, draft, billed_property):
        assert draft["status"] == "DRAFT"
        assert draft["title"] == "Utilities 2025-01-01 - 2025-01-31"
        assert Decimal(draft["total_amount"]) == Decimal("64.00")
        assert Decimal(draft["calculated_total"]) == Decimal("64.00")
        assert len(draft["items"]) == 1
        assert draft["shares"][0]["tenant_id"] == billed_property["tenant_id"]

    def test_get_and_list(self, client, auth_headers, draft, billed_property):
        response = client.get(f"/api/settlements/{draft['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == draft["id"]

        listing = client.get(
            "/api/settlements",
            params={"property_id": billed_property["property_id"], "status": "DRAFT"},
            headers=auth_headers,
        )
        assert [s["id"] for s in listing.json()] == [draft["id"]]

    def test_foreign_owner_cannot_see_draft(self, client, other_owner, draft):
        response = client.get(
            f"/api/settlements/{draft['id']}", headers={"X-User-Id": str(other_owner.id)}
        )

        assert response.status_code == 404

    def test_patch_title(self, client, auth_headers, draft):
        response = client.patch(
            f"/api/settlements/{draft['id']}", json={"title": "January"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["title"] == "January"

    def test_recalculate(self, client, auth_headers, draft, billed_property):
        client.post(
            f"/api/meters/{billed_property['meter_id']}/readings",
            json={"value": "200", "reading_date": "2025-01-31"},
            headers=auth_headers,
        )

        response = client.post(f"/api/settlements/{draft['id']}/recalculate", headers=auth_headers)

        assert response.status_code == 200
        assert Decimal(response.json()["total_amount"]) == Decimal("80.00")

    def test_delete_draft(self, client, auth_headers, draft):
        response = client.delete(f"/api/settlements/{draft['id']}", headers=auth_headers)
        assert response.status_code == 204

        response = client.get(f"/api/settlements/{draft['id']}", headers=auth_headers)
        assert response.status_code == 404


class TestAdjustShare:
    def test_adjust_share(self, client, auth_headers, draft):
        share_id = draft["shares"][0]["id"]

        response = client.put(
            f"/api/settlements/{draft['id']}/shares/{share_id}",
            json={"adjusted_amount": "70.00", "notes": "Includes repair"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert Decimal(response.json()["final_amount"]) == Decimal("70.00")
        assert response.json()["notes"] == "Includes repair"
        settlement = client.get(f"/api/settlements/{draft['id']}", headers=auth_headers).json()
        assert Decimal(settlement["total_amount"]) == Decimal("70.00")

    def test_negative_amount(self, client, auth_headers, draft):
        share_id = draft["shares"][0]["id"]

        response = client.put(
            f"/api/settlements/{draft['id']}/shares/{share_id}",
            json={"adjusted_amount": "-1"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_adjust_after_finalize_is_not_found(self, client, auth_headers, draft):
        share_id = draft["shares"][0]["id"]
        client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)

        response = client.put(
            f"/api/settlements/{draft['id']}/shares/{share_id}",
            json={"adjusted_amount": "1.00"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "invalid_state"


class TestFinalizeAndVoid:
    def test_full_lifecycle(self, client, auth_headers, draft, billed_property):
        response = client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "FINALIZED"
        assert response.json()["finalized_at"] is not None

        balance = client.get(
            f"/api/tenants/{billed_property['tenant_id']}/balance", headers=auth_headers
        ).json()
        assert Decimal(balance["balance"]) == Decimal("64.00")
        assert [e["entry_type"] for e in balance["entries"]] == ["CHARGE"]

        response = client.post(
            f"/api/settlements/{draft['id']}/void",
            json={"reason": "Wrong reading"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "VOIDED"
        assert response.json()["void_reason"] == "Wrong reading"

        balance = client.get(
            f"/api/tenants/{billed_property['tenant_id']}/balance", headers=auth_headers
        ).json()
        assert Decimal(balance["balance"]) == Decimal("0")
        charge, reversal = balance["entries"]
        assert reversal["entry_type"] == "REVERSAL"
        assert reversal["reverses_entry_id"] == charge["id"]

    def test_double_finalize_conflicts(self, client, auth_headers, draft):
        client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)

        response = client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_state"

    def test_finalized_cannot_be_deleted(self, client, auth_headers, draft):
        client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)

        response = client.delete(f"/api/settlements/{draft['id']}", headers=auth_headers)

        assert response.status_code == 409

    @pytest.mark.parametrize("reason", ["no", "   ab  "])
    def test_void_reason_too_short(self, client, auth_headers, draft, reason):
        client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)

        response = client.post(
            f"/api/settlements/{draft['id']}/void", json={"reason": reason}, headers=auth_headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_void_draft_conflicts(self, client, auth_headers, draft):
        response = client.post(
            f"/api/settlements/{draft['id']}/void",
            json={"reason": "Not final yet"},
            headers=auth_headers,
        )

        assert response.status_code == 409

    def test_zero_occupancy_cannot_finalize(self, client, auth_headers, property_obj):
        client.post(
            f"/api/properties/{property_obj.id}/fixed-utilities",
            json={"type": "GARBAGE", "name": "Garbage", "period_cost": "20.00"},
            headers=auth_headers,
        )
        draft = client.post(
            "/api/settlements", json={"property_id": property_obj.id, **JAN}, headers=auth_headers
        ).json()

        assert draft["shares"] == []
        assert [w["code"] for w in draft["warnings"]] == ["zero_occupancy"]
        response = client.post(f"/api/settlements/{draft['id']}/finalize", headers=auth_headers)
        assert response.status_code == 409


class TestTenantBalance:
    def test_unknown_tenant(self, client, auth_headers):
        response = client.get("/api/tenants/999/balance", headers=auth_headers)

        assert response.status_code == 404
