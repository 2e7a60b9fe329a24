"""
Tests for the custody API endpoints.

Routes run against an in-memory repository injected through FastAPI
dependency overrides. Validates status codes, response schemas,
error mapping, security headers and rate limiting.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.domain.custody.errors import CustodyStorageError
from app.infrastructure.custody.in_memory_repository import (
    InMemoryCustodyServiceRepository,
    default_fixture,
)
from app.interfaces.custody.dependencies import get_custody_repository
from app.main import app
from app.shared.security.rate_limiting import limiter

BASE = "/api/v1/custody"
USER_ID = "750e8400-e29b-41d4-a716-446655440010"
HEADERS = {"X-User-Id": USER_ID, "X-User-Email": "ops@example.com"}
LOOMIS_ID = "550e8400-e29b-41d4-a716-446655440001"
BRINKS_ID = "550e8400-e29b-41d4-a716-446655440002"
PREMIUM_ID = "650e8400-e29b-41d4-a716-446655440001"
STANDARD_ID = "650e8400-e29b-41d4-a716-446655440002"
HOME_DELIVERY_ID = "650e8400-e29b-41d4-a716-446655440003"
MISSING_ID = "650e8400-e29b-41d4-a716-446655440099"


@pytest.fixture
def repository() -> InMemoryCustodyServiceRepository:
    return InMemoryCustodyServiceRepository(fixture=default_fixture())


@pytest.fixture
def client(repository):
    limiter.reset()
    app.dependency_overrides[get_custody_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_body(**overrides) -> dict:
    body = {
        "name": "Gold Vault",
        "custodian_id": LOOMIS_ID,
        "fee": 2,
        "payment_frequency": "monthly",
        "currency": "EUR",
    }
    body.update(overrides)
    return body


class TestHealthEndpoint:
    """Tests for GET /api/v1/health."""

    def test_health_ok(self, client) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert "version" in body
        assert "storage_backend" in body


class TestListEndpoint:
    """Tests for GET /api/v1/custody/services."""

    def test_second_page_of_one(self, client) -> None:
        response = client.get(f"{BASE}/services", params={"page": 2, "limit": 1})
        assert response.status_code == 200
        body = response.json()
        assert [s["name"] for s in body["services"]] == ["Premium Vault Storage"]
        assert body["pagination"] == {
            "current_page": 2,
            "items_per_page": 1,
            "total_items": 3,
            "total_pages": 3,
            "has_next_page": True,
            "has_previous_page": True,
        }

    def test_filters_by_custodian(self, client) -> None:
        response = client.get(f"{BASE}/services", params={"custodian_id": BRINKS_ID})
        assert [s["id"] for s in response.json()["services"]] == [STANDARD_ID]

    def test_invalid_payment_frequency_is_400(self, client) -> None:
        response = client.get(f"{BASE}/services", params={"payment_frequency": "weekly"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payment frequency"

    def test_malformed_custodian_filter_is_400(self, client) -> None:
        response = client.get(f"{BASE}/services", params={"custodian_id": "not-a-uuid"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid custodian ID format"

    def test_zero_limit_returns_one_item(self, client) -> None:
        response = client.get(f"{BASE}/services", params={"limit": 0})
        assert response.status_code == 200
        body = response.json()
        assert len(body["services"]) == 1
        assert body["pagination"]["items_per_page"] == 1

    def test_missing_limit_uses_default(self, client) -> None:
        response = client.get(f"{BASE}/services")
        assert response.json()["pagination"]["items_per_page"] == 20

    def test_storage_failure_is_503(self, client) -> None:
        broken = MagicMock()
        broken.find_all.side_effect = CustodyStorageError("find_all")
        app.dependency_overrides[get_custody_repository] = lambda: broken

        response = client.get(f"{BASE}/services")

        assert response.status_code == 503
        assert response.json() == {"error": "Storage unavailable"}


class TestSingleServiceEndpoints:
    """Tests for the single-record read routes."""

    def test_get_by_id(self, client) -> None:
        response = client.get(f"{BASE}/services/{STANDARD_ID}")
        assert response.status_code == 200
        body = response.json()
        assert body["custodian_name"] == "Brinks Global Services"
        assert Decimal(body["fee"]) == Decimal("0.3")
        assert Decimal(body["min_weight"]) == Decimal("100")
        assert body["max_weight"] is None

    def test_missing_is_404(self, client) -> None:
        response = client.get(f"{BASE}/services/{MISSING_ID}")
        assert response.status_code == 404
        assert response.json()["error"] == "Custody service not found"

    def test_malformed_id_is_400(self, client) -> None:
        response = client.get(f"{BASE}/services/invalid-uuid")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid custody service ID format"

    def test_default_service(self, client) -> None:
        response = client.get(f"{BASE}/services/default")
        assert response.status_code == 200
        assert response.json()["id"] == HOME_DELIVERY_ID

    def test_deletion_check(self, client) -> None:
        response = client.get(f"{BASE}/services/{PREMIUM_ID}/deletion-check")
        assert response.status_code == 200
        body = response.json()
        assert body["can_delete"] is False
        assert body["active_position_count"] == 5


class TestCreateEndpoint:
    """Tests for POST /api/v1/custody/services."""

    def test_create_returns_201(self, client) -> None:
        response = client.post(f"{BASE}/services", json=_create_body(), headers=HEADERS)
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Gold Vault"
        assert body["currency"] == "EUR"
        assert body["custodian_name"] == "Loomis International"
        assert Decimal(body["fee"]) == Decimal("2")

    def test_missing_actor_is_401(self, client) -> None:
        response = client.post(f"{BASE}/services", json=_create_body())
        assert response.status_code == 401

    def test_non_uuid_actor_is_401(self, client, repository) -> None:
        response = client.post(
            f"{BASE}/services",
            json=_create_body(),
            headers={"X-User-Id": "user-1", "X-User-Email": "ops@example.com"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid user ID format"
        names = [s.name for s in repository.find_by_custodian_id(LOOMIS_ID)]
        assert "Gold Vault" not in names

    def test_fee_with_too_many_decimals_is_400(self, client) -> None:
        response = client.post(
            f"{BASE}/services", json=_create_body(fee="0.004"), headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Fee must have at most 2 decimal places"

    def test_negative_fee_is_400(self, client) -> None:
        response = client.post(
            f"{BASE}/services", json=_create_body(fee=-10), headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Fee must be a positive number"

    def test_invalid_custodian_format_is_400(self, client) -> None:
        response = client.post(
            f"{BASE}/services",
            json=_create_body(custodian_id="invalid-uuid"),
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid custodian ID format"

    def test_unknown_currency_is_400(self, client) -> None:
        response = client.post(
            f"{BASE}/services", json=_create_body(currency="XYZ"), headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Currency 'XYZ' not found"

    def test_duplicate_name_is_409(self, client) -> None:
        response = client.post(
            f"{BASE}/services",
            json=_create_body(name="Premium Vault Storage"),
            headers=HEADERS,
        )
        assert response.status_code == 409
        assert response.json()["detail"] == (
            "Custody service with this name already exists for this custodian"
        )


class TestUpdateEndpoint:
    """Tests for PATCH /api/v1/custody/services/{id}."""

    def test_partial_update(self, client) -> None:
        response = client.patch(
            f"{BASE}/services/{STANDARD_ID}",
            json={"payment_frequency": "annual"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["payment_frequency"] == "annual"
        assert body["name"] == "Standard Vault"
        assert Decimal(body["min_weight"]) == Decimal("100")

    def test_explicit_null_clears_weight(self, client) -> None:
        response = client.patch(
            f"{BASE}/services/{STANDARD_ID}",
            json={"min_weight": None},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["min_weight"] is None

    def test_unknown_field_is_422(self, client) -> None:
        response = client.patch(
            f"{BASE}/services/{STANDARD_ID}",
            json={"colour": "gold"},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_missing_service_is_404(self, client) -> None:
        response = client.patch(
            f"{BASE}/services/{MISSING_ID}", json={"fee": 1}, headers=HEADERS
        )
        assert response.status_code == 404


class TestDeleteEndpoint:
    """Tests for DELETE /api/v1/custody/services/{id}."""

    def test_active_positions_is_409(self, client) -> None:
        response = client.delete(f"{BASE}/services/{PREMIUM_ID}", headers=HEADERS)
        assert response.status_code == 409
        body = response.json()
        assert body["detail"] == "Cannot delete custody service with active positions"
        assert body["active_position_count"] == 5

    def test_delete_returns_204(self, client, repository) -> None:
        response = client.delete(f"{BASE}/services/{STANDARD_ID}", headers=HEADERS)
        assert response.status_code == 204
        assert repository.find_by_id(STANDARD_ID) is None

    def test_delete_missing_is_204(self, client) -> None:
        response = client.delete(f"{BASE}/services/{MISSING_ID}", headers=HEADERS)
        assert response.status_code == 204


class TestCustodianEndpoints:
    """Tests for the custodian routes."""

    def test_custodians_with_services(self, client) -> None:
        response = client.get(f"{BASE}/custodians")
        assert response.status_code == 200
        names = [c["custodian_name"] for c in response.json()["custodians"]]
        assert names == [
            "Brinks Global Services",
            "Home Delivery",
            "Loomis International",
        ]

    def test_custodian_search(self, client) -> None:
        response = client.get(f"{BASE}/custodians", params={"search": "loomis"})
        custodians = response.json()["custodians"]
        assert len(custodians) == 1
        assert custodians[0]["services"][0]["id"] == PREMIUM_ID

    def test_services_of_custodian(self, client) -> None:
        response = client.get(f"{BASE}/custodians/{LOOMIS_ID}/services")
        assert response.status_code == 200
        body = response.json()
        assert body["custodian_id"] == LOOMIS_ID
        assert [s["id"] for s in body["services"]] == [PREMIUM_ID]

    def test_services_of_unknown_custodian_is_400(self, client) -> None:
        response = client.get(
            f"{BASE}/custodians/550e8400-e29b-41d4-a716-446655440099/services"
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Custodian not found"


class TestSecurityHeaders:
    """Tests for security headers on responses."""

    def test_security_headers_present(self, client) -> None:
        response = client.get("/api/v1/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"


class TestRateLimiting:
    """Tests for rate limiting on write routes."""

    def test_rate_limit_returns_429(self, client) -> None:
        statuses = [
            client.delete(f"{BASE}/services/{MISSING_ID}", headers=HEADERS).status_code
            for _ in range(31)
        ]
        assert statuses[:30] == [204] * 30
        assert statuses[30] == 429
