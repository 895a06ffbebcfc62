"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from datetime import date

from app.core.errors import (
    AdminRequiredError,
    EntityNotFoundError,
    InvalidDateRangeError,
    MissingEntityIdError,
    NotAuthenticatedError,
    ScopeForbiddenError,
)


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_not_authenticated(self):
        err = NotAuthenticatedError()
        assert err.http_status == 401
        assert err.code == "NOT_AUTHENTICATED"
        assert "X-User-Id" in err.message

    def test_scope_forbidden(self):
        err = ScopeForbiddenError("user", "u-1", "user is not a member of your team")
        assert err.http_status == 403
        assert err.code == "SCOPE_FORBIDDEN"
        d = err.to_dict()
        assert d["details"] == {"scope": "user", "id": "u-1"}

    def test_admin_required(self):
        err = AdminRequiredError()
        assert err.http_status == 403
        assert err.code == "SCOPE_FORBIDDEN"
        assert err.message == "This operation is restricted to administrators."
        assert "details" not in err.to_dict()

    def test_entity_not_found(self):
        err = EntityNotFoundError("team", "t-9")
        assert err.http_status == 404
        assert err.message == "Team t-9 not found."
        assert err.details["kind"] == "team"

    def test_missing_entity_id(self):
        err = MissingEntityIdError("team")
        assert err.http_status == 422
        assert err.code == "MISSING_ENTITY_ID"

    def test_invalid_date_range(self):
        err = InvalidDateRangeError(date(2025, 3, 31), date(2025, 3, 1))
        assert err.http_status == 422
        assert err.details == {"from": "2025-03-31", "to": "2025-03-01"}

    def test_to_dict_without_details(self):
        d = AdminRequiredError().to_dict()
        assert "code" in d
        assert "message" in d
        # details should not be in dict when empty
        assert "details" not in d


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestValidationErrors:
    def test_invalid_date_returns_validation_error(self, client, org):
        r = client.get(
            "/api/analytics/pulse",
            params={"from": "not-a-date"},
            headers=org.headers(org.admin),
        )
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert isinstance(body["details"]["errors"], list)
        fields = [e["field"] for e in body["details"]["errors"]]
        assert "from" in fields

    @pytest.mark.parametrize("metric", ["", "likes", "Pulse_Avg"])
    def test_invalid_metric_rejected(self, client, org, metric):
        r = client.get(
            "/api/analytics/leaderboard",
            params={"metric": metric},
            headers=org.headers(org.admin),
        )
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_missing_backfill_body(self, client, org):
        r = client.post("/api/analytics/aggregates/backfill", json={}, headers=org.headers(org.admin))
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


class TestAuthorizationEnvelope:
    def test_403_has_details(self, client, org):
        r = client.get(
            "/api/analytics/overview",
            params={"scope": "user", "id": org.member_b1.id},
            headers=org.headers(org.manager_a),
        )
        assert r.status_code == 403
        body = r.json()
        assert body["code"] == "SCOPE_FORBIDDEN"
        assert body["details"]["id"] == org.member_b1.id

    def test_401_distinct_from_403(self, client, org):
        assert client.get("/api/analytics/overview").status_code == 401
        r = client.post("/api/analytics/aggregates/sweep", headers=org.headers(org.member_a1))
        assert r.status_code == 403


class TestOpenApi:
    def test_error_envelope_documented(self, client):
        schema = client.get("/openapi.json").json()
        assert "ErrorResponse" in schema["components"]["schemas"]
        responses = schema["paths"]["/api/analytics/overview"]["get"]["responses"]
        assert {"401", "403", "404", "422"} <= set(responses)
