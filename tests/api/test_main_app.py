"""API tests for application-wide behaviour: health, routing and error envelopes."""

import uuid

import pytest

from app.main import duplicate_field


class TestHealthAndRoot:
    @pytest.mark.asyncio
    async def test_health_reports_database(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["database"] == "healthy"
        assert data["environment"] == "testing"

    @pytest.mark.asyncio
    async def test_root_describes_api(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["api_prefix"] == "/api/v1"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/health")

        assert uuid.UUID(response.headers["X-Request-ID"])


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Route not found"
        assert body["error_code"] == "ROUTE_NOT_FOUND"
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_malformed_path_id_is_not_found(self, client, headers):
        response = await client.get("/api/v1/tasks/not-a-uuid", headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "No item found with id: not-a-uuid"

    @pytest.mark.asyncio
    async def test_validation_error_lists_fields(self, client, headers):
        response = await client.post("/api/v1/tasks/", json={"priority": "urgent"}, headers=headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["message"].startswith("Invalid input data.")
        fields = {detail["field"] for detail in body["details"]}
        assert {"name", "priority"} <= fields

    @pytest.mark.asyncio
    async def test_missing_token(self, client, test_db):
        response = await client.get("/api/v1/tasks/")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication token is required"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client, test_db):
        response = await client.get("/api/v1/tasks/", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"


class TestDuplicateField:
    class _Orig:
        def __init__(self, text):
            self.text = text

        def __str__(self):
            return self.text

    def _error(self, text):
        return type("FakeIntegrityError", (), {"orig": self._Orig(text)})()

    def test_sqlite_message(self):
        assert duplicate_field(self._error("UNIQUE constraint failed: users.email")) == "email"

    def test_postgres_message(self):
        error = self._error('duplicate key value violates unique constraint "ix_users_email"\nDETAIL:  Key (email)=(a@b.c) already exists.')

        assert duplicate_field(error) == "email"

    def test_unknown_message(self):
        assert duplicate_field(self._error("boom")) == "a unique field"
