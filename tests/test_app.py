# tests for the health check, app configuration, and the session context
# basic app-level tests

from types import SimpleNamespace

import pytest
from pymongo.errors import PyMongoError

from calmcampus.main import store_error_handler
from tests.conftest import FailingCollection, STUDENT_DOC, TEACHER_DOC, token_for


class TestHealthCheck:
    """app health and config"""

    async def test_health_check(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "calmcampus-api"

    async def test_openapi_schema(self, client):
        resp = await client.get("/openapi.json")
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["info"]["title"] == "CalmCampus API"

    async def test_docs_available(self, client):
        resp = await client.get("/docs")
        assert resp.status_code == 200


class TestSessionContext:
    """bearer token resolution without dependency overrides"""

    async def test_missing_token_rejected(self, client):
        resp = await client.get("/moods/today")
        assert resp.status_code in (401, 403)

    async def test_invalid_token_rejected(self, client):
        resp = await client.get("/moods/today", headers={"Authorization": "Bearer not.a.token"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or expired token"

    async def test_unknown_user_rejected(self, client):
        token = token_for({"_id": "507f1f77bcf86cd799439011", "role": "student"})
        resp = await client.get("/moods/today", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found"

    async def test_valid_token_resolves_user(self, client):
        resp = await client.get(
            "/moods/today",
            headers={"Authorization": f"Bearer {token_for(STUDENT_DOC)}"},
        )
        assert resp.status_code == 200

    async def test_wrong_role_forbidden(self, client):
        resp = await client.get(
            "/moods/today",
            headers={"Authorization": f"Bearer {token_for(TEACHER_DOC)}"},
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied. Required role: student"


class TestStoreErrors:
    """store failures outside the stats views surface as 503"""

    async def test_store_error_returns_503(self, student_client, mock_db):
        mock_db.appointments = FailingCollection()
        resp = await student_client.get("/appointments")
        assert resp.status_code == 503
        assert "unavailable" in resp.json()["detail"]

    async def test_failed_check_in_leaves_state_untouched(self, student_client, mock_db):
        before = [dict(d) for d in mock_db.mood_entries._data]
        failing = FailingCollection([dict(d) for d in before])
        mock_db.mood_entries = failing
        resp = await student_client.put("/moods/today", json={"moodValue": 5})
        assert resp.status_code == 503
        assert [dict(d) for d in failing._data] == before

    async def test_handler_accepts_websocket_scope(self):
        # websocket connections have a url but no method
        socket_like = SimpleNamespace(url=SimpleNamespace(path="/groups/grp000000001/ws"))
        resp = await store_error_handler(socket_like, PyMongoError("connection refused"))
        assert resp.status_code == 503
