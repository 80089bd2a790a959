"""Tests for the auto-sync trigger."""

import pytest
from httpx import AsyncClient

from src.sync.schemas import SyncSummary, UserSyncResult


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr("src.api.sync.settings.cron_secret", "cron-123")
    return "cron-123"


class TestAutoSync:
    async def test_open_when_no_secret(self, client: AsyncClient, orchestrator, monkeypatch):
        monkeypatch.setattr("src.api.sync.settings.cron_secret", None)
        orchestrator.sync_all_users.return_value = SyncSummary(
            users=[UserSyncResult(user_id="user-1"), UserSyncResult(user_id="user-2")]
        )

        response = await client.post("/auto-sync")

        body = response.json()
        assert response.status_code == 200
        assert body["users_processed"] == 2
        assert body["total_decisions_found"] == 0

    async def test_requires_bearer_secret(self, client: AsyncClient, orchestrator, cron_secret):
        response = await client.post(
            "/auto-sync", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized"}
        orchestrator.sync_all_users.assert_not_called()

    async def test_accepts_bearer_secret(self, client: AsyncClient, orchestrator, cron_secret):
        orchestrator.sync_all_users.return_value = SyncSummary()

        response = await client.post(
            "/auto-sync", headers={"Authorization": f"Bearer {cron_secret}"}
        )

        assert response.status_code == 200
        orchestrator.sync_all_users.assert_awaited_once()

    async def test_status(self, client: AsyncClient):
        response = await client.get("/auto-sync")

        assert response.json()["message"] == "Auto-sync endpoint is active"
