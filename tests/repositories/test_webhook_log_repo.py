"""Tests for WebhookLogRepository."""

from datetime import timedelta
from uuid import uuid4

from src.models.base import utc_now
from src.models.webhook_log import WebhookLog, WebhookStatus
from src.repositories.webhook_log_repo import WebhookLogRepository


def log(**kw) -> WebhookLog:
    fields = {"user_id": "user-1", "source": "slack", "event_type": "message"}
    fields.update(kw)
    return WebhookLog(**fields)


class TestLifecycle:
    async def test_pending_then_processed(self, webhook_log_repo: WebhookLogRepository):
        entry = await webhook_log_repo.create(log(payload={"channel": "C1"}))
        decision_id = uuid4()

        await webhook_log_repo.mark_processed(
            entry.id, decision_id=decision_id, decision_title="Use Postgres", confidence=0.8
        )

        stored = await webhook_log_repo.get("user-1", entry.id)
        assert stored.status == WebhookStatus.PROCESSED
        assert stored.decision_id == decision_id
        assert stored.payload == {"channel": "C1"}
        assert stored.processed_at is not None

    async def test_failed(self, webhook_log_repo: WebhookLogRepository):
        entry = await webhook_log_repo.create(log())

        await webhook_log_repo.mark_failed(entry.id, "LLM timeout")

        stored = await webhook_log_repo.get("user-1", entry.id)
        assert stored.status == WebhookStatus.FAILED
        assert stored.error_message == "LLM timeout"


class TestListing:
    async def test_page_size_is_capped(self, webhook_log_repo: WebhookLogRepository):
        now = utc_now()
        for i in range(55):
            await webhook_log_repo.create(log(created_at=now - timedelta(seconds=i)))

        logs, total = await webhook_log_repo.list_for_user("user-1", limit=500)

        assert total == 55
        assert len(logs) == 50

    async def test_filters_and_stats(self, webhook_log_repo: WebhookLogRepository):
        a = await webhook_log_repo.create(log())
        await webhook_log_repo.create(log(source="gitlab", event_type="issue"))
        await webhook_log_repo.create(log(user_id="user-2"))
        await webhook_log_repo.mark_failed(a.id, "boom")

        gitlab_logs, total = await webhook_log_repo.list_for_user("user-1", source="gitlab")
        failed, _ = await webhook_log_repo.list_for_user(
            "user-1", status=WebhookStatus.FAILED
        )
        stats = await webhook_log_repo.stats("user-1")

        assert total == 1
        assert gitlab_logs[0].event_type == "issue"
        assert [f.id for f in failed] == [a.id]
        assert stats == {"total": 2, "pending": 1, "processed": 0, "failed": 1}
