"""Tests for CalendarAdapter."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from src.adapters.base import NotConnectedError, UpstreamError
from src.adapters.calendar_adapter import CalendarAdapter, event_to_meeting, meet_link
from src.models.integration import GoogleIntegration
from src.repositories.integration_repo import IntegrationRepository


@pytest.fixture
def mock_build():
    """Mock googleapiclient.discovery.build."""
    with patch("src.adapters.calendar_adapter.build") as mock:
        yield mock


@pytest.fixture
def integrations():
    repo = MagicMock(spec=IntegrationRepository)
    repo.get_google = AsyncMock(
        return_value=GoogleIntegration(user_id="user-1", access_token="ya29.token")
    )
    repo.touch_last_sync = AsyncMock()
    return repo


@pytest.fixture
def adapter(integrations, meeting_repo):
    return CalendarAdapter(integrations, meeting_repo, lookback_days=7)


def meet_event(event_id="evt-1", summary="Architecture review", **kw) -> dict:
    event = {
        "id": event_id,
        "summary": summary,
        "start": {"dateTime": "2026-03-02T15:00:00Z"},
        "end": {"dateTime": "2026-03-02T16:00:00Z"},
        "hangoutLink": "https://meet.google.com/abc-defg-hij",
    }
    event.update(kw)
    return event


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"{}")


class TestEventConversion:
    """Calendar events map onto Meeting fields."""

    def test_meet_link_from_conference_data(self):
        event = {
            "conferenceData": {
                "entryPoints": [
                    {"entryPointType": "phone", "uri": "tel:+1-555"},
                    {"entryPointType": "video", "uri": "https://meet.google.com/xyz"},
                ]
            }
        }
        assert meet_link(event) == "https://meet.google.com/xyz"
        assert meet_link({}) is None

    def test_defaults(self):
        meeting = event_to_meeting(
            "user-1", {"id": "evt-9", "start": {"date": "2026-03-02"}}
        )

        assert meeting.title == "Untitled Meeting"
        assert meeting.start_time == datetime(2026, 3, 2, tzinfo=UTC)
        assert (meeting.end_time - meeting.start_time).total_seconds() == 3600


class TestImportEvents:
    async def test_only_meet_events_are_stored(self, adapter, mock_build, meeting_repo):
        mock_service = MagicMock()
        mock_service.events().list().execute.return_value = {
            "items": [
                meet_event(),
                {"id": "evt-2", "summary": "Lunch", "start": {"dateTime": "2026-03-02T12:00:00Z"}},
            ]
        }
        mock_build.return_value = mock_service

        meetings = await adapter.import_events("user-1")

        assert [m.google_event_id for m in meetings] == ["evt-1"]
        stored = await meeting_repo.get_by_event_id("user-1", "evt-1")
        assert stored.meet_link == "https://meet.google.com/abc-defg-hij"

    async def test_not_connected(self, adapter, integrations):
        integrations.get_google.return_value = None

        with pytest.raises(NotConnectedError, match="Google not connected"):
            await adapter.import_events("user-1")

    async def test_http_error_becomes_upstream_error(self, adapter, mock_build):
        mock_service = MagicMock()
        mock_service.events().list().execute.side_effect = http_error(401)
        mock_build.return_value = mock_service

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.import_events("user-1")

        assert exc_info.value.status_code == 401


class TestListCandidates:
    """Discover step for meetings: stored transcripts without a decision."""

    async def test_returns_meetings_with_transcripts(
        self, adapter, mock_build, meeting_repo
    ):
        mock_service = MagicMock()
        mock_service.events().list().execute.return_value = {
            "items": [meet_event(), meet_event("evt-2", "Standup")]
        }
        mock_build.return_value = mock_service
        first = await adapter.import_events("user-1")
        await meeting_repo.update_transcript("user-1", first[0].id, "Alice: use Postgres")

        refs = await adapter.list_candidates("user-1")

        assert [r.source_key for r in refs] == ["meet:evt-1"]
        assert refs[0].meeting_id == first[0].id
        assert refs[0].title == "Google Meet: Architecture review"
        text = await adapter.fetch_conversation_text("user-1", refs[0])
        assert text == "Alice: use Postgres"


class TestEventWrites:
    async def test_create_event_requests_meet_conference(self, adapter, mock_build):
        mock_service = MagicMock()
        mock_service.events().insert().execute.return_value = meet_event("evt-new")
        mock_build.return_value = mock_service

        event = await adapter.create_event(
            "user-1",
            "Design sync",
            datetime(2026, 3, 3, 10, tzinfo=UTC),
            datetime(2026, 3, 3, 11, tzinfo=UTC),
            attendees=["bob@example.com"],
        )

        assert event["id"] == "evt-new"
        kwargs = mock_service.events().insert.call_args.kwargs
        assert kwargs["conferenceDataVersion"] == 1
        assert kwargs["body"]["attendees"] == [{"email": "bob@example.com"}]
        assert (
            kwargs["body"]["conferenceData"]["createRequest"]["conferenceSolutionKey"]
            == {"type": "hangoutsMeet"}
        )

    async def test_delete_missing_event_returns_false(self, adapter, mock_build):
        mock_service = MagicMock()
        mock_service.events().delete().execute.side_effect = http_error(410)
        mock_build.return_value = mock_service

        assert await adapter.delete_event("user-1", "evt-1") is False

    async def test_delete_event(self, adapter, mock_build):
        mock_service = MagicMock()
        mock_service.events().delete().execute.return_value = ""
        mock_build.return_value = mock_service

        assert await adapter.delete_event("user-1", "evt-1") is True
