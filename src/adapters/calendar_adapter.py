"""Google Calendar adapter for Meet meetings.

Uses the Google Calendar API with each user's OAuth access token to import
events that carry a Google Meet link into the meeting store, and to create
or delete events for meetings scheduled from KnowWhy.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import google_auth_httplib2
import httplib2
import structlog
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.adapters.base import ConversationRef, NotConnectedError, UpstreamError
from src.config import settings
from src.models.base import utc_now
from src.models.decision import DecisionSource
from src.models.meeting import Meeting
from src.repositories.integration_repo import IntegrationRepository
from src.repositories.meeting_repo import MeetingRepository

logger = structlog.get_logger()

PRIMARY_CALENDAR = "primary"


def meet_link(event: dict) -> str | None:
    """Extract the Google Meet URL from an event, if any."""
    if event.get("hangoutLink"):
        return event["hangoutLink"]
    for entry in (event.get("conferenceData") or {}).get("entryPoints", []):
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return None


def _event_time(value: dict | None) -> datetime | None:
    if not value:
        return None
    raw = value.get("dateTime") or value.get("date")
    if not raw:
        return None
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def event_to_meeting(user_id: str, event: dict) -> Meeting:
    """Convert a Calendar event into an (unsaved) Meeting.

    All-day events start at midnight UTC; events without an end default
    to one hour.
    """
    start = _event_time(event.get("start")) or utc_now()
    end = _event_time(event.get("end")) or start + timedelta(hours=1)
    return Meeting(
        user_id=user_id,
        google_event_id=event["id"],
        title=event.get("summary") or "Untitled Meeting",
        description=event.get("description"),
        start_time=start,
        end_time=end,
        meet_link=meet_link(event),
    )


def meeting_source_key(google_event_id: str) -> str:
    """Canonical cooldown key for a meeting."""
    return f"meet:{google_event_id}"


class CalendarAdapter:
    """Source connector for Google Meet meetings.

    Candidates are stored meetings that have a transcript and no decision
    yet; each sweep first refreshes the meeting store from the calendar.
    """

    source = DecisionSource.MEET

    def __init__(
        self,
        integrations: IntegrationRepository,
        meetings: MeetingRepository,
        lookback_days: int | None = None,
        timeout_seconds: float | None = None,
    ):
        """Initialize adapter.

        Args:
            integrations: Repository holding per-user Google tokens
            meetings: Meeting store that imported events are upserted into
            lookback_days: Days of past events imported per sweep
            timeout_seconds: Per-request timeout
        """
        self._integrations = integrations
        self._meetings = meetings
        self._lookback_days = lookback_days or settings.calendar_lookback_days
        self._timeout = timeout_seconds or settings.http_timeout_seconds

    def _get_service(self, token: str):
        """Build a Calendar API service for one access token."""
        creds = Credentials(token=token)
        http = google_auth_httplib2.AuthorizedHttp(
            creds, http=httplib2.Http(timeout=self._timeout)
        )
        return build("calendar", "v3", http=http, cache_discovery=False)

    async def _get_token(self, user_id: str) -> str:
        integration = await self._integrations.get_google(user_id)
        if integration is None:
            raise NotConnectedError("google")
        return integration.access_token

    async def _execute(self, action: str, request: Callable[[], Any]) -> Any:
        """Run a blocking API request in a thread.

        Raises:
            UpstreamError: On HTTP errors or transport failures
        """
        try:
            return await asyncio.to_thread(request)
        except HttpError as e:
            status = e.resp.status if e.resp is not None else None
            logger.warning("Google Calendar API error", action=action, status=status)
            raise UpstreamError("Google Calendar", f"{action} failed", status) from e
        except (OSError, httplib2.HttpLib2Error) as e:
            logger.warning("Google Calendar request failed", action=action, error=str(e))
            raise UpstreamError("Google Calendar", str(e)) from e

    async def list_meet_events(
        self,
        user_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 100,
    ) -> list[dict]:
        """List primary-calendar events in a window that have a Meet link."""
        service = self._get_service(await self._get_token(user_id))

        def _fetch_events():
            return (
                service.events()
                .list(
                    calendarId=PRIMARY_CALENDAR,
                    timeMin=time_min.isoformat(),
                    timeMax=time_max.isoformat(),
                    maxResults=max_results,
                    singleEvents=True,
                    orderBy="startTime",
                )
                .execute()
            )

        result = await self._execute("events.list", _fetch_events)
        items = result.get("items", []) if isinstance(result, dict) else None
        if not isinstance(items, list):
            raise UpstreamError("Google Calendar", "events.list returned a bad body")
        return [event for event in items if event.get("id") and meet_link(event)]

    async def import_events(
        self,
        user_id: str,
        days_back: int | None = None,
        days_ahead: int = 0,
    ) -> list[Meeting]:
        """Upsert Meet events from the calendar into the meeting store.

        Args:
            user_id: Owner of the Google integration
            days_back: Past window (default lookback_days)
            days_ahead: Future window

        Returns:
            Stored meetings, in calendar order
        """
        now = utc_now()
        events = await self.list_meet_events(
            user_id,
            now - timedelta(days=days_back or self._lookback_days),
            now + timedelta(days=days_ahead),
        )
        meetings = [
            await self._meetings.upsert_from_calendar(event_to_meeting(user_id, event))
            for event in events
        ]
        logger.info("Calendar events imported", user_id=user_id, count=len(meetings))
        return meetings

    async def list_candidates(self, user_id: str) -> list[ConversationRef]:
        """Import recent events, then list meetings awaiting analysis."""
        await self.import_events(user_id)
        meetings = await self._meetings.list_awaiting_analysis(user_id)
        return [self.build_ref(meeting) for meeting in meetings]

    @staticmethod
    def build_ref(meeting: Meeting) -> ConversationRef:
        """Build a candidate reference for a stored meeting."""
        return ConversationRef(
            source=DecisionSource.MEET,
            source_key=meeting_source_key(meeting.google_event_id),
            source_link=meeting.meet_link,
            title=f"Google Meet: {meeting.title}",
            external_id=meeting.google_event_id,
            meeting_id=meeting.id,
        )

    async def fetch_conversation_text(self, user_id: str, ref: ConversationRef) -> str:
        """Return the stored transcript for the referenced meeting."""
        if ref.meeting_id is None:
            raise ValueError(f"Not a meeting reference: {ref.source_key}")
        meeting = await self._meetings.get(user_id, ref.meeting_id)
        if meeting is None or not meeting.has_transcript:
            return ""
        return meeting.transcript

    async def create_event(
        self,
        user_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: str | None = None,
        attendees: list[str] | None = None,
    ) -> dict:
        """Create a calendar event with a Google Meet conference.

        Returns:
            The created event (id, htmlLink, hangoutLink, ...)
        """
        service = self._get_service(await self._get_token(user_id))
        body: dict[str, Any] = {
            "summary": title,
            "start": {"dateTime": start_time.isoformat()},
            "end": {"dateTime": end_time.isoformat()},
            "conferenceData": {
                "createRequest": {
                    "requestId": uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        if description:
            body["description"] = description
        if attendees:
            body["attendees"] = [{"email": email} for email in attendees]

        def _insert():
            return (
                service.events()
                .insert(
                    calendarId=PRIMARY_CALENDAR,
                    body=body,
                    conferenceDataVersion=1,
                )
                .execute()
            )

        event = await self._execute("events.insert", _insert)
        logger.info("Calendar event created", user_id=user_id, event_id=event.get("id"))
        return event

    async def delete_event(self, user_id: str, event_id: str) -> bool:
        """Delete a calendar event.

        Returns:
            True if deleted, False if it was already gone
        """
        service = self._get_service(await self._get_token(user_id))

        def _delete():
            return (
                service.events()
                .delete(calendarId=PRIMARY_CALENDAR, eventId=event_id)
                .execute()
            )

        try:
            await self._execute("events.delete", _delete)
        except UpstreamError as e:
            if e.status_code in (404, 410):
                return False
            raise
        return True

    async def mark_synced(self, user_id: str) -> None:
        """Record a completed calendar sweep."""
        await self._integrations.touch_last_sync("google", user_id)
