"""Tests for MeetingRepository."""

from datetime import timedelta

from src.models.decision import DecisionSource
from src.models.meeting import MeetingStatus
from src.repositories.decision_repo import DecisionRepository
from src.repositories.meeting_repo import MeetingRepository


class TestUpsertFromCalendar:
    """Re-importing a calendar event refreshes it without losing local state."""

    async def test_insert_then_refresh_keeps_id_and_transcript(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        original = await meeting_repo.upsert_from_calendar(meeting_factory())
        await meeting_repo.update_transcript("user-1", original.id, "Alice: hi")

        refreshed = await meeting_repo.upsert_from_calendar(
            meeting_factory(title="Architecture review (moved)")
        )

        assert refreshed.id == original.id
        stored = await meeting_repo.get("user-1", original.id)
        assert stored.title == "Architecture review (moved)"
        assert stored.transcript == "Alice: hi"
        assert stored.status == MeetingStatus.PENDING

    async def test_same_event_id_for_other_user_is_separate(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        a = await meeting_repo.upsert_from_calendar(meeting_factory())
        b = await meeting_repo.upsert_from_calendar(meeting_factory(user_id="user-2"))

        assert a.id != b.id
        assert await meeting_repo.get_by_event_id("user-2", "evt-1") is not None


class TestListing:
    async def test_list_most_recent_first_with_status_filter(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        early = meeting_factory(google_event_id="evt-early")
        late = meeting_factory(
            google_event_id="evt-late",
            start_time=early.start_time + timedelta(days=1),
            end_time=early.end_time + timedelta(days=1),
        )
        await meeting_repo.create(early)
        await meeting_repo.create(late)
        await meeting_repo.set_status("user-1", early.id, MeetingStatus.CANCELLED)

        all_meetings = await meeting_repo.list_for_user("user-1")
        pending = await meeting_repo.list_for_user("user-1", status=MeetingStatus.PENDING)

        assert [m.google_event_id for m in all_meetings] == ["evt-late", "evt-early"]
        assert [m.google_event_id for m in pending] == ["evt-late"]

    async def test_awaiting_analysis(
        self,
        meeting_repo: MeetingRepository,
        decision_repo: DecisionRepository,
        meeting_factory,
        decision_factory,
    ):
        no_transcript = await meeting_repo.create(meeting_factory(google_event_id="a"))
        ready = await meeting_repo.create(
            meeting_factory(google_event_id="b", transcript="Alice: ship it")
        )
        analyzed = await meeting_repo.create(
            meeting_factory(google_event_id="c", transcript="Bob: done")
        )
        cancelled = await meeting_repo.create(
            meeting_factory(
                google_event_id="d",
                transcript="Carol: hi",
                status=MeetingStatus.CANCELLED,
            )
        )
        await decision_repo.create(
            decision_factory(
                meeting_id=analyzed.id,
                source=DecisionSource.MEET,
                source_key="meet:c",
            )
        )

        awaiting = await meeting_repo.list_awaiting_analysis("user-1")

        assert [m.id for m in awaiting] == [ready.id]
        assert no_transcript.id not in [m.id for m in awaiting]
        assert cancelled.id not in [m.id for m in awaiting]

    async def test_analyzed_without_decision_is_not_awaiting(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        meeting = await meeting_repo.create(
            meeting_factory(transcript="Alice: let's keep talking")
        )
        await meeting_repo.set_status("user-1", meeting.id, MeetingStatus.ANALYZED)

        assert await meeting_repo.list_awaiting_analysis("user-1") == []

    async def test_new_transcript_makes_meeting_pending_again(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        meeting = await meeting_repo.create(meeting_factory(transcript="Alice: hi"))
        await meeting_repo.set_status("user-1", meeting.id, MeetingStatus.ANALYZED)

        await meeting_repo.update_transcript("user-1", meeting.id, "Bob: use Postgres")

        awaiting = await meeting_repo.list_awaiting_analysis("user-1")
        assert [m.id for m in awaiting] == [meeting.id]

    async def test_new_transcript_keeps_cancelled(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        meeting = await meeting_repo.create(
            meeting_factory(status=MeetingStatus.CANCELLED)
        )

        await meeting_repo.update_transcript("user-1", meeting.id, "Bob: hi")

        stored = await meeting_repo.get("user-1", meeting.id)
        assert stored.status == MeetingStatus.CANCELLED


class TestUpdates:
    async def test_update_transcript_for_unknown_meeting(
        self, meeting_repo: MeetingRepository, meeting_factory
    ):
        meeting = await meeting_repo.create(meeting_factory())

        assert await meeting_repo.update_transcript("user-2", meeting.id, "x") is False
        assert await meeting_repo.update_transcript("user-1", meeting.id, "x") is True

    async def test_set_status(self, meeting_repo: MeetingRepository, meeting_factory):
        meeting = await meeting_repo.create(meeting_factory())

        assert await meeting_repo.set_status("user-1", meeting.id, MeetingStatus.ANALYZED)
        stored = await meeting_repo.get("user-1", meeting.id)
        assert stored.status == MeetingStatus.ANALYZED
        assert stored.has_transcript is False
