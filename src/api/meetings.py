"""Meeting endpoints: calendar import, transcripts and interactive analysis."""

from datetime import datetime
from pathlib import Path
from uuid import UUID, uuid4

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.adapters.base import NotConnectedError, UpstreamError
from src.adapters.calendar_adapter import CalendarAdapter, event_to_meeting
from src.api.analysis import AnalyzeResponse, build_analyze_response
from src.api.deps import (
    get_calendar_adapter,
    get_decision_repo,
    get_meeting_repo,
    get_pipeline,
    get_user_id,
)
from src.config import settings
from src.models.meeting import Meeting, MeetingStatus
from src.repositories.decision_repo import DecisionRepository
from src.repositories.meeting_repo import MeetingRepository
from src.services.transcript_parser import TranscriptParser
from src.sync.pipeline import DecisionPipeline

logger = structlog.get_logger()

ALLOWED_EXTENSIONS = {".vtt", ".srt"}
MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10 MB
SYNC_DAYS_BACK = 30
SYNC_DAYS_AHEAD = 30

router = APIRouter(prefix="/meetings", tags=["meetings"])


class MeetingListResponse(BaseModel):
    success: bool = True
    meetings: list[Meeting]
    count: int


class MeetingResponse(BaseModel):
    success: bool = True
    meeting: Meeting


class CreateMeetingRequest(BaseModel):
    """Manual meeting, optionally also booked on Google Calendar with Meet."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    meet_link: str | None = None
    create_calendar_event: bool = Field(
        default=False, description="Also create a Calendar event with a Meet link"
    )
    attendees: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_times(self) -> "CreateMeetingRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TranscriptResponse(BaseModel):
    success: bool = True
    meeting_id: UUID
    speaker_count: int
    utterance_count: int
    duration_seconds: float | None


class CancelResponse(BaseModel):
    success: bool = True
    message: str
    calendar_event_deleted: bool


async def validate_transcript_file(file: UploadFile) -> tuple[str, str]:
    """Validate and decode an uploaded transcript file.

    Returns:
        Tuple of (decoded_content, extension).

    Raises:
        HTTPException: 400 for missing name/empty file, 413 too large,
            415 unsupported extension
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported file format. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    content_bytes = await file.read()
    if len(content_bytes) == 0:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(content_bytes) > MAX_FILE_SIZE_BYTES:
        max_mb = MAX_FILE_SIZE_BYTES // (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {max_mb}MB",
        )

    # UTF-8-sig handles a BOM; Latin-1 decodes any byte string
    try:
        content = content_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        content = content_bytes.decode("latin-1")

    return content, ext


async def _get_meeting_or_404(
    repo: MeetingRepository, user_id: str, meeting_id: UUID
) -> Meeting:
    meeting = await repo.get(user_id, meeting_id)
    if meeting is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


@router.get("", response_model=MeetingListResponse)
async def list_meetings(
    status: MeetingStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    repo: MeetingRepository = Depends(get_meeting_repo),
) -> MeetingListResponse:
    """List the caller's meetings, most recent first."""
    meetings = await repo.list_for_user(user_id, status=status, limit=limit)
    return MeetingListResponse(meetings=meetings, count=len(meetings))


@router.post("", response_model=MeetingResponse, status_code=201)
async def create_meeting(
    body: CreateMeetingRequest,
    user_id: str = Depends(get_user_id),
    repo: MeetingRepository = Depends(get_meeting_repo),
    calendar: CalendarAdapter = Depends(get_calendar_adapter),
) -> MeetingResponse:
    """Create a meeting record.

    With create_calendar_event the meeting is booked on the caller's
    primary calendar first and stored under the new event's ID.
    """
    if body.create_calendar_event:
        event = await calendar.create_event(
            user_id,
            body.title,
            body.start_time,
            body.end_time,
            description=body.description,
            attendees=body.attendees,
        )
        meeting = await repo.upsert_from_calendar(event_to_meeting(user_id, event))
        return MeetingResponse(meeting=meeting)

    meeting = await repo.create(
        Meeting(
            user_id=user_id,
            google_event_id=f"manual-{uuid4().hex}",
            title=body.title,
            description=body.description,
            start_time=body.start_time,
            end_time=body.end_time,
            meet_link=body.meet_link,
        )
    )
    return MeetingResponse(meeting=meeting)


@router.post("/sync", response_model=MeetingListResponse)
async def sync_meetings(
    user_id: str = Depends(get_user_id),
    calendar: CalendarAdapter = Depends(get_calendar_adapter),
) -> MeetingListResponse:
    """Import Meet events from 30 days back to 30 days ahead."""
    meetings = await calendar.import_events(
        user_id, days_back=SYNC_DAYS_BACK, days_ahead=SYNC_DAYS_AHEAD
    )
    return MeetingListResponse(meetings=meetings, count=len(meetings))


@router.post("/{meeting_id}/transcript", response_model=TranscriptResponse)
async def upload_transcript(
    meeting_id: UUID,
    file: UploadFile,
    user_id: str = Depends(get_user_id),
    repo: MeetingRepository = Depends(get_meeting_repo),
) -> TranscriptResponse:
    """Attach a VTT or SRT transcript to a meeting."""
    await _get_meeting_or_404(repo, user_id, meeting_id)
    content, ext = await validate_transcript_file(file)

    try:
        parsed = TranscriptParser().parse(content, ext)
    except Exception as e:
        raise HTTPException(
            status_code=400,
            detail=f"Failed to parse transcript: {e!s}",
        )

    text = parsed.to_text()
    if not text:
        raise HTTPException(status_code=400, detail="Transcript has no captions")

    await repo.update_transcript(user_id, meeting_id, text)
    return TranscriptResponse(
        meeting_id=meeting_id,
        speaker_count=len(parsed.speakers),
        utterance_count=len(parsed.utterances),
        duration_seconds=parsed.duration_seconds,
    )


@router.post("/{meeting_id}/analyze", response_model=AnalyzeResponse)
async def analyze_meeting(
    meeting_id: UUID,
    user_id: str = Depends(get_user_id),
    repo: MeetingRepository = Depends(get_meeting_repo),
    decisions: DecisionRepository = Depends(get_decision_repo),
    pipeline: DecisionPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    """Analyze a meeting's transcript now.

    Uses the meeting threshold and no cooldown. LLM errors propagate to
    the caller rather than being recorded as a failed candidate.
    """
    meeting = await _get_meeting_or_404(repo, user_id, meeting_id)
    if meeting.status == MeetingStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Meeting is cancelled")
    if not meeting.has_transcript:
        raise HTTPException(status_code=400, detail="No transcript available")

    result = await pipeline.analyze(
        user_id,
        CalendarAdapter.build_ref(meeting),
        meeting.transcript,
        settings.meeting_confidence_threshold,
    )

    return await build_analyze_response(
        user_id, result, decisions, "No clear decision detected in this meeting"
    )


@router.post("/{meeting_id}/cancel", response_model=CancelResponse)
async def cancel_meeting(
    meeting_id: UUID,
    user_id: str = Depends(get_user_id),
    repo: MeetingRepository = Depends(get_meeting_repo),
    calendar: CalendarAdapter = Depends(get_calendar_adapter),
) -> CancelResponse:
    """Delete the calendar event (best effort) and mark the meeting cancelled."""
    meeting = await _get_meeting_or_404(repo, user_id, meeting_id)

    deleted = False
    if not meeting.google_event_id.startswith("manual-"):
        try:
            deleted = await calendar.delete_event(user_id, meeting.google_event_id)
        except (NotConnectedError, UpstreamError) as e:
            logger.warning(
                "Calendar event delete failed",
                meeting_id=str(meeting_id),
                error=str(e),
            )

    await repo.set_status(user_id, meeting_id, MeetingStatus.CANCELLED)
    return CancelResponse(message="Meeting cancelled", calendar_event_deleted=deleted)
