"""Slack browsing endpoints and interactive channel analysis."""

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from src.adapters.slack_adapter import SlackAdapter, format_messages
from src.api.analysis import AnalyzeResponse, build_analyze_response
from src.api.deps import get_decision_repo, get_pipeline, get_slack_adapter, get_user_id
from src.config import settings
from src.repositories.decision_repo import DecisionRepository
from src.sync.pipeline import DecisionPipeline

logger = structlog.get_logger()

router = APIRouter(prefix="/slack", tags=["slack"])

DEFAULT_MESSAGE_LIMIT = 50
MAX_MESSAGE_LIMIT = 1000


class SlackChannel(BaseModel):
    id: str
    name: str | None = None
    is_private: bool = False
    member_count: int = 0
    created: int | None = None
    topic: str | None = None
    purpose: str | None = None


class ChannelListResponse(BaseModel):
    success: bool = True
    channels: list[SlackChannel]
    count: int


class SlackMessage(BaseModel):
    ts: str
    text: str = ""
    user: str | None = None
    type: str | None = None
    subtype: str | None = None
    thread_ts: str | None = None
    reply_count: int | None = None
    timestamp: datetime | None = Field(default=None, description="Parsed from ts")


class MessageListResponse(BaseModel):
    success: bool = True
    messages: list[SlackMessage]
    count: int


class AnalyzeChannelRequest(BaseModel):
    limit: int = Field(default=DEFAULT_MESSAGE_LIMIT, ge=1, le=MAX_MESSAGE_LIMIT)


def _ts_to_datetime(ts: str | None) -> datetime | None:
    try:
        return datetime.fromtimestamp(float(ts), tz=UTC) if ts else None
    except ValueError:
        return None


def to_channel(channel: dict) -> SlackChannel:
    return SlackChannel(
        id=channel["id"],
        name=channel.get("name"),
        is_private=channel.get("is_private", False),
        member_count=channel.get("num_members", 0),
        created=channel.get("created"),
        topic=(channel.get("topic") or {}).get("value"),
        purpose=(channel.get("purpose") or {}).get("value"),
    )


def to_message(message: dict) -> SlackMessage:
    return SlackMessage(
        ts=message.get("ts", ""),
        text=message.get("text") or "",
        user=message.get("user"),
        type=message.get("type"),
        subtype=message.get("subtype"),
        thread_ts=message.get("thread_ts"),
        reply_count=message.get("reply_count"),
        timestamp=_ts_to_datetime(message.get("ts")),
    )


@router.get("/channels", response_model=ChannelListResponse)
async def list_channels(
    user_id: str = Depends(get_user_id),
    adapter: SlackAdapter = Depends(get_slack_adapter),
) -> ChannelListResponse:
    """List the caller's non-archived Slack channels."""
    channels = [to_channel(c) for c in await adapter.list_channels(user_id)]
    return ChannelListResponse(channels=channels, count=len(channels))


@router.get("/channels/{channel_id}/messages", response_model=MessageListResponse)
async def list_messages(
    channel_id: str,
    limit: int = Query(default=DEFAULT_MESSAGE_LIMIT, ge=1, le=MAX_MESSAGE_LIMIT),
    user_id: str = Depends(get_user_id),
    adapter: SlackAdapter = Depends(get_slack_adapter),
) -> MessageListResponse:
    """Most recent messages in a channel, newest first."""
    history = await adapter.get_channel_history(user_id, channel_id, limit=limit)
    messages = [to_message(m) for m in history]
    return MessageListResponse(messages=messages, count=len(messages))


@router.post("/channels/{channel_id}/analyze", response_model=AnalyzeResponse)
async def analyze_channel(
    channel_id: str,
    body: AnalyzeChannelRequest | None = None,
    user_id: str = Depends(get_user_id),
    adapter: SlackAdapter = Depends(get_slack_adapter),
    decisions: DecisionRepository = Depends(get_decision_repo),
    pipeline: DecisionPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    """Analyze a channel's recent history now.

    Uses the sync threshold and no cooldown; LLM errors propagate.
    """
    limit = body.limit if body else DEFAULT_MESSAGE_LIMIT
    history = await adapter.get_channel_history(user_id, channel_id, limit=limit)
    ref = adapter.build_ref(channel_id, history_limit=limit)

    logger.info(
        "Analyzing Slack channel",
        user_id=user_id,
        channel_id=channel_id,
        messages=len(history),
    )
    result = await pipeline.analyze(
        user_id, ref, format_messages(history), settings.sync_confidence_threshold
    )
    return await build_analyze_response(
        user_id,
        result,
        decisions,
        "No clear decision detected in this channel",
        empty_message="No messages to analyze in this channel",
    )
