"""Adapters for external conversation sources.

This module provides the source connectors used by the decision pipeline:
- SlackAdapter: Channel history from a user's Slack workspace
- GitLabAdapter: Issue and merge request discussions
- CalendarAdapter: Google Meet meetings and their transcripts
- SourceConnector: Protocol the pipeline depends on
- ConversationRef: Pointer to one candidate conversation
"""

from src.adapters.base import (
    ConversationRef,
    NotConnectedError,
    SourceConnector,
    UpstreamError,
)
from src.adapters.calendar_adapter import CalendarAdapter
from src.adapters.gitlab_adapter import GitLabAdapter
from src.adapters.slack_adapter import SlackAdapter

__all__ = [
    "CalendarAdapter",
    "ConversationRef",
    "GitLabAdapter",
    "NotConnectedError",
    "SlackAdapter",
    "SourceConnector",
    "UpstreamError",
]
