"""Base types for source connectors.

This module defines the SourceConnector protocol implemented by the Slack,
GitLab and Google Calendar adapters, the ConversationRef they hand to the
decision pipeline, and the errors they raise.
"""

from typing import Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.decision import DecisionSource


class NotConnectedError(Exception):
    """Raised when the user has no stored credential for a source."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"{source.capitalize()} not connected")


class UpstreamError(Exception):
    """Raised when a third-party API call fails or returns a malformed body."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"{source} API error: {message}")


class ConversationRef(BaseModel):
    """Pointer to one conversation that may contain a decision.

    Produced by a connector's list_candidates (or built from a webhook
    payload) and resolved to transcript text by fetch_conversation_text.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    source: DecisionSource = Field(description="Source system")
    source_key: str = Field(
        min_length=1,
        description="Canonical (source, conversation id) key used for cooldowns",
    )
    source_link: str | None = Field(
        default=None, description="URL back to the conversation"
    )
    title: str = Field(
        description="Context label handed to the brief generator",
    )
    external_id: str = Field(description="Channel ID, issue IID or event ID")
    project_id: int | None = Field(default=None, description="GitLab project ID")
    kind: str | None = Field(
        default=None, description="GitLab item kind: issue or merge_request"
    )
    meeting_id: UUID | None = Field(default=None, description="Linked meeting")
    history_limit: int | None = Field(
        default=None, description="Slack: number of messages to fetch"
    )
    min_comments: int = Field(
        default=0,
        ge=0,
        description="Minimum non-system comments for the conversation to count",
    )


@runtime_checkable
class SourceConnector(Protocol):
    """Protocol for adapters that expose conversations to the pipeline.

    Adapters implement this protocol for structural subtyping -
    they don't need to inherit, just implement the methods.
    """

    source: DecisionSource

    async def list_candidates(self, user_id: str) -> list[ConversationRef]:
        """List conversations worth analyzing for a user.

        Raises:
            NotConnectedError: If the user has no integration for this source
            UpstreamError: If the remote API call fails
        """
        ...

    async def fetch_conversation_text(self, user_id: str, ref: ConversationRef) -> str:
        """Fetch the plain-text transcript for one conversation.

        Returns an empty string when the conversation has no usable signal.

        Raises:
            NotConnectedError: If the user has no integration for this source
            UpstreamError: If the remote API call fails
        """
        ...

    async def mark_synced(self, user_id: str) -> None:
        """Record that a full sweep of this source completed for the user."""
        ...
