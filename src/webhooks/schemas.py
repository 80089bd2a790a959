"""Response body returned to webhook senders."""

from uuid import UUID

from pydantic import BaseModel, Field


class WebhookOutcome(BaseModel):
    """Outcome of one inbound webhook.

    Always returned with HTTP 200 once the request is authenticated, so
    the sender does not retry events we chose not to handle.
    """

    success: bool = True
    message: str
    processed: int = Field(default=0, description="Integrations the event ran for")
    decision_ids: list[UUID] = Field(default_factory=list)
    challenge: str | None = Field(default=None, exclude=True)
