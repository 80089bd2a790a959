"""Slack workspace adapter for decision discovery and notifications.

Uses the Slack Web API with each user's stored OAuth token to list
channels, read channel history as a transcript, post notification
messages and complete the OAuth v2 install flow.
"""

import asyncio
from typing import Any

import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from src.adapters.base import ConversationRef, NotConnectedError, UpstreamError
from src.config import settings
from src.models.decision import DecisionSource
from src.models.integration import SlackIntegration
from src.repositories.integration_repo import IntegrationRepository

logger = structlog.get_logger()

# Channels with fewer members are treated as archived/noise
MIN_CHANNEL_MEMBERS = 2


def channel_link(channel_id: str) -> str:
    """Deep link that opens a channel in the Slack client."""
    return f"https://slack.com/app_redirect?channel={channel_id}"


def channel_source_key(channel_id: str) -> str:
    """Canonical cooldown key for a Slack channel."""
    return f"slack:{channel_id}"


def format_messages(messages: list[dict]) -> str:
    """Render conversations.history output as `user: text` lines.

    Slack returns newest first; the transcript is chronological. Entries
    that are not plain messages or have no text are dropped.
    """
    lines = []
    for msg in reversed(messages):
        if msg.get("type") != "message" or not msg.get("text"):
            continue
        author = msg.get("user") or msg.get("username") or "unknown"
        lines.append(f"{author}: {msg['text']}")
    return "\n".join(lines)


class SlackAdapter:
    """Source connector for Slack channels.

    Each call resolves the user's SlackIntegration and builds a WebClient
    with that token. Slack SDK calls are blocking and run in a worker
    thread; API failures surface as UpstreamError.
    """

    source = DecisionSource.SLACK

    def __init__(
        self,
        integrations: IntegrationRepository,
        history_limit: int | None = None,
        timeout_seconds: float | None = None,
    ):
        """Initialize adapter.

        Args:
            integrations: Repository holding per-user Slack tokens
            history_limit: Messages per channel for sync (default from settings)
            timeout_seconds: Per-request timeout (default from settings)
        """
        self._integrations = integrations
        self._history_limit = history_limit or settings.slack_history_limit
        self._timeout = int(timeout_seconds or settings.http_timeout_seconds)

    def _get_client(self, token: str | None = None) -> WebClient:
        """Create a Slack client for a token (or an unauthenticated one)."""
        if token is None:
            return WebClient(timeout=self._timeout)
        return WebClient(token=token, timeout=self._timeout)

    async def _get_integration(self, user_id: str) -> SlackIntegration:
        integration = await self._integrations.get_slack(user_id)
        if integration is None:
            raise NotConnectedError("slack")
        return integration

    async def _call(self, client: WebClient, method: str, **kwargs: Any) -> Any:
        """Run a blocking Web API method in a thread.

        Raises:
            UpstreamError: On Slack API errors or transport failures
        """
        try:
            return await asyncio.to_thread(getattr(client, method), **kwargs)
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            logger.warning("Slack API error", method=method, error=error)
            raise UpstreamError("Slack", error) from e
        except OSError as e:
            logger.warning("Slack request failed", method=method, error=str(e))
            raise UpstreamError("Slack", str(e)) from e

    async def list_channels(self, user_id: str) -> list[dict]:
        """List non-archived channels visible to the user's token."""
        integration = await self._get_integration(user_id)
        client = self._get_client(integration.access_token)
        result = await self._call(
            client, "conversations_list", exclude_archived=True, limit=200
        )
        channels = result.get("channels")
        if not isinstance(channels, list):
            raise UpstreamError("Slack", "conversations.list returned no channels")
        return channels

    async def list_candidates(self, user_id: str) -> list[ConversationRef]:
        """List channels worth analyzing.

        Channels with fewer than MIN_CHANNEL_MEMBERS members are excluded.
        """
        channels = await self.list_channels(user_id)
        refs = []
        for channel in channels:
            if channel.get("num_members", 0) < MIN_CHANNEL_MEMBERS:
                continue
            refs.append(self.build_ref(channel["id"], channel.get("name")))
        logger.info(
            "Slack candidates listed",
            user_id=user_id,
            channels=len(channels),
            candidates=len(refs),
        )
        return refs

    def build_ref(
        self, channel_id: str, name: str | None = None, history_limit: int | None = None
    ) -> ConversationRef:
        """Build a candidate reference for a channel's recent history."""
        return ConversationRef(
            source=DecisionSource.SLACK,
            source_key=channel_source_key(channel_id),
            source_link=channel_link(channel_id),
            title=f"Slack: #{name or channel_id}",
            external_id=channel_id,
            history_limit=history_limit or self._history_limit,
        )

    async def get_channel_history(
        self,
        user_id: str,
        channel_id: str,
        limit: int | None = None,
    ) -> list[dict]:
        """Get the most recent messages in a channel (newest first)."""
        integration = await self._get_integration(user_id)
        client = self._get_client(integration.access_token)
        result = await self._call(
            client,
            "conversations_history",
            channel=channel_id,
            limit=limit or self._history_limit,
        )
        messages = result.get("messages")
        if messages is None:
            return []
        if not isinstance(messages, list):
            raise UpstreamError("Slack", "conversations.history returned a bad body")
        return messages

    async def fetch_conversation_text(self, user_id: str, ref: ConversationRef) -> str:
        """Fetch channel history as a chronological transcript."""
        messages = await self.get_channel_history(
            user_id, ref.external_id, limit=ref.history_limit
        )
        return format_messages(messages)

    async def post_message(self, user_id: str, channel: str, text: str) -> str:
        """Post a message as the user's Slack app.

        Args:
            user_id: Owner of the Slack integration
            channel: Channel or Slack user ID (DMs open automatically)
            text: Message text (mrkdwn)

        Returns:
            Timestamp of the posted message
        """
        integration = await self._get_integration(user_id)
        client = self._get_client(integration.access_token)
        response = await self._call(
            client, "chat_postMessage", channel=channel, text=text
        )
        return response.get("ts", "")

    async def exchange_oauth_code(self, code: str, redirect_uri: str) -> dict:
        """Exchange an OAuth v2 authorization code for tokens.

        Returns:
            Raw oauth.v2.access response (access_token, team, authed_user, ...)

        Raises:
            UpstreamError: If Slack rejects the code or the body lacks a token
        """
        if not settings.slack_client_id or not settings.slack_client_secret:
            raise UpstreamError("Slack", "OAuth client is not configured")
        response = await self._call(
            self._get_client(),
            "oauth_v2_access",
            client_id=settings.slack_client_id,
            client_secret=settings.slack_client_secret,
            code=code,
            redirect_uri=redirect_uri,
        )
        if not response.get("access_token") or not response.get("team"):
            raise UpstreamError("Slack", "oauth.v2.access returned no token")
        return dict(response.data) if hasattr(response, "data") else dict(response)

    async def mark_synced(self, user_id: str) -> None:
        """Record a completed Slack sweep."""
        await self._integrations.touch_last_sync("slack", user_id)
