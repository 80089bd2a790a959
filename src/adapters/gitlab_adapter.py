"""GitLab adapter for issue and merge request discussions.

Talks to the GitLab REST API v4 with each user's personal access token.
Lists recently updated issues and merge requests as decision candidates,
renders their discussion as a transcript, and manages project webhooks.
"""

from datetime import datetime, timedelta
from typing import Any

import httpx
import structlog

from src.adapters.base import ConversationRef, NotConnectedError, UpstreamError
from src.config import settings
from src.models.base import utc_now
from src.models.decision import DecisionSource
from src.models.integration import GitLabIntegration
from src.repositories.integration_repo import IntegrationRepository

logger = structlog.get_logger()

ISSUE = "issue"
MERGE_REQUEST = "merge_request"

_ITEM_PATHS = {ISSUE: "issues", MERGE_REQUEST: "merge_requests"}
_ITEM_LABELS = {ISSUE: "Issue", MERGE_REQUEST: "Merge Request"}

HOOK_EVENTS = {
    "issues_events": True,
    "merge_requests_events": True,
    "note_events": True,
    "push_events": False,
}


def item_source_key(project_id: int, kind: str, iid: int | str) -> str:
    """Canonical cooldown key for an issue or merge request."""
    return f"gitlab:{project_id}:{kind}:{iid}"


def _parse_updated_at(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def user_notes(notes: list[dict]) -> list[dict]:
    """Drop GitLab system notes (label changes, assignments, ...)."""
    return [note for note in notes if not note.get("system")]


def flatten_discussions(discussions: list[dict]) -> list[dict]:
    """Flatten merge request discussion threads into a note list."""
    notes = []
    for discussion in discussions:
        notes.extend(discussion.get("notes") or [])
    return notes


def format_item_conversation(kind: str, item: dict, notes: list[dict]) -> str:
    """Render an issue or merge request and its notes as a transcript.

    Args:
        kind: issue or merge_request
        item: Issue/MR body from the API
        notes: Non-system notes, oldest first

    Returns:
        Header (title, state, branches for MRs, description) followed by
        a Discussion section with one `author: body` line per note
    """
    lines = [f"{_ITEM_LABELS[kind]}: {item.get('title', '')}"]
    if item.get("state"):
        lines.append(f"State: {item['state']}")
    if kind == MERGE_REQUEST and item.get("source_branch"):
        lines.append(f"Branches: {item['source_branch']} -> {item.get('target_branch', '')}")
    if item.get("description"):
        lines.extend(["", "Description:", item["description"]])
    if notes:
        lines.extend(["", "Discussion:"])
        for note in notes:
            author = (note.get("author") or {}).get("name") or "Unknown"
            lines.append(f"{author}: {note.get('body', '')}")
    return "\n".join(lines)


class GitLabAdapter:
    """Source connector for GitLab issues and merge requests.

    Only the first max_projects membership projects and the first
    max_items issues and merge requests per project (updated within
    recency_days) are considered.
    """

    source = DecisionSource.GITLAB

    def __init__(
        self,
        integrations: IntegrationRepository,
        recency_days: int | None = None,
        max_projects: int | None = None,
        max_items: int | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize adapter.

        Args:
            integrations: Repository holding per-user GitLab tokens
            recency_days: Only items updated within this window
            max_projects: Projects scanned per sweep
            max_items: Issues (and MRs) scanned per project
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests)
        """
        self._integrations = integrations
        self._recency_days = recency_days or settings.gitlab_recency_days
        self._max_projects = max_projects or settings.gitlab_max_projects
        self._max_items = max_items or settings.gitlab_max_items_per_project
        self._timeout = timeout_seconds or settings.http_timeout_seconds
        self._transport = transport

    def _client(self, gitlab_url: str, token: str) -> httpx.AsyncClient:
        """Create an httpx client bound to one instance and token."""
        return httpx.AsyncClient(
            base_url=f"{gitlab_url.rstrip('/')}/api/v4",
            headers={"Authorization": f"Bearer {token}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _get_integration(self, user_id: str) -> GitLabIntegration:
        integration = await self._integrations.get_gitlab(user_id)
        if integration is None:
            raise NotConnectedError("gitlab")
        return integration

    async def _request(
        self,
        gitlab_url: str,
        token: str,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        """Send one API request and decode the JSON body.

        Raises:
            UpstreamError: On transport errors, non-2xx or a non-JSON body
        """
        try:
            async with self._client(gitlab_url, token) as client:
                response = await client.request(method, path, params=params, json=json)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("GitLab API error", path=path, status_code=status)
            raise UpstreamError("GitLab", f"{method} {path} returned {status}", status) from e
        except httpx.HTTPError as e:
            logger.warning("GitLab request failed", path=path, error=str(e))
            raise UpstreamError("GitLab", str(e)) from e
        except ValueError as e:
            raise UpstreamError("GitLab", f"{path} returned a malformed body") from e

    async def _get_list(
        self, integration: GitLabIntegration, path: str, params: dict | None = None
    ) -> list[dict]:
        body = await self._request(
            integration.gitlab_url, integration.access_token, "GET", path, params=params
        )
        if not isinstance(body, list):
            raise UpstreamError("GitLab", f"{path} did not return a list")
        return body

    async def get_current_user(self, gitlab_url: str, token: str) -> dict:
        """Validate a token by fetching the authenticated user.

        Raises:
            UpstreamError: If the token is rejected or the instance unreachable
        """
        body = await self._request(gitlab_url, token, "GET", "/user")
        if not isinstance(body, dict) or "username" not in body:
            raise UpstreamError("GitLab", "/user returned a malformed body")
        return body

    async def list_projects(self, user_id: str) -> list[dict]:
        """List projects the user is a member of, most recently active first."""
        integration = await self._get_integration(user_id)
        return await self._get_list(
            integration,
            "/projects",
            {"membership": "true", "order_by": "last_activity_at", "per_page": 100},
        )

    async def list_issues(
        self, user_id: str, project_id: int, state: str = "all"
    ) -> list[dict]:
        """List a project's issues, most recently updated first."""
        integration = await self._get_integration(user_id)
        return await self._get_list(
            integration,
            f"/projects/{project_id}/issues",
            {"state": state, "order_by": "updated_at", "sort": "desc", "per_page": 50},
        )

    async def _list_recent_items(
        self, integration: GitLabIntegration, project_id: int, kind: str, cutoff: datetime
    ) -> list[dict]:
        items = await self._get_list(
            integration,
            f"/projects/{project_id}/{_ITEM_PATHS[kind]}",
            {
                "state": "all",
                "order_by": "updated_at",
                "sort": "desc",
                "updated_after": cutoff.isoformat(),
                "per_page": self._max_items,
            },
        )
        recent = []
        for item in items:
            updated_at = _parse_updated_at(item.get("updated_at"))
            if updated_at is not None and updated_at < cutoff:
                continue
            recent.append(item)
        return recent[: self._max_items]

    async def list_candidates(self, user_id: str) -> list[ConversationRef]:
        """List recently updated issues and merge requests.

        A project whose item listing fails is logged and skipped.
        """
        integration = await self._get_integration(user_id)
        projects = await self.list_projects(user_id)
        cutoff = utc_now() - timedelta(days=self._recency_days)

        refs = []
        for project in projects[: self._max_projects]:
            for kind in (ISSUE, MERGE_REQUEST):
                try:
                    items = await self._list_recent_items(
                        integration, project["id"], kind, cutoff
                    )
                except UpstreamError as e:
                    logger.warning(
                        "Skipping GitLab project items",
                        project_id=project["id"],
                        kind=kind,
                        error=str(e),
                    )
                    continue
                refs.extend(
                    self.build_ref(project["id"], kind, item, min_comments=1)
                    for item in items
                )

        logger.info("GitLab candidates listed", user_id=user_id, candidates=len(refs))
        return refs

    def build_ref(
        self, project_id: int, kind: str, item: dict, min_comments: int = 0
    ) -> ConversationRef:
        """Build a candidate reference for an issue or merge request body."""
        return ConversationRef(
            source=DecisionSource.GITLAB,
            source_key=item_source_key(project_id, kind, item["iid"]),
            source_link=item.get("web_url") or item.get("url"),
            title=f"GitLab {_ITEM_LABELS[kind]}: {item.get('title', '')}",
            external_id=str(item["iid"]),
            project_id=project_id,
            kind=kind,
            min_comments=min_comments,
        )

    async def get_item(self, user_id: str, project_id: int, kind: str, iid: str) -> dict:
        """Get one issue or merge request."""
        integration = await self._get_integration(user_id)
        body = await self._request(
            integration.gitlab_url,
            integration.access_token,
            "GET",
            f"/projects/{project_id}/{_ITEM_PATHS[kind]}/{iid}",
        )
        if not isinstance(body, dict):
            raise UpstreamError("GitLab", "item lookup returned a malformed body")
        return body

    async def get_notes(
        self, user_id: str, project_id: int, kind: str, iid: str
    ) -> list[dict]:
        """Get non-system notes on an item, oldest first.

        Issues use the notes endpoint; merge requests use discussions.
        """
        integration = await self._get_integration(user_id)
        if kind == MERGE_REQUEST:
            discussions = await self._get_list(
                integration,
                f"/projects/{project_id}/merge_requests/{iid}/discussions",
                {"per_page": 50},
            )
            notes = flatten_discussions(discussions)
        else:
            notes = await self._get_list(
                integration,
                f"/projects/{project_id}/issues/{iid}/notes",
                {"sort": "asc", "order_by": "created_at", "per_page": 50},
            )
        return user_notes(notes)

    async def fetch_conversation_text(self, user_id: str, ref: ConversationRef) -> str:
        """Fetch an item and its discussion as a transcript.

        Returns an empty string when the item has fewer than
        ref.min_comments non-system notes.
        """
        if ref.project_id is None or ref.kind not in _ITEM_PATHS:
            raise ValueError(f"Not a GitLab item reference: {ref.source_key}")

        notes = await self.get_notes(user_id, ref.project_id, ref.kind, ref.external_id)
        if len(notes) < ref.min_comments:
            return ""
        item = await self.get_item(user_id, ref.project_id, ref.kind, ref.external_id)
        return format_item_conversation(ref.kind, item, notes)

    async def list_hooks(self, user_id: str, project_id: int) -> list[dict]:
        """List a project's webhooks."""
        integration = await self._get_integration(user_id)
        return await self._get_list(integration, f"/projects/{project_id}/hooks")

    async def create_hook(
        self, user_id: str, project_id: int, url: str, token: str | None = None
    ) -> dict:
        """Create a project webhook for issue, merge request and note events."""
        integration = await self._get_integration(user_id)
        payload: dict[str, Any] = {"url": url, **HOOK_EVENTS}
        if token:
            payload["token"] = token
        return await self._request(
            integration.gitlab_url,
            integration.access_token,
            "POST",
            f"/projects/{project_id}/hooks",
            json=payload,
        )

    async def ensure_hook(
        self, user_id: str, project_id: int, url: str, token: str | None = None
    ) -> tuple[dict, bool]:
        """Create the webhook unless one with the same URL exists.

        Returns:
            Tuple of (hook, created)
        """
        for hook in await self.list_hooks(user_id, project_id):
            if hook.get("url") == url:
                return hook, False
        hook = await self.create_hook(user_id, project_id, url, token)
        logger.info("GitLab webhook created", project_id=project_id, url=url)
        return hook, True

    async def mark_synced(self, user_id: str) -> None:
        """Record a completed GitLab sweep."""
        await self._integrations.touch_last_sync("gitlab", user_id)
