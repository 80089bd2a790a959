"""GitLab webhook receiver for issue, merge request and note events."""

import json

import structlog

from src.adapters.gitlab_adapter import ISSUE, MERGE_REQUEST, GitLabAdapter
from src.config import settings
from src.repositories.integration_repo import IntegrationRepository
from src.sync.schemas import CandidateStatus
from src.webhooks.processor import WebhookProcessor
from src.webhooks.schemas import WebhookOutcome
from src.webhooks.verification import verify_gitlab_token

logger = structlog.get_logger()

ISSUE_ACTIONS = {"open", "reopen"}
MERGE_REQUEST_ACTIONS = {"open", "reopen", "merge"}
NOTEABLE_KINDS = {"Issue": ISSUE, "MergeRequest": MERGE_REQUEST}


def resolve_target(payload: dict) -> tuple[str, dict] | str:
    """Work out which issue or merge request an event is about.

    Returns:
        (kind, item) where item has iid/title/web_url, or a skip message
    """
    kind = payload.get("object_kind")
    attributes = payload.get("object_attributes") or {}

    if kind == "issue":
        if attributes.get("action") not in ISSUE_ACTIONS:
            return "Issue action not handled"
        return ISSUE, attributes
    if kind == "merge_request":
        if attributes.get("action") not in MERGE_REQUEST_ACTIONS:
            return "Merge request action not handled"
        return MERGE_REQUEST, attributes
    if kind == "note":
        target_kind = NOTEABLE_KINDS.get(attributes.get("noteable_type", ""))
        if target_kind is None:
            return "Not an issue or MR note"
        item = payload.get(target_kind) or {}
        if "iid" not in item:
            return "Note event missing target"
        return target_kind, item
    return "Event type not handled"


class GitLabWebhookHandler:
    """Verifies and dispatches GitLab webhook events.

    The event's project URL is matched by exact origin against stored
    integrations; the pipeline runs once per matching integration, each
    with its own credential.
    """

    def __init__(
        self,
        integrations: IntegrationRepository,
        gitlab_adapter: GitLabAdapter,
        processor: WebhookProcessor,
        secret: str | None = None,
    ):
        self._integrations = integrations
        self._gitlab = gitlab_adapter
        self._processor = processor
        self._secret = secret or settings.gitlab_webhook_secret

    async def handle(self, body: bytes, token: str | None) -> WebhookOutcome:
        """Authenticate and process one request.

        Raises:
            InvalidSignatureError: If the token check fails
            ValueError: If the body is not a JSON object
        """
        verify_gitlab_token(token, self._secret)
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("GitLab payload must be a JSON object")
        return await self.handle_event(payload)

    async def handle_event(self, payload: dict) -> WebhookOutcome:
        """Process an authenticated event payload."""
        event_type = payload.get("object_kind", "unknown")
        target = resolve_target(payload)
        if isinstance(target, str):
            return WebhookOutcome(message=target)
        kind, item = target

        project = payload.get("project") or {}
        project_id, project_url = project.get("id"), project.get("web_url")
        if project_id is None or not project_url:
            return WebhookOutcome(message="Event missing project")

        integrations = await self._integrations.find_gitlab_by_origin(project_url)
        if not integrations:
            logger.info("No GitLab integration for project", project_url=project_url)
            return WebhookOutcome(message="Integration not found")

        ref = self._gitlab.build_ref(
            project_id,
            kind,
            {
                "iid": item["iid"],
                "title": item.get("title", ""),
                "web_url": item.get("url") or item.get("web_url"),
            },
        )
        summary = {"project_id": project_id, "iid": item["iid"], "kind": kind}

        decision_ids = []
        for integration in integrations:
            result = await self._processor.run(
                integration.user_id, event_type, summary, ref, self._gitlab
            )
            if result.status == CandidateStatus.DECISION_CREATED:
                decision_ids.append(result.decision_id)

        return WebhookOutcome(
            message=(
                "Decision detected and saved" if decision_ids else "No decision detected"
            ),
            processed=len(integrations),
            decision_ids=decision_ids,
        )
