"""GitLab browsing endpoints and interactive issue analysis."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from src.adapters.base import UpstreamError
from src.adapters.gitlab_adapter import ISSUE, GitLabAdapter, format_item_conversation
from src.api.analysis import AnalyzeResponse, build_analyze_response
from src.api.deps import get_decision_repo, get_gitlab_adapter, get_pipeline, get_user_id
from src.config import settings
from src.repositories.decision_repo import DecisionRepository
from src.sync.pipeline import DecisionPipeline

logger = structlog.get_logger()

router = APIRouter(prefix="/gitlab", tags=["gitlab"])


class GitLabProject(BaseModel):
    id: int
    name: str
    path_with_namespace: str | None = None
    description: str | None = None
    visibility: str | None = None
    created_at: datetime | None = None
    last_activity_at: datetime | None = None
    web_url: str | None = None


class ProjectListResponse(BaseModel):
    success: bool = True
    projects: list[GitLabProject]
    count: int


class GitLabIssue(BaseModel):
    id: int
    iid: int
    title: str
    description: str | None = None
    state: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    author: str | None = None
    assignees: list[str] = []
    labels: list[str] = []
    web_url: str | None = None
    user_notes_count: int = 0


class IssueListResponse(BaseModel):
    success: bool = True
    issues: list[GitLabIssue]
    count: int


def _user_name(user: dict | None) -> str | None:
    if not user:
        return None
    return user.get("name") or user.get("username")


def to_project(project: dict) -> GitLabProject:
    return GitLabProject(
        id=project["id"],
        name=project.get("name", ""),
        path_with_namespace=project.get("path_with_namespace"),
        description=project.get("description"),
        visibility=project.get("visibility"),
        created_at=project.get("created_at"),
        last_activity_at=project.get("last_activity_at"),
        web_url=project.get("web_url"),
    )


def to_issue(issue: dict) -> GitLabIssue:
    return GitLabIssue(
        id=issue["id"],
        iid=issue["iid"],
        title=issue.get("title", ""),
        description=issue.get("description"),
        state=issue.get("state"),
        created_at=issue.get("created_at"),
        updated_at=issue.get("updated_at"),
        closed_at=issue.get("closed_at"),
        author=_user_name(issue.get("author")),
        assignees=[
            name for name in map(_user_name, issue.get("assignees") or []) if name
        ],
        labels=issue.get("labels") or [],
        web_url=issue.get("web_url"),
        user_notes_count=issue.get("user_notes_count") or 0,
    )


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    user_id: str = Depends(get_user_id),
    adapter: GitLabAdapter = Depends(get_gitlab_adapter),
) -> ProjectListResponse:
    """List projects the caller is a member of."""
    projects = [to_project(p) for p in await adapter.list_projects(user_id)]
    return ProjectListResponse(projects=projects, count=len(projects))


@router.get("/projects/{project_id}/issues", response_model=IssueListResponse)
async def list_issues(
    project_id: int,
    state: str = Query(default="all", pattern="^(all|opened|closed)$"),
    user_id: str = Depends(get_user_id),
    adapter: GitLabAdapter = Depends(get_gitlab_adapter),
) -> IssueListResponse:
    """List a project's issues, most recently updated first."""
    issues = [to_issue(i) for i in await adapter.list_issues(user_id, project_id, state)]
    return IssueListResponse(issues=issues, count=len(issues))


@router.post(
    "/projects/{project_id}/issues/{issue_iid}/analyze", response_model=AnalyzeResponse
)
async def analyze_issue(
    project_id: int,
    issue_iid: int,
    user_id: str = Depends(get_user_id),
    adapter: GitLabAdapter = Depends(get_gitlab_adapter),
    decisions: DecisionRepository = Depends(get_decision_repo),
    pipeline: DecisionPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    """Analyze an issue's discussion now.

    Uses the sync threshold and no cooldown. An issue without comments
    is not analyzed.
    """
    try:
        issue = await adapter.get_item(user_id, project_id, ISSUE, str(issue_iid))
    except UpstreamError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=404, detail="Issue not found")
        raise
    notes = await adapter.get_notes(user_id, project_id, ISSUE, str(issue_iid))
    text = format_item_conversation(ISSUE, issue, notes) if notes else ""

    logger.info(
        "Analyzing GitLab issue",
        user_id=user_id,
        project_id=project_id,
        issue_iid=issue_iid,
        notes=len(notes),
    )
    result = await pipeline.analyze(
        user_id,
        adapter.build_ref(project_id, ISSUE, issue),
        text,
        settings.sync_confidence_threshold,
    )
    return await build_analyze_response(
        user_id,
        result,
        decisions,
        "No clear decision detected in this issue discussion",
        empty_message="No discussion found in this issue to analyze",
    )
