"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.adapters import (
    CalendarAdapter,
    GitLabAdapter,
    NotConnectedError,
    SlackAdapter,
    UpstreamError,
)
from src.api.router import api_router
from src.config import settings
from src.db.turso import TursoClient
from src.integration import NotificationService
from src.repositories import (
    DecisionRepository,
    IntegrationRepository,
    MeetingRepository,
    WebhookLogRepository,
)
from src.search.decision_search import DecisionSearch
from src.search.semantic_index import SemanticIndex
from src.services.brief_generator import DecisionBriefGenerator
from src.services.decision_detector import DecisionDetector
from src.services.evaluation import EvaluationService
from src.services.llm_client import LLMClient, LLMClientError, ModelOutputParseError
from src.services.question_answerer import QuestionAnswerer
from src.sync.orchestrator import SyncOrchestrator
from src.sync.pipeline import DecisionPipeline
from src.sync.scheduler import sync_scheduler_lifespan
from src.webhooks import (
    GitLabWebhookHandler,
    InvalidSignatureError,
    SlackWebhookHandler,
    WebhookProcessor,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _warn_on_threshold_mismatch() -> None:
    """The sync, webhook and meeting paths use separate thresholds."""
    thresholds = {
        "sync": settings.sync_confidence_threshold,
        "webhook": settings.webhook_confidence_threshold,
        "meeting": settings.meeting_confidence_threshold,
    }
    if len(set(thresholds.values())) > 1:
        logger.warning(
            "Confidence thresholds differ between analysis paths: "
            + ", ".join(f"{k}={v}" for k, v in thresholds.items())
        )


async def _initialize_semantic_index(app: FastAPI) -> SemanticIndex | None:
    """Build the optional semantic index; search falls back to keywords without it."""
    index = SemanticIndex.from_settings()
    if index is None:
        logger.info("Semantic index disabled (no QDRANT_URL or QDRANT_PATH)")
    else:
        try:
            await index.ensure_collection()
            logger.info(f"Semantic index ready: {settings.qdrant_collection}")
        except Exception as e:
            logger.warning(f"Semantic index unavailable at startup: {e}")
    app.state.semantic_index = index
    return index


def build_services(app: FastAPI, db: TursoClient, index: SemanticIndex | None) -> None:
    """Wire adapters, services and handlers onto app.state."""
    decision_repo = DecisionRepository(db)
    meeting_repo = MeetingRepository(db)
    integration_repo = IntegrationRepository(db)
    webhook_log_repo = WebhookLogRepository(db)
    app.state.decision_repo = decision_repo
    app.state.meeting_repo = meeting_repo
    app.state.integration_repo = integration_repo
    app.state.webhook_log_repo = webhook_log_repo

    slack_adapter = SlackAdapter(integration_repo)
    gitlab_adapter = GitLabAdapter(integration_repo)
    calendar_adapter = CalendarAdapter(integration_repo, meeting_repo)
    app.state.slack_adapter = slack_adapter
    app.state.gitlab_adapter = gitlab_adapter
    app.state.calendar_adapter = calendar_adapter

    llm_client = LLMClient()
    search = DecisionSearch(decision_repo, index)
    notifier = NotificationService(slack_adapter, integration_repo)
    pipeline = DecisionPipeline(
        decisions=decision_repo,
        meetings=meeting_repo,
        detector=DecisionDetector(llm_client),
        generator=DecisionBriefGenerator(llm_client),
        search=search,
        notifier=notifier,
    )
    app.state.decision_search = search
    app.state.pipeline = pipeline
    app.state.orchestrator = SyncOrchestrator(
        pipeline,
        [slack_adapter, gitlab_adapter, calendar_adapter],
        integration_repo,
        search=search,
    )
    app.state.question_answerer = QuestionAnswerer(decision_repo, llm_client, search)
    app.state.evaluation_service = EvaluationService(decision_repo)

    processor = WebhookProcessor(pipeline, webhook_log_repo)
    app.state.slack_webhook_handler = SlackWebhookHandler(
        integration_repo, slack_adapter, processor
    )
    app.state.gitlab_webhook_handler = GitLabWebhookHandler(
        integration_repo, gitlab_adapter, processor
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Connect the database and create tables
    - Build the semantic index (optional) and all services
    - Start the auto-sync scheduler when an interval is configured

    Shutdown:
    - Stop the scheduler, close the index and database
    """
    logger.info(f"Starting {settings.app_name}...")
    _warn_on_threshold_mismatch()

    db = TursoClient()
    await db.connect()
    app.state.db = db
    logger.info(f"Database connected: {db.url}")

    index = await _initialize_semantic_index(app)
    build_services(app, db, index)

    for repo in (
        app.state.decision_repo,
        app.state.meeting_repo,
        app.state.integration_repo,
        app.state.webhook_log_repo,
    ):
        await repo.initialize()
    logger.info("Repositories initialized")

    async with sync_scheduler_lifespan(
        app.state.orchestrator, settings.auto_sync_interval_minutes
    ):
        yield

    logger.info(f"Shutting down {settings.app_name}...")
    if index is not None:
        index.close()
    await db.close()
    logger.info("Database connection closed")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain errors into the JSON error envelope."""

    @app.exception_handler(NotConnectedError)
    async def not_connected_handler(request: Request, exc: NotConnectedError):
        return _error(400, str(exc))

    @app.exception_handler(UpstreamError)
    async def upstream_handler(request: Request, exc: UpstreamError):
        logger.warning(f"Upstream error on {request.url.path}: {exc}")
        return _error(502, str(exc))

    @app.exception_handler(InvalidSignatureError)
    async def signature_handler(request: Request, exc: InvalidSignatureError):
        logger.warning(f"Rejected {exc.source} webhook: {exc}")
        return _error(401, "Invalid signature")

    @app.exception_handler(LLMClientError)
    async def llm_handler(request: Request, exc: LLMClientError):
        return _error(502, str(exc))

    @app.exception_handler(ModelOutputParseError)
    async def parse_handler(request: Request, exc: ModelOutputParseError):
        return _error(502, "Model returned an unreadable response")

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        return _error(422, errors or "Invalid request")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Decision memory: detects and records decisions from meetings, "
        "Slack channels and GitLab discussions",
        version=settings.app_version,
        lifespan=lifespan,
    )
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
