"""API router aggregation."""

from fastapi import APIRouter

from src.api.decisions import router as decisions_router
from src.api.gitlab import router as gitlab_router
from src.api.health import router as health_router
from src.api.integrations import router as integrations_router
from src.api.meetings import router as meetings_router
from src.api.search import router as search_router
from src.api.slack import router as slack_router
from src.api.sync import router as sync_router
from src.api.webhooks import router as webhooks_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(decisions_router)
# /search and /ask
api_router.include_router(search_router)
api_router.include_router(meetings_router)
api_router.include_router(integrations_router)
# Browsing and on-demand analysis of connected sources
api_router.include_router(slack_router)
api_router.include_router(gitlab_router)
api_router.include_router(sync_router)
# Unauthenticated by X-User-Id; each receiver verifies its own signature
api_router.include_router(webhooks_router)
