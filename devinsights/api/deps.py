"""FastAPI dependencies resolving the process-wide clients from app.state."""

from fastapi import HTTPException, Request

from devinsights.cache.multi_tier import MultiTierCache
from devinsights.services.dashboard import DashboardService
from devinsights.services.github import GitHubClient


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialised")
    return value


def get_cache(request: Request) -> MultiTierCache:
    return _state(request, "cache")


def get_github(request: Request) -> GitHubClient:
    return _state(request, "github")


def get_dashboard(request: Request) -> DashboardService:
    return _state(request, "dashboard")
