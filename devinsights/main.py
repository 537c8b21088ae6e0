"""FastAPI application factory for the DevInsights backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devinsights.api import cache as cache_routes
from devinsights.api import github as github_routes
from devinsights.cache.factory import build_cache
from devinsights.config import get_settings
from devinsights.exceptions import GitHubAPIError
from devinsights.middleware.auth import AuthMiddleware
from devinsights.services.dashboard import DashboardService
from devinsights.services.github import GitHubClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: build the shared cache and GitHub clients. Shutdown: drain and close them."""
    settings = get_settings()

    app.state.cache = build_cache(settings)
    app.state.github = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        timeout_seconds=settings.github_timeout_seconds,
    )
    app.state.dashboard = DashboardService(app.state.github, app.state.cache)
    if not settings.github_token:
        logger.warning("GITHUB_TOKEN not set; GitHub requests are unauthenticated and heavily rate limited")

    yield

    # Shutdown
    await app.state.cache.close()
    await app.state.github.aclose()


async def _github_error_handler(request: Request, exc: GitHubAPIError) -> JSONResponse:
    return JSONResponse(
        {
            "success": False,
            "error": {
                "type": exc.error_type,
                "message": exc.message,
                "details": exc.details,
            },
        },
        status_code=exc.status_code if 400 <= exc.status_code < 600 else 500,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="GitHub activity analytics behind a two-tier cache.",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    origins = settings.get_cors_origins()
    allow_credentials = origins != ["*"]
    if not allow_credentials:
        logger.warning("CORS_ORIGINS=* disables credentials; use exact origins in production")

    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GitHubAPIError, _github_error_handler)

    app.include_router(github_routes.router, prefix="/api/github", tags=["github"])
    app.include_router(cache_routes.router, prefix="/api/cache", tags=["cache"])

    @app.get("/health")
    async def health():
        hot_ok = False
        cache = getattr(app.state, "cache", None)
        ping = getattr(cache.hot, "ping", None) if cache else None
        if ping is not None:
            hot_ok = await ping()

        return {
            "status": "ok",
            "version": settings.version,
            "stage": settings.stage,
            "hot_cache": "connected" if hot_ok else "unavailable",
        }

    return app


app = create_app()
