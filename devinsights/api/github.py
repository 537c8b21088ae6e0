"""GitHub activity routes.

GET /api/github/repos/{username}                  repository list
GET /api/github/repos/{owner}/{repo}/commits      commits + author summary
GET /api/github/repos/{owner}/{repo}/pulls        pull requests + metrics
GET /api/github/repos/{owner}/{repo}/issues       issues + metrics
GET /api/github/analytics/{username}              cached dashboard analytics
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from devinsights.api.deps import get_dashboard, get_github
from devinsights.services.analytics import ActivityAnalyzer
from devinsights.services.dashboard import DashboardResult, DashboardService
from devinsights.services.github import GitHubClient, days_ago

router = APIRouter()

_analyzer = ActivityAnalyzer()
TOP_CONTRIBUTORS = 5


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/repos/{username}")
async def user_repositories(
    username: str,
    limit: int = Query(10, ge=1, le=100),
    github: GitHubClient = Depends(get_github),
):
    repos = await github.get_user_repositories(username, limit=limit)
    return {
        "success": True,
        "username": username,
        "count": len(repos),
        "data": [r.model_dump(mode="json") for r in repos],
        "fetched_at": _now(),
    }


@router.get("/repos/{owner}/{repo}/commits")
async def repository_commits(
    owner: str,
    repo: str,
    days: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=100),
    github: GitHubClient = Depends(get_github),
):
    since = days_ago(days) if days else None
    commits = await github.get_repository_commits(owner, repo, since=since, limit=limit)
    analytics = {
        "total_commits": len(commits),
        "unique_authors": len({c.author.email for c in commits}),
        "date_range": {
            "from": commits[-1].author.date.isoformat() if commits else None,
            "to": commits[0].author.date.isoformat() if commits else None,
        },
        "authors_frequency": dict(Counter(c.author.name for c in commits)),
    }
    return {
        "success": True,
        "repository": f"{owner}/{repo}",
        "analytics": analytics,
        "commits": [c.model_dump(mode="json") for c in commits],
        "fetched_at": _now(),
    }


@router.get("/repos/{owner}/{repo}/pulls")
async def repository_pull_requests(
    owner: str,
    repo: str,
    state: str = Query("all", pattern="^(open|closed|all)$"),
    limit: int = Query(50, ge=1, le=100),
    github: GitHubClient = Depends(get_github),
):
    pull_requests = await github.get_repository_pull_requests(owner, repo, state=state, limit=limit)
    analytics = _analyzer.pull_request_metrics(pull_requests)
    analytics["top_contributors"] = [
        {"author": login, "prs": count}
        for login, count in Counter(pr.author.login for pr in pull_requests).most_common(TOP_CONTRIBUTORS)
    ]
    return {
        "success": True,
        "repository": f"{owner}/{repo}",
        "analytics": analytics,
        "pull_requests": [pr.model_dump(mode="json") for pr in pull_requests],
        "fetched_at": _now(),
    }


@router.get("/repos/{owner}/{repo}/issues")
async def repository_issues(
    owner: str,
    repo: str,
    state: str = Query("all", pattern="^(open|closed|all)$"),
    limit: int = Query(50, ge=1, le=100),
    github: GitHubClient = Depends(get_github),
):
    issues = await github.get_repository_issues(owner, repo, state=state, limit=limit)
    analytics = _analyzer.issue_metrics(issues)
    analytics["by_priority"] = {
        level: sum(1 for i in issues if i.priority == level) for level in ("high", "medium", "low")
    }
    analytics["top_reporters"] = [
        {"author": login, "issues": count}
        for login, count in Counter(i.author.login for i in issues).most_common(TOP_CONTRIBUTORS)
    ]
    return {
        "success": True,
        "repository": f"{owner}/{repo}",
        "analytics": analytics,
        "issues": [i.model_dump(mode="json") for i in issues],
        "fetched_at": _now(),
    }


@router.get("/analytics/{username}", response_model=DashboardResult)
async def dashboard_analytics(
    username: str,
    days: int = Query(30, ge=1, le=365),
    repos_limit: int = Query(5, ge=1, le=10),
    force_refresh: bool = False,
    dashboard: DashboardService = Depends(get_dashboard),
):
    """Dashboard analytics, served from cache unless ``force_refresh``."""
    return await dashboard.get_dashboard(
        username, days=days, repos_limit=repos_limit, force_refresh=force_refresh
    )
