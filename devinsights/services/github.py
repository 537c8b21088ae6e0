"""
Async GitHub REST client returning typed activity records.

Covers the four reads the dashboard needs: a user's repositories and a
repository's commits, pull requests and issues.  Responses are reduced
to the fields analytics uses; any HTTP failure becomes a
:class:`GitHubAPIError` tagged with the call that failed.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from devinsights.exceptions import GitHubAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "DevInsights-SaaS"
DEFAULT_COMMIT_WINDOW_DAYS = 30


class TimeSpan(BaseModel):
    """Elapsed time between two timestamps.

    Attributes:
        hours: Whole hours elapsed.
        days: Whole days elapsed.
        formatted: ``"3d 4h"`` or ``"5h"``.
    """

    hours: int
    days: int
    formatted: str


class Actor(BaseModel):
    login: str
    avatar: Optional[str] = None


class Repository(BaseModel):
    id: int
    name: str
    full_name: str
    private: bool = False
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    updated_at: datetime
    created_at: datetime


class CommitAuthor(BaseModel):
    name: str
    email: Optional[str] = None
    date: datetime


class Commit(BaseModel):
    sha: str
    message: str
    author: CommitAuthor
    url: Optional[str] = None
    repository: Optional[str] = None


class PullRequest(BaseModel):
    id: int
    number: int
    title: str
    state: str
    author: Actor
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    time_to_close: Optional[TimeSpan] = None
    time_to_merge: Optional[TimeSpan] = None
    reviewers: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    repository: Optional[str] = None


class IssueLabel(BaseModel):
    name: str
    color: Optional[str] = None


class Issue(BaseModel):
    id: int
    number: int
    title: str
    state: str
    author: Actor
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    time_to_close: Optional[TimeSpan] = None
    age: TimeSpan
    labels: List[IssueLabel] = Field(default_factory=list)
    assignees: List[str] = Field(default_factory=list)
    comments: int = 0
    is_bug: bool = False
    is_feature: bool = False
    priority: str = "medium"
    repository: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the UTC instant *days* before *now*."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def time_between(start: Any, end: Any) -> TimeSpan:
    """Whole hours and days from *start* to *end* (ISO strings or datetimes)."""
    delta = _parse_ts(end) - _parse_ts(start)
    hours = int(delta.total_seconds() // 3600)
    days = hours // 24
    formatted = f"{days}d {hours % 24}h" if days > 0 else f"{hours}h"
    return TimeSpan(hours=hours, days=days, formatted=formatted)


def detect_priority(label_names: List[str]) -> str:
    joined = " ".join(name.lower() for name in label_names)
    if "critical" in joined or "urgent" in joined:
        return "high"
    if "low" in joined or "minor" in joined:
        return "low"
    return "medium"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GitHubClient:
    """Thin async wrapper over the GitHub v3 REST API.

    One instance is shared by the whole process; call :meth:`aclose`
    on shutdown.

    Args:
        token: Personal access token; anonymous requests when ``None``.
        base_url: API root, overridable for GitHub Enterprise.
        timeout_seconds: Per-request timeout.
        transport: Optional httpx transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Dict[str, Any], error_type: str) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "GitHub API error",
                extra={"path": path, "status_code": exc.response.status_code, "error_type": error_type},
            )
            raise GitHubAPIError(
                exc.response.reason_phrase or "GitHub request failed",
                status_code=exc.response.status_code,
                error_type=error_type,
                details=str(exc),
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "GitHub transport error",
                extra={"path": path, "error_type": error_type, "error": str(exc)},
            )
            raise GitHubAPIError(
                "Something went wrong while processing your request.",
                error_type=error_type,
                details=str(exc),
            ) from exc
        return response.json()

    async def get_user_repositories(self, username: str, limit: int = 10) -> List[Repository]:
        """Most recently updated non-fork repositories of *username*."""
        logger.info("Fetching repositories for %s", username)
        raw = await self._get(
            f"/users/{username}/repos",
            {"sort": "updated", "direction": "desc", "per_page": limit},
            "FETCH_REPOS_ERROR",
        )
        repos = [
            Repository(
                id=r["id"],
                name=r["name"],
                full_name=r["full_name"],
                private=r.get("private", False),
                language=r.get("language"),
                stars=r.get("stargazers_count", 0),
                forks=r.get("forks_count", 0),
                updated_at=r["updated_at"],
                created_at=r["created_at"],
            )
            for r in raw
            if not r.get("fork")
        ]
        return repos[:limit]

    async def get_repository_commits(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Commit]:
        """Commits since *since* (default 30 days ago), newest first."""
        since = since or days_ago(DEFAULT_COMMIT_WINDOW_DAYS)
        raw = await self._get(
            f"/repos/{owner}/{repo}/commits",
            {"since": since.isoformat(), "per_page": limit},
            "FETCH_COMMITS_ERROR",
        )
        commits = [
            Commit(
                sha=c["sha"],
                message=c["commit"]["message"],
                author=CommitAuthor(
                    name=c["commit"]["author"]["name"],
                    email=c["commit"]["author"].get("email"),
                    date=c["commit"]["author"]["date"],
                ),
                url=c.get("html_url"),
                repository=repo,
            )
            for c in raw
        ]
        commits.sort(key=lambda c: c.author.date, reverse=True)
        return commits

    async def get_repository_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        limit: int = 50,
    ) -> List[PullRequest]:
        raw = await self._get(
            f"/repos/{owner}/{repo}/pulls",
            {"state": state, "sort": "updated", "direction": "desc", "per_page": limit},
            "FETCH_PULL_ERROR",
        )
        return [
            PullRequest(
                id=pr["id"],
                number=pr["number"],
                title=pr["title"],
                state=pr["state"],
                author=Actor(login=pr["user"]["login"], avatar=pr["user"].get("avatar_url")),
                created_at=pr["created_at"],
                updated_at=pr["updated_at"],
                closed_at=pr.get("closed_at"),
                merged_at=pr.get("merged_at"),
                time_to_close=time_between(pr["created_at"], pr["closed_at"]) if pr.get("closed_at") else None,
                time_to_merge=time_between(pr["created_at"], pr["merged_at"]) if pr.get("merged_at") else None,
                reviewers=[r["login"] for r in pr.get("requested_reviewers") or []],
                labels=[label["name"] for label in pr.get("labels") or []],
                repository=repo,
            )
            for pr in raw
        ]

    async def get_repository_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        limit: int = 50,
    ) -> List[Issue]:
        """Issues only; GitHub lists pull requests here too and they are dropped."""
        raw = await self._get(
            f"/repos/{owner}/{repo}/issues",
            {"state": state, "sort": "updated", "direction": "desc", "per_page": limit},
            "FETCH_ISSUE_ERROR",
        )
        now = datetime.now(timezone.utc)
        issues = []
        for i in raw:
            if i.get("pull_request"):
                continue
            label_names = [label["name"] for label in i.get("labels") or []]
            lowered = [name.lower() for name in label_names]
            issues.append(
                Issue(
                    id=i["id"],
                    number=i["number"],
                    title=i["title"],
                    state=i["state"],
                    author=Actor(login=i["user"]["login"], avatar=i["user"].get("avatar_url")),
                    created_at=i["created_at"],
                    updated_at=i["updated_at"],
                    closed_at=i.get("closed_at"),
                    time_to_close=time_between(i["created_at"], i["closed_at"]) if i.get("closed_at") else None,
                    age=time_between(i["created_at"], now),
                    labels=[IssueLabel(name=label["name"], color=label.get("color")) for label in i.get("labels") or []],
                    assignees=[a["login"] for a in i.get("assignees") or []],
                    comments=i.get("comments", 0),
                    is_bug=any("bug" in name for name in lowered),
                    is_feature=any("feature" in name or "enhancement" in name for name in lowered),
                    priority=detect_priority(label_names),
                    repository=repo,
                )
            )
        return issues
