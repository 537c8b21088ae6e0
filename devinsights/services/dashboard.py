"""
Dashboard aggregation: cached analytics for a GitHub user.

Flow:
1. Unless ``force_refresh``, ask the multi-tier cache.
2. On a miss, fetch repositories, then commits / PRs / issues for the
   first ``repos_limit`` of them.
3. Compute analytics and hand them to the cache as a background save;
   the response does not wait for the write.
"""

import logging
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from devinsights.cache.multi_tier import MultiTierCache
from devinsights.exceptions import GitHubAPIError
from devinsights.services.analytics import ActivityAnalyzer
from devinsights.services.github import Commit, GitHubClient, Issue, PullRequest, days_ago

logger = logging.getLogger(__name__)

REPOSITORY_FETCH_LIMIT = 10
PER_REPO_ITEM_LIMIT = 30
BREAKDOWN_SIZE = 5
TOP_AUTHORS = 10


class DashboardResult(BaseModel):
    username: str
    analytics: Dict[str, Any]
    raw_data: Dict[str, Any]
    cached: bool
    cache_age_seconds: Optional[int] = None
    cache_tier: Optional[str] = None
    generation_time_seconds: Optional[float] = None
    generated_at: datetime


class DashboardService:
    """Serve dashboard analytics, computing them only on a cache miss.

    Args:
        github: Shared GitHub client.
        cache: Shared multi-tier cache.
        analyzer: Metric calculator; a default one is created if omitted.
    """

    def __init__(
        self,
        github: GitHubClient,
        cache: MultiTierCache,
        analyzer: Optional[ActivityAnalyzer] = None,
    ) -> None:
        self._github = github
        self._cache = cache
        self._analyzer = analyzer or ActivityAnalyzer()

    async def get_dashboard(
        self,
        username: str,
        days: int = 30,
        repos_limit: int = 5,
        force_refresh: bool = False,
    ) -> DashboardResult:
        """Return analytics for *username*.

        Raises:
            GitHubAPIError: If the repository list itself cannot be fetched.
        """
        if not force_refresh:
            cached = await self._cache.get_analytics(username)
            if cached is not None and isinstance(cached.data, dict):
                return DashboardResult(
                    username=username,
                    analytics=cached.data.get("analytics", {}),
                    raw_data=cached.data.get("raw_data", {}),
                    cached=True,
                    cache_age_seconds=cached.cache_age_seconds,
                    cache_tier=cached.cache_tier,
                    generated_at=datetime.fromtimestamp(cached.cached_at / 1000, tz=timezone.utc),
                )
            logger.info("Cache miss for %s, generating fresh analytics", username)
        else:
            logger.info("Force refresh requested for %s", username)

        started = time.monotonic()
        payload = await self._build(username, days, repos_limit)
        elapsed = round(time.monotonic() - started, 2)

        self._cache.schedule_save(username, payload)

        return DashboardResult(
            username=username,
            analytics=payload["analytics"],
            raw_data=payload["raw_data"],
            cached=False,
            generation_time_seconds=elapsed,
            generated_at=datetime.now(timezone.utc),
        )

    async def _build(self, username: str, days: int, repos_limit: int) -> Dict[str, Any]:
        since = days_ago(days)
        repositories = await self._github.get_user_repositories(username, limit=REPOSITORY_FETCH_LIMIT)
        to_analyze = repositories[:repos_limit]

        commits: List[Commit] = []
        pull_requests: List[PullRequest] = []
        issues: List[Issue] = []
        for repo in to_analyze:
            try:
                commits.extend(
                    await self._github.get_repository_commits(username, repo.name, since=since)
                )
                pull_requests.extend(
                    await self._github.get_repository_pull_requests(
                        username, repo.name, limit=PER_REPO_ITEM_LIMIT
                    )
                )
                issues.extend(
                    await self._github.get_repository_issues(
                        username, repo.name, limit=PER_REPO_ITEM_LIMIT
                    )
                )
            except GitHubAPIError as exc:
                logger.warning("Skipping %s: %s", repo.name, exc.message)

        analyzer = self._analyzer
        repo_metrics = analyzer.repository_metrics(repositories, commits)
        pr_metrics = analyzer.pull_request_metrics(pull_requests)
        issue_metrics = analyzer.issue_metrics(issues)
        commits_by_repo = Counter(c.repository for c in commits)

        analytics = {
            "overview": {
                **repo_metrics,
                "total_pull_requests": pr_metrics["total"],
                "merged_prs": pr_metrics["merged"],
                "pr_merge_rate": pr_metrics["merge_rate"],
                "total_issues": issue_metrics["total"],
                "open_issues": issue_metrics["open"],
                "bugs_reported": issue_metrics["bugs"],
                "health_score": analyzer.health_score(len(commits), pull_requests, issues),
            },
            "commit_trends": analyzer.commit_trends(commits),
            "author_productivity": analyzer.author_productivity(commits)[:TOP_AUTHORS],
            "pull_request_metrics": pr_metrics,
            "issue_metrics": issue_metrics,
            "repository_breakdown": [
                {
                    "name": repo.name,
                    "language": repo.language,
                    "stars": repo.stars,
                    "commits": commits_by_repo.get(repo.name, 0),
                    "last_updated": repo.updated_at.isoformat(),
                }
                for repo in repositories[:BREAKDOWN_SIZE]
            ],
            "time_period": {
                "days": days,
                "from": since.isoformat(),
                "to": datetime.now(timezone.utc).isoformat(),
            },
        }
        raw_data = {
            "repositories": len(repositories),
            "commits": len(commits),
            "pull_requests": len(pull_requests),
            "issues": len(issues),
            "analyzed_repos": len(to_analyze),
        }
        return {"analytics": analytics, "raw_data": raw_data}
