"""
ActivityAnalyzer -- aggregate metrics over GitHub activity records.

Pure computations over the typed records returned by
:class:`~devinsights.services.github.GitHubClient`.  Every method
accepts an empty list and returns zeroed metrics for it.
"""

import logging
import math
from collections import Counter, defaultdict
from typing import Any, Dict, List, Sequence

from devinsights.services.github import Commit, Issue, PullRequest, Repository

logger = logging.getLogger(__name__)

STALE_ISSUE_DAYS = 30


class ActivityAnalyzer:
    """Compute dashboard metrics from commits, pull requests and issues."""

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def commit_trends(self, commits: Sequence[Commit]) -> List[Dict[str, Any]]:
        """Commits per calendar day, oldest day first.

        Returns:
            ``[{"date": "YYYY-MM-DD", "count": n, "authors": k}, ...]``
        """
        by_date: Dict[str, List[Commit]] = defaultdict(list)
        for commit in commits:
            by_date[commit.author.date.date().isoformat()].append(commit)
        return [
            {
                "date": day,
                "count": len(day_commits),
                "authors": len({c.author.name for c in day_commits}),
            }
            for day, day_commits in sorted(by_date.items())
        ]

    def author_productivity(self, commits: Sequence[Commit]) -> List[Dict[str, Any]]:
        """Per-author commit counts, busiest author first."""
        stats: Dict[str, Dict[str, Any]] = {}
        for commit in commits:
            author = commit.author
            entry = stats.setdefault(
                author.name,
                {
                    "name": author.name,
                    "email": author.email,
                    "commits": 0,
                    "first_commit": author.date,
                    "last_commit": author.date,
                    "active_days": set(),
                },
            )
            entry["commits"] += 1
            entry["active_days"].add(author.date.date())
            entry["first_commit"] = min(entry["first_commit"], author.date)
            entry["last_commit"] = max(entry["last_commit"], author.date)

        result = [
            {
                **entry,
                "first_commit": entry["first_commit"].isoformat(),
                "last_commit": entry["last_commit"].isoformat(),
                "active_days": len(entry["active_days"]),
            }
            for entry in stats.values()
        ]
        result.sort(key=lambda e: e["commits"], reverse=True)
        return result

    def date_span_days(self, commits: Sequence[Commit]) -> int:
        """Days between the first and last commit; at least 1 when any exist."""
        if not commits:
            return 0
        dates = [c.author.date for c in commits]
        span = math.ceil((max(dates) - min(dates)).total_seconds() / 86400)
        return span or 1

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def most_active_repository(
        self, repositories: Sequence[Repository], commits: Sequence[Commit]
    ) -> str:
        """Repository with the most commits, else the most recently updated."""
        if not commits:
            if repositories:
                return max(repositories, key=lambda r: r.updated_at).name
            return "Unknown"
        counts = Counter(c.repository or "Unknown" for c in commits)
        return counts.most_common(1)[0][0]

    def activity_score(self, commits: int, authors: int, days: int) -> float:
        """0-10 score averaging volume, team size and consistency."""
        if commits == 0:
            return 0.0
        commit_score = min(commits / 10, 10)
        author_score = min(authors * 2, 10)
        consistency_score = min((commits / days) * 10, 10) if days > 0 else 0
        return round((commit_score + author_score + consistency_score) / 3, 1)

    def repository_metrics(
        self, repositories: Sequence[Repository], commits: Sequence[Commit]
    ) -> Dict[str, Any]:
        if not repositories:
            return {
                "total_repositories": 0,
                "total_commits": 0,
                "unique_contributors": 0,
                "commits_per_day": 0.0,
                "most_active_repo": "N/A",
                "activity_score": 0.0,
            }
        total = len(commits)
        contributors = len({c.author.email for c in commits})
        span = self.date_span_days(commits)
        return {
            "total_repositories": len(repositories),
            "total_commits": total,
            "unique_contributors": contributors,
            "commits_per_day": round(total / span, 2) if span > 0 else 0.0,
            "most_active_repo": self.most_active_repository(repositories, commits),
            "activity_score": self.activity_score(total, contributors, span),
        }

    # ------------------------------------------------------------------
    # Pull requests and issues
    # ------------------------------------------------------------------

    def pull_request_metrics(self, pull_requests: Sequence[PullRequest]) -> Dict[str, Any]:
        merged = [pr for pr in pull_requests if pr.merged_at is not None]
        merge_hours = [pr.time_to_merge.hours for pr in merged if pr.time_to_merge]
        total = len(pull_requests)
        return {
            "total": total,
            "merged": len(merged),
            "open": sum(1 for pr in pull_requests if pr.state == "open"),
            "closed": sum(1 for pr in pull_requests if pr.state == "closed"),
            "avg_time_to_merge_hours": round(sum(merge_hours) / len(merged)) if merged else 0,
            "merge_rate": round(len(merged) / total * 100, 1) if total else 0.0,
        }

    def issue_metrics(self, issues: Sequence[Issue]) -> Dict[str, Any]:
        closed = [i for i in issues if i.state == "closed"]
        resolution_hours = [i.time_to_close.hours for i in closed if i.time_to_close]
        return {
            "total": len(issues),
            "open": sum(1 for i in issues if i.state == "open"),
            "closed": len(closed),
            "bugs": sum(1 for i in issues if i.is_bug),
            "features": sum(1 for i in issues if i.is_feature),
            "stale": sum(1 for i in issues if i.state == "open" and i.age.days > STALE_ISSUE_DAYS),
            "avg_resolution_hours": (
                round(sum(resolution_hours) / len(resolution_hours)) if resolution_hours else 0
            ),
        }

    def health_score(
        self,
        commit_count: int,
        pull_requests: Sequence[PullRequest],
        issues: Sequence[Issue],
    ) -> int:
        """0-100 score starting at 50, rewarding commits, merges and closed issues."""
        score = 50.0
        if commit_count > 0:
            score += min(commit_count / 5, 20)
        if pull_requests:
            merged = sum(1 for pr in pull_requests if pr.merged_at is not None)
            score += merged / len(pull_requests) * 15
        if issues:
            closed = sum(1 for i in issues if i.state == "closed")
            score += closed / len(issues) * 15
        return min(round(score), 100)
