"""Commit, pull request and review statistics from GitHub."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from services.errors import ValidationError
from services.models import (
    GitMetrics, PullRequest, Repository, TeamGitMetrics, parse_window_date
)
from services.upstream import ordered_fan_out

logger = logging.getLogger(__name__)

PR_STATUSES = ("open", "closed", "merged", "all")


def average_hours_to_merge(pull_requests: List[PullRequest]) -> float:
    """Mean merge time in hours over merged PRs, 0 when none merged."""
    merged = [pr for pr in pull_requests if pr.is_merged]
    if not merged:
        return 0
    return sum(pr.hours_to_merge for pr in merged) / len(merged)


def build_git_metrics(commits: list, pull_requests: List[PullRequest]) -> GitMetrics:
    # Review and line counts are not collected for these query shapes
    return GitMetrics(
        commit_count=len(commits),
        pr_count=len(pull_requests),
        pr_merged_count=sum(1 for pr in pull_requests if pr.is_merged),
        avg_pr_time_to_merge=average_hours_to_merge(pull_requests)
    )


class ActivityMetricsService:
    """Service for calculating source-control activity metrics."""

    def __init__(self, github_client, team_names: Optional[Dict[str, str]] = None,
                 max_workers: int = 1):
        self.github = github_client
        self.team_names = team_names or {}
        self.max_workers = max_workers

    def _in_window(self, moment: Optional[datetime], start: Optional[datetime],
                   end: Optional[datetime]) -> bool:
        if moment is None:
            return start is None and end is None
        if start and moment < start:
            return False
        if end and moment > end:
            return False
        return True

    def _window(self, start_date: str = None, end_date: str = None) -> tuple:
        return parse_window_date(start_date), parse_window_date(end_date, end_of_day=True)

    def _collect(self, repositories: List[str], start_date: str = None,
                 end_date: str = None) -> tuple:
        """Fetch commits and window-filtered PRs for each repository, in order."""
        start, end = self._window(start_date, end_date)

        def fetch(repository):
            commits = self.github.list_commits(
                repository,
                since=start.isoformat() if start else None,
                until=end.isoformat() if end else None
            )
            pulls = [
                pr for pr in self.github.list_pull_requests(repository)
                if self._in_window(pr.created_at, start, end)
            ]
            return commits, pulls

        commits, pull_requests = [], []
        for repo_commits, repo_pulls in ordered_fan_out(fetch, repositories, self.max_workers):
            commits.extend(repo_commits)
            pull_requests.extend(repo_pulls)
        return commits, pull_requests

    def list_repositories(self, team_id: Optional[str] = None) -> List[Repository]:
        repositories = self.github.list_repositories()
        if team_id is None:
            return repositories
        return [repo for repo in repositories if repo.team_id == team_id]

    def get_team_git_metrics(self, team_id: str, start_date: str = None,
                             end_date: str = None,
                             team_name: Optional[str] = None) -> TeamGitMetrics:
        """Team totals plus a per-author breakdown across the team's repositories."""
        repositories = [repo.name for repo in self.list_repositories(team_id)]
        commits, pull_requests = self._collect(repositories, start_date, end_date)

        authors = []
        for item in commits + pull_requests:
            if item.author and item.author not in authors:
                authors.append(item.author)

        member_metrics = {
            author: build_git_metrics(
                [c for c in commits if c.author == author],
                [pr for pr in pull_requests if pr.author == author]
            )
            for author in authors
        }

        logger.debug(
            f"Team {team_id}: {len(repositories)} repositories, {len(commits)} commits, "
            f"{len(pull_requests)} pull requests"
        )

        return TeamGitMetrics(
            team_id=team_id,
            team_name=team_name or self.team_names.get(team_id, "Unknown Team"),
            metrics=build_git_metrics(commits, pull_requests),
            member_metrics=member_metrics,
            repositories=repositories
        )

    def get_member_git_metrics(self, member_id: str, start_date: str = None,
                               end_date: str = None) -> GitMetrics:
        """Metrics for one author across every organization repository."""
        repositories = [repo.name for repo in self.list_repositories()]
        commits, pull_requests = self._collect(repositories, start_date, end_date)
        return build_git_metrics(
            [c for c in commits if c.author == member_id],
            [pr for pr in pull_requests if pr.author == member_id]
        )

    def get_repository_git_metrics(self, repository: str, start_date: str = None,
                                   end_date: str = None) -> GitMetrics:
        commits, pull_requests = self._collect([repository], start_date, end_date)
        return build_git_metrics(commits, pull_requests)

    def get_git_metrics(self, team_id: str = None, member_id: str = None,
                        repository: str = None, start_date: str = None,
                        end_date: str = None):
        """Dispatch to team, member or repository metrics, in that precedence."""
        if team_id:
            return self.get_team_git_metrics(team_id, start_date, end_date)
        if member_id:
            return self.get_member_git_metrics(member_id, start_date, end_date)
        if repository:
            return self.get_repository_git_metrics(repository, start_date, end_date)
        raise ValidationError(
            "At least one filter (team, member, or repository) must be provided"
        )

    def get_pull_requests(self, team_id: str = None, author_id: str = None,
                          repository: str = None, status: str = None,
                          start_date: str = None, end_date: str = None,
                          page: Optional[int] = None,
                          page_size: Optional[int] = None) -> List[PullRequest]:
        """Pull requests for a repository, team or author.

        Date filtering on ``created_at`` happens before pagination; ``page``
        is 1-based and only applied when ``page_size`` is also given.
        """
        if status and status not in PR_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}': expected one of {', '.join(PR_STATUSES)}"
            )
        if page is not None and page < 1:
            raise ValidationError("page must be 1 or greater")
        if page_size is not None and page_size < 1:
            raise ValidationError("pageSize must be 1 or greater")

        if repository:
            repositories = [repository]
        elif team_id:
            repositories = [repo.name for repo in self.list_repositories(team_id)]
        elif author_id:
            repositories = [repo.name for repo in self.list_repositories()]
        else:
            raise ValidationError(
                "At least one filter (repository, team, or author) must be provided"
            )

        batches = ordered_fan_out(self.github.list_pull_requests, repositories, self.max_workers)
        pull_requests = [pr for batch in batches for pr in batch]

        if author_id:
            pull_requests = [pr for pr in pull_requests if pr.author == author_id]
        if status and status != "all":
            pull_requests = [pr for pr in pull_requests if pr.status == status]

        if start_date or end_date:
            start, end = self._window(start_date, end_date)
            pull_requests = [
                pr for pr in pull_requests if self._in_window(pr.created_at, start, end)
            ]

        if page is not None and page_size is not None:
            offset = (page - 1) * page_size
            pull_requests = pull_requests[offset:offset + page_size]

        return pull_requests

    def get_code_reviews(self, repository: str, pull_request_number: int):
        if not repository:
            raise ValidationError("repositoryId is required to list reviews")
        return self.github.list_reviews(repository, pull_request_number)
