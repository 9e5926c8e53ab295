"""GitHub client: organization repositories, commits, pull requests and reviews.

All GitHub JSON is mapped to ``services.models`` types here.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

from services.cache import TTLCache
from services.errors import UnknownUpstreamError
from services.models import (
    PR_MERGED, REVIEW_STATES, CodeReview, Commit, PullRequest, Repository
)
from services.upstream import Page, UpstreamClient

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


def parse_github_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitHubClient(UpstreamClient):
    """Read-only accessor for one GitHub organization."""

    name = "GitHub"
    page_size = 100

    def __init__(self, token: str, org: str, api_url: str = DEFAULT_API_URL,
                 repository_teams: Optional[Dict[str, str]] = None,
                 developer_mappings: Optional[Dict[str, str]] = None,
                 cache: Optional[TTLCache] = None,
                 session: Optional[requests.Session] = None):
        session = session or requests.Session()
        session.headers.update({
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
        })
        super().__init__(api_url, session=session, cache=cache)
        self.org = org
        self.repository_teams = repository_teams or {}
        self.developer_mappings = developer_mappings or {}

    def _page_params(self, start_at: int, page_size: int) -> dict:
        return {"per_page": page_size, "page": start_at // page_size + 1}

    def _parse_page(self, payload) -> Page:
        if isinstance(payload, dict):
            # Search-style responses wrap items and report a total
            return Page(items=payload.get("items", []), total=payload.get("total_count"))
        return Page(items=payload or [])

    def identity(self, login: Optional[str]) -> Optional[str]:
        """Map a GitHub login to the member id used across the dashboard."""
        if not login:
            return login
        return self.developer_mappings.get(login, login)

    def list_repositories(self) -> List[Repository]:
        repos = self.fetch_all(f"/orgs/{self.org}/repos", {"type": "all"})
        return [
            Repository(
                id=str(repo["id"]),
                name=repo["name"],
                url=repo.get("html_url", ""),
                team_id=self.repository_teams.get(repo["name"]),
                description=repo.get("description")
            )
            for repo in repos
        ]

    def list_commits(self, repository: str, since: str = None,
                     until: str = None) -> List[Commit]:
        try:
            commits = self.fetch_all(
                f"/repos/{self.org}/{repository}/commits",
                {"since": since, "until": until}
            )
        except UnknownUpstreamError as e:
            # GitHub answers 409 for a repository with no commits yet
            if e.status_code == 409:
                return []
            raise

        return [self._map_commit(commit, repository) for commit in commits]

    def list_pull_requests(self, repository: str, state: str = "all") -> List[PullRequest]:
        pulls = self.fetch_all(
            f"/repos/{self.org}/{repository}/pulls",
            {"state": state, "sort": "created", "direction": "desc"}
        )
        return [self._map_pull_request(pr, repository) for pr in pulls]

    def list_reviews(self, repository: str, number: int) -> List[CodeReview]:
        reviews = self.fetch_all(f"/repos/{self.org}/{repository}/pulls/{number}/reviews")
        return [self._map_review(review, repository, number) for review in reviews]

    def list_members(self) -> List[str]:
        members = self.fetch_all(f"/orgs/{self.org}/members")
        return [self.identity(member.get("login")) for member in members if member.get("login")]

    def _map_commit(self, commit: dict, repository: str) -> Commit:
        detail = commit.get("commit") or {}
        git_author = detail.get("author") or {}
        login = (commit.get("author") or {}).get("login")

        return Commit(
            sha=commit["sha"],
            message=detail.get("message", ""),
            author=self.identity(login) or git_author.get("name", "Unknown"),
            author_email=git_author.get("email"),
            date=parse_github_datetime(git_author.get("date")),
            repository=repository
        )

    def _map_pull_request(self, pr: dict, repository: str) -> PullRequest:
        merged_at = parse_github_datetime(pr.get("merged_at"))
        status = PR_MERGED if merged_at else pr.get("state", "open")

        return PullRequest(
            number=pr["number"],
            title=pr.get("title", ""),
            author=self.identity((pr.get("user") or {}).get("login")) or "Unknown",
            created_at=parse_github_datetime(pr.get("created_at")),
            updated_at=parse_github_datetime(pr.get("updated_at")),
            status=status,
            repository=repository,
            merged_at=merged_at,
            closed_at=parse_github_datetime(pr.get("closed_at")),
            reviewers=[
                self.identity(reviewer.get("login"))
                for reviewer in pr.get("requested_reviewers") or []
            ],
            url=pr.get("html_url", "")
        )

    def _map_review(self, review: dict, repository: str, number: int) -> CodeReview:
        state = review.get("state")
        if state not in REVIEW_STATES:
            state = "COMMENTED"

        return CodeReview(
            id=review["id"],
            pull_request_number=number,
            reviewer=self.identity((review.get("user") or {}).get("login")) or "Unknown",
            state=state,
            repository=repository,
            submitted_at=parse_github_datetime(review.get("submitted_at"))
        )
