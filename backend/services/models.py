"""Typed shapes for upstream entities and the DTOs returned to the dashboard.

Upstream JSON is mapped into these classes inside the clients; services only
ever see these types. ``to_dict`` produces the camelCase JSON the UI reads.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional

from services.errors import ValidationError

DONE_STATUS = "Done"
ALL_SPRINTS = "All Sprints"

PR_OPEN = "open"
PR_CLOSED = "closed"
PR_MERGED = "merged"

REVIEW_STATES = ("APPROVED", "CHANGES_REQUESTED", "COMMENTED")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_window_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse a ``YYYY-MM-DD`` (or full ISO) window bound as UTC."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}': expected YYYY-MM-DD")

    if len(value) == 10 and end_of_day:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def percentage(completed: float, total: float) -> float:
    """Completed share of total as a percentage, 0 when there is no total."""
    if total == 0:
        return 0
    return completed * 100 / total


@dataclass
class Result:
    """Outcome of a validating constructor: a value or an error message."""

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str):
        return cls(ok=False, error=error)


def parse_story_points(raw) -> Result:
    """Validate a story-point value from the tracker.

    ``None`` means "not estimated" and is valid. Negative or non-numeric
    values are failures.
    """
    if raw is None or raw == "":
        return Result.success(None)
    if isinstance(raw, bool):
        return Result.failure(f"Story points must be numeric, got {raw!r}")
    try:
        points = float(raw)
    except (TypeError, ValueError):
        return Result.failure(f"Story points must be numeric, got {raw!r}")
    if points < 0:
        return Result.failure(f"Story points cannot be negative, got {points}")
    return Result.success(points)


# Issue tracker

@dataclass
class Team:
    id: str
    name: str
    board_id: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "boardId": self.board_id}


@dataclass
class Sprint:
    id: int
    name: str
    state: str
    board_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "boardId": self.board_id,
        }


@dataclass
class Issue:
    id: str
    key: str
    summary: str
    status: str
    team_id: Optional[str] = None
    story_points: Optional[float] = None
    assignee: Optional[str] = None
    assignee_name: Optional[str] = None
    sprint_id: Optional[int] = None
    resolved_date: Optional[str] = None

    @property
    def points(self) -> float:
        return self.story_points or 0

    def is_completed(self, done_statuses=(DONE_STATUS,)) -> bool:
        return self.status in done_statuses or bool(self.resolved_date)


@dataclass
class MemberCompletionStats:
    account_id: str
    display_name: str
    total_story_points: float = 0
    completed_story_points: float = 0

    @property
    def completion_percentage(self) -> float:
        return percentage(self.completed_story_points, self.total_story_points)

    def to_dict(self) -> dict:
        return {
            "accountId": self.account_id,
            "displayName": self.display_name,
            "totalStoryPoints": self.total_story_points,
            "completedStoryPoints": self.completed_story_points,
            "completionPercentage": self.completion_percentage,
        }


@dataclass
class CompletionStats:
    team_id: str
    team_name: str
    total_story_points: float
    completed_story_points: float
    sprint_id: Optional[int] = None
    sprint_name: str = ALL_SPRINTS
    member_stats: List[MemberCompletionStats] = field(default_factory=list)
    date: datetime = field(default_factory=utc_now)

    @property
    def completion_percentage(self) -> float:
        return percentage(self.completed_story_points, self.total_story_points)

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "sprintId": self.sprint_id,
            "sprintName": self.sprint_name,
            "totalStoryPoints": self.total_story_points,
            "completedStoryPoints": self.completed_story_points,
            "completionPercentage": self.completion_percentage,
            "memberStats": [m.to_dict() for m in self.member_stats],
            "date": isoformat(self.date),
        }


# Source control

@dataclass
class Repository:
    id: str
    name: str
    url: str = ""
    team_id: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "teamId": self.team_id,
            "description": self.description,
        }


@dataclass
class Commit:
    sha: str
    message: str
    author: str
    date: datetime
    repository: str
    author_email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "sha": self.sha,
            "message": self.message,
            "author": self.author,
            "authorEmail": self.author_email,
            "date": isoformat(self.date),
            "repository": self.repository,
        }


@dataclass
class PullRequest:
    number: int
    title: str
    author: str
    created_at: datetime
    updated_at: datetime
    status: str
    repository: str
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    reviewers: List[str] = field(default_factory=list)
    url: str = ""

    @property
    def is_merged(self) -> bool:
        return self.status == PR_MERGED

    @property
    def merge_timestamp(self) -> datetime:
        """When the PR was merged; falls back to the last update time."""
        return self.merged_at or self.updated_at

    @property
    def hours_to_merge(self) -> float:
        return (self.merge_timestamp - self.created_at).total_seconds() / 3600

    def to_dict(self) -> dict:
        return {
            "id": self.number,
            "title": self.title,
            "createdBy": self.author,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "mergedAt": isoformat(self.merged_at),
            "closedAt": isoformat(self.closed_at),
            "status": self.status,
            "reviewers": list(self.reviewers),
            "repository": self.repository,
            "url": self.url,
        }


@dataclass
class CodeReview:
    id: int
    pull_request_number: int
    reviewer: str
    state: str
    repository: str
    submitted_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pullRequestId": self.pull_request_number,
            "reviewer": self.reviewer,
            "submittedAt": isoformat(self.submitted_at),
            "state": self.state,
            "repository": self.repository,
        }


@dataclass
class GitMetrics:
    commit_count: int = 0
    pr_count: int = 0
    pr_merged_count: int = 0
    avg_pr_time_to_merge: float = 0
    code_review_count: int = 0
    avg_review_response_time: float = 0
    lines_added: int = 0
    lines_removed: int = 0
    date: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "commitCount": self.commit_count,
            "prCount": self.pr_count,
            "prMergedCount": self.pr_merged_count,
            "avgPrTimeToMerge": self.avg_pr_time_to_merge,
            "codeReviewCount": self.code_review_count,
            "avgReviewResponseTime": self.avg_review_response_time,
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "date": isoformat(self.date),
        }


@dataclass
class TeamGitMetrics:
    team_id: str
    team_name: str
    metrics: GitMetrics
    member_metrics: Dict[str, GitMetrics] = field(default_factory=dict)
    repositories: List[str] = field(default_factory=list)
    date: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "metrics": self.metrics.to_dict(),
            "memberMetrics": {
                member: metrics.to_dict()
                for member, metrics in self.member_metrics.items()
            },
            "repositories": list(self.repositories),
            "date": isoformat(self.date),
        }


# Correlation

@dataclass
class TeamCorrelations:
    story_point_to_commit_ratio: float
    planning_accuracy: float
    velocity: float
    consistency: float

    def to_dict(self) -> dict:
        return {
            "storyPointToCommitRatio": self.story_point_to_commit_ratio,
            "planningAccuracy": self.planning_accuracy,
            "velocity": self.velocity,
            "consistency": self.consistency,
        }


@dataclass
class MemberCorrelations:
    story_point_to_commit_ratio: float
    review_quality: float
    contribution: float
    velocity_index: float

    def to_dict(self) -> dict:
        return {
            "storyPointToCommitRatio": self.story_point_to_commit_ratio,
            "reviewQuality": self.review_quality,
            "contribution": self.contribution,
            "velocityIndex": self.velocity_index,
        }


@dataclass
class IntegratedTeamMetrics:
    team_id: str
    team_name: str
    jira_metrics: CompletionStats
    git_metrics: TeamGitMetrics
    correlations: TeamCorrelations
    date: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "jiraMetrics": self.jira_metrics.to_dict(),
            "gitMetrics": self.git_metrics.to_dict(),
            "correlations": self.correlations.to_dict(),
            "date": isoformat(self.date),
        }


@dataclass
class IntegratedMemberMetrics:
    account_id: str
    display_name: str
    jira_metrics: MemberCompletionStats
    git_metrics: GitMetrics
    correlations: MemberCorrelations
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    date: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "accountId": self.account_id,
            "displayName": self.display_name,
            "teamId": self.team_id,
            "teamName": self.team_name,
            "jiraMetrics": self.jira_metrics.to_dict(),
            "gitMetrics": self.git_metrics.to_dict(),
            "correlations": self.correlations.to_dict(),
            "date": isoformat(self.date),
        }


@dataclass
class CorrelationInsight:
    id: str
    type: str
    target_id: str
    target_name: str
    insight_text: str
    metric_name: str
    metric_value: float
    trend: str
    severity: str
    date: datetime = field(default_factory=utc_now)
    trend_percentage: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "targetId": self.target_id,
            "targetName": self.target_name,
            "insightText": self.insight_text,
            "metricName": self.metric_name,
            "metricValue": self.metric_value,
            "trend": self.trend,
            "trendPercentage": self.trend_percentage,
            "severity": self.severity,
            "date": isoformat(self.date),
        }


@dataclass
class TeamMetricsSummary:
    team_id: str
    team_name: str
    story_points: float
    commits: int
    prs: int
    completion_percentage: float

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "storyPoints": self.story_points,
            "commits": self.commits,
            "prs": self.prs,
            "completionPercentage": self.completion_percentage,
        }


@dataclass
class OverviewMetrics:
    total_story_points: float
    completed_story_points: float
    total_commits: int
    total_prs: int
    total_reviews: int
    avg_pr_time_to_merge: float
    active_teams: int
    active_members: int
    team_metrics_summary: List[TeamMetricsSummary] = field(default_factory=list)
    date: datetime = field(default_factory=utc_now)

    @property
    def completion_percentage(self) -> float:
        return percentage(self.completed_story_points, self.total_story_points)

    def to_dict(self) -> dict:
        return {
            "totalStoryPoints": self.total_story_points,
            "completedStoryPoints": self.completed_story_points,
            "completionPercentage": self.completion_percentage,
            "totalCommits": self.total_commits,
            "totalPRs": self.total_prs,
            "totalReviews": self.total_reviews,
            "avgPrTimeToMerge": self.avg_pr_time_to_merge,
            "activeTeams": self.active_teams,
            "activeMembers": self.active_members,
            "teamMetricsSummary": [t.to_dict() for t in self.team_metrics_summary],
            "date": isoformat(self.date),
        }
