"""Story-point completion statistics per team, sprint and member."""

import logging
from typing import Iterable, List, Optional

from services.errors import NotFoundError, ValidationError
from services.models import (
    ALL_SPRINTS, DONE_STATUS, CompletionStats, Issue, MemberCompletionStats, Sprint, Team,
    parse_window_date
)
from services.upstream import ordered_fan_out

logger = logging.getLogger(__name__)

JQL_DATE_FORMAT = "%Y-%m-%d %H:%M"


def jql_window(start_date: str = None, end_date: str = None) -> tuple:
    """Validate a date window and render its bounds the way JQL expects.

    Raises ValidationError for anything that is not an ISO date.
    """
    start = parse_window_date(start_date)
    end = parse_window_date(end_date, end_of_day=True)
    return (
        start.strftime(JQL_DATE_FORMAT) if start else None,
        end.strftime(JQL_DATE_FORMAT) if end else None
    )


def check_account_id(account_id: str) -> str:
    if not account_id or any(char in account_id for char in '"\\'):
        raise ValidationError(f"Invalid memberId '{account_id}'")
    return account_id


class CompletionAnalyticsService:
    """Service for calculating story-point completion from Jira issues."""

    def __init__(self, jira_client, done_statuses: Iterable[str] = (DONE_STATUS,),
                 max_workers: int = 1):
        self.jira = jira_client
        self.done_statuses = tuple(done_statuses)
        self.max_workers = max_workers

    def _is_completed(self, issue: Issue) -> bool:
        return issue.is_completed(self.done_statuses)

    def _sum_points(self, issues: List[Issue]) -> tuple:
        """Return (total, completed) story points for ``issues``."""
        total = sum(issue.points for issue in issues)
        completed = sum(issue.points for issue in issues if self._is_completed(issue))
        return total, completed

    def _member_stats(self, issues: List[Issue]) -> List[MemberCompletionStats]:
        """Group issues by assignee, in the order assignees first appear.

        Unassigned issues are left out here; they still count toward the
        team totals.
        """
        by_assignee = {}
        names = {}
        for issue in issues:
            if not issue.assignee:
                continue
            by_assignee.setdefault(issue.assignee, []).append(issue)
            if issue.assignee_name and issue.assignee not in names:
                names[issue.assignee] = issue.assignee_name

        members = []
        for account_id, member_issues in by_assignee.items():
            total, completed = self._sum_points(member_issues)
            members.append(MemberCompletionStats(
                account_id=account_id,
                display_name=names.get(account_id, account_id),
                total_story_points=total,
                completed_story_points=completed
            ))
        return members

    def list_teams(self) -> List[Team]:
        return self.jira.get_boards()

    def get_team(self, team_id: str) -> Team:
        team = self.jira.get_board(team_id)
        if team is None:
            raise NotFoundError(f"Team with ID {team_id} not found")
        return team

    def list_sprints(self, team_id: str, state: str = "active,closed") -> List[Sprint]:
        team = self.get_team(team_id)
        return self.jira.get_sprints(team.board_id, state)

    def get_team_completion_stats(self, team_id: str, sprint_id: Optional[int] = None,
                                  start_date: str = None,
                                  end_date: str = None) -> CompletionStats:
        """Completion stats for one team, scoped to a sprint or a date window."""
        team = self.get_team(team_id)
        sprint_name = ALL_SPRINTS

        if sprint_id:
            sprint = self.jira.get_sprint(sprint_id)
            if sprint is None:
                raise NotFoundError(f"Sprint with ID {sprint_id} not found")
            sprint_name = sprint.name
            issues = self.jira.get_sprint_issues(sprint_id, team.id)
        else:
            issues = self.jira.get_board_issues(team.board_id, *jql_window(start_date, end_date))

        total, completed = self._sum_points(issues)
        logger.debug(f"Team {team.id}: {len(issues)} issues, {completed}/{total} points completed")

        return CompletionStats(
            team_id=team.id,
            team_name=team.name,
            sprint_id=sprint_id or None,
            sprint_name=sprint_name,
            total_story_points=total,
            completed_story_points=completed,
            member_stats=self._member_stats(issues)
        )

    def get_all_teams_completion_stats(self, start_date: str = None,
                                       end_date: str = None) -> List[CompletionStats]:
        """Completion stats for every team, in board order.

        A failure for any team aborts the whole call.
        """
        jql_window(start_date, end_date)
        teams = self.list_teams()
        return ordered_fan_out(
            lambda team: self.get_team_completion_stats(team.id, None, start_date, end_date),
            teams,
            self.max_workers
        )

    def get_member_completion_stats(self, account_id: str, start_date: str = None,
                                    end_date: str = None) -> MemberCompletionStats:
        """Completion stats for one assignee across all teams."""
        check_account_id(account_id)
        issues = self.jira.get_assignee_issues(account_id, *jql_window(start_date, end_date))
        total, completed = self._sum_points(issues)

        display_name = next(
            (issue.assignee_name for issue in issues if issue.assignee_name),
            account_id
        )
        return MemberCompletionStats(
            account_id=account_id,
            display_name=display_name,
            total_story_points=total,
            completed_story_points=completed
        )
