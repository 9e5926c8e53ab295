"""Jira client: boards (teams), sprints and issues.

All Jira JSON is mapped to ``services.models`` types here.
"""

import logging
from typing import List, Optional

import requests

from services.cache import TTLCache
from services.errors import NotFoundError
from services.models import Issue, Sprint, Team, parse_story_points
from services.upstream import Page, UpstreamClient

logger = logging.getLogger(__name__)

DEFAULT_STORY_POINTS_FIELD = "customfield_10016"


class JiraClient(UpstreamClient):
    """Read-only accessor for the Jira Agile and search APIs."""

    name = "Jira"
    page_size = 50

    BASE_FIELDS = ["summary", "status", "assignee", "resolutiondate", "sprint"]

    def __init__(self, server: str, email: str, token: str,
                 story_points_field: str = DEFAULT_STORY_POINTS_FIELD,
                 cache: Optional[TTLCache] = None,
                 session: Optional[requests.Session] = None):
        session = session or requests.Session()
        session.auth = (email, token)
        super().__init__(server, session=session, cache=cache)
        self.story_points_field = story_points_field

    def _page_params(self, start_at: int, page_size: int) -> dict:
        return {"startAt": start_at, "maxResults": page_size}

    def _parse_page(self, payload) -> Page:
        items = payload.get("issues")
        if items is None:
            items = payload.get("values", [])

        total = payload.get("total")
        if total is None and payload.get("isLast"):
            total = payload.get("startAt", 0) + len(items)
        return Page(items=items, total=total)

    def _issue_fields(self) -> str:
        return ",".join(self.BASE_FIELDS + [self.story_points_field])

    # Teams and sprints

    def get_boards(self) -> List[Team]:
        """List every board visible to the user; each board is a team."""
        boards = self.fetch_all("/rest/agile/1.0/board")
        return [self._map_board(board) for board in boards]

    def get_board(self, board_id) -> Optional[Team]:
        """Look up a single board, returning None when it does not exist."""
        try:
            board_id = int(board_id)
        except (TypeError, ValueError):
            return None

        try:
            board = self.fetch_one(f"/rest/agile/1.0/board/{board_id}")
        except NotFoundError:
            return None
        return self._map_board(board)

    def get_sprints(self, board_id: int, state: str = "active,closed") -> List[Sprint]:
        sprints = self.fetch_all(
            f"/rest/agile/1.0/board/{board_id}/sprint",
            {"state": state}
        )
        return [self._map_sprint(sprint, board_id) for sprint in sprints]

    def get_sprint(self, sprint_id: int) -> Optional[Sprint]:
        try:
            sprint = self.fetch_one(f"/rest/agile/1.0/sprint/{sprint_id}")
        except NotFoundError:
            return None
        return self._map_sprint(sprint, sprint.get("originBoardId"))

    # Issues

    def get_sprint_issues(self, sprint_id: int, team_id: Optional[str] = None) -> List[Issue]:
        issues = self.fetch_all(
            f"/rest/agile/1.0/sprint/{sprint_id}/issue",
            {"fields": self._issue_fields()}
        )
        return self._map_issues(issues, team_id, sprint_id)

    def get_board_issues(self, board_id: int, start_date: str = None,
                         end_date: str = None) -> List[Issue]:
        """Issues on a board, optionally limited to those updated in a window."""
        filters = {"fields": self._issue_fields()}
        jql = self._date_jql(start_date, end_date)
        if jql:
            filters["jql"] = jql

        issues = self.fetch_all(f"/rest/agile/1.0/board/{board_id}/issue", filters)
        return self._map_issues(issues, str(board_id))

    def get_assignee_issues(self, account_id: str, start_date: str = None,
                            end_date: str = None) -> List[Issue]:
        """Issues assigned to one account across every project."""
        clauses = [f'assignee = "{account_id}"']
        window = self._date_jql(start_date, end_date)
        if window:
            clauses.append(window)

        issues = self.fetch_all(
            "/rest/api/2/search",
            {"jql": " AND ".join(clauses), "fields": self._issue_fields()}
        )
        return self._map_issues(issues)

    @staticmethod
    def _date_jql(start_date: str = None, end_date: str = None) -> str:
        clauses = []
        if start_date:
            clauses.append(f'updated >= "{start_date}"')
        if end_date:
            clauses.append(f'updated <= "{end_date}"')
        return " AND ".join(clauses)

    # Mapping

    def _map_board(self, board: dict) -> Team:
        return Team(id=str(board["id"]), name=board.get("name", ""), board_id=int(board["id"]))

    def _map_sprint(self, sprint: dict, board_id: Optional[int]) -> Sprint:
        return Sprint(
            id=sprint["id"],
            name=sprint.get("name", ""),
            state=sprint.get("state", ""),
            board_id=board_id,
            start_date=sprint.get("startDate"),
            end_date=sprint.get("endDate")
        )

    def _map_issues(self, issues: list, team_id: Optional[str] = None,
                    sprint_id: Optional[int] = None) -> List[Issue]:
        mapped = []
        for issue in issues:
            result = self._map_issue(issue, team_id, sprint_id)
            if result is not None:
                mapped.append(result)
        return mapped

    def _map_issue(self, issue: dict, team_id: Optional[str],
                   sprint_id: Optional[int]) -> Optional[Issue]:
        fields = issue.get("fields") or {}

        points = parse_story_points(fields.get(self.story_points_field))
        if not points.ok:
            logger.warning(f"Skipping issue {issue.get('key')}: {points.error}")
            return None

        assignee = fields.get("assignee") or {}
        sprint = fields.get("sprint") or {}

        return Issue(
            id=str(issue.get("id", "")),
            key=issue.get("key", ""),
            summary=fields.get("summary", ""),
            status=(fields.get("status") or {}).get("name", ""),
            team_id=team_id,
            story_points=points.value,
            assignee=assignee.get("accountId"),
            assignee_name=assignee.get("displayName"),
            sprint_id=sprint_id or sprint.get("id"),
            resolved_date=fields.get("resolutiondate")
        )
