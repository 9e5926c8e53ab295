"""Fixture stand-ins for the Jira and GitHub clients.

Used when credentials are absent or USE_MOCK_DATA is set, so the dashboard
still renders meaningful data. The fixture clients expose the same methods
as ``JiraClient`` and ``GitHubClient`` and never touch the network.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from services.errors import NotFoundError
from services.github_client import parse_github_datetime
from services.models import (
    PR_CLOSED, PR_MERGED, PR_OPEN, CodeReview, Commit, Issue, PullRequest, Repository,
    Sprint, Team
)

FIXTURE_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)

TEAMS = [
    {"id": 1, "name": "Team Alpha"},
    {"id": 2, "name": "Team Beta"},
    {"id": 3, "name": "Team Gamma"},
]

MEMBERS = {
    "acc-alex": "Alex Johnson",
    "acc-sam": "Sam Li",
    "acc-morgan": "Morgan Taylor",
    "acc-jordan": "Jordan Casey",
    "acc-riley": "Riley Chen",
}

# Jordan works on two teams
TEAM_MEMBERS = {
    1: ["acc-alex", "acc-sam", "acc-jordan"],
    2: ["acc-morgan", "acc-jordan"],
    3: ["acc-riley"],
}

REPOSITORIES = {
    "alpha-web": "1",
    "alpha-api": "1",
    "beta-service": "2",
    "gamma-pipeline": "3",
}

STATUSES = ["Done", "Done", "In Progress", "To Do", "Done", "In Review"]
POINTS = [5, 3, 8, 2, 1, 13, None, 5]


def _issues_for_board(board_id: int) -> List[Issue]:
    members = TEAM_MEMBERS.get(board_id, [])
    issues = []
    for index in range(12 + board_id * 2):
        status = STATUSES[(index + board_id) % len(STATUSES)]
        assignee = members[index % len(members)] if members and index % 5 != 4 else None
        issues.append(Issue(
            id=str(board_id * 1000 + index),
            key=f"T{board_id}-{index + 1}",
            summary=f"Fixture issue {index + 1}",
            status=status,
            team_id=str(board_id),
            story_points=POINTS[(index * board_id) % len(POINTS)],
            assignee=assignee,
            assignee_name=MEMBERS.get(assignee),
            sprint_id=board_id * 100 + index % 2,
            resolved_date=None
        ))
    return issues


class FixtureJiraClient:
    """Serves a small fixed organization of boards, sprints and issues."""

    name = "Jira"

    def get_boards(self) -> List[Team]:
        return [Team(id=str(t["id"]), name=t["name"], board_id=t["id"]) for t in TEAMS]

    def get_board(self, board_id) -> Optional[Team]:
        for team in self.get_boards():
            if team.id == str(board_id):
                return team
        return None

    def get_sprints(self, board_id: int, state: str = "active,closed") -> List[Sprint]:
        sprints = [
            Sprint(
                id=board_id * 100,
                name=f"Sprint {board_id}.1",
                state="closed",
                board_id=board_id,
                start_date="2024-01-01T00:00:00.000Z",
                end_date="2024-01-14T00:00:00.000Z"
            ),
            Sprint(
                id=board_id * 100 + 1,
                name=f"Sprint {board_id}.2",
                state="active",
                board_id=board_id,
                start_date="2024-01-15T00:00:00.000Z",
                end_date="2024-01-28T00:00:00.000Z"
            ),
        ]
        states = set(state.split(","))
        return [sprint for sprint in sprints if sprint.state in states]

    def get_sprint(self, sprint_id: int) -> Optional[Sprint]:
        board_id = int(sprint_id) // 100
        for sprint in self.get_sprints(board_id, "active,closed,future"):
            if sprint.id == int(sprint_id):
                return sprint
        return None

    def get_sprint_issues(self, sprint_id: int, team_id: Optional[str] = None) -> List[Issue]:
        board_id = int(sprint_id) // 100
        return [i for i in _issues_for_board(board_id) if i.sprint_id == int(sprint_id)]

    def get_board_issues(self, board_id: int, start_date: str = None,
                         end_date: str = None) -> List[Issue]:
        return _issues_for_board(int(board_id))

    def get_assignee_issues(self, account_id: str, start_date: str = None,
                            end_date: str = None) -> List[Issue]:
        issues = []
        for team in TEAMS:
            issues.extend(
                issue for issue in _issues_for_board(team["id"])
                if issue.assignee == account_id
            )
        return issues


class FixtureGitHubClient:
    """Serves commits and pull requests for the fixture repositories."""

    name = "GitHub"

    def _authors(self, repository: str) -> List[str]:
        if repository not in REPOSITORIES:
            raise NotFoundError(f"GitHub resource not found: {repository}")
        return TEAM_MEMBERS.get(int(REPOSITORIES[repository]), [])

    def list_repositories(self) -> List[Repository]:
        return [
            Repository(
                id=str(index + 1),
                name=name,
                url=f"https://github.com/example-org/{name}",
                team_id=team_id
            )
            for index, (name, team_id) in enumerate(REPOSITORIES.items())
        ]

    def list_commits(self, repository: str, since: str = None,
                     until: str = None) -> List[Commit]:
        authors = self._authors(repository)
        start = parse_github_datetime(since)
        end = parse_github_datetime(until)

        commits = []
        for index in range(9 * len(authors)):
            date = FIXTURE_EPOCH + timedelta(hours=7 * index)
            if (start and date < start) or (end and date > end):
                continue
            author = authors[index % len(authors)]
            commits.append(Commit(
                sha=f"{repository}-{index:04d}",
                message=f"Fixture change {index}",
                author=author,
                author_email=f"{author}@example.com",
                date=date,
                repository=repository
            ))
        return commits

    def list_pull_requests(self, repository: str, state: str = "all") -> List[PullRequest]:
        authors = self._authors(repository)
        pulls = []
        for number in range(1, 3 * len(authors) + 1):
            created = FIXTURE_EPOCH + timedelta(days=number)
            status = [PR_MERGED, PR_MERGED, PR_OPEN, PR_CLOSED][number % 4]
            merged_at = created + timedelta(hours=6 * number) if status == PR_MERGED else None
            pulls.append(PullRequest(
                number=number,
                title=f"Fixture pull request {number}",
                author=authors[number % len(authors)],
                created_at=created,
                updated_at=merged_at or created + timedelta(hours=2),
                status=status,
                repository=repository,
                merged_at=merged_at,
                closed_at=merged_at if status != PR_OPEN else None,
                url=f"https://github.com/example-org/{repository}/pull/{number}"
            ))
        return pulls

    def list_reviews(self, repository: str, number: int) -> List[CodeReview]:
        authors = self._authors(repository)
        if len(authors) < 2:
            return []
        reviewer = authors[(number + 1) % len(authors)]
        return [CodeReview(
            id=number * 10,
            pull_request_number=number,
            reviewer=reviewer,
            state="APPROVED",
            repository=repository,
            submitted_at=FIXTURE_EPOCH + timedelta(days=number, hours=3)
        )]
