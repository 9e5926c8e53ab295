"""Story-point completion API endpoint."""

from flask import Blueprint

from app.api.common import get_date_range, parse_int, query_params, respond, service

bp = Blueprint("stats", __name__, url_prefix="/api/stats")


@bp.route("", methods=["GET"])
def get_stats():
    """Get completion stats.

    Query params:
        - teamId: Stats for one team
        - sprintId: With teamId, scope to one sprint
        - memberId: Stats for one assignee across teams (ignored with teamId)
        - startDate / endDate: Optional ISO dates (e.g., "2024-01-01")

    Returns:
        - CompletionStats for a team, MemberCompletionStats for a member,
          otherwise CompletionStats for every team
    """
    params = query_params("teamId", "sprintId", "memberId", "startDate", "endDate")

    def compute():
        completion = service("completion")
        start_date, end_date = get_date_range(params)

        if "teamId" in params:
            return completion.get_team_completion_stats(
                params["teamId"], parse_int(params, "sprintId"), start_date, end_date
            )
        if "memberId" in params:
            return completion.get_member_completion_stats(
                params["memberId"], start_date, end_date
            )
        return completion.get_all_teams_completion_stats(start_date, end_date)

    return respond("stats", params, compute)
