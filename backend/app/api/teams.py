"""Team and sprint API endpoints."""

from flask import Blueprint

from app.api.common import query_params, respond, service

bp = Blueprint("teams", __name__, url_prefix="/api/teams")


@bp.route("", methods=["GET"])
def list_teams():
    """List every team, or a single team.

    Query params:
        - id: Optional team id; returns that team or 404
    """
    params = query_params("id")

    def compute():
        completion = service("completion")
        if "id" in params:
            return completion.get_team(params["id"])
        return completion.list_teams()

    return respond("teams", params, compute)


@bp.route("/<team_id>/sprints", methods=["GET"])
def list_sprints(team_id):
    """List sprints for a team.

    Query params:
        - state: Comma-separated sprint states (default "active,closed")
    """
    params = query_params("state")
    return respond(
        "sprints",
        dict(params, teamId=team_id),
        lambda: service("completion").list_sprints(
            team_id, params.get("state", "active,closed")
        )
    )
