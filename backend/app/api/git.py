"""Source-control API endpoints: repositories, pull requests, reviews and metrics."""

from flask import Blueprint

from app.api.common import get_date_range, parse_int, query_params, respond, service

bp = Blueprint("git", __name__, url_prefix="/api")


@bp.route("/repositories", methods=["GET"])
def list_repositories():
    """List organization repositories, optionally only one team's."""
    params = query_params("teamId")
    return respond(
        "repositories", params,
        lambda: service("activity").list_repositories(params.get("teamId"))
    )


@bp.route("/pull-requests", methods=["GET"])
def list_pull_requests():
    """List pull requests.

    Query params:
        - repositoryId / teamId / authorId: at least one is required
        - status: open, closed, merged or all
        - startDate / endDate: Optional window on creation date
        - page / pageSize: 1-based pagination, applied after filtering
    """
    params = query_params(
        "teamId", "authorId", "repositoryId", "status",
        "startDate", "endDate", "page", "pageSize"
    )

    def compute():
        start_date, end_date = get_date_range(params)
        return service("activity").get_pull_requests(
            team_id=params.get("teamId"),
            author_id=params.get("authorId"),
            repository=params.get("repositoryId"),
            status=params.get("status"),
            start_date=start_date,
            end_date=end_date,
            page=parse_int(params, "page"),
            page_size=parse_int(params, "pageSize")
        )

    return respond("pull-requests", params, compute)


@bp.route("/pull-requests/<int:number>/reviews", methods=["GET"])
def list_reviews(number):
    """List reviews on one pull request; ``repositoryId`` is required."""
    params = query_params("repositoryId")
    return respond(
        "reviews", dict(params, number=number),
        lambda: service("activity").get_code_reviews(params.get("repositoryId"), number)
    )


@bp.route("/git/metrics", methods=["GET"])
def get_git_metrics():
    """Get git metrics for a team, member or repository, in that precedence."""
    params = query_params("teamId", "memberId", "repositoryId", "startDate", "endDate")

    def compute():
        start_date, end_date = get_date_range(params)
        return service("activity").get_git_metrics(
            team_id=params.get("teamId"),
            member_id=params.get("memberId"),
            repository=params.get("repositoryId"),
            start_date=start_date,
            end_date=end_date
        )

    return respond("git-metrics", params, compute)
