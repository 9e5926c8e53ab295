"""Integrated delivery metrics API endpoint."""

from flask import Blueprint

from app.api.common import get_date_range, parse_int, query_params, respond, service
from services.correlation import SEVERITIES
from services.errors import ValidationError

bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")

METRIC_TYPES = ("team", "member", "insights", "overview")


def _require(params: dict, name: str, metric_type: str) -> str:
    if name not in params:
        raise ValidationError(f"{name} is required for type={metric_type}")
    return params[name]


@bp.route("/integrated", methods=["GET"])
def get_integrated():
    """Get story-point completion combined with git activity.

    Query params:
        - type: team, member, insights or overview
        - teamId: Required for type=team
        - memberId: Required for type=member
        - severity: Optional insight severity filter
        - limit: Optional maximum number of insights
        - startDate / endDate: Optional ISO dates (e.g., "2024-01-01")

    Returns:
        - IntegratedTeamMetrics, IntegratedMemberMetrics, a list of insights
          or OverviewMetrics depending on ``type``
    """
    params = query_params(
        "type", "teamId", "memberId", "startDate", "endDate", "severity", "limit"
    )

    def compute():
        engine = service("correlation")
        metric_type = params.get("type")
        start_date, end_date = get_date_range(params)

        if metric_type == "team":
            return engine.get_integrated_team_metrics(
                _require(params, "teamId", metric_type), start_date, end_date
            )
        if metric_type == "member":
            return engine.get_integrated_member_metrics(
                _require(params, "memberId", metric_type), start_date, end_date,
                team_id=params.get("teamId")
            )
        if metric_type == "insights":
            severity = params.get("severity")
            if severity and severity not in SEVERITIES:
                raise ValidationError(
                    f"Invalid severity '{severity}': expected one of {', '.join(SEVERITIES)}"
                )
            return engine.get_correlation_insights(
                team_id=params.get("teamId"),
                member_id=params.get("memberId"),
                severity=severity,
                limit=parse_int(params, "limit"),
                start_date=start_date,
                end_date=end_date
            )
        if metric_type == "overview":
            return engine.get_overview_metrics(start_date, end_date)

        raise ValidationError(
            f"Invalid type '{metric_type}': expected one of {', '.join(METRIC_TYPES)}"
        )

    return respond("integrated", params, compute)
