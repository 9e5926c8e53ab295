"""Correlation of story-point completion with source-control activity.

Derives ratios and bucketed scores from one ``CompletionStats`` and one set
of git metrics for the same target, and turns them into insight cards when a
threshold is crossed.
"""

import logging
from datetime import datetime
from typing import List, Optional

from services.models import (
    CompletionStats, CorrelationInsight, GitMetrics, IntegratedMemberMetrics,
    IntegratedTeamMetrics, MemberCompletionStats, MemberCorrelations,
    OverviewMetrics, TeamCorrelations, TeamMetricsSummary, utc_now
)
from services.upstream import ordered_fan_out

logger = logging.getLogger(__name__)

SEVERITIES = ("info", "warning", "critical", "positive")

TEAM_COMPLETION_THRESHOLD = 70
TEAM_COMMIT_RATIO_THRESHOLD = 5
MEMBER_COMPLETION_THRESHOLD = 60
MEMBER_CONTRIBUTION_THRESHOLD = 0.8

# Fixed until review comments are collected
DEFAULT_REVIEW_QUALITY = 0.75


def story_point_to_commit_ratio(total_story_points: float, commit_count: int) -> float:
    if total_story_points == 0:
        return 0
    return commit_count / total_story_points


def planning_accuracy(completed_story_points: float, total_story_points: float) -> float:
    if total_story_points == 0:
        return 0
    return completed_story_points * 100 / total_story_points


def consistency_score(accuracy: float) -> float:
    """Three-bucket score from planning accuracy, not a multi-sprint statistic."""
    if accuracy > 80:
        return 0.8
    if accuracy > 60:
        return 0.6
    return 0.4


def contribution_score(commit_count: int) -> float:
    if commit_count > 20:
        return 0.9
    if commit_count > 10:
        return 0.7
    return 0.5


def velocity_index(completed_story_points: float) -> float:
    if completed_story_points > 15:
        return 0.9
    if completed_story_points > 8:
        return 0.7
    return 0.5


def team_correlations(completion: CompletionStats, git: GitMetrics) -> TeamCorrelations:
    accuracy = planning_accuracy(completion.completed_story_points, completion.total_story_points)
    return TeamCorrelations(
        story_point_to_commit_ratio=story_point_to_commit_ratio(
            completion.total_story_points, git.commit_count
        ),
        planning_accuracy=accuracy,
        velocity=completion.completed_story_points,
        consistency=consistency_score(accuracy)
    )


def member_correlations(member: MemberCompletionStats, git: GitMetrics) -> MemberCorrelations:
    return MemberCorrelations(
        story_point_to_commit_ratio=story_point_to_commit_ratio(
            member.total_story_points, git.commit_count
        ),
        review_quality=DEFAULT_REVIEW_QUALITY,
        contribution=contribution_score(git.commit_count),
        velocity_index=velocity_index(member.completed_story_points)
    )


def generate_insights(team: Optional[IntegratedTeamMetrics] = None,
                      member: Optional[IntegratedMemberMetrics] = None,
                      now: Optional[datetime] = None) -> List[CorrelationInsight]:
    """Insight cards for the given targets; empty when nothing crosses a threshold.

    Team rules are evaluated before member rules, each in a fixed order.
    """
    now = now or utc_now()
    insights = []

    if team is not None:
        completion = team.jira_metrics.completion_percentage
        ratio = team.correlations.story_point_to_commit_ratio

        if completion < TEAM_COMPLETION_THRESHOLD:
            insights.append(CorrelationInsight(
                id=f"team-completion-{team.team_id}",
                type="team",
                target_id=team.team_id,
                target_name=team.team_name,
                insight_text=(
                    f"Team is completing only {completion:.1f}% of planned story points. "
                    "Consider revisiting sprint planning process."
                ),
                metric_name="Completion Rate",
                metric_value=completion,
                trend="down",
                trend_percentage=5,
                severity="warning",
                date=now
            ))

        if ratio > TEAM_COMMIT_RATIO_THRESHOLD:
            insights.append(CorrelationInsight(
                id=f"team-commit-ratio-{team.team_id}",
                type="team",
                target_id=team.team_id,
                target_name=team.team_name,
                insight_text=(
                    f"High commit to story point ratio ({ratio:.1f}). "
                    "Consider reviewing story point estimation process."
                ),
                metric_name="Commit-to-SP Ratio",
                metric_value=ratio,
                trend="up",
                trend_percentage=8,
                severity="info",
                date=now
            ))

    if member is not None:
        completion = member.jira_metrics.completion_percentage
        contribution = member.correlations.contribution

        if completion < MEMBER_COMPLETION_THRESHOLD:
            insights.append(CorrelationInsight(
                id=f"member-completion-{member.account_id}",
                type="member",
                target_id=member.account_id,
                target_name=member.display_name,
                insight_text=(
                    f"Completing only {completion:.1f}% of assigned story points. "
                    "May need support or more realistic task assignments."
                ),
                metric_name="Completion Rate",
                metric_value=completion,
                trend="down",
                trend_percentage=10,
                severity="warning",
                date=now
            ))

        if contribution > MEMBER_CONTRIBUTION_THRESHOLD:
            insights.append(CorrelationInsight(
                id=f"member-contribution-{member.account_id}",
                type="member",
                target_id=member.account_id,
                target_name=member.display_name,
                insight_text=(
                    f"High contribution level with {member.git_metrics.commit_count} commits "
                    f"and {member.git_metrics.pr_count} PRs. "
                    "Consider recognizing this team member's efforts."
                ),
                metric_name="Contribution Level",
                metric_value=contribution * 100,
                trend="up",
                trend_percentage=5,
                severity="positive",
                date=now
            ))

    return insights


def filter_insights(insights: List[CorrelationInsight], severity: Optional[str] = None,
                    limit: Optional[int] = None) -> List[CorrelationInsight]:
    """Keep one severity and/or the first ``limit`` insights, preserving order."""
    if severity:
        insights = [insight for insight in insights if insight.severity == severity]
    if limit is not None and limit > 0:
        insights = insights[:limit]
    return list(insights)


class CorrelationEngine:
    """Combines completion analytics with activity metrics."""

    def __init__(self, completion_service, activity_service, max_workers: int = 1):
        self.completion = completion_service
        self.activity = activity_service
        self.max_workers = max_workers

    def get_integrated_team_metrics(self, team_id: str, start_date: str = None,
                                    end_date: str = None) -> IntegratedTeamMetrics:
        jira_metrics = self.completion.get_team_completion_stats(
            team_id, None, start_date, end_date
        )
        git_metrics = self.activity.get_team_git_metrics(
            team_id, start_date, end_date, team_name=jira_metrics.team_name
        )

        return IntegratedTeamMetrics(
            team_id=team_id,
            team_name=jira_metrics.team_name,
            jira_metrics=jira_metrics,
            git_metrics=git_metrics,
            correlations=team_correlations(jira_metrics, git_metrics.metrics)
        )

    def get_integrated_member_metrics(self, member_id: str, start_date: str = None,
                                      end_date: str = None,
                                      team_id: Optional[str] = None) -> IntegratedMemberMetrics:
        jira_metrics = self.completion.get_member_completion_stats(
            member_id, start_date, end_date
        )
        git_metrics = self.activity.get_member_git_metrics(member_id, start_date, end_date)

        team_name = None
        if team_id:
            team_name = self.completion.get_team(team_id).name

        return IntegratedMemberMetrics(
            account_id=member_id,
            display_name=jira_metrics.display_name,
            team_id=team_id,
            team_name=team_name,
            jira_metrics=jira_metrics,
            git_metrics=git_metrics,
            correlations=member_correlations(jira_metrics, git_metrics)
        )

    def get_correlation_insights(self, team_id: Optional[str] = None,
                                 member_id: Optional[str] = None,
                                 severity: Optional[str] = None,
                                 limit: Optional[int] = None,
                                 start_date: str = None,
                                 end_date: str = None) -> List[CorrelationInsight]:
        team = None
        member = None
        if team_id:
            team = self.get_integrated_team_metrics(team_id, start_date, end_date)
        if member_id:
            member = self.get_integrated_member_metrics(member_id, start_date, end_date)

        insights = generate_insights(team, member)
        logger.debug(f"Generated {len(insights)} insights (team={team_id}, member={member_id})")
        return filter_insights(insights, severity, limit)

    def get_overview_metrics(self, start_date: str = None,
                             end_date: str = None) -> OverviewMetrics:
        """Organization totals across every team."""
        teams_stats = self.completion.get_all_teams_completion_stats(start_date, end_date)
        teams_git = ordered_fan_out(
            lambda stats: self.activity.get_team_git_metrics(
                stats.team_id, start_date, end_date, team_name=stats.team_name
            ),
            teams_stats,
            self.max_workers
        )

        active_members = set()
        for stats in teams_stats:
            for member in stats.member_stats:
                active_members.add(member.account_id)

        total_merged = sum(git.metrics.pr_merged_count for git in teams_git)
        weighted_merge_hours = sum(
            git.metrics.avg_pr_time_to_merge * git.metrics.pr_merged_count
            for git in teams_git
        )

        return OverviewMetrics(
            total_story_points=sum(s.total_story_points for s in teams_stats),
            completed_story_points=sum(s.completed_story_points for s in teams_stats),
            total_commits=sum(git.metrics.commit_count for git in teams_git),
            total_prs=sum(git.metrics.pr_count for git in teams_git),
            total_reviews=sum(git.metrics.code_review_count for git in teams_git),
            avg_pr_time_to_merge=weighted_merge_hours / total_merged if total_merged else 0,
            active_teams=len(teams_stats),
            active_members=len(active_members),
            team_metrics_summary=[
                TeamMetricsSummary(
                    team_id=stats.team_id,
                    team_name=stats.team_name,
                    story_points=stats.completed_story_points,
                    commits=git.metrics.commit_count,
                    prs=git.metrics.pr_count,
                    completion_percentage=stats.completion_percentage
                )
                for stats, git in zip(teams_stats, teams_git)
            ]
        )
