"""Tests for correlation math, insight rules and the CorrelationEngine."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from services.correlation import (
    CorrelationEngine, consistency_score, contribution_score, filter_insights,
    generate_insights, member_correlations, story_point_to_commit_ratio,
    team_correlations, velocity_index
)
from services.models import (
    CompletionStats, GitMetrics, IntegratedMemberMetrics, IntegratedTeamMetrics,
    MemberCompletionStats, TeamGitMetrics
)

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def team_metrics(total, completed, commits, team_id="1"):
    stats = CompletionStats(
        team_id=team_id, team_name="Team Alpha",
        total_story_points=total, completed_story_points=completed
    )
    git = TeamGitMetrics(team_id=team_id, team_name="Team Alpha",
                         metrics=GitMetrics(commit_count=commits))
    return IntegratedTeamMetrics(
        team_id=team_id, team_name="Team Alpha", jira_metrics=stats,
        git_metrics=git, correlations=team_correlations(stats, git.metrics)
    )


def member_metrics(total, completed, commits, prs=0):
    stats = MemberCompletionStats(
        account_id="acc-1", display_name="Alex Johnson",
        total_story_points=total, completed_story_points=completed
    )
    git = GitMetrics(commit_count=commits, pr_count=prs)
    return IntegratedMemberMetrics(
        account_id="acc-1", display_name="Alex Johnson", jira_metrics=stats,
        git_metrics=git, correlations=member_correlations(stats, git)
    )


class TestRatios:
    """Test derived ratios and scores."""

    def test_ratio_with_no_points(self):
        assert story_point_to_commit_ratio(0, 12) == 0

    def test_ratio(self):
        assert story_point_to_commit_ratio(50, 100) == 2

    @pytest.mark.parametrize("accuracy,score", [(81, 0.8), (80, 0.6), (61, 0.6), (60, 0.4)])
    def test_consistency_buckets(self, accuracy, score):
        assert consistency_score(accuracy) == score

    @pytest.mark.parametrize("commits,score", [(21, 0.9), (20, 0.7), (11, 0.7), (10, 0.5)])
    def test_contribution_buckets(self, commits, score):
        assert contribution_score(commits) == score

    @pytest.mark.parametrize("points,score", [(16, 0.9), (15, 0.7), (9, 0.7), (8, 0.5)])
    def test_velocity_buckets(self, points, score):
        assert velocity_index(points) == score

    def test_team_correlations(self):
        correlations = team_metrics(40, 30, 20).correlations
        assert correlations.story_point_to_commit_ratio == 0.5
        assert correlations.planning_accuracy == 75
        assert correlations.velocity == 30
        assert correlations.consistency == 0.6

    def test_member_review_quality_fixed(self):
        assert member_metrics(10, 5, 3).correlations.review_quality == 0.75


class TestGenerateInsights:
    """Test insight thresholds."""

    def test_low_team_completion(self):
        """65% completion should produce exactly one warning."""
        insights = generate_insights(team=team_metrics(100, 65, 10), now=NOW)

        assert len(insights) == 1
        assert insights[0].severity == "warning"
        assert insights[0].metric_name == "Completion Rate"
        assert insights[0].metric_value == 65
        assert insights[0].id == "team-completion-1"
        assert insights[0].date == NOW

    def test_healthy_team(self):
        assert generate_insights(team=team_metrics(100, 85, 10), now=NOW) == []

    def test_high_commit_ratio(self):
        insights = generate_insights(team=team_metrics(10, 9, 60), now=NOW)

        assert [i.metric_name for i in insights] == ["Commit-to-SP Ratio"]
        assert insights[0].severity == "info"
        assert insights[0].metric_value == 6

    def test_member_rules(self):
        insights = generate_insights(member=member_metrics(10, 5, 25, prs=4), now=NOW)

        assert [i.id for i in insights] == ["member-completion-acc-1", "member-contribution-acc-1"]
        assert insights[1].severity == "positive"
        assert insights[1].metric_value == pytest.approx(90)

    def test_team_rules_before_member_rules(self):
        insights = generate_insights(
            team=team_metrics(100, 50, 10), member=member_metrics(10, 5, 3), now=NOW
        )
        assert [i.type for i in insights] == ["team", "member"]

    def test_no_targets(self):
        assert generate_insights() == []


class TestFilterInsights:
    """Test severity and limit filtering."""

    def test_severity_then_limit(self):
        insights = generate_insights(
            team=team_metrics(10, 5, 60), member=member_metrics(10, 5, 25), now=NOW
        )

        filtered = filter_insights(insights, severity="warning", limit=1)

        assert [i.id for i in filtered] == ["team-completion-1"]

    def test_limit_without_severity(self):
        insights = generate_insights(
            team=team_metrics(10, 5, 60), member=member_metrics(10, 5, 25), now=NOW
        )
        assert len(filter_insights(insights, limit=2)) == 2

    def test_no_filters(self):
        insights = generate_insights(team=team_metrics(10, 5, 60), now=NOW)
        assert filter_insights(insights) == insights


@pytest.fixture
def completion():
    service = Mock()
    service.get_all_teams_completion_stats.return_value = [
        CompletionStats(
            team_id="1", team_name="Team Alpha", total_story_points=20,
            completed_story_points=10,
            member_stats=[
                MemberCompletionStats("acc-1", "Alex Johnson", 10, 5),
                MemberCompletionStats("acc-2", "Jordan Casey", 10, 5),
            ]
        ),
        CompletionStats(
            team_id="2", team_name="Team Beta", total_story_points=10,
            completed_story_points=10,
            member_stats=[MemberCompletionStats("acc-2", "Jordan Casey", 10, 10)]
        ),
    ]
    return service


@pytest.fixture
def activity():
    service = Mock()
    service.get_team_git_metrics.side_effect = lambda team_id, *args, **kwargs: TeamGitMetrics(
        team_id=team_id,
        team_name=kwargs.get("team_name"),
        metrics={
            "1": GitMetrics(commit_count=10, pr_count=4, pr_merged_count=3, avg_pr_time_to_merge=2),
            "2": GitMetrics(commit_count=5, pr_count=2, pr_merged_count=1, avg_pr_time_to_merge=10),
        }[team_id]
    )
    return service


class TestCorrelationEngine:
    """Test the integrated views."""

    def test_overview_counts_shared_member_once(self, completion, activity):
        """A member on two teams should be one active member."""
        overview = CorrelationEngine(completion, activity).get_overview_metrics()

        assert overview.active_teams == 2
        assert overview.active_members == 2
        assert overview.total_story_points == 30
        assert overview.completed_story_points == 20
        assert overview.total_commits == 15
        assert overview.total_prs == 6

    def test_overview_weights_merge_time(self, completion, activity):
        """Average merge time should be weighted by merged PR count."""
        overview = CorrelationEngine(completion, activity).get_overview_metrics()
        assert overview.avg_pr_time_to_merge == 4

    def test_overview_summary_order(self, completion, activity):
        overview = CorrelationEngine(completion, activity).get_overview_metrics()

        summary = overview.team_metrics_summary
        assert [s.team_id for s in summary] == ["1", "2"]
        assert summary[0].commits == 10
        assert summary[1].completion_percentage == 100

    def test_integrated_team(self, completion, activity):
        completion.get_team_completion_stats.return_value = CompletionStats(
            team_id="1", team_name="Team Alpha", total_story_points=50,
            completed_story_points=40
        )

        metrics = CorrelationEngine(completion, activity).get_integrated_team_metrics("1")

        assert metrics.team_name == "Team Alpha"
        assert metrics.correlations.story_point_to_commit_ratio == 0.2
        assert metrics.correlations.planning_accuracy == 80

    def test_integrated_member_with_team(self, completion, activity):
        completion.get_member_completion_stats.return_value = MemberCompletionStats(
            "acc-1", "Alex Johnson", 10, 5
        )
        completion.get_team.return_value = Mock(name="team")
        completion.get_team.return_value.name = "Team Alpha"
        activity.get_member_git_metrics.return_value = GitMetrics(commit_count=12)

        metrics = CorrelationEngine(completion, activity).get_integrated_member_metrics(
            "acc-1", team_id="1"
        )

        assert metrics.display_name == "Alex Johnson"
        assert metrics.team_name == "Team Alpha"
        assert metrics.correlations.contribution == 0.7

    def test_insights_without_target(self, completion, activity):
        engine = CorrelationEngine(completion, activity)
        assert engine.get_correlation_insights() == []
        completion.get_team_completion_stats.assert_not_called()
