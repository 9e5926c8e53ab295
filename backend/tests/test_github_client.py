"""Tests for GitHubClient mapping."""

from datetime import datetime, timezone

import pytest

from conftest import json_response
from services.errors import NotFoundError
from services.github_client import GitHubClient, parse_github_datetime


@pytest.fixture
def github(mock_session, cache):
    return GitHubClient(
        "gh-token", "acme",
        repository_teams={"web": "12"},
        developer_mappings={"octocat": "acc-1"},
        cache=cache, session=mock_session
    )


class TestParseGithubDatetime:
    """Test timestamp parsing."""

    def test_parses_z_suffix(self):
        assert parse_github_datetime("2024-01-10T08:00:00Z") == datetime(
            2024, 1, 10, 8, tzinfo=timezone.utc
        )

    def test_none(self):
        assert parse_github_datetime(None) is None


class TestSession:
    """Test request setup."""

    def test_bearer_header(self, github, mock_session):
        assert mock_session.headers["Authorization"] == "Bearer gh-token"

    def test_page_params(self, github, mock_session):
        """Should request the first page with 100 items."""
        mock_session.get.return_value = json_response([])
        github.list_repositories()
        params = mock_session.get.call_args[1]["params"]
        assert params["page"] == 1
        assert params["per_page"] == 100


class TestRepositories:
    """Test repository listing."""

    def test_assigns_team_from_config(self, github, mock_session):
        mock_session.get.return_value = json_response([
            {"id": 1, "name": "web", "html_url": "https://github.com/acme/web"},
            {"id": 2, "name": "tools", "html_url": "https://github.com/acme/tools"},
        ])

        repos = github.list_repositories()

        assert [(r.name, r.team_id) for r in repos] == [("web", "12"), ("tools", None)]


class TestPullRequests:
    """Test pull request mapping."""

    def test_merged_status_and_identity(self, github, mock_session, sample_github_pull):
        mock_session.get.return_value = json_response([sample_github_pull])

        pr = github.list_pull_requests("web")[0]

        assert pr.status == "merged"
        assert pr.author == "acc-1"
        assert pr.reviewers == ["hubot"]
        assert pr.hours_to_merge == 6

    def test_open_pull_request(self, github, mock_session, sample_github_pull):
        sample_github_pull.update({"state": "open", "merged_at": None, "closed_at": None})
        mock_session.get.return_value = json_response([sample_github_pull])

        pr = github.list_pull_requests("web")[0]

        assert pr.status == "open"
        assert pr.is_merged is False

    def test_unmapped_login_kept(self, github, mock_session, sample_github_pull):
        sample_github_pull["user"] = {"login": "stranger"}
        mock_session.get.return_value = json_response([sample_github_pull])
        assert github.list_pull_requests("web")[0].author == "stranger"


class TestCommits:
    """Test commit listing."""

    def test_maps_commit(self, github, mock_session, sample_github_commit):
        mock_session.get.return_value = json_response([sample_github_commit])

        commit = github.list_commits("web", since="2024-01-01T00:00:00+00:00")[0]

        assert commit.sha == "abc123"
        assert commit.author == "acc-1"
        assert commit.author_email == "octocat@example.com"
        assert mock_session.get.call_args[1]["params"]["since"] == "2024-01-01T00:00:00+00:00"

    def test_empty_repository(self, github, mock_session):
        """GitHub's 409 for an empty repository should read as no commits."""
        mock_session.get.return_value = json_response({}, status_code=409)
        assert github.list_commits("empty") == []

    def test_other_errors_propagate(self, github, mock_session):
        mock_session.get.return_value = json_response({}, status_code=404)
        with pytest.raises(NotFoundError):
            github.list_commits("missing")


class TestReviews:
    """Test review mapping."""

    def test_unknown_state_is_commented(self, github, mock_session):
        mock_session.get.return_value = json_response([
            {"id": 7, "state": "APPROVED", "user": {"login": "octocat"},
             "submitted_at": "2024-01-10T09:00:00Z"},
            {"id": 8, "state": "DISMISSED", "user": {"login": "hubot"},
             "submitted_at": "2024-01-10T10:00:00Z"},
        ])

        reviews = github.list_reviews("web", 42)

        assert [r.state for r in reviews] == ["APPROVED", "COMMENTED"]
        assert reviews[0].reviewer == "acc-1"
        assert reviews[0].pull_request_number == 42


class TestMembers:
    """Test organization member listing."""

    def test_members_use_mapped_identity(self, github, mock_session):
        mock_session.get.return_value = json_response([{"login": "octocat"}, {"login": "hubot"}])
        assert github.list_members() == ["acc-1", "hubot"]
