"""Shared fixtures for the delivery insights backend tests."""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.config import Settings
from services.cache import TTLCache
from services.models import PullRequest


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def json_response(payload, status_code=200):
    """Mock ``requests.Response`` carrying a JSON payload."""
    response = Mock(status_code=status_code)
    response.json.return_value = payload
    return response


def make_pull_request(number, author="alice", status="merged", created=None,
                      hours_to_merge=4, repository="web"):
    created = created or datetime(2024, 1, 10, tzinfo=timezone.utc)
    merged_at = created + timedelta(hours=hours_to_merge) if status == "merged" else None
    return PullRequest(
        number=number,
        title=f"PR {number}",
        author=author,
        created_at=created,
        updated_at=merged_at or created + timedelta(hours=1),
        status=status,
        repository=repository,
        merged_at=merged_at
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def mock_session():
    """Session double whose ``get`` returns queued responses."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def sample_board():
    """Sample Jira board."""
    return {"id": 12, "name": "Team Alpha", "type": "scrum"}


@pytest.fixture
def sample_sprint():
    """Sample sprint data."""
    return {
        "id": 100,
        "name": "Sprint 1",
        "state": "closed",
        "startDate": "2024-01-01T00:00:00.000Z",
        "endDate": "2024-01-14T00:00:00.000Z",
        "originBoardId": 12
    }


@pytest.fixture
def sample_issue_done():
    """Completed issue with points and an assignee."""
    return {
        "id": "10001",
        "key": "ALPHA-1",
        "fields": {
            "summary": "Build login page",
            "status": {"name": "Done"},
            "assignee": {"accountId": "acc-1", "displayName": "Alex Johnson"},
            "customfield_10016": 5.0,
            "resolutiondate": "2024-01-10T12:00:00.000+0000"
        }
    }


@pytest.fixture
def sample_issue_in_progress():
    """Open issue with points and no assignee."""
    return {
        "id": "10002",
        "key": "ALPHA-2",
        "fields": {
            "summary": "Add password reset",
            "status": {"name": "In Progress"},
            "assignee": None,
            "customfield_10016": 3,
            "resolutiondate": None
        }
    }


@pytest.fixture
def sample_github_pull():
    """Merged pull request as returned by the GitHub REST API."""
    return {
        "number": 42,
        "title": "Add caching",
        "state": "closed",
        "user": {"login": "octocat"},
        "created_at": "2024-01-10T08:00:00Z",
        "updated_at": "2024-01-10T20:00:00Z",
        "merged_at": "2024-01-10T14:00:00Z",
        "closed_at": "2024-01-10T14:00:00Z",
        "requested_reviewers": [{"login": "hubot"}],
        "html_url": "https://github.com/acme/web/pull/42"
    }


@pytest.fixture
def sample_github_commit():
    return {
        "sha": "abc123",
        "commit": {
            "message": "Fix bug",
            "author": {
                "name": "The Octocat",
                "email": "octocat@example.com",
                "date": "2024-01-09T10:00:00Z"
            }
        },
        "author": {"login": "octocat"}
    }


@pytest.fixture
def settings():
    """Settings that force fixture data."""
    return Settings(use_mock_data=True)


@pytest.fixture
def app(settings):
    """Create Flask test app over the fixture clients."""
    from app import create_app
    app = create_app(settings)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
