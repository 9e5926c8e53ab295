"""Flask application factory."""

from flask import Flask
from flask_cors import CORS

from app.config import Settings, load_settings
from services.activity_metrics import ActivityMetricsService
from services.cache import ResponseCache, TTLCache
from services.completion_analytics import CompletionAnalyticsService
from services.correlation import CorrelationEngine
from services.fixtures import FixtureGitHubClient, FixtureJiraClient
from services.github_client import GitHubClient
from services.jira_client import JiraClient


def build_clients(settings: Settings, app):
    """Return (jira, github) clients, or fixture clients in mock mode."""
    if settings.mock_mode:
        app.logger.warning(
            "Serving fixture data: USE_MOCK_DATA is set or Jira/GitHub credentials are incomplete"
        )
        return FixtureJiraClient(), FixtureGitHubClient()

    jira = JiraClient(
        settings.jira_base_url,
        settings.jira_username,
        settings.jira_api_token,
        story_points_field=settings.story_points_field,
        cache=TTLCache(settings.cache_ttl_seconds)
    )
    github = GitHubClient(
        settings.github_token,
        settings.github_org,
        api_url=settings.github_api_url,
        repository_teams=settings.teams.repository_teams,
        developer_mappings=settings.teams.developer_mappings,
        cache=TTLCache(settings.cache_ttl_seconds)
    )
    return jira, github


def create_app(settings: Settings = None, jira_client=None, github_client=None):
    """Create and configure the Flask application.

    ``jira_client`` and ``github_client`` replace the configured clients
    when given.
    """
    app = Flask(__name__)
    settings = settings or load_settings()

    # Enable CORS for the dashboard
    CORS(app, resources={
        r"/api/*": {
            "origins": settings.cors_origins,
            "methods": ["GET", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    if jira_client is None or github_client is None:
        default_jira, default_github = build_clients(settings, app)
        jira_client = jira_client or default_jira
        github_client = github_client or default_github

    completion = CompletionAnalyticsService(
        jira_client, settings.done_statuses, max_workers=settings.fanout_workers
    )
    activity = ActivityMetricsService(
        github_client, team_names=settings.teams.team_names,
        max_workers=settings.fanout_workers
    )
    app.extensions["metrics"] = {
        "settings": settings,
        "completion": completion,
        "activity": activity,
        "correlation": CorrelationEngine(
            completion, activity, max_workers=settings.fanout_workers
        ),
        "responses": ResponseCache(TTLCache(settings.cache_ttl_seconds)),
    }

    # Register blueprints
    from app.api import git, metrics, stats, teams
    app.register_blueprint(teams.bp)
    app.register_blueprint(stats.bp)
    app.register_blueprint(git.bp)
    app.register_blueprint(metrics.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok", "mockData": settings.mock_mode}

    return app
