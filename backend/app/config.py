"""Runtime settings from the environment and the teams config file."""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List

from dotenv import load_dotenv

from services.cache import DEFAULT_TTL_SECONDS
from services.github_client import DEFAULT_API_URL
from services.jira_client import DEFAULT_STORY_POINTS_FIELD

logger = logging.getLogger(__name__)

DEFAULT_TEAMS_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "teams-config.json"
)


@dataclass
class TeamsConfig:
    """Mappings that tie GitHub data to Jira teams and members."""

    repository_teams: Dict[str, str] = field(default_factory=dict)
    developer_mappings: Dict[str, str] = field(default_factory=dict)
    team_names: Dict[str, str] = field(default_factory=dict)


@dataclass
class Settings:
    jira_base_url: str = ""
    jira_username: str = ""
    jira_api_token: str = ""
    story_points_field: str = DEFAULT_STORY_POINTS_FIELD
    done_statuses: List[str] = field(default_factory=lambda: ["Done"])
    github_token: str = ""
    github_org: str = ""
    github_api_url: str = DEFAULT_API_URL
    use_mock_data: bool = False
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    fanout_workers: int = 1
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    teams: TeamsConfig = field(default_factory=TeamsConfig)

    @property
    def has_jira_credentials(self) -> bool:
        return all([self.jira_base_url, self.jira_username, self.jira_api_token])

    @property
    def has_github_credentials(self) -> bool:
        return all([self.github_token, self.github_org])

    @property
    def mock_mode(self) -> bool:
        """Fixture data is served when forced or when any credential is missing."""
        return (
            self.use_mock_data
            or not self.has_jira_credentials
            or not self.has_github_credentials
        )


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_number(name: str, default, cast):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def load_teams_config(path: str) -> TeamsConfig:
    """Load repository, developer and team-name mappings from a JSON file.

    A missing or malformed file yields empty mappings.
    """
    if not os.path.exists(path):
        logger.info("No teams-config.json found, repository and member mappings disabled")
        return TeamsConfig()

    try:
        with open(path, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load teams config: {e}")
        return TeamsConfig()

    if not isinstance(config, dict):
        logger.warning("Failed to load teams config: top level must be an object")
        return TeamsConfig()

    teams = TeamsConfig(
        repository_teams={
            repo: str(team) for repo, team in (config.get("repositoryTeams") or {}).items()
        },
        developer_mappings=dict(config.get("developerMappings") or {}),
        team_names={
            str(team): name for team, name in (config.get("teamNames") or {}).items()
        },
    )
    logger.info(
        f"Loaded {len(teams.repository_teams)} repository mappings and "
        f"{len(teams.developer_mappings)} developer mappings"
    )
    return teams


def load_settings() -> Settings:
    """Build settings from ``.env``, the process environment and the teams config."""
    load_dotenv()

    return Settings(
        jira_base_url=os.getenv("JIRA_BASE_URL", "").rstrip("/"),
        jira_username=os.getenv("JIRA_USERNAME", ""),
        jira_api_token=os.getenv("JIRA_API_TOKEN", ""),
        story_points_field=os.getenv("JIRA_STORY_POINTS_FIELD") or DEFAULT_STORY_POINTS_FIELD,
        done_statuses=_split(os.getenv("JIRA_DONE_STATUSES", "Done")) or ["Done"],
        github_token=os.getenv("GITHUB_TOKEN", ""),
        github_org=os.getenv("GITHUB_ORG", ""),
        github_api_url=os.getenv("GITHUB_API_URL") or DEFAULT_API_URL,
        use_mock_data=_as_bool(os.getenv("USE_MOCK_DATA", "false")),
        cache_ttl_seconds=_as_number("CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS, float),
        fanout_workers=max(1, _as_number("FANOUT_WORKERS", 1, int)),
        cors_origins=_split(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
        teams=load_teams_config(os.getenv("TEAMS_CONFIG_PATH") or DEFAULT_TEAMS_CONFIG_PATH),
    )
