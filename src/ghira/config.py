"""Configuration management for ghira."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ghira.vault import VaultClient

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".ghira/config.yaml")


class MissingCredentialsError(Exception):
    """One or more required process inputs are missing."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Required environment variables not found: {', '.join(missing)}")
        self.missing = missing


class SecretLocation(BaseModel):
    """Where a credential lives in the Vault KV store."""

    key: str
    entry: str


class VaultConfig(BaseModel):
    """Vault fallback used when a credential is not in the environment."""

    url: str = Field(default="https://vault.ci.openshift.org", description="Vault server URL")
    path: str = Field(default="selfservice/shiftstack-secrets", description="KV path holding the secrets")
    secrets: dict[str, SecretLocation] = Field(
        default_factory=lambda: {
            "JIRA_TOKEN": SecretLocation(key="bugwatcher", entry="jira-token"),
            "GITHUB_TOKEN": SecretLocation(key="ghira", entry="github-token"),
            "PEOPLE": SecretLocation(key="team", entry="people.yaml"),
            "TEAM": SecretLocation(key="team", entry="team.yaml"),
        },
        description="Vault location of each required environment variable",
    )


class SyncConfig(BaseModel):
    """ghira configuration.

    Ticket layout settings:
        issue_tag: Repository tag embedded in ticket summaries as GH-<tag>-<number>
        jira_query: JQL selecting the tickets owned by this tool (derived from
            project and component when unset)
    """

    github_repo: str = Field(default="k-orc/openstack-resource-controller", description="Source repository (owner/repo)")
    issue_tag: str = Field(default="orc", description="Tag used in ticket summaries")
    jira_url: str = Field(default="https://issues.redhat.com/", description="Jira instance URL")
    jira_project: str = Field(default="OSASINFRA", description="Project key for new tickets")
    jira_component: str = Field(default="ORC", description="Component for new tickets")
    jira_query: str | None = Field(default=None, description="JQL for existing tickets")
    issue_type: str = Field(default="Task", description="Issue type for new tickets")
    closed_status: str = Field(default="Closed", description="Jira status name meaning closed")
    close_transition: str = Field(default="Closed", description="Transition used to close a ticket")
    reopen_transition: str = Field(default="To Do", description="Transition used to reopen a ticket")
    page_size: int = Field(default=100, gt=0, description="Jira search page size")
    max_throttle_retries: int | None = Field(
        default=None,
        ge=0,
        description="Cap on retries after HTTP 429 (None: retry until the request goes through)",
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    dry_run: bool = Field(default=False, description="Log Jira mutations without executing")
    vault: VaultConfig = Field(default_factory=VaultConfig)

    @property
    def jql(self) -> str:
        """JQL selecting the tickets this tool manages."""
        if self.jira_query:
            return self.jira_query
        return f'project = "{self.jira_project}" AND (component in ("{self.jira_component}"))'

    @classmethod
    def load(cls, config_path: Path | None = None) -> SyncConfig:
        """Load configuration from file or use defaults."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
            return cls.model_validate(data)

        return cls()


REQUIRED_VARIABLES = ("GITHUB_TOKEN", "JIRA_TOKEN", "PEOPLE", "TEAM")


@dataclass(frozen=True)
class Credentials:
    """Process inputs, resolved once at startup."""

    github_token: str
    jira_token: str
    people: str  # people.yaml contents
    team: str  # team.yaml contents

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        vault: VaultClient | None = None,
        locations: Mapping[str, SecretLocation] | None = None,
    ) -> Credentials:
        """Collect credentials from the environment, falling back to Vault.

        Args:
            environ: Environment mapping (defaults to os.environ).
            vault: Vault client used for variables missing from the environment.
            locations: Vault location of each variable.

        Raises:
            MissingCredentialsError: If any variable is still missing.
            VaultError: If Vault rejects a lookup.
        """
        if environ is None:
            environ = os.environ
        locations = locations or {}

        values: dict[str, str] = {}
        missing: list[str] = []
        for name in REQUIRED_VARIABLES:
            value = environ.get(name, "")
            if value:
                logger.debug(f"Variable {name} found in the environment.")
            elif vault is not None and name in locations:
                logger.info(f"Fetching {name} from the Vault...")
                location = locations[name]
                value = vault.fetch_secret(location.key, location.entry)
            if value:
                values[name] = value
            else:
                logger.error(f"Required environment variable not found: {name}")
                missing.append(name)

        if missing:
            raise MissingCredentialsError(missing)

        return cls(
            github_token=values["GITHUB_TOKEN"],
            jira_token=values["JIRA_TOKEN"],
            people=values["PEOPLE"],
            team=values["TEAM"],
        )
