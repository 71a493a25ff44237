"""CLI interface for ghira."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from ghira import __version__
from ghira.config import Credentials, MissingCredentialsError, SyncConfig
from ghira.sync.pipeline import run_sync
from ghira.sync.reconciler import ReconcileStats
from ghira.team import RosterError, load_people
from ghira.vault import VaultClient, VaultError

# sysexits.h EX_USAGE
EXIT_USAGE = 64

app = typer.Typer(
    name="ghira",
    help="Keep Jira tickets in sync with the GitHub issues assigned to the team.",
    no_args_is_help=True,
)
console = Console(stderr=True)

logger = logging.getLogger("ghira")


def _utc_time(moment: datetime) -> Text:
    return Text(moment.astimezone(timezone.utc).strftime("[%Y-%m-%d %H:%M:%S UTC]"))


def _configure_logging(verbose: bool) -> None:
    """Send log records to stderr, timestamped in UTC."""
    handler = RichHandler(console=console, show_path=False, log_time_format=_utc_time)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(config_path: Path | None) -> SyncConfig:
    try:
        return SyncConfig.load(config_path)
    except (ValidationError, yaml.YAMLError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(EXIT_USAGE) from e


def _load_credentials(config: SyncConfig) -> Credentials:
    """Read credentials from the environment, using Vault for missing ones."""
    vault = None
    vault_token = os.environ.get("VAULT_TOKEN")
    if vault_token:
        vault = VaultClient(config.vault.url, vault_token, config.vault.path, timeout=config.timeout)
    try:
        return Credentials.from_environment(vault=vault, locations=config.vault.secrets)
    except (MissingCredentialsError, VaultError) as e:
        logger.error(str(e))
        logger.error("Exiting.")
        raise typer.Exit(EXIT_USAGE) from e


def _print_summary(stats: ReconcileStats) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Issues", justify="right")
    table.add_column("Created", justify="right", style="green")
    table.add_column("Transitioned", justify="right", style="cyan")
    table.add_column("Unchanged", justify="right", style="dim")
    table.add_column("Failed", justify="right", style="red")
    table.add_row(
        str(stats.issues_seen),
        str(stats.tickets_created),
        str(stats.tickets_transitioned),
        str(stats.tickets_unchanged),
        str(stats.failures),
    )
    console.print(table)


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to the YAML configuration (default: .ghira/config.yaml)"),
]


@app.command()
def sync(
    config_path: ConfigOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Log Jira changes without executing them"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Create and transition Jira tickets to match the GitHub issues."""
    _configure_logging(verbose)
    config = _load_config(config_path)
    if dry_run:
        config = config.model_copy(update={"dry_run": True})
    credentials = _load_credentials(config)

    try:
        stats = asyncio.run(run_sync(config, credentials))
    except RosterError as e:
        logger.error(f"error fetching team information: {e}")
        raise typer.Exit(EXIT_USAGE) from e

    _print_summary(stats)


@app.command()
def team(
    config_path: ConfigOption = None,
) -> None:
    """Show the team roster and who is available today."""
    _configure_logging(False)
    config = _load_config(config_path)
    credentials = _load_credentials(config)
    try:
        people = load_people(credentials.people, credentials.team)
    except RosterError as e:
        logger.error(f"error fetching team information: {e}")
        raise typer.Exit(EXIT_USAGE) from e

    now = datetime.now(timezone.utc)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Kerberos", style="cyan")
    table.add_column("GitHub")
    table.add_column("Jira")
    table.add_column("Triage")
    table.add_column("Available")
    for person in people:
        if not person.team_member:
            continue
        table.add_row(
            person.kerberos,
            person.github or "-",
            person.jira or "-",
            "yes" if person.bug_triage else "-",
            "[green]yes[/green]" if person.is_available(now) else "[yellow]on leave[/yellow]",
        )
    Console().print(table)


@app.command()
def version() -> None:
    """Print the ghira version."""
    typer.echo(f"ghira {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
