"""Team roster: people, team membership and leave.

The roster comes as two YAML documents. ``people.yaml`` is a list of
people with their handles on each service; ``team.yaml`` maps the kerberos
id of each team member to their triage duty and leave intervals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone

import yaml

logger = logging.getLogger(__name__)


class RosterError(Exception):
    """The roster documents could not be decoded."""


@dataclass(frozen=True)
class Leave:
    """A leave interval; both ends are timezone-aware."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Person:
    """A person known to the roster."""

    kerberos: str
    github: str = ""
    jira: str = ""
    slack: str = ""
    team_member: bool = False
    bug_triage: bool = False
    leave: tuple[Leave, ...] = field(default_factory=tuple)

    def is_available(self, at: datetime) -> bool:
        """Whether the person is not on leave at the given time."""
        at = _as_utc(at)
        return not any(leave.start < at < leave.end for leave in self.leave)


def _as_utc(value: datetime | date) -> datetime:
    # PyYAML yields dates for day-only timestamps and naive datetimes for UTC ones
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _decode(document: str, what: str) -> object:
    try:
        return yaml.safe_load(document)
    except yaml.YAMLError as e:
        raise RosterError(f"error decoding {what}: {e}") from e


def load_people(people_yaml: str, team_yaml: str) -> list[Person]:
    """Build the roster from the people and team YAML documents.

    Raises:
        RosterError: If either document is not valid YAML of the expected shape.
    """
    people_data = _decode(people_yaml, "people") or []
    team_data = _decode(team_yaml, "team") or {}
    if not isinstance(people_data, list):
        raise RosterError("error decoding people: expected a list")
    if not isinstance(team_data, dict):
        raise RosterError("error decoding team: expected a mapping")

    people: list[Person] = []
    for entry in people_data:
        if not isinstance(entry, dict):
            raise RosterError(f"error decoding people: unexpected entry {entry!r}")
        kerberos = str(entry.get("kerberos") or "")
        member = team_data.get(kerberos) if kerberos else None

        leave: tuple[Leave, ...] = ()
        if isinstance(member, dict):
            try:
                leave = tuple(Leave(start=_as_utc(item["start"]), end=_as_utc(item["end"])) for item in member.get("leave") or [])
            except (KeyError, TypeError) as e:
                raise RosterError(f"error decoding team: invalid leave for {kerberos}") from e

        people.append(
            Person(
                kerberos=kerberos,
                github=str(entry.get("github_handle") or ""),
                jira=str(entry.get("jira_name") or ""),
                # user handles need a prepended `@` when mentioned in the chat
                slack="@" + str(entry.get("slack_id") or ""),
                team_member=kerberos in team_data,
                bug_triage=bool(member.get("bug_triage", False)) if isinstance(member, dict) else False,
                leave=leave,
            )
        )

    logger.debug(f"Loaded {len(people)} people from the roster")
    return people


def team_members(people: list[Person]) -> list[Person]:
    """Keep only the people listed in the team document."""
    return [person for person in people if person.team_member]


def person_by_github_handle(people: list[Person], handle: str) -> Person | None:
    """Return the first person with the given GitHub handle."""
    if not handle:
        return None
    for person in people:
        if person.github == handle:
            return person
    return None


def person_by_jira_name(people: list[Person], jira_name: str) -> Person | None:
    """Return the first person with the given Jira username."""
    if not jira_name:
        return None
    for person in people:
        if person.jira == jira_name:
            return person
    return None


def resolve_jira_username(people: list[Person], handle: str) -> str | None:
    """Map a GitHub handle to a Jira username, or None if unknown."""
    person = person_by_github_handle(people, handle)
    if person is None or not person.jira:
        return None
    return person.jira
