"""Tests for the team roster and identity resolution."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from ghira.team import (
    Leave,
    Person,
    RosterError,
    load_people,
    person_by_github_handle,
    person_by_jira_name,
    resolve_jira_username,
    team_members,
)

# =============================================================================
# Roster Loading Tests
# =============================================================================


class TestLoadPeople:
    """Test decoding of the people and team documents."""

    def test_loads_every_person(self, people_yaml: str, team_yaml: str) -> None:
        """Test that everyone in people.yaml is loaded, in order."""
        people = load_people(people_yaml, team_yaml)
        assert [p.kerberos for p in people] == ["alice", "bob", "carol"]
        assert people[0].github == "alice-gh"
        assert people[0].jira == "alice@example.com"

    def test_slack_handle_prefixed(self, people_yaml: str, team_yaml: str) -> None:
        """Test that Slack ids get the @ needed for mentions."""
        people = load_people(people_yaml, team_yaml)
        assert people[0].slack == "@U001"

    def test_team_membership_and_triage(self, people_yaml: str, team_yaml: str) -> None:
        """Test that team.yaml drives membership and triage."""
        alice, bob, carol = load_people(people_yaml, team_yaml)
        assert alice.team_member and alice.bug_triage
        assert bob.team_member and not bob.bug_triage
        assert not carol.team_member

    def test_leave_intervals(self, people_yaml: str, team_yaml: str) -> None:
        """Test that leave intervals are loaded as aware datetimes."""
        bob = load_people(people_yaml, team_yaml)[1]
        assert len(bob.leave) == 1
        assert bob.leave[0].start == datetime(2026, 10, 1, tzinfo=timezone.utc)
        assert bob.leave[0].end == datetime(2026, 10, 15, tzinfo=timezone.utc)

    def test_day_only_leave(self) -> None:
        """Test that date-only leave bounds are accepted."""
        people = load_people(
            "- kerberos: dan\n  github_handle: dan-gh\n",
            "dan:\n  leave:\n    - start: 2026-12-20\n      end: 2027-01-05\n",
        )
        assert people[0].leave[0].start == datetime(2026, 12, 20, tzinfo=timezone.utc)

    def test_empty_documents(self) -> None:
        """Test that empty documents give an empty roster."""
        assert load_people("", "") == []

    def test_invalid_yaml_raises(self) -> None:
        """Test that broken YAML raises RosterError."""
        with pytest.raises(RosterError, match="error decoding people"):
            load_people("- kerberos: [unclosed", "")

    def test_wrong_shape_raises(self) -> None:
        """Test that a mapping instead of a people list is rejected."""
        with pytest.raises(RosterError, match="expected a list"):
            load_people("alice: {}", "")

    def test_team_members_filter(self, people_yaml: str, team_yaml: str) -> None:
        """Test that only team members are kept."""
        members = team_members(load_people(people_yaml, team_yaml))
        assert [p.kerberos for p in members] == ["alice", "bob"]


# =============================================================================
# Availability Tests
# =============================================================================


class TestAvailability:
    """Test leave-based availability."""

    @pytest.fixture
    def person(self) -> Person:
        return Person(
            kerberos="bob",
            leave=(
                Leave(
                    start=datetime(2026, 10, 1, tzinfo=timezone.utc),
                    end=datetime(2026, 10, 15, tzinfo=timezone.utc),
                ),
            ),
        )

    def test_unavailable_during_leave(self, person: Person) -> None:
        assert not person.is_available(datetime(2026, 10, 5, tzinfo=timezone.utc))

    def test_available_outside_leave(self, person: Person) -> None:
        assert person.is_available(datetime(2026, 10, 20, tzinfo=timezone.utc))

    def test_bounds_are_exclusive(self, person: Person) -> None:
        """Test that the exact start and end instants count as available."""
        assert person.is_available(datetime(2026, 10, 1, tzinfo=timezone.utc))
        assert person.is_available(datetime(2026, 10, 15, tzinfo=timezone.utc))

    def test_naive_time_treated_as_utc(self, person: Person) -> None:
        assert not person.is_available(datetime(2026, 10, 5))

    def test_no_leave_always_available(self) -> None:
        assert Person(kerberos="alice").is_available(datetime.combine(date.today(), datetime.min.time()))


# =============================================================================
# Identity Resolution Tests
# =============================================================================


class TestIdentityResolution:
    """Test lookups by GitHub handle and Jira name."""

    @pytest.fixture
    def people(self, people_yaml: str, team_yaml: str) -> list[Person]:
        return load_people(people_yaml, team_yaml)

    def test_resolve_known_handle(self, people: list[Person]) -> None:
        assert resolve_jira_username(people, "bob-gh") == "bob@example.com"

    def test_resolve_unknown_handle(self, people: list[Person]) -> None:
        assert resolve_jira_username(people, "mallory") is None

    def test_resolve_empty_handle(self, people: list[Person]) -> None:
        """Test that an unassigned issue never resolves, even against blank handles."""
        people.append(Person(kerberos="ghost", github="", jira="ghost@example.com"))
        assert resolve_jira_username(people, "") is None

    def test_resolve_person_without_jira_name(self) -> None:
        people = [Person(kerberos="eve", github="eve-gh")]
        assert resolve_jira_username(people, "eve-gh") is None

    def test_first_match_wins(self) -> None:
        people = [
            Person(kerberos="a", github="dup", jira="first"),
            Person(kerberos="b", github="dup", jira="second"),
        ]
        assert resolve_jira_username(people, "dup") == "first"

    def test_person_by_github_handle(self, people: list[Person]) -> None:
        person = person_by_github_handle(people, "carol-gh")
        assert person is not None
        assert person.kerberos == "carol"

    def test_person_by_jira_name(self, people: list[Person]) -> None:
        person = person_by_jira_name(people, "alice@example.com")
        assert person is not None
        assert person.kerberos == "alice"
        assert person_by_jira_name(people, "nobody@example.com") is None
