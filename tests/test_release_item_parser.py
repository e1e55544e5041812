"""Tests for release item parsing."""

import pytest

from builders import make_cycle, make_issue, make_settings
from jira_cycle_roadmap.exceptions import IssueParseError
from jira_cycle_roadmap.models import CycleRef, PersonRef, RawAssignee
from jira_cycle_roadmap.release_item_parser import ReleaseItemParser, get_jira_link


def codes(item):
    return [v.code for v in item.validations]


@pytest.fixture
def parser():
    return ReleaseItemParser(make_settings(), make_cycle())


class TestReleaseItemParser:
    """Tests for ReleaseItemParser.parse."""

    def test_parses_valid_issue(self, parser):
        item = parser.parse(make_issue())

        assert item.id == "REL-1"
        assert item.ticket_id == "REL-1"
        assert item.name == "Checkout flow"
        assert item.summary == "Checkout flow (s2)"
        assert item.stage == "s2"
        assert item.status == "todo"
        assert item.effort == 1
        assert item.area_ids == ["platform"]
        assert item.area == "Platform"
        assert item.teams == ["Team A"]
        assert item.is_external is True
        assert item.assignee == PersonRef("user-1", "Ada Assignee")
        assert item.roadmap_item_id == "ROAD-1"
        assert item.url == "https://jira.example.com/browse/REL-1"
        assert item.cycle == CycleRef("1", "Cycle 1", "2024-01-01", "active")
        assert item.validations == []

    def test_missing_parent_records_validation(self, parser):
        item = parser.parse(make_issue(parent=None))
        assert item.roadmap_item_id is None
        assert codes(item) == ["noProjectId"]

    def test_missing_labels_record_validations(self, parser):
        item = parser.parse(make_issue(labels=[]))
        assert item.area_ids == []
        assert item.area is None
        assert item.teams == []
        assert codes(item) == ["missingAreaLabel", "missingTeamLabel"]

    def test_untranslated_team_is_kept_with_warning(self, parser):
        item = parser.parse(make_issue(labels=["area:platform", "team:team-z"]))

        assert item.teams == ["team-z"]
        [validation] = item.validations
        assert validation.code == "missingTeamTranslation"
        assert validation.status == "warning"
        assert validation.parameter == "team-z"

    def test_missing_effort_defaults_to_zero(self, parser):
        item = parser.parse(make_issue(effort=None))
        assert item.effort == 0
        assert codes(item) == ["missingEstimate"]

    def test_granular_effort_records_validation(self, parser):
        item = parser.parse(make_issue(effort=1.3))
        assert item.effort == 1.3
        assert codes(item) == ["tooGranularEstimate"]

    def test_half_week_effort_is_valid(self, parser):
        assert parser.parse(make_issue(effort=2.5)).validations == []

    def test_missing_assignee_falls_back_to_reporter(self, parser):
        item = parser.parse(make_issue(assignee=None))

        assert codes(item) == ["missingAssignee"]
        assert isinstance(item.assignee, RawAssignee)
        assert item.assignee.raw["accountId"] == "reporter-1"

    def test_validation_order(self, parser):
        item = parser.parse(make_issue(labels=[], parent=None, effort=None, assignee=None))
        assert codes(item) == [
            "noProjectId",
            "missingAreaLabel",
            "missingTeamLabel",
            "missingEstimate",
            "missingAssignee",
        ]

    def test_unknown_stage_is_internal(self, parser):
        item = parser.parse(make_issue(summary="Refactoring"))
        assert item.stage == "internal"
        assert item.name == "Refactoring"
        assert item.is_external is False

    def test_internal_marker_is_not_external(self, parser):
        item = parser.parse(make_issue(summary="Spike (internal) (s1)"))
        assert item.stage == "s1"
        assert item.is_external is False

    def test_status_mapping(self, parser):
        assert parser.parse(make_issue(status_id="18235")).status == "done"

    def test_cycle_falls_back_to_own_sprint(self):
        parser = ReleaseItemParser(make_settings())
        sprint = [{"id": 7, "name": "Cycle 7", "startDate": "2024-05-01", "state": "FUTURE"}]

        item = parser.parse(make_issue(sprint=sprint))

        assert item.cycle == CycleRef("7", "Cycle 7", "2024-05-01", "future")

    def test_no_cycle_at_all(self):
        item = ReleaseItemParser(make_settings()).parse(make_issue())
        assert item.cycle is None

    def test_missing_key_raises(self, parser):
        with pytest.raises(IssueParseError):
            parser.parse({"fields": {}})

    def test_non_numeric_effort_counts_as_missing(self, parser):
        item = parser.parse(make_issue(effort={"value": "2"}))
        assert item.effort == 0
        assert codes(item) == ["missingEstimate"]

    def test_numeric_string_effort(self, parser):
        assert parser.parse(make_issue(effort="1.5")).effort == 1.5

    def test_non_string_labels_field_counts_as_no_labels(self, parser):
        item = parser.parse(make_issue(labels="area:platform"))
        assert codes(item) == ["missingAreaLabel", "missingTeamLabel"]

    def test_malformed_field_raises_parse_error_with_key(self, parser):
        with pytest.raises(IssueParseError) as exc_info:
            parser.parse(make_issue("REL-5", summary=["Checkout"]))
        assert exc_info.value.issue_key == "REL-5"

    def test_missing_fields_raises(self, parser):
        with pytest.raises(IssueParseError) as exc_info:
            parser.parse({"key": "REL-9"})
        assert exc_info.value.issue_key == "REL-9"


def test_get_jira_link_strips_trailing_slash():
    settings = make_settings(jira_url="https://jira.example.com/")
    assert get_jira_link("REL-1", settings) == "https://jira.example.com/browse/REL-1"
