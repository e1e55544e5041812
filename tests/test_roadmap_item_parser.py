"""Tests for roadmap item parsing and external state reconciliation."""

from dataclasses import replace
from datetime import date

from builders import make_release_item, make_roadmap_issue, make_settings
from jira_cycle_roadmap.models import CycleRef
from jira_cycle_roadmap.roadmap_item_parser import (
    RoadmapItemParser,
    parse_roadmap_item_name,
)


def codes(item):
    return [v.code for v in item.validations]


class TestParseRoadmapItemName:
    """Tests for parse_roadmap_item_name."""

    def test_strips_prefix(self):
        assert parse_roadmap_item_name("[Web] Checkout revamp") == "Checkout revamp"

    def test_strips_suffix(self):
        assert parse_roadmap_item_name("Checkout revamp [Q3]") == "Checkout revamp"

    def test_strips_both(self):
        assert parse_roadmap_item_name("[Web] Checkout revamp [Q3]") == "Checkout revamp"

    def test_plain_name(self):
        assert parse_roadmap_item_name("  Checkout revamp ") == "Checkout revamp"


class TestRoadmapItemParser:
    """Tests for RoadmapItemParser.parse."""

    def test_parses_labels(self):
        parser = RoadmapItemParser({"ROAD-1": make_roadmap_issue()}, make_settings())

        item = parser.parse("ROAD-1", [make_release_item()])

        assert item.id == "ROAD-1"
        assert item.name == "Checkout revamp"
        assert item.area == "Platform"
        assert item.area_ids == ["platform"]
        assert item.theme == "Growth"
        assert item.initiative == "Initiative One"
        assert item.initiative_id == "init-1"
        assert item.url == "https://jira.example.com/browse/ROAD-1"
        assert item.validations == []

    def test_accepts_flat_field_dicts(self):
        flat = {"summary": "Search", "labels": ["area:web", "theme:growth", "initiative:init-2"]}
        parser = RoadmapItemParser({"ROAD-2": flat}, make_settings())

        item = parser.parse("ROAD-2", [])

        assert item.name == "Search"
        assert item.initiative_id == "init-2"

    def test_unknown_roadmap_item_is_uncategorized(self):
        parser = RoadmapItemParser({}, make_settings())

        item = parser.parse("ROAD-404", [make_release_item(roadmap_item_id="ROAD-404")])

        assert item.initiative_id == "uncategorized"
        assert item.initiative == "uncategorized"
        assert len(item.release_items) == 1

    def test_sets_roadmap_item_id_on_children(self):
        parser = RoadmapItemParser({"ROAD-1": make_roadmap_issue()}, make_settings())

        item = parser.parse("ROAD-1", [make_release_item(roadmap_item_id=None)])

        assert item.release_items[0].roadmap_item_id == "ROAD-1"

    def test_missing_labels_record_validations(self):
        issue = make_roadmap_issue(labels=[])
        parser = RoadmapItemParser({"ROAD-1": issue}, make_settings())

        item = parser.parse("ROAD-1", [])

        assert codes(item) == ["missingAreaLabel", "missingThemeLabel", "missingInitiativeLabel"]
        assert item.initiative_id == "uncategorized"

    def test_translation_warnings_carry_parameter(self):
        issue = make_roadmap_issue(labels=["area:mobile", "theme:growth", "initiative:init-9"])
        parser = RoadmapItemParser({"ROAD-1": issue}, make_settings())

        item = parser.parse("ROAD-1", [])

        assert [(v.code, v.parameter, v.status) for v in item.validations] == [
            ("missingAreaTranslation", "mobile", "warning"),
            ("missingInitiativeTranslation", "init-9", "warning"),
        ]

    def test_owning_team_from_first_release_item_with_teams(self):
        parser = RoadmapItemParser({"ROAD-1": make_roadmap_issue()}, make_settings())
        first = make_release_item("REL-1")
        second = replace(make_release_item("REL-2"), teams=["Team B"])

        item = parser.parse("ROAD-1", [first, second])

        assert item.owning_team == "Team B"

    def test_dates(self):
        issue = make_roadmap_issue(duedate="2024-06-30")
        parser = RoadmapItemParser({"ROAD-1": issue}, make_settings())
        release_items = [
            make_release_item("REL-1", cycle=CycleRef("2", start="2024-02-01")),
            make_release_item("REL-2", cycle=CycleRef("1", start="2024-01-01")),
            make_release_item("REL-3", cycle=None),
        ]

        item = parser.parse("ROAD-1", release_items)

        assert item.start_date == date(2024, 1, 1)
        assert item.end_date == date(2024, 6, 30)


class TestExternalState:
    """Tests for external roadmap validations and release item reconciliation."""

    def settings(self, **overrides):
        values = {
            "external_roadmap_field": "customfield_external",
            "external_roadmap_description_field": "customfield_description",
        }
        values.update(overrides)
        return make_settings(**values)

    def test_external_field_yes(self):
        issue = make_roadmap_issue(
            customfield_external={"value": "Yes"}, customfield_description="Public text"
        )
        parser = RoadmapItemParser({"ROAD-1": issue}, self.settings())

        item = parser.parse("ROAD-1", [make_release_item(stage="s2")])

        assert item.is_external is True
        assert item.description == "Public text"
        assert item.validations == []
        assert item.release_items[0].is_external is True

    def test_missing_external_field(self):
        parser = RoadmapItemParser({"ROAD-1": make_roadmap_issue()}, self.settings())

        item = parser.parse("ROAD-1", [make_release_item(stage="internal", is_external=False)])

        assert item.is_external is False
        assert codes(item) == ["missingExternalRoadmap"]

    def test_missing_external_description(self):
        issue = make_roadmap_issue(customfield_external={"value": "Yes"})
        parser = RoadmapItemParser({"ROAD-1": issue}, self.settings())

        item = parser.parse("ROAD-1", [])

        assert codes(item) == ["missingExternalRoadmapDescription"]

    def test_internal_roadmap_item_with_staged_release_item(self):
        issue = make_roadmap_issue(customfield_external={"value": "No"})
        parser = RoadmapItemParser({"ROAD-1": issue}, self.settings())

        item = parser.parse("ROAD-1", [make_release_item(stage="s2", is_external=True)])

        assert codes(item) == ["internalWithStagedReleaseItem"]
        assert item.release_items[0].is_external is False

    def test_no_pre_release_allowed_keeps_release_items_external(self):
        issue = make_roadmap_issue(
            labels=[
                "area:platform", "theme:growth", "initiative:init-1",
                "roadmap:no-pre-release-allowed",
            ],
            customfield_external={"value": "No"},
        )
        parser = RoadmapItemParser({"ROAD-1": issue}, self.settings())

        item = parser.parse("ROAD-1", [
            make_release_item("REL-1", stage="s2"),
            make_release_item("REL-2", stage="s3+"),
        ])

        low, final = item.release_items
        assert low.is_external is True
        assert codes(low) == ["tooLowStageWithoutProperRoadmapItem"]
        assert final.is_external is True
        assert codes(final) == []

    def test_without_external_field_uses_release_items(self):
        parser = RoadmapItemParser({"ROAD-1": make_roadmap_issue()}, make_settings())

        external = parser.parse("ROAD-1", [make_release_item(stage="s1", is_external=True)])
        internal = parser.parse("ROAD-1", [make_release_item(stage="internal", is_external=False)])

        assert external.is_external is True
        assert internal.is_external is False
        assert external.validations == []
