"""Tests for the cascading initiative tree filter."""

import copy
import logging

import pytest

from builders import make_release_item, make_tree
from jira_cycle_roadmap.filters import (
    always_false,
    always_true,
    apply_filters,
    combine_predicates,
    create_area_predicate,
    create_assignees_predicate,
    create_cycle_predicate,
    create_filter_predicates,
    filter_by_area,
    filter_by_assignees,
    filter_by_cycle,
    filter_by_initiatives,
    filter_by_stages,
    filter_initiatives,
)
from jira_cycle_roadmap.models import CycleRef, FilterConfig, PersonRef, RawAssignee, Selection


def release_item_ids(initiatives):
    return [
        release_item.id
        for initiative in initiatives
        for roadmap_item in initiative.roadmap_items
        for release_item in roadmap_item.release_items
    ]


@pytest.fixture
def tree():
    return make_tree()


class TestFilterByAssignees:
    """Tests for filter_by_assignees."""

    def test_selects_initiative_of_assignee(self, tree):
        result = filter_by_assignees(tree, ["user-1"])

        assert [i.id for i in result] == ["init-1"]
        assert release_item_ids(result) == ["REL-1", "REL-2"]

    def test_empty_selection_returns_tree_unchanged(self, tree):
        assert filter_by_assignees(tree, []) is tree

    def test_all_selection_returns_tree_unchanged(self, tree):
        assert filter_by_assignees(tree, ["all"]) is tree
        assert filter_by_assignees(tree, [Selection(None, "All Assignees")]) is tree

    def test_none_entry_is_wildcard(self, tree):
        assert filter_by_assignees(tree, ["user-2", None]) is tree

    def test_matches_every_assignee_shape(self):
        items = [
            make_release_item("REL-1", assignee="user-1"),
            make_release_item("REL-2", assignee=PersonRef("user-1", "Ada")),
            make_release_item("REL-3", assignee=RawAssignee({"accountId": "user-1"})),
            make_release_item("REL-4", assignee=RawAssignee({"id": "user-1"})),
            make_release_item("REL-5", assignee=None),
        ]
        predicate = create_assignees_predicate([PersonRef("user-1")])

        assert [item.id for item in items if predicate(item)] == [
            "REL-1", "REL-2", "REL-3", "REL-4",
        ]


class TestFilterByArea:
    """Tests for filter_by_area."""

    def test_matches_area_ids(self, tree):
        assert release_item_ids(filter_by_area(tree, "platform")) == ["REL-1"]

    def test_matches_display_area_case_insensitive(self, tree):
        assert release_item_ids(filter_by_area(tree, "WEB")) == ["REL-2", "REL-3"]

    def test_all_returns_tree_unchanged(self, tree):
        assert filter_by_area(tree, "all") is tree
        assert filter_by_area(tree, None) is tree

    def test_non_string_area_is_no_filter(self):
        assert create_area_predicate(42) is always_true


class TestFilterByStages:
    """Tests for filter_by_stages."""

    def test_selects_stages(self, tree):
        assert release_item_ids(filter_by_stages(tree, ["s1", Selection("s3")])) == ["REL-1", "REL-3"]

    def test_all_returns_tree_unchanged(self, tree):
        assert filter_by_stages(tree, [{"id": "all"}]) is tree
        assert filter_by_stages(tree, []) is tree

    def test_no_match_empties_tree(self, tree):
        assert filter_by_stages(tree, ["s0"]) == []


class TestFilterByInitiatives:
    """Tests for filter_by_initiatives."""

    def test_selects_initiative(self, tree):
        result = filter_by_initiatives(tree, [{"id": "init-2", "name": "Initiative Two"}])
        assert [i.id for i in result] == ["init-2"]

    def test_all_returns_tree_unchanged(self, tree):
        assert filter_by_initiatives(tree, ["all"]) is tree


class TestFilterByCycle:
    """Tests for the fail-closed cycle filter."""

    def test_selects_cycle(self, tree):
        assert release_item_ids(filter_by_cycle(tree, CycleRef("1", "Cycle 1"))) == ["REL-1", "REL-3"]

    def test_accepts_plain_id(self, tree):
        assert release_item_ids(filter_by_cycle(tree, "2")) == ["REL-2"]

    def test_missing_cycle_rejects_everything(self, tree):
        assert filter_by_cycle(tree, None) == []

    def test_invalid_cycle_records_diagnostic(self, tree, caplog):
        with caplog.at_level(logging.WARNING):
            result = apply_filters(tree, FilterConfig(cycle={"id": "all"}))

        assert result.initiatives == []
        assert [d.code for d in result.diagnostics] == ["invalidCycle"]
        assert "invalidCycle" in caplog.text

    def test_empty_cycle_id_is_invalid(self):
        diagnostics = []
        predicate = create_cycle_predicate(Selection(""), diagnostics)

        assert predicate is always_false
        assert [d.code for d in diagnostics] == ["invalidCycle"]

    def test_missing_cycle_diagnostic(self):
        diagnostics = []
        assert create_cycle_predicate(None, diagnostics) is always_false
        assert [d.code for d in diagnostics] == ["missingCycle"]

    def test_cycle_not_applied_when_unset_in_config(self, tree):
        result = apply_filters(tree, FilterConfig())
        assert result.diagnostics == []
        assert result.total_release_items == 3


class TestApplyFilters:
    """Tests for apply_filters and combined configurations."""

    def test_combines_axes(self, tree):
        config = FilterConfig(area="web", assignees=["user-1"], cycle="2")
        result = apply_filters(tree, config)

        assert release_item_ids(result.initiatives) == ["REL-2"]
        assert result.applied_filters is config
        assert (result.total_initiatives, result.total_roadmap_items, result.total_release_items) == (
            1, 1, 1,
        )

    def test_cascading_prunes_empty_parents(self, tree):
        result = filter_initiatives(tree, FilterConfig(stages=["s3"]))

        for initiative in result:
            assert initiative.roadmap_items
            for roadmap_item in initiative.roadmap_items:
                assert roadmap_item.release_items
        assert [i.id for i in result] == ["init-2"]

    def test_idempotent_and_source_untouched(self, tree):
        original = copy.deepcopy(tree)
        config = FilterConfig(area="web", cycle="1")

        first = filter_initiatives(tree, config)
        second = filter_initiatives(tree, config)

        assert first == second
        assert tree == original

    def test_no_config_keeps_everything(self, tree):
        assert filter_initiatives(tree, None) == tree

    def test_initiative_and_release_item_axes_are_separate(self):
        predicates = create_filter_predicates(FilterConfig(initiatives=["init-1"]))
        assert predicates.release_item is always_true
        assert predicates.initiative is not always_true


class TestCombinePredicates:
    """Tests for combine_predicates."""

    def test_no_active_predicates(self):
        assert combine_predicates(always_true, always_true) is always_true

    def test_any_always_false(self):
        assert combine_predicates(lambda item: True, always_false) is always_false

    def test_ands_predicates(self):
        predicate = combine_predicates(lambda n: n > 1, lambda n: n < 5)
        assert [n for n in range(7) if predicate(n)] == [2, 3, 4]
