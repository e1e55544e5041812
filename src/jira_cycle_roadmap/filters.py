"""Predicate-based filtering of the initiative tree.

Release items are filtered first. Roadmap items left without release items
are dropped, then initiatives that are not selected or left empty.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from jira_cycle_roadmap.models import (
    Cycle,
    CycleRef,
    FilterConfig,
    FilterDiagnostic,
    FilterResult,
    Initiative,
    PersonRef,
    ReleaseItem,
    Selection,
    assignee_id,
)

logger = logging.getLogger(__name__)

ALL = "all"
ALL_ASSIGNEES_NAMES = (ALL, "All Assignees")

Predicate = Callable[[object], bool]


def always_true(_item) -> bool:
    return True


def always_false(_item) -> bool:
    return False


def _selector_parts(entry) -> tuple[str | None, str | None]:
    """Return ``(id, name)`` of a selector given as string, object or dict."""
    if isinstance(entry, str):
        return entry, None
    if isinstance(entry, (Selection, PersonRef, Cycle, CycleRef)):
        return entry.id, getattr(entry, "name", None)
    if isinstance(entry, dict):
        return entry.get("id"), entry.get("name")
    return None, None


def _selected_ids(selectors: list) -> list[str]:
    ids = []
    for entry in selectors:
        selector_id, _ = _selector_parts(entry)
        if selector_id and str(selector_id) != ALL:
            ids.append(str(selector_id))
    return ids


def _is_all(entry, all_names=(ALL,)) -> bool:
    selector_id, name = _selector_parts(entry)
    return selector_id == ALL or name in all_names


def combine_predicates(*predicates: Predicate) -> Predicate:
    """AND the predicates together."""
    active = [p for p in predicates if p is not always_true]
    if not active:
        return always_true
    if any(p is always_false for p in active):
        return always_false
    return lambda item: all(predicate(item) for predicate in active)


def create_area_predicate(selected_area: str | None) -> Predicate:
    if not selected_area or not isinstance(selected_area, str) or selected_area.lower() == ALL:
        return always_true

    wanted = selected_area.lower()

    def matches_area(release_item: ReleaseItem) -> bool:
        area = getattr(release_item, "area", None)
        if isinstance(area, str) and area.lower() == wanted:
            return True
        area_ids = getattr(release_item, "area_ids", None) or []
        return any(isinstance(a, str) and a.lower() == wanted for a in area_ids)

    return matches_area


def create_stages_predicate(selected_stages: list | None) -> Predicate:
    if not selected_stages or any(_is_all(entry) for entry in selected_stages):
        return always_true

    stage_ids = _selected_ids(selected_stages)
    if not stage_ids:
        return always_true

    def matches_stage(release_item: ReleaseItem) -> bool:
        stage = getattr(release_item, "stage", None)
        return bool(stage) and stage in stage_ids

    return matches_stage


def create_assignees_predicate(selected_assignees: list | None) -> Predicate:
    """Match release items assigned to any selected person.

    A ``None`` entry acts as a wildcard, like the "all" sentinel.
    """
    if not selected_assignees:
        return always_true
    if any(entry is None or _is_all(entry, ALL_ASSIGNEES_NAMES) for entry in selected_assignees):
        return always_true

    ids = set(_selected_ids(selected_assignees))
    if not ids:
        return always_true

    def matches_assignee(release_item: ReleaseItem) -> bool:
        found = assignee_id(getattr(release_item, "assignee", None))
        return found is not None and found in ids

    return matches_assignee


def create_initiatives_predicate(selected_initiatives: list | None) -> Predicate:
    if not selected_initiatives or any(_is_all(entry) for entry in selected_initiatives):
        return always_true

    ids = set(_selected_ids(selected_initiatives))
    if not ids:
        return always_true

    def matches_initiative(initiative: Initiative) -> bool:
        initiative_id = getattr(initiative, "id", None)
        return initiative_id is not None and str(initiative_id) in ids

    return matches_initiative


def _report(diagnostics: list[FilterDiagnostic] | None, code: str, message: str) -> None:
    logger.warning("%s: %s", code, message)
    if diagnostics is not None:
        diagnostics.append(FilterDiagnostic(code=code, message=message))


def create_cycle_predicate(
    selected_cycle, diagnostics: list[FilterDiagnostic] | None = None
) -> Predicate:
    """Match release items of the selected cycle.

    A missing cycle or a cycle id that is empty or "all" is a configuration
    error: every item is rejected and a diagnostic is recorded.
    """
    if selected_cycle is None:
        _report(diagnostics, "missingCycle", "No cycle selected; rejecting all items")
        return always_false

    cycle_id, _ = _selector_parts(selected_cycle)
    if not cycle_id or str(cycle_id) == ALL:
        _report(
            diagnostics,
            "invalidCycle",
            f"Invalid cycle selector {selected_cycle!r}; rejecting all items",
        )
        return always_false

    cycle_id = str(cycle_id)

    def matches_cycle(release_item: ReleaseItem) -> bool:
        return getattr(release_item, "cycle_id", None) == cycle_id

    return matches_cycle


@dataclass(frozen=True)
class FilterPredicates:
    release_item: Predicate
    initiative: Predicate
    diagnostics: list[FilterDiagnostic] = field(default_factory=list)


def create_filter_predicates(config: FilterConfig | None) -> FilterPredicates:
    config = config or FilterConfig()
    diagnostics: list[FilterDiagnostic] = []

    predicates = [
        create_area_predicate(config.area),
        create_stages_predicate(config.stages),
        create_assignees_predicate(config.assignees),
    ]
    if config.cycle is not None:
        predicates.append(create_cycle_predicate(config.cycle, diagnostics))

    return FilterPredicates(
        release_item=combine_predicates(*predicates),
        initiative=create_initiatives_predicate(config.initiatives),
        diagnostics=diagnostics,
    )


def apply_filters(initiatives: list[Initiative], config: FilterConfig | None) -> FilterResult:
    """Filter the tree and report what survived."""
    config = config or FilterConfig()
    predicates = create_filter_predicates(config)

    filtered: list[Initiative] = []
    for initiative in initiatives or []:
        if not predicates.initiative(initiative):
            continue

        roadmap_items = []
        for roadmap_item in initiative.roadmap_items:
            release_items = [
                item for item in roadmap_item.release_items if predicates.release_item(item)
            ]
            if release_items:
                roadmap_items.append(replace(roadmap_item, release_items=release_items))

        if roadmap_items:
            filtered.append(replace(initiative, roadmap_items=roadmap_items))

    roadmap_item_count = sum(len(i.roadmap_items) for i in filtered)
    release_item_count = sum(
        len(r.release_items) for i in filtered for r in i.roadmap_items
    )
    return FilterResult(
        initiatives=filtered,
        applied_filters=config,
        diagnostics=predicates.diagnostics,
        total_initiatives=len(filtered),
        total_roadmap_items=roadmap_item_count,
        total_release_items=release_item_count,
    )


def filter_initiatives(initiatives: list[Initiative], config: FilterConfig | None) -> list[Initiative]:
    return apply_filters(initiatives, config).initiatives


def filter_by_area(initiatives: list[Initiative], area: str | None) -> list[Initiative]:
    if create_area_predicate(area) is always_true:
        return initiatives
    return filter_initiatives(initiatives, FilterConfig(area=area))


def filter_by_stages(initiatives: list[Initiative], stages: list | None) -> list[Initiative]:
    if create_stages_predicate(stages) is always_true:
        return initiatives
    return filter_initiatives(initiatives, FilterConfig(stages=list(stages)))


def filter_by_assignees(initiatives: list[Initiative], assignees: list | None) -> list[Initiative]:
    if create_assignees_predicate(assignees) is always_true:
        return initiatives
    return filter_initiatives(initiatives, FilterConfig(assignees=list(assignees)))


def filter_by_initiatives(initiatives: list[Initiative], selected: list | None) -> list[Initiative]:
    if create_initiatives_predicate(selected) is always_true:
        return initiatives
    return filter_initiatives(initiatives, FilterConfig(initiatives=list(selected)))


def filter_by_cycle(initiatives: list[Initiative], cycle) -> list[Initiative]:
    """Keep only release items of one cycle; an unset cycle yields nothing."""
    if cycle is None:
        create_cycle_predicate(None)
        return []
    return filter_initiatives(initiatives, FilterConfig(cycle=cycle))
