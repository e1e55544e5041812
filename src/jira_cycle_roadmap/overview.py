"""Release plan validation and the roadmap overview across cycles."""

from datetime import datetime

from jira_cycle_roadmap.config import RoadmapSettings
from jira_cycle_roadmap.issue_parser import IssueParser
from jira_cycle_roadmap.models import (
    Cycle,
    CycleReleaseItems,
    ReleaseItem,
    RoadmapOverview,
)
from jira_cycle_roadmap.resolvers import (
    is_final_release_stage,
    is_in_backlog,
    is_releasable_stage,
    is_scheduled_for_future,
)
from jira_cycle_roadmap.roadmap_item_parser import RoadmapItemParser


def validate_gtm_plan(
    release_items: list[ReleaseItem] | None,
    settings: RoadmapSettings,
    now: datetime | None = None,
) -> dict[str, bool]:
    """Check the go-to-market plan of one roadmap item.

    Returns an empty dict when there are no release items, so callers can
    tell "nothing to check" apart from a computed ``False``.
    """
    if not release_items:
        return {}

    has_scheduled_release = False
    has_global_release_in_backlog = False
    for item in release_items:
        scheduled = is_scheduled_for_future(item, now)
        if scheduled and is_releasable_stage(item.stage, settings):
            has_scheduled_release = True
        if (is_in_backlog(item) or scheduled) and is_final_release_stage(item.stage, settings):
            has_global_release_in_backlog = True

    return {
        "hasScheduledRelease": has_scheduled_release,
        "hasGlobalReleaseInBacklog": has_global_release_in_backlog,
    }


def generate_overview(
    issues_per_cycle: list[list[dict]],
    cycles: list[Cycle],
    roadmap_items: dict[str, dict],
    settings: RoadmapSettings,
    backlog_issues: list[dict] | None = None,
    now: datetime | None = None,
) -> list[RoadmapOverview]:
    """Build the external release plan of every known roadmap item.

    Roadmap items without any external release item in the given cycles are
    left out. Backlog issues only count towards the release plan flags.
    """
    issue_parser = IssueParser(roadmap_items, settings)
    roadmap_item_parser = RoadmapItemParser(roadmap_items, settings)

    release_items: list[ReleaseItem] = []
    for issues, cycle in zip(issues_per_cycle, cycles):
        items, _ = issue_parser.parse_release_items(issues, cycle)
        release_items.extend(items)
    backlog_items, _ = issue_parser.parse_release_items(backlog_issues or [], None)
    release_items.extend(backlog_items)

    overview = []
    for roadmap_item_id in roadmap_items:
        own_items = [item for item in release_items if item.roadmap_item_id == roadmap_item_id]
        roadmap_item = roadmap_item_parser.parse(roadmap_item_id, own_items)

        per_cycle = []
        for cycle in cycles:
            external_items = [
                item for item in roadmap_item.release_items
                if item.cycle_id == cycle.id and item.is_external
            ]
            if external_items:
                per_cycle.append(CycleReleaseItems(cycle_id=cycle.id, release_items=external_items))

        if not per_cycle:
            continue

        overview.append(RoadmapOverview(
            id=roadmap_item_id,
            summary=roadmap_item.name,
            initiative=roadmap_item.initiative,
            initiative_id=roadmap_item.initiative_id,
            theme=roadmap_item.theme,
            area=roadmap_item.area,
            url=roadmap_item.url,
            release_plan=validate_gtm_plan(roadmap_item.release_items, settings, now),
            cycles=per_cycle,
        ))

    return overview
