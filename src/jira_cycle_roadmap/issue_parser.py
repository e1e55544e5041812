"""Turn raw JIRA issues into the initiative -> roadmap item -> release item tree."""

import logging

from jira_cycle_roadmap.config import RoadmapSettings
from jira_cycle_roadmap.exceptions import IssueParseError
from jira_cycle_roadmap.labels import translate_label
from jira_cycle_roadmap.models import (
    Cycle,
    Initiative,
    ParseResult,
    ProcessingError,
    ReleaseItem,
    RoadmapItem,
)
from jira_cycle_roadmap.release_item_parser import ReleaseItemParser
from jira_cycle_roadmap.roadmap_item_parser import RoadmapItemParser

logger = logging.getLogger(__name__)

VIRTUAL_INITIATIVE_ID = "virtual"


class IssueParser:
    """Parses issues of one or more cycles against known roadmap items."""

    def __init__(self, roadmap_items: dict[str, dict], settings: RoadmapSettings) -> None:
        self.settings = settings
        self._roadmap_item_parser = RoadmapItemParser(roadmap_items, settings)

    def parse(self, issues: list[dict], cycle: Cycle | None = None) -> ParseResult:
        release_items, errors = self.parse_release_items(issues, cycle)
        return self._build_tree(release_items, errors)

    def parse_cycles(
        self, issues_per_cycle: list[list[dict]], cycles: list[Cycle]
    ) -> ParseResult:
        """Parse one issue list per cycle into a single tree.

        ``issues_per_cycle[i]`` holds the issues fetched for ``cycles[i]``.
        """
        if len(issues_per_cycle) != len(cycles):
            raise ValueError(
                f"Got {len(issues_per_cycle)} issue lists for {len(cycles)} cycles"
            )

        release_items: list[ReleaseItem] = []
        errors: list[ProcessingError] = []
        for issues, cycle in zip(issues_per_cycle, cycles):
            items, cycle_errors = self.parse_release_items(issues, cycle)
            release_items.extend(items)
            errors.extend(cycle_errors)
        return self._build_tree(release_items, errors)

    def parse_release_items(
        self, issues: list[dict], cycle: Cycle | None = None
    ) -> tuple[list[ReleaseItem], list[ProcessingError]]:
        """Parse issues, skipping the ones that are structurally broken."""
        parser = ReleaseItemParser(self.settings, cycle)
        release_items: list[ReleaseItem] = []
        errors: list[ProcessingError] = []
        for issue in issues:
            try:
                release_items.append(parser.parse(issue))
            except IssueParseError as e:
                logger.warning("Skipping issue %s: %s", e.issue_key, e)
                errors.append(ProcessingError(issue_key=e.issue_key, message=str(e)))
        return release_items, errors

    def group_by_roadmap_items(self, release_items: list[ReleaseItem]) -> list[RoadmapItem]:
        """Group release items on their roadmap item id, in order of appearance.

        Items without a roadmap item are not part of any group.
        """
        grouped: dict[str, list[ReleaseItem]] = {}
        for item in release_items:
            if item.roadmap_item_id is None:
                continue
            grouped.setdefault(item.roadmap_item_id, []).append(item)

        return [
            self._roadmap_item_parser.parse(roadmap_item_id, items)
            for roadmap_item_id, items in grouped.items()
        ]

    def group_by_initiatives(self, roadmap_items: list[RoadmapItem]) -> list[Initiative]:
        """Group roadmap items on their initiative id.

        Roadmap items of the virtual theme form their own initiative, last.
        """
        translations = self.settings.label_translations
        virtual_label = translate_label("theme", self.settings.virtual_theme, translations)

        virtuals: list[RoadmapItem] = []
        grouped: dict[str, list[RoadmapItem]] = {}
        for roadmap_item in roadmap_items:
            if roadmap_item.theme == virtual_label:
                virtuals.append(roadmap_item)
            else:
                grouped.setdefault(roadmap_item.initiative_id, []).append(roadmap_item)

        initiatives = [
            Initiative(
                id=initiative_id,
                name=items[0].initiative
                or translate_label("initiative", initiative_id, translations),
                roadmap_items=items,
            )
            for initiative_id, items in grouped.items()
        ]

        if virtuals:
            initiatives.append(
                Initiative(id=VIRTUAL_INITIATIVE_ID, name=virtual_label, roadmap_items=virtuals)
            )
        return initiatives

    def _build_tree(
        self, release_items: list[ReleaseItem], errors: list[ProcessingError]
    ) -> ParseResult:
        orphans = [item for item in release_items if item.roadmap_item_id is None]
        roadmap_items = self.group_by_roadmap_items(release_items)
        return ParseResult(
            initiatives=self.group_by_initiatives(roadmap_items),
            orphans=orphans,
            errors=errors,
        )


def parse_issues(
    issues: list[dict],
    roadmap_items: dict[str, dict],
    settings: RoadmapSettings,
    cycle: Cycle | None = None,
) -> ParseResult:
    """Parse the issues of a single cycle."""
    return IssueParser(roadmap_items, settings).parse(issues, cycle)


def parse_cycles(
    issues_per_cycle: list[list[dict]],
    cycles: list[Cycle],
    roadmap_items: dict[str, dict],
    settings: RoadmapSettings,
) -> ParseResult:
    """Parse the issues of several cycles into one tree."""
    return IssueParser(roadmap_items, settings).parse_cycles(issues_per_cycle, cycles)
