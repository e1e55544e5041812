"""Parse roadmap items from their parent issues and grouped release items."""

import logging
from dataclasses import replace
from datetime import date

from jira_cycle_roadmap.config import RoadmapSettings
from jira_cycle_roadmap.labels import (
    FALLBACK_INITIATIVE,
    LabelResolution,
    collect_area,
    collect_initiative,
    collect_theme,
    parse_area,
)
from jira_cycle_roadmap.models import ReleaseItem, RoadmapItem, Validation
from jira_cycle_roadmap.release_item_parser import get_jira_link
from jira_cycle_roadmap.resolvers import (
    is_external_stage,
    is_final_release_stage,
    parse_datetime,
)
from jira_cycle_roadmap.validations import make_validation

logger = logging.getLogger(__name__)


def parse_roadmap_item_name(summary: str) -> str:
    """Strip a leading ``[prefix]`` and a trailing ``[suffix]`` from a summary."""
    start = summary.find("]") + 1 if summary.startswith("[") else 0
    suffix = summary.rfind("[")
    end = suffix if suffix > 0 else len(summary)
    return summary[start:end].strip()


def _parse_date(value) -> date | None:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


class RoadmapItemParser:
    """Builds roadmap items from parent issue data keyed by roadmap item id."""

    def __init__(self, roadmap_items: dict[str, dict], settings: RoadmapSettings) -> None:
        self.roadmap_items = roadmap_items
        self.settings = settings

    def parse(self, roadmap_item_id: str, release_items: list[ReleaseItem] | None = None) -> RoadmapItem:
        release_items = [
            item if item.roadmap_item_id == roadmap_item_id
            else replace(item, roadmap_item_id=roadmap_item_id)
            for item in release_items or []
        ]
        owning_team = self._owning_team(release_items)
        url = get_jira_link(roadmap_item_id, self.settings)

        raw = self.roadmap_items.get(roadmap_item_id)
        if raw is None:
            logger.info(
                "Roadmap item %s not found for release items %s",
                roadmap_item_id,
                [item.ticket_id for item in release_items],
            )
            return RoadmapItem(
                id=roadmap_item_id,
                name="",
                url=url,
                initiative=FALLBACK_INITIATIVE,
                initiative_id=FALLBACK_INITIATIVE,
                owning_team=owning_team,
                release_items=release_items,
            )

        fields = raw.get("fields", raw)
        labels = fields.get("labels")
        if not isinstance(labels, list):
            labels = []
        summary = fields.get("summary")
        if not isinstance(summary, str):
            summary = ""
        translations = self.settings.label_translations

        area = collect_area(labels, translations)
        theme = collect_theme(labels, translations)
        initiative = collect_initiative(labels, translations)

        validations = [
            *self._label_validations(roadmap_item_id, area),
            *self._label_validations(roadmap_item_id, theme),
            *self._label_validations(roadmap_item_id, initiative),
        ]

        is_external = self._is_external(fields, release_items)
        validations.extend(self._external_validations(roadmap_item_id, fields, release_items))

        no_pre_release_allowed = self.settings.no_pre_release_allowed_label in labels
        cycle_starts = [
            start for start in (
                _parse_date(item.cycle.start) for item in release_items if item.cycle
            ) if start
        ]

        return RoadmapItem(
            id=roadmap_item_id,
            name=parse_roadmap_item_name(summary),
            summary=summary,
            description=self._description(fields),
            url=url,
            area=area.value,
            area_ids=parse_area(labels),
            theme=theme.value,
            initiative=initiative.value,
            initiative_id=initiative.id,
            is_external=is_external,
            owning_team=owning_team,
            release_items=self._update_release_items_external_state(
                roadmap_item_id, is_external, no_pre_release_allowed, release_items
            ),
            labels=list(labels),
            start_date=min(cycle_starts) if cycle_starts else None,
            end_date=_parse_date(fields.get("duedate")),
            validations=validations,
        )

    def _label_validations(self, item_id: str, resolution: LabelResolution) -> list[Validation]:
        parameters = list(resolution.parameters)
        validations = []
        for code in resolution.codes:
            parameter = parameters.pop(0) if code.endswith("Translation") and parameters else None
            validations.append(make_validation(item_id, code, parameter))
        return validations

    def _owning_team(self, release_items: list[ReleaseItem]) -> str | None:
        for item in release_items:
            if item.teams:
                return item.teams[0]
        return None

    def _description(self, fields: dict) -> str | None:
        field_id = self.settings.external_roadmap_description_field or "description"
        value = fields.get(field_id)
        return value if isinstance(value, str) else None

    def _external_flag(self, fields: dict):
        field_id = self.settings.external_roadmap_field
        value = fields.get(field_id)
        if isinstance(value, dict):
            value = value.get("value")
        return value

    def _is_external(self, fields: dict, release_items: list[ReleaseItem]) -> bool:
        if self.settings.external_roadmap_field:
            return self._external_flag(fields) == "Yes"
        return any(item.is_external for item in release_items)

    def _external_validations(
        self, item_id: str, fields: dict, release_items: list[ReleaseItem]
    ) -> list[Validation]:
        if not self.settings.external_roadmap_field:
            return []

        validations = []
        flag = self._external_flag(fields)
        if not flag:
            validations.append(make_validation(item_id, "missingExternalRoadmap"))

        description_field = self.settings.external_roadmap_description_field
        if flag == "Yes" and description_field and not fields.get(description_field):
            validations.append(make_validation(item_id, "missingExternalRoadmapDescription"))

        has_staged_item = any(
            is_external_stage(item.stage, self.settings) for item in release_items
        )
        if flag != "Yes" and has_staged_item:
            validations.append(make_validation(item_id, "internalWithStagedReleaseItem"))
        return validations

    def _update_release_items_external_state(
        self,
        roadmap_item_id: str,
        is_roadmap_item_external: bool,
        no_pre_release_allowed: bool,
        release_items: list[ReleaseItem],
    ) -> list[ReleaseItem]:
        """Reconcile release item externality with their roadmap item.

        A release item is external only if its stage is external and its roadmap
        item is external or allows no pre-release.
        """
        updated = []
        for item in release_items:
            has_external_stage = is_external_stage(item.stage, self.settings)
            is_final = is_final_release_stage(item.stage, self.settings)
            is_external = has_external_stage and (
                is_roadmap_item_external or no_pre_release_allowed
            )

            if is_external != item.is_external:
                logger.info(
                    "Release item %s (stage %s) external changed %s -> %s in %s",
                    item.ticket_id, item.stage, item.is_external, is_external, roadmap_item_id,
                )

            validations = list(item.validations)
            if has_external_stage and no_pre_release_allowed and not is_final:
                logger.info(
                    "Pre-release violation on %s (stage %s) in %s",
                    item.ticket_id, item.stage, roadmap_item_id,
                )
                validations.append(
                    make_validation(item.ticket_id, "tooLowStageWithoutProperRoadmapItem")
                )

            updated.append(replace(item, is_external=is_external, validations=validations))
        return updated
