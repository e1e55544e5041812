"""Parse raw JIRA issues into release items."""

import re

from jira_cycle_roadmap.config import RoadmapSettings
from jira_cycle_roadmap.exceptions import IssueParseError
from jira_cycle_roadmap.labels import (
    get_labels_with_prefix,
    translate_label,
    translate_label_without_fallback,
)
from jira_cycle_roadmap.models import (
    Assignee,
    Cycle,
    CycleRef,
    PersonRef,
    RawAssignee,
    ReleaseItem,
    Validation,
)
from jira_cycle_roadmap.resolvers import (
    UNKNOWN_STAGE,
    issue_sprint,
    is_external_stage,
    resolve_stage,
    resolve_status,
)
from jira_cycle_roadmap.validations import make_validation


def get_jira_link(key: str, settings: RoadmapSettings) -> str:
    return f"{settings.jira_url.rstrip('/')}/browse/{key}"


class ReleaseItemParser:
    """Turns the issues fetched for one cycle into release items."""

    def __init__(self, settings: RoadmapSettings, cycle: Cycle | None = None) -> None:
        self.settings = settings
        self.cycle = cycle
        self.translations = settings.label_translations

    def parse(self, issue: dict) -> ReleaseItem:
        """Parse one issue.

        Business rule violations are recorded as validations on the item.

        Raises:
            IssueParseError: If the issue has no key, no fields or fields of
                an unexpected shape
        """
        key = issue.get("key") if isinstance(issue, dict) else None
        if not key:
            raise IssueParseError("Issue has no key")
        fields = issue.get("fields")
        if not isinstance(fields, dict):
            raise IssueParseError(f"Issue {key} has no fields", issue_key=key)

        try:
            return self._parse_fields(key, fields)
        except (AttributeError, TypeError, ValueError) as e:
            raise IssueParseError(
                f"Issue {key} has malformed fields: {e}", issue_key=key
            ) from e

    def _parse_fields(self, key: str, fields: dict) -> ReleaseItem:
        labels = fields.get("labels")
        if not isinstance(labels, list):
            labels = []
        summary = fields.get("summary") or ""
        validations: list[Validation] = []

        roadmap_item_id = self._collect_roadmap_item_id(key, fields, validations)
        area_ids = self._collect_area_ids(key, labels, validations)
        teams = self._collect_teams(key, labels, validations)
        effort = self._collect_effort(key, fields, validations)
        assignee = self._collect_assignee(key, fields, validations)
        stage = resolve_stage(summary, self.settings)

        return ReleaseItem(
            id=key,
            ticket_id=key,
            name=self._parse_name(summary, stage),
            summary=summary,
            status=resolve_status(fields, self.cycle, self.settings),
            url=get_jira_link(key, self.settings),
            stage=stage,
            effort=effort,
            area_ids=area_ids,
            teams=teams,
            is_external=self._is_external(summary, stage),
            assignee=assignee,
            validations=validations,
            roadmap_item_id=roadmap_item_id,
            cycle=self._collect_cycle(fields),
            created=fields.get("created"),
            area=translate_label("area", area_ids[0], self.translations) if area_ids else None,
        )

    def _collect_roadmap_item_id(
        self, key: str, fields: dict, validations: list[Validation]
    ) -> str | None:
        parent = fields.get("parent")
        if not isinstance(parent, dict) or not parent.get("key"):
            validations.append(make_validation(key, "noProjectId"))
            return None
        return parent["key"]

    def _collect_area_ids(
        self, key: str, labels: list[str], validations: list[Validation]
    ) -> list[str]:
        area_ids = get_labels_with_prefix(labels, "area")
        if not area_ids:
            validations.append(make_validation(key, "missingAreaLabel"))
        return area_ids

    def _collect_teams(
        self, key: str, labels: list[str], validations: list[Validation]
    ) -> list[str]:
        team_labels = get_labels_with_prefix(labels, "team")
        if not team_labels:
            validations.append(make_validation(key, "missingTeamLabel"))
            return []

        teams = []
        for team in team_labels:
            translated = translate_label_without_fallback("team", team, self.translations)
            if translated is None:
                validations.append(make_validation(key, "missingTeamTranslation", team))
                teams.append(team)
            else:
                teams.append(translated)
        return teams

    def _collect_effort(
        self, key: str, fields: dict, validations: list[Validation]
    ) -> float:
        estimate = fields.get(self.settings.effort_field)
        if isinstance(estimate, str):
            try:
                estimate = float(estimate)
            except ValueError:
                estimate = None
        if not isinstance(estimate, (int, float)) or isinstance(estimate, bool):
            validations.append(make_validation(key, "missingEstimate"))
            return 0

        if estimate % 0.5 != 0:
            validations.append(make_validation(key, "tooGranularEstimate"))
        return estimate

    def _collect_assignee(
        self, key: str, fields: dict, validations: list[Validation]
    ) -> Assignee:
        assignee = fields.get("assignee")
        if not assignee or not isinstance(assignee, (str, dict)):
            validations.append(make_validation(key, "missingAssignee"))
            reporter = fields.get("reporter")
            return RawAssignee(reporter) if isinstance(reporter, dict) and reporter else None
        if isinstance(assignee, str):
            return assignee
        if assignee.get("accountId"):
            return PersonRef(
                id=assignee["accountId"], name=assignee.get("displayName", "")
            )
        return RawAssignee(assignee)

    def _collect_cycle(self, fields: dict) -> CycleRef | None:
        if self.cycle is not None:
            return self.cycle.to_ref()
        sprint = issue_sprint(fields, self.settings)
        if not sprint or sprint.get("id") is None:
            return None
        return CycleRef(
            id=str(sprint["id"]),
            name=sprint.get("name", ""),
            start=sprint.get("startDate"),
            state=(sprint.get("state") or "").lower() or None,
        )

    def _parse_name(self, summary: str, stage: str) -> str:
        if stage == UNKNOWN_STAGE:
            return summary.strip()
        stage_pattern = re.compile(rf"\({re.escape(stage)}\)", re.IGNORECASE)
        return stage_pattern.sub("", summary).strip()

    def _is_external(self, summary: str, stage: str) -> bool:
        return is_external_stage(stage, self.settings) and "(internal)" not in summary.lower()
