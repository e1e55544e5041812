"""Validation codes, their user-facing descriptions and builders."""

from jira_cycle_roadmap.models import Initiative, ReleaseItem, Validation

DOCS_URL = "https://docs.example.com"

# Codes whose findings are warnings; everything else is an error.
WARNING_CODES = frozenset({
    "missingTeamTranslation",
    "missingAreaTranslation",
    "missingThemeTranslation",
    "missingInitiativeTranslation",
})

VALIDATION_DICTIONARY: dict[str, dict[str, dict[str, str]]] = {
    "releaseItem": {
        "noProjectId": {
            "label": "The `Roadmap Item` is missing from the Release Item",
            "reference": f"{DOCS_URL}/release-item-conventions",
        },
        "missingAreaLabel": {
            "label": "At least one `area:` prefix label is needed on the Release Item",
            "reference": f"{DOCS_URL}/labeling-conventions",
        },
        "missingTeamLabel": {
            "label": "At least one `team:` prefix label is needed on the Release Item",
            "reference": f"{DOCS_URL}/labeling-conventions",
        },
        "missingTeamTranslation": {
            "label": "The team name `{parameter}` is not yet translated",
            "reference": f"{DOCS_URL}/team-translations",
        },
        "missingEstimate": {
            "label": "The effort estimate is missing from the Release Item",
            "reference": f"{DOCS_URL}/estimation-conventions",
        },
        "tooGranularEstimate": {
            "label": "The effort estimate is too granular, use multiples of 0.5 week",
            "reference": f"{DOCS_URL}/estimation-guidelines",
        },
        "missingAssignee": {
            "label": "The assignee is missing from the Release Item",
            "reference": f"{DOCS_URL}/assignment-requirements",
        },
        "tooLowStageWithoutProperRoadmapItem": {
            "label": (
                "It should have its own Roadmap Item, because at least another "
                "release stage will follow its current stage"
            ),
            "reference": f"{DOCS_URL}/roadmap-item-requirements",
        },
    },
    "roadmapItem": {
        "missingAreaLabel": {
            "label": "At least one `area:` prefix label is needed on the Roadmap Item",
            "reference": f"{DOCS_URL}/labeling-conventions",
        },
        "missingThemeLabel": {
            "label": "At least one `theme:` prefix label is needed on the Roadmap Item",
            "reference": f"{DOCS_URL}/labeling-conventions",
        },
        "missingInitiativeLabel": {
            "label": "At least one `initiative:` prefix label is needed on the Roadmap Item",
            "reference": f"{DOCS_URL}/labeling-conventions",
        },
        "missingAreaTranslation": {
            "label": "The area name `{parameter}` is not yet translated",
            "reference": f"{DOCS_URL}/area-translations",
        },
        "missingThemeTranslation": {
            "label": "The theme `{parameter}` is not yet translated",
            "reference": f"{DOCS_URL}/theme-translations",
        },
        "missingInitiativeTranslation": {
            "label": "The initiative `{parameter}` is not yet translated",
            "reference": f"{DOCS_URL}/initiative-translations",
        },
        "missingExternalRoadmap": {
            "label": (
                'Set the "External Roadmap" field to "Yes" or "No" to indicate '
                "whether this roadmap item belongs on the public roadmap"
            ),
            "reference": f"{DOCS_URL}/external-roadmap-requirements",
        },
        "internalWithStagedReleaseItem": {
            "label": (
                "This roadmap item should be marked external, because at least "
                "one of its release items has a stage"
            ),
            "reference": f"{DOCS_URL}/external-roadmap-requirements",
        },
        "missingExternalRoadmapDescription": {
            "label": "The external roadmap description is required for external roadmap items",
            "reference": f"{DOCS_URL}/external-roadmap-requirements",
        },
    },
}


def make_validation(item_id: str, code: str, parameter: str | None = None) -> Validation:
    """Create a validation entry, with its status derived from the code."""
    status = "warning" if code in WARNING_CODES else "error"
    return Validation(item_id=item_id, code=code, status=status, parameter=parameter)


def describe_validation(validation: Validation, scope: str = "releaseItem") -> dict[str, str]:
    """Return the user-facing label and reference for a validation."""
    entry = VALIDATION_DICTIONARY.get(scope, {}).get(validation.code)
    if entry is None:
        return {"label": validation.code, "reference": ""}
    return {
        "label": entry["label"].format(parameter=validation.parameter or ""),
        "reference": entry["reference"],
    }


def collect_validations(
    initiatives: list[Initiative], orphans: list[ReleaseItem] | None = None
) -> list[tuple[str, Validation]]:
    """Flatten every validation in the tree into ``(scope, validation)`` pairs."""
    collected: list[tuple[str, Validation]] = []
    for initiative in initiatives:
        for roadmap_item in initiative.roadmap_items:
            collected.extend(("roadmapItem", v) for v in roadmap_item.validations)
            for release_item in roadmap_item.release_items:
                collected.extend(("releaseItem", v) for v in release_item.validations)
    for orphan in orphans or []:
        collected.extend(("releaseItem", v) for v in orphan.validations)
    return collected
