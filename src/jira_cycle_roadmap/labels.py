"""Label parsing and translation."""

from dataclasses import dataclass, field

# Label type -> bucket in the translation table. New label types are added here.
LABEL_TYPE_BUCKETS = {
    "area": "areas",
    "team": "teams",
    "theme": "themes",
    "initiative": "initiatives",
}

FALLBACK_INITIATIVE = "uncategorized"
NON_ROADMAP_THEME = "non-roadmap"


def get_labels_with_prefix(labels: list[str] | None, prefix: str) -> list[str]:
    """Return the values of all ``prefix:value`` labels, in input order."""
    prefix_with_colon = f"{prefix}:"
    values = []
    for label in labels or []:
        if not isinstance(label, str):
            continue
        trimmed = label.strip()
        if trimmed.startswith(prefix_with_colon):
            values.append(trimmed[len(prefix_with_colon):].strip())
    return values


def translate_label_without_fallback(
    label_type: str, value: str, translations: dict[str, dict[str, str]]
) -> str | None:
    """Translate a label value, or return None when no translation exists.

    Label types missing from LABEL_TYPE_BUCKETS use the type itself as bucket.
    """
    bucket = LABEL_TYPE_BUCKETS.get(label_type, label_type)
    return translations.get(bucket, {}).get(value) or None


def translate_label(
    label_type: str, value: str, translations: dict[str, dict[str, str]]
) -> str:
    """Translate a label value, falling back to the raw value."""
    return translate_label_without_fallback(label_type, value, translations) or value


@dataclass(frozen=True)
class LabelResolution:
    """Outcome of resolving one label category on a roadmap item."""

    value: str | None
    id: str | None = None
    codes: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)


def parse_theme(labels: list[str] | None) -> str | None:
    themes = get_labels_with_prefix(labels, "theme")
    return themes[0] if themes else None


def parse_initiative(labels: list[str] | None) -> str | None:
    initiatives = get_labels_with_prefix(labels, "initiative")
    return initiatives[0] if initiatives else None


def parse_area(labels: list[str] | None) -> list[str]:
    return get_labels_with_prefix(labels, "area")


def collect_initiative(
    labels: list[str] | None, translations: dict[str, dict[str, str]]
) -> LabelResolution:
    """Resolve the initiative of a roadmap item from its labels.

    Items themed ``non-roadmap`` are allowed to have no initiative label.
    """
    initiative = parse_initiative(labels)

    if not initiative:
        codes = [] if parse_theme(labels) == NON_ROADMAP_THEME else ["missingInitiativeLabel"]
        return LabelResolution(FALLBACK_INITIATIVE, FALLBACK_INITIATIVE, codes)

    translated = translate_label_without_fallback("initiative", initiative, translations)
    if not translated:
        return LabelResolution(
            initiative, initiative, ["missingInitiativeTranslation"], [initiative]
        )

    return LabelResolution(translated, initiative)


def collect_theme(
    labels: list[str] | None, translations: dict[str, dict[str, str]]
) -> LabelResolution:
    """Resolve the theme of a roadmap item from its labels."""
    theme = parse_theme(labels)
    if not theme:
        return LabelResolution(None, None, ["missingThemeLabel"])

    translated = translate_label_without_fallback("theme", theme, translations)
    if not translated:
        return LabelResolution(theme, theme, ["missingThemeTranslation"], [theme])

    return LabelResolution(translated, theme)


def collect_area(
    labels: list[str] | None, translations: dict[str, dict[str, str]]
) -> LabelResolution:
    """Resolve the areas of a roadmap item; several areas are joined."""
    area_ids = parse_area(labels)
    if not area_ids:
        return LabelResolution(None, None, ["missingAreaLabel"])

    names: list[str] = []
    codes: list[str] = []
    parameters: list[str] = []
    for area_id in area_ids:
        translated = translate_label_without_fallback("area", area_id, translations)
        if translated:
            names.append(translated)
        else:
            names.append(area_id)
            codes.append("missingAreaTranslation")
            parameters.append(area_id)

    return LabelResolution(", ".join(names), area_ids[0], codes, parameters)
