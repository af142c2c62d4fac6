"""KDOC v1 grammar: markers, section keys and field metadata."""

import re

START_MARKER = "=== KDOC:v1 ==="
END_MARKER = "=== END_KDOC ==="

SECTION_HEADER_PATTERN = re.compile(r"^\s*\[([A-Z_]+)\]\s*$")

SECTION_ORDER: tuple[str, ...] = (
    "DOC_ID",
    "DOC_TYPE",
    "TITLE",
    "ALIASES",
    "KEYWORDS",
    "SUMMARY",
    "CONTENT",
    "SERVICES",
    "DAY_VISIT",
    "STAY_PACKAGE",
    "REGULATIONS",
    "USAGE",
    "FAQ",
    "SAFETY_NOTE",
    "LAST_UPDATED",
)

REQUIRED_SECTIONS: tuple[str, ...] = (
    "DOC_ID",
    "DOC_TYPE",
    "TITLE",
    "ALIASES",
    "SUMMARY",
    "CONTENT",
    "LAST_UPDATED",
)

DOC_TYPES: tuple[str, ...] = ("product", "faq", "policy", "guide", "info", "company_profile")

SECTION_GROUPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Identification", ("DOC_ID", "DOC_TYPE", "TITLE", "ALIASES", "KEYWORDS")),
    ("Knowledge content", ("SUMMARY", "CONTENT")),
    ("Services & experiences", ("SERVICES", "DAY_VISIT", "STAY_PACKAGE", "REGULATIONS")),
    ("Guidance & notes", ("USAGE", "FAQ", "SAFETY_NOTE")),
    ("Update tracking", ("LAST_UPDATED",)),
)

EXTRA_GROUP_TITLE = "Extended sections"

SECTION_LABELS: dict[str, str] = {
    "DOC_ID": "Document ID",
    "DOC_TYPE": "Document type",
    "TITLE": "Title",
    "ALIASES": "Aliases",
    "KEYWORDS": "Keywords",
    "SUMMARY": "Summary",
    "CONTENT": "Main content",
    "SERVICES": "Services",
    "DAY_VISIT": "Day visit",
    "STAY_PACKAGE": "Stay package",
    "REGULATIONS": "Regulations",
    "USAGE": "Usage",
    "FAQ": "FAQ",
    "SAFETY_NOTE": "Safety note",
    "LAST_UPDATED": "Last updated",
}

SECTION_HINTS: dict[str, str] = {
    "DOC_ID": "Unique identifier, e.g. lemon_essential_oil",
    "DOC_TYPE": "Allowed values: product | faq | policy | guide | info | company_profile",
    "TITLE": "Official display name of the document",
    "ALIASES": "Alternative names, separated by | or new lines",
    "KEYWORDS": "Search keywords, separated by commas",
    "SUMMARY": "Short summary, 1-3 sentences",
    "CONTENT": "Detailed information, bullet points allowed",
    "SERVICES": "Highlighted services or activities (bullets).",
    "DAY_VISIT": "Day-visit package details.",
    "STAY_PACKAGE": "Stay package details (rooms/tents, included services).",
    "REGULATIONS": "Rules that apply when using the service.",
    "USAGE": "Usage or operating instructions",
    "FAQ": "Frequently asked question / answer pairs",
    "SAFETY_NOTE": "Important caveats and scope limits",
    "LAST_UPDATED": "ISO-8601 update date, e.g. 2026-02-08",
}

EXTRA_SECTION_HINT = "Extended section recognized in the document."

SINGLE_LINE_KEYS = frozenset({"DOC_ID", "DOC_TYPE", "TITLE", "LAST_UPDATED"})
LIST_KEYS = frozenset({"ALIASES", "KEYWORDS"})

_LIST_SPLIT = re.compile(r"[\n|,;]+")


def section_lines(key: str, value: str) -> list[str]:
    """Split a section body into display lines.

    List sections (aliases, keywords) also split on ``|``, ``,`` and ``;``.
    """
    if not value:
        return []
    parts = _LIST_SPLIT.split(value) if key in LIST_KEYS else value.split("\n")
    return [part.strip() for part in parts if part.strip()]


def section_label(key: str) -> str:
    return SECTION_LABELS.get(key, key)


def section_hint(key: str) -> str:
    return SECTION_HINTS.get(key, EXTRA_SECTION_HINT)
