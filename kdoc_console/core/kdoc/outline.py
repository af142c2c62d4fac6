"""Structured (field-by-field) view of a KDOC document.

The outline is read-only display data derived from the document text. Edits
made field by field are folded back into text with ``sync_text_from_fields``;
the text stays the only source of truth.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from kdoc_console.core.kdoc.grammar import (
    EXTRA_GROUP_TITLE,
    SECTION_GROUPS,
    SECTION_ORDER,
    SINGLE_LINE_KEYS,
    section_hint,
    section_label,
    section_lines,
)
from kdoc_console.core.kdoc.parser import normalize_text, parse_sections, serialize_sections
from kdoc_console.core.kdoc.templates import fallback_sections


@dataclass(frozen=True)
class OutlineField:
    key: str
    value: str
    label: str
    hint: str
    single_line: bool

    @property
    def lines(self) -> list[str]:
        return section_lines(self.key, self.value)


@dataclass(frozen=True)
class OutlineGroup:
    title: str
    fields: list[OutlineField]


@dataclass(frozen=True)
class KdocOutline:
    """Grouped sections plus the key order used to rebuild text.

    ``fallback`` is set when the source text was not KDOC and the sections
    come from free-text conversion.
    """

    groups: list[OutlineGroup]
    key_order: list[str]
    fallback: bool = False
    sections: dict[str, str] = field(default_factory=dict)


def ordered_keys(sections: Mapping[str, str]) -> list[str]:
    """Canonical keys first, then any extra keys in document order."""
    keys = list(SECTION_ORDER)
    keys.extend(key for key in sections if key not in SECTION_ORDER)
    return keys


def _field(key: str, sections: Mapping[str, str]) -> OutlineField:
    return OutlineField(
        key=key,
        value=sections.get(key, ""),
        label=section_label(key),
        hint=section_hint(key),
        single_line=key in SINGLE_LINE_KEYS,
    )


def build_outline(text: str | None, today: date | None = None) -> KdocOutline:
    """Build the grouped outline for a document text.

    Text without KDOC markers is shown through the free-text conversion
    skeleton (fallback mode) instead of an empty outline.
    """
    sections = parse_sections(text)
    fallback = sections is None
    if sections is None:
        sections = fallback_sections(normalize_text(text), today)

    groups = [
        OutlineGroup(title=title, fields=[_field(key, sections) for key in keys])
        for title, keys in SECTION_GROUPS
    ]
    extra_keys = [key for key in sections if key not in SECTION_ORDER]
    if extra_keys:
        groups.append(
            OutlineGroup(
                title=EXTRA_GROUP_TITLE,
                fields=[_field(key, sections) for key in extra_keys],
            )
        )

    return KdocOutline(
        groups=groups,
        key_order=ordered_keys(sections),
        fallback=fallback,
        sections=dict(sections),
    )


def sync_text_from_fields(fields: Mapping[str, str], key_order: list[str] | None = None) -> str:
    """Rebuild canonical KDOC text from edited field values.

    Keys in ``key_order`` that have no field value are emitted empty, so a
    structured edit never silently drops a section.
    """
    order = key_order if key_order is not None else ordered_keys(fields)
    return serialize_sections(fields, order)
