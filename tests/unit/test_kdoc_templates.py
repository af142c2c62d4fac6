"""Unit tests for templates, free-text conversion and the outline model."""

from datetime import date, datetime

import pytest

from kdoc_console.core.kdoc.grammar import EXTRA_GROUP_TITLE, SECTION_ORDER
from kdoc_console.core.kdoc.outline import build_outline, sync_text_from_fields
from kdoc_console.core.kdoc.parser import parse_sections
from kdoc_console.core.kdoc.templates import (
    SNIPPET_KEY,
    UnknownTemplateError,
    convert_free_text,
    insert_template,
    render_template,
    suggest_document_name,
    template_keys,
)
from kdoc_console.core.kdoc.validator import validate_kdoc

TODAY = date(2026, 2, 8)


@pytest.mark.parametrize("key", ["product", "faq", "policy", "guide", "info", "company_profile"])
def test_document_templates_are_valid_kdoc(key: str) -> None:
    text = render_template(key, today=TODAY)
    sections = parse_sections(text)

    assert sections is not None
    assert sections["DOC_TYPE"] == key
    assert sections["LAST_UPDATED"] == "2026-02-08"
    assert validate_kdoc(text).ok is True


def test_snippet_is_a_standalone_section() -> None:
    snippet = render_template(SNIPPET_KEY)

    assert snippet.startswith("[ALIASES]\n")
    assert parse_sections(snippet) is None


def test_unknown_template_raises() -> None:
    with pytest.raises(UnknownTemplateError):
        render_template("recipe")


def test_template_keys_list_types_then_snippets() -> None:
    keys = template_keys()

    assert keys[-1] == SNIPPET_KEY
    assert "company_profile" in keys


def test_insert_template_appends_after_blank_line() -> None:
    assert insert_template("", "faq", today=TODAY) == render_template("faq", today=TODAY)

    combined = insert_template("existing notes\r\n", SNIPPET_KEY)

    assert combined == "existing notes\n\n" + render_template(SNIPPET_KEY)


def test_suggest_document_name() -> None:
    now = datetime(2026, 2, 8, 12, 0, 0)

    assert suggest_document_name("faq", now) == f"faq_{int(now.timestamp() * 1000)}.txt"
    assert suggest_document_name(SNIPPET_KEY, now) is None


def test_convert_free_text_keeps_text_verbatim_in_content() -> None:
    raw = "Opening hours: 8am - 5pm\nClosed on Mondays"

    sections = parse_sections(convert_free_text(raw, today=TODAY))

    assert sections is not None
    assert sections["CONTENT"] == raw
    assert sections["LAST_UPDATED"] == "2026-02-08"
    for key in ("DOC_ID", "DOC_TYPE", "TITLE", "ALIASES", "SUMMARY"):
        assert sections[key] == ""


def test_outline_groups_known_and_extra_sections() -> None:
    text = render_template("product", today=TODAY).replace(
        "=== END_KDOC ===", "[SHIPPING]\nFree over 50\n=== END_KDOC ==="
    )

    outline = build_outline(text)

    assert outline.fallback is False
    assert [group.title for group in outline.groups][0] == "Identification"
    assert outline.groups[-1].title == EXTRA_GROUP_TITLE
    extra = outline.groups[-1].fields[0]
    assert (extra.key, extra.value, extra.label) == ("SHIPPING", "Free over 50", "SHIPPING")
    assert outline.key_order == [*SECTION_ORDER, "SHIPPING"]


def test_outline_of_free_text_is_fallback_mode() -> None:
    outline = build_outline("just a note", today=TODAY)

    assert outline.fallback is True
    assert outline.sections["CONTENT"] == "just a note"
    title = next(f for g in outline.groups for f in g.fields if f.key == "TITLE")
    assert title.single_line is True
    assert title.value == ""


def test_sync_text_from_fields_round_trips_through_parse() -> None:
    outline = build_outline(render_template("faq", today=TODAY))
    fields = dict(outline.sections)
    fields["TITLE"] = "Shipping questions"

    text = sync_text_from_fields(fields, outline.key_order)
    sections = parse_sections(text)

    assert sections is not None
    assert sections["TITLE"] == "Shipping questions"
    assert list(sections) == outline.key_order
