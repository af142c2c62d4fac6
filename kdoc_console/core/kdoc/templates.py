"""KDOC template engine - canonical skeletons and free-text conversion."""

from datetime import date, datetime

from kdoc_console.core.kdoc.parser import normalize_text, serialize_sections

SNIPPET_KEY = "synonyms"

_TEMPLATE_SECTIONS: dict[str, dict[str, str]] = {
    "product": {
        "DOC_ID": "product_new",
        "DOC_TYPE": "product",
        "TITLE": "Product name",
        "ALIASES": "alias 1 | alias 2",
        "KEYWORDS": "keyword 1, keyword 2",
        "SUMMARY": "Short description in 1-2 sentences.",
        "CONTENT": "- Benefits:\n- Ingredients:\n- Origin:\n- Shelf life:",
        "USAGE": "- How to use:",
        "FAQ": "Q: ...\nA: ...",
        "SAFETY_NOTE": "Do not claim medical effects.",
    },
    "faq": {
        "DOC_ID": "faq_new",
        "DOC_TYPE": "faq",
        "TITLE": "Frequently asked questions",
        "ALIASES": "faq | questions and answers",
        "KEYWORDS": "questions, customers",
        "SUMMARY": "Frequently asked questions with short answers.",
        "CONTENT": "Q: ...\nA: ...",
        "FAQ": "Q: ...\nA: ...",
    },
    "policy": {
        "DOC_ID": "policy_new",
        "DOC_TYPE": "policy",
        "TITLE": "Policy",
        "ALIASES": "policy | terms",
        "KEYWORDS": "shipping, returns, payment",
        "SUMMARY": "Policy information that applies to customers.",
        "CONTENT": "- Shipping:\n- Payment:\n- Returns:",
    },
    "guide": {
        "DOC_ID": "guide_new",
        "DOC_TYPE": "guide",
        "TITLE": "Guide",
        "ALIASES": "guide | how to",
        "KEYWORDS": "guide, instructions",
        "SUMMARY": "Step-by-step guidance in 1-2 sentences.",
        "CONTENT": "1. Step one\n2. Step two",
        "USAGE": "- When to use this guide:",
        "FAQ": "Q: ...\nA: ...",
    },
    "info": {
        "DOC_ID": "info_new",
        "DOC_TYPE": "info",
        "TITLE": "Information",
        "ALIASES": "information | info",
        "KEYWORDS": "information, guidance",
        "SUMMARY": "Short general overview.",
        "CONTENT": "- Key point 1\n- Key point 2",
        "USAGE": "- Related guidance (if any)",
        "FAQ": "Q: ...\nA: ...",
        "SAFETY_NOTE": "Do not claim medical effects.",
    },
    "company_profile": {
        "DOC_ID": "company_profile_new",
        "DOC_TYPE": "company_profile",
        "TITLE": "Company profile",
        "ALIASES": "alias 1 | alias 2",
        "KEYWORDS": "company, introduction, profile",
        "SUMMARY": "Short summary of the organization.",
        "CONTENT": "- Overview\n- History",
        "SERVICES": "- Highlighted services",
        "DAY_VISIT": "- Day-visit package (if any)",
        "STAY_PACKAGE": "- Stay package (if any)",
        "REGULATIONS": "- Rules / notes for participants",
        "USAGE": "- How to contact / register",
        "FAQ": "Q: ...\nA: ...",
        "SAFETY_NOTE": "Do not claim medical effects.",
    },
}

_SNIPPETS: dict[str, str] = {
    SNIPPET_KEY: "[ALIASES]\nalias 1 | alias 2 | alias 3 | common misspelling",
}


class UnknownTemplateError(KeyError):
    """Requested template key does not exist."""

    pass


def template_keys() -> list[str]:
    """All insertable keys: document types first, then snippets."""
    return [*_TEMPLATE_SECTIONS, *_SNIPPETS]


def is_snippet(key: str) -> bool:
    return key in _SNIPPETS


def _today(today: date | None) -> str:
    return (today or date.today()).isoformat()


def render_template(key: str, today: date | None = None) -> str:
    """Return the canonical skeleton text for a template key.

    Document-type keys yield a full marker-wrapped document with the date
    stamped into LAST_UPDATED; snippet keys yield a standalone section block.

    Raises:
        UnknownTemplateError: key is neither a document type nor a snippet
    """
    if key in _SNIPPETS:
        return _SNIPPETS[key]
    if key not in _TEMPLATE_SECTIONS:
        raise UnknownTemplateError(key)
    sections = dict(_TEMPLATE_SECTIONS[key])
    sections["LAST_UPDATED"] = _today(today)
    return serialize_sections(sections)


def insert_template(current_text: str, key: str, today: date | None = None) -> str:
    """Append a template block to the buffer, separated by a blank line."""
    block = render_template(key, today)
    current = normalize_text(current_text)
    return f"{current}\n\n{block}" if current else block


def suggest_document_name(key: str, now: datetime | None = None) -> str | None:
    """Name offered for an unnamed buffer after inserting a full template."""
    if is_snippet(key):
        return None
    moment = now or datetime.now()
    return f"{key or 'document'}_{int(moment.timestamp() * 1000)}.txt"


def fallback_sections(raw_text: str, today: date | None = None) -> dict[str, str]:
    """Section map for a plain-text document opened in structured mode.

    The whole original text lands verbatim (trimmed) in CONTENT; the other
    required sections stay empty except LAST_UPDATED.
    """
    return {
        "DOC_ID": "",
        "DOC_TYPE": "",
        "TITLE": "",
        "ALIASES": "",
        "KEYWORDS": "",
        "SUMMARY": "",
        "CONTENT": (raw_text or "").strip(),
        "USAGE": "",
        "FAQ": "",
        "SAFETY_NOTE": "",
        "LAST_UPDATED": _today(today),
    }


def convert_free_text(raw_text: str, today: date | None = None) -> str:
    """Wrap arbitrary free text into a KDOC skeleton."""
    sections = fallback_sections(raw_text, today)
    return serialize_sections(sections)
