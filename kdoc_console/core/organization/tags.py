"""Tag normalization and keyword-based tag inference."""

import re
from typing import Any

from kdoc_console.core.models.organization import TagState

MAX_TAG_LENGTH = 32
MAX_TAGS_PER_DOCUMENT = 8
MAX_INFERRED_TAGS = 3
FALLBACK_TAG = "note"

# (tag, keywords) checked in order against lowercased name + snippet
_INFERENCE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("faq", ("faq",)),
    ("policy", ("policy", "chính sách")),
    ("product", ("product", "chanh", "sản phẩm")),
    ("guide", ("guide", "hướng dẫn")),
)

_WHITESPACE = re.compile(r"\s+")


def sanitize_tag(tag: object) -> str:
    return _WHITESPACE.sub(" ", str(tag or "").strip())[:MAX_TAG_LENGTH]


def normalize_tag_list(tags: Any) -> list[str]:
    """Sanitize, dedupe case-insensitively (first spelling wins) and cap."""
    if not isinstance(tags, (list, tuple)):
        return []
    unique: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        normalized = sanitize_tag(tag)
        if not normalized or normalized.lower() in seen:
            continue
        seen.add(normalized.lower())
        unique.append(normalized)
    return unique[:MAX_TAGS_PER_DOCUMENT]


def normalize_tag_state(raw: Any) -> TagState:
    """Coerce any stored value into a document -> tags map."""
    if not isinstance(raw, dict):
        return {}
    state: TagState = {}
    for doc_name, tags in raw.items():
        name = str(doc_name or "").strip()
        if name:
            state[name] = normalize_tag_list(tags)
    return state


def derive_tags(name: str, snippet: str = "") -> list[str]:
    """Infer tags from keywords in the document name and snippet.

    Deterministic; returns at most three tags and ``["note"]`` when nothing
    matches.
    """
    source = f"{name or ''} {snippet or ''}".lower()
    tags = [tag for tag, keywords in _INFERENCE_RULES if any(k in source for k in keywords)]
    return (tags or [FALLBACK_TAG])[:MAX_INFERRED_TAGS]
