"""Common types and enums shared across all models."""

from enum import Enum
from typing import Literal


class StatusTone(str, Enum):
    """Tone of a status notification."""

    info = "info"
    loading = "loading"
    ok = "ok"
    warn = "warn"


TERMINAL_TONES = frozenset({StatusTone.info, StatusTone.ok, StatusTone.warn})


class ViewMode(str, Enum):
    """Editor presentation preference."""

    text = "text"
    kdoc = "kdoc"

    @classmethod
    def coerce(cls, raw: object) -> "ViewMode":
        """Map any stored value onto a known mode (unknown -> text)."""
        if isinstance(raw, cls):
            return raw
        return cls.kdoc if str(raw or "").strip().lower() == "kdoc" else cls.text


class DocType(str, Enum):
    """Closed set of KDOC document types."""

    product = "product"
    faq = "faq"
    policy = "policy"
    guide = "guide"
    info = "info"
    company_profile = "company_profile"


ImageMimeType = Literal["image/jpeg", "image/png", "image/webp"]

ALLOWED_IMAGE_MIME_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/webp")
