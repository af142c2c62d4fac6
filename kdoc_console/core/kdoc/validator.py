"""KDOC validator - collects every problem instead of failing fast."""

from dataclasses import dataclass, field
from datetime import date, datetime

from kdoc_console.core.kdoc.grammar import DOC_TYPES, REQUIRED_SECTIONS
from kdoc_console.core.kdoc.parser import parse_sections

FORMAT_ERROR = "KDOC v1 format not recognized: start/end markers are missing or out of order."


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one document text."""

    ok: bool
    errors: list[str] = field(default_factory=list)

    def preview(self, limit: int = 2) -> str:
        """Short one-line summary of the first few errors."""
        return " | ".join(self.errors[:limit])


def is_valid_date(value: str) -> bool:
    """True when value parses as an ISO-8601 date or datetime."""
    try:
        date.fromisoformat(value)
        return True
    except ValueError:
        pass
    try:
        datetime.fromisoformat(value)
        return True
    except ValueError:
        return False


def validate_kdoc(text: str | None) -> ValidationResult:
    """Validate KDOC text.

    Checks run in a fixed order and all of them run:
        1. Each required section is present and non-empty
        2. DOC_TYPE, when filled, belongs to the closed type set (any case)
        3. LAST_UPDATED, when filled, is a valid ISO-8601 date

    Text that does not parse yields exactly one format error.
    """
    sections = parse_sections(text)
    if sections is None:
        return ValidationResult(ok=False, errors=[FORMAT_ERROR])

    errors: list[str] = []
    for key in REQUIRED_SECTIONS:
        if not sections.get(key, "").strip():
            errors.append(f"Missing required section [{key}].")

    doc_type = sections.get("DOC_TYPE", "").strip().lower()
    if doc_type and doc_type not in DOC_TYPES:
        errors.append(f"[DOC_TYPE] must be one of: {', '.join(DOC_TYPES)}.")

    last_updated = sections.get("LAST_UPDATED", "").strip()
    if last_updated and not is_valid_date(last_updated):
        errors.append("[LAST_UPDATED] must be a valid date (ISO-8601).")

    return ValidationResult(ok=not errors, errors=errors)
