"""KDOC parser - pure text <-> section map conversion."""

from collections.abc import Iterable, Mapping

from kdoc_console.core.kdoc.grammar import END_MARKER, SECTION_HEADER_PATTERN, START_MARKER


def normalize_text(text: str | None) -> str:
    """Normalize line endings and trim."""
    return (text or "").replace("\r\n", "\n").strip()


def parse_sections(text: str | None) -> dict[str, str] | None:
    """Parse KDOC text into an ordered section map.

    Pure function with no I/O. The body between the first start marker line
    and the last end marker line is scanned for ``[KEY]`` headers; each
    section body is the following lines joined with newlines and trimmed.
    Lines before the first header are discarded. A repeated key keeps its
    first position and takes the last body.

    Args:
        text: Raw document text

    Returns:
        Ordered mapping of section key to body, or None when the text is not
        KDOC (a marker is missing, or the end marker does not come after the
        start marker). An empty dict means a well-formed wrapper with no
        sections; callers must not confuse the two.
    """
    lines = normalize_text(text).split("\n")

    start = next((i for i, line in enumerate(lines) if line.strip() == START_MARKER), -1)
    end = next(
        (i for i in range(len(lines) - 1, -1, -1) if lines[i].strip() == END_MARKER),
        -1,
    )
    if start < 0 or end < 0 or end <= start:
        return None

    sections: dict[str, str] = {}
    current_key: str | None = None
    buffer: list[str] = []

    def flush() -> None:
        if current_key is not None:
            sections[current_key] = "\n".join(buffer).strip()
            buffer.clear()

    for line in lines[start + 1 : end]:
        match = SECTION_HEADER_PATTERN.match(line)
        if match:
            flush()
            current_key = match.group(1)
            continue
        if current_key is not None:
            buffer.append(line)
    flush()

    return sections


def is_kdoc(text: str | None) -> bool:
    """True when the text carries valid start/end markers."""
    return parse_sections(text) is not None


def serialize_sections(
    sections: Mapping[str, str],
    key_order: Iterable[str] | None = None,
) -> str:
    """Build canonical KDOC text from a section map.

    Args:
        sections: Section bodies by key
        key_order: Keys to emit, in order (default: the map's own order).
            Duplicates and blank keys are skipped; keys missing from
            ``sections`` are emitted with an empty body.

    Returns:
        Marker-wrapped text with one ``[KEY]`` block per key, blocks separated
        by a blank line.
    """
    keys: list[str] = []
    for key in key_order if key_order is not None else sections.keys():
        if key and key.strip() and key not in keys:
            keys.append(key)

    blocks = [f"[{key}]\n{normalize_text(sections.get(key, ''))}" for key in keys]
    return f"{START_MARKER}\n" + "\n\n".join(blocks) + f"\n{END_MARKER}"
