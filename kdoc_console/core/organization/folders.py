"""Folder name rules and folder-state normalization."""

import re
from typing import Any

from kdoc_console.core.models.organization import ALL_FOLDERS, ALL_FOLDERS_LABEL, DEFAULT_FOLDER, FolderState

MAX_FOLDER_NAME_LENGTH = 48

_WHITESPACE = re.compile(r"\s+")


def sanitize_folder_name(name: object) -> str:
    """Trim, collapse inner whitespace and cap the length."""
    return _WHITESPACE.sub(" ", str(name or "").strip())[:MAX_FOLDER_NAME_LENGTH]


def is_reserved_folder(name: str) -> bool:
    """The "all documents" pseudo-folder, by key or by display label."""
    return name in (ALL_FOLDERS, ALL_FOLDERS_LABEL)


def normalize_folder_state(raw: Any) -> FolderState:
    """Coerce any stored value into a valid FolderState.

    The default folder is always first; the reserved pseudo-folder never
    appears; names are deduplicated case-sensitively. Every folder used by an
    assignment is added to the folder list. Anything unusable degrades to the
    empty default state.
    """
    if isinstance(raw, FolderState):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        raw = {}

    raw_folders = raw.get("folders")
    raw_assignments = raw.get("assignments")
    if not isinstance(raw_folders, list):
        raw_folders = []
    if not isinstance(raw_assignments, dict):
        raw_assignments = {}

    folders = [DEFAULT_FOLDER]
    for item in raw_folders:
        name = sanitize_folder_name(item)
        if name and not is_reserved_folder(name) and name not in folders:
            folders.append(name)

    assignments: dict[str, str] = {}
    for doc_name, folder in raw_assignments.items():
        doc = str(doc_name or "").strip()
        name = sanitize_folder_name(folder)
        if not doc or not name or is_reserved_folder(name):
            continue
        assignments[doc] = name
        if name not in folders:
            folders.append(name)

    return FolderState(folders=folders, assignments=assignments)
