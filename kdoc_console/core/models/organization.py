"""Local organization and draft models."""

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_FOLDER = "Default"
ALL_FOLDERS = "__ALL__"
ALL_FOLDERS_LABEL = "All"


class FolderState(BaseModel):
    """Folder set plus document -> folder assignments.

    Instances built through ``normalize_folder_state`` always list the
    default folder first and never contain the reserved pseudo-folder.
    """

    folders: list[str] = Field(default_factory=lambda: [DEFAULT_FOLDER])
    assignments: dict[str, str] = Field(default_factory=dict)


TagState = dict[str, list[str]]


class Draft(BaseModel):
    """Most recent editor buffer, kept for reload recovery."""

    name: str = ""
    text: str = ""
    saved_at: datetime | None = None
