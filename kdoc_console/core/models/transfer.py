"""Export artifact models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from kdoc_console.core.models.common import ViewMode
from kdoc_console.core.models.organization import FolderState

EXPORT_SCHEMA = "voicebot_webhost_export_v2"
EXPORT_SCHEMA_VERSION = 2


class ExportedDocument(BaseModel):
    """Document entry of an export artifact."""

    name: str
    content: str
    updated_at: str = ""
    characters: int = 0


class ExportedImage(BaseModel):
    """Image entry of an export artifact, bytes inlined as base64."""

    doc_name: str
    file_name: str = "image"
    mime_type: str = ""
    bytes: int = 0
    created_at: str = ""
    caption: str | None = None
    data_base64: str


class UiState(BaseModel):
    """UI preference snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    view_mode: ViewMode = Field(ViewMode.text, alias="viewMode")


class ExportPayload(BaseModel):
    """Single portable artifact carrying documents, images and local state."""

    model_config = ConfigDict(populate_by_name=True)

    schema_id: Literal["voicebot_webhost_export_v2"] = Field(EXPORT_SCHEMA, alias="schema")
    schema_version: int = EXPORT_SCHEMA_VERSION
    exported_at: datetime
    source: str = "voicebot_web_host"
    documents: list[ExportedDocument]
    images: list[ExportedImage] = Field(default_factory=list)
    image_count: int = 0
    include_images: bool = False
    folder_state: FolderState = Field(default_factory=FolderState, alias="folderState")
    note_tag_state: dict[str, list[str]] = Field(default_factory=dict, alias="noteTagState")
    ui_state: UiState = Field(default_factory=UiState, alias="uiState")


class ImportDocument(BaseModel):
    """Normalized document accepted by an import."""

    name: str
    text: str


class ImportImage(BaseModel):
    """Normalized image accepted by an import."""

    doc_name: str
    file_name: str = "image"
    mime_type: str = ""
    caption: str | None = None
    data_base64: str


class ImportBundle(BaseModel):
    """Validated import payload, ready for the destructive import sequence."""

    documents: list[ImportDocument]
    images: list[ImportImage] = Field(default_factory=list)
    folder_state: FolderState
    tag_state: dict[str, list[str]]
    view_mode: ViewMode | None = None  # None keeps the current preference
