"""Models package - re-exports for convenience."""

from kdoc_console.core.models.common import (
    ALLOWED_IMAGE_MIME_TYPES,
    DocType,
    ImageMimeType,
    StatusTone,
    ViewMode,
)
from kdoc_console.core.models.documents import (
    Document,
    DocumentSummary,
    HostInfo,
    ImageRecord,
    ImageUpload,
    SearchHit,
)
from kdoc_console.core.models.organization import (
    ALL_FOLDERS,
    ALL_FOLDERS_LABEL,
    DEFAULT_FOLDER,
    Draft,
    FolderState,
    TagState,
)
from kdoc_console.core.models.transfer import (
    EXPORT_SCHEMA,
    EXPORT_SCHEMA_VERSION,
    ExportedDocument,
    ExportedImage,
    ExportPayload,
    ImportBundle,
    ImportDocument,
    ImportImage,
    UiState,
)

__all__ = [
    # Common
    "ALLOWED_IMAGE_MIME_TYPES",
    "DocType",
    "ImageMimeType",
    "StatusTone",
    "ViewMode",
    # Documents
    "Document",
    "DocumentSummary",
    "HostInfo",
    "ImageRecord",
    "ImageUpload",
    "SearchHit",
    # Organization
    "ALL_FOLDERS",
    "ALL_FOLDERS_LABEL",
    "DEFAULT_FOLDER",
    "Draft",
    "FolderState",
    "TagState",
    # Transfer
    "EXPORT_SCHEMA",
    "EXPORT_SCHEMA_VERSION",
    "ExportedDocument",
    "ExportedImage",
    "ExportPayload",
    "ImportBundle",
    "ImportDocument",
    "ImportImage",
    "UiState",
]
