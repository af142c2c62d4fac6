"""Document store domain models."""

from pydantic import AliasChoices, BaseModel, Field, field_validator

from kdoc_console.core.models.common import ImageMimeType


class DocumentSummary(BaseModel):
    """One row of the remote document listing."""

    name: str
    updated_at: str = ""  # ISO-8601 as returned by the store
    characters: int = 0
    snippet: str = Field("", validation_alias=AliasChoices("snippet", "preview"))

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Names are keys; surrounding whitespace is never significant."""
        return v.strip()


class Document(BaseModel):
    """Full document content fetched by name."""

    name: str
    content: str = ""
    updated_at: str = ""
    characters: int = 0


class ImageRecord(BaseModel):
    """Image metadata attached to a document."""

    id: str
    doc_name: str = ""
    file_name: str = "image"
    mime_type: str = ""
    bytes: int = 0
    created_at: str = ""
    caption: str | None = None


class ImageUpload(BaseModel):
    """Local image file to attach to a document."""

    file_name: str = "image"
    mime_type: ImageMimeType
    data: bytes
    caption: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class SearchHit(BaseModel):
    """Ranked full-text search result."""

    name: str
    score: float | None = None
    title: str = ""
    doc_type: str = ""
    field_hits: list[str] = Field(default_factory=list)
    snippet: str = ""


class HostInfo(BaseModel):
    """Host process status reported by GET /info."""

    status: str = "unknown"

    @property
    def label(self) -> str:
        state = self.status.strip().lower()
        if not state or state == "unknown":
            return "Host: Unknown"
        if state == "running":
            return "Host: Running"
        if state == "starting":
            return "Host: Starting"
        if state == "stopped":
            return "Host: Stopped"
        return f"Host: {state}"
