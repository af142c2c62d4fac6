"""Export artifact encoding and import payload validation.

Pure data functions; the remote calls that gather or replay the data live in
``transfer.service``.
"""

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from kdoc_console.core.models.common import ViewMode
from kdoc_console.core.models.organization import FolderState, TagState
from kdoc_console.core.models.transfer import (
    ExportedDocument,
    ExportedImage,
    ExportPayload,
    ImportBundle,
    ImportDocument,
    ImportImage,
    UiState,
)
from kdoc_console.core.organization.folders import normalize_folder_state
from kdoc_console.core.organization.tags import normalize_tag_state

logger = logging.getLogger(__name__)

EXPORT_FILE_PREFIX = "voicebot-knowledge"


class ImportPayloadError(ValueError):
    """Import candidate is unusable; nothing has been changed."""

    pass


def build_export_payload(
    documents: list[ExportedDocument],
    images: list[ExportedImage],
    folder_state: FolderState,
    tag_state: TagState,
    view_mode: ViewMode,
    include_images: bool,
    source: str = "voicebot_web_host",
    exported_at: datetime | None = None,
) -> ExportPayload:
    kept_images = images if include_images else []
    return ExportPayload(
        exported_at=exported_at or datetime.now(UTC),
        source=source,
        documents=documents,
        images=kept_images,
        image_count=len(kept_images),
        include_images=include_images,
        folder_state=folder_state,
        note_tag_state=tag_state,
        ui_state=UiState(view_mode=view_mode),
    )


def export_file_name(now: datetime | None = None) -> str:
    moment = now or datetime.now()
    return f"{EXPORT_FILE_PREFIX}-{moment:%Y%m%d-%H%M%S}.json"


def encode_export(payload: ExportPayload) -> str:
    """Serialize with the wire key names (``schema``, ``folderState``...)."""
    return json.dumps(payload.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2)


def write_export_file(payload: ExportPayload, directory: str | Path, now: datetime | None = None) -> Path:
    """Write the artifact as one JSON file and return its path."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / export_file_name(now)
    path.write_text(encode_export(payload), encoding="utf-8")
    return path


def _is_base64(data: str) -> bool:
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def _normalize_documents(raw: Any) -> list[ImportDocument]:
    if not isinstance(raw, list):
        return []
    documents = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        name = str(item.get("name") or "").strip()
        content = item.get("content")
        if content is None:
            content = item.get("text")
        text = "" if content is None else str(content)
        if name and text.strip():
            documents.append(ImportDocument(name=name, text=text))
    return documents


def _normalize_images(raw: Any, doc_names: set[str]) -> list[ImportImage]:
    if not isinstance(raw, list):
        return []
    images = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            logger.debug("Dropping import image: not an object", extra={"structured": {"index": index}})
            continue
        doc_name = str(item.get("doc_name") or item.get("name") or "").strip()
        data = str(item.get("data_base64") or item.get("data") or "").strip()
        if not doc_name or not data:
            reason = "missing_target" if not doc_name else "missing_data"
        elif doc_name not in doc_names:
            reason = "unknown_document"
        elif not _is_base64(data):
            reason = "bad_base64"
        else:
            images.append(
                ImportImage(
                    doc_name=doc_name,
                    file_name=str(item.get("file_name") or "image").strip() or "image",
                    mime_type=str(item.get("mime_type") or "").strip(),
                    caption=item.get("caption") or None,
                    data_base64=data,
                )
            )
            continue
        logger.debug(
            "Dropping import image",
            extra={"structured": {"index": index, "doc_name": doc_name, "reason": reason}},
        )
    return images


def parse_import_payload(raw: str | bytes | Mapping[str, Any]) -> ImportBundle:
    """Validate an import candidate without side effects.

    Documents accept ``content`` or ``text``; entries whose name or text is
    blank are skipped. Images accept ``doc_name``/``name`` and
    ``data_base64``/``data`` and are dropped one by one when unusable
    (no target, no data, target not among the imported documents, or bad
    base64). Folder/tag state is normalized like stored state.

    Raises:
        ImportPayloadError: not a JSON object, or no usable document
    """
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise ImportPayloadError("Import file is not valid JSON.") from e
    else:
        parsed = raw
    if not isinstance(parsed, Mapping):
        raise ImportPayloadError("Import file must contain a JSON object.")

    documents = _normalize_documents(parsed.get("documents"))
    if not documents:
        raise ImportPayloadError("Import file contains no valid documents.")

    doc_names = {doc.name for doc in documents}
    images = _normalize_images(parsed.get("images"), doc_names)

    ui_state = parsed.get("uiState")
    raw_mode = ui_state.get("viewMode") if isinstance(ui_state, Mapping) else None

    return ImportBundle(
        documents=documents,
        images=images,
        folder_state=normalize_folder_state(parsed.get("folderState")),
        tag_state=normalize_tag_state(parsed.get("noteTagState")),
        view_mode=ViewMode.coerce(raw_mode) if raw_mode else None,
    )
