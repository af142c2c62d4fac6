"""Typed records stored in the durable key-value store.

Every record is JSON-encoded under ``<namespace>.<record key>`` and is
re-normalized on load. Absent or corrupt data degrades to a default value.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from kdoc_console.core.models.common import ViewMode
from kdoc_console.core.models.organization import Draft, FolderState, TagState
from kdoc_console.core.organization.folders import normalize_folder_state
from kdoc_console.core.organization.tags import normalize_tag_state
from kdoc_console.core.storage.keyvalue import KeyValueStore

logger = logging.getLogger(__name__)

DRAFT_KEY = "editor.draft.v1"
VIEW_MODE_KEY = "editor.view_mode.v1"
FOLDER_STATE_KEY = "folder_state.v1"
TAG_STATE_KEY = "tag_state.v1"

_MISSING = object()


class LocalStateRepository:
    """Load/save the four client-only records."""

    def __init__(self, store: KeyValueStore, namespace: str = "voicebot.webhost") -> None:
        self._store = store
        self._namespace = namespace

    def key(self, record: str) -> str:
        return f"{self._namespace}.{record}" if self._namespace else record

    def _load_json(self, record: str) -> Any:
        raw = self._store.get(self.key(record))
        if raw is None:
            return _MISSING
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(
                "Discarding corrupt local record",
                extra={"structured": {"record": record}},
            )
            return _MISSING

    def _save_json(self, record: str, value: Any) -> None:
        self._store.set(self.key(record), json.dumps(value, ensure_ascii=False))

    # Draft

    def load_draft(self) -> Draft | None:
        data = self._load_json(DRAFT_KEY)
        if not isinstance(data, dict):
            return None
        try:
            draft = Draft.model_validate(data)
        except ValidationError:
            return None
        if not draft.name.strip() and not draft.text.strip():
            return None
        return draft

    def save_draft(self, draft: Draft) -> None:
        self._save_json(DRAFT_KEY, draft.model_dump(mode="json"))

    def clear_draft(self) -> None:
        self._store.delete(self.key(DRAFT_KEY))

    # View mode

    def load_view_mode(self) -> ViewMode:
        data = self._load_json(VIEW_MODE_KEY)
        return ViewMode.coerce(None if data is _MISSING else data)

    def save_view_mode(self, mode: ViewMode) -> None:
        self._save_json(VIEW_MODE_KEY, ViewMode.coerce(mode).value)

    # Organization

    def load_folder_state(self) -> FolderState:
        data = self._load_json(FOLDER_STATE_KEY)
        return normalize_folder_state(None if data is _MISSING else data)

    def save_folder_state(self, state: FolderState) -> None:
        self._save_json(FOLDER_STATE_KEY, state.model_dump(mode="json"))

    def load_tag_state(self) -> TagState:
        data = self._load_json(TAG_STATE_KEY)
        return normalize_tag_state(None if data is _MISSING else data)

    def save_tag_state(self, state: TagState) -> None:
        self._save_json(TAG_STATE_KEY, state)

    def save_organization(self, folder_state: FolderState, tag_state: TagState) -> None:
        """Flush both organization records in one write."""
        self._store.set_many(
            {
                self.key(FOLDER_STATE_KEY): json.dumps(
                    folder_state.model_dump(mode="json"), ensure_ascii=False
                ),
                self.key(TAG_STATE_KEY): json.dumps(tag_state, ensure_ascii=False),
            }
        )
