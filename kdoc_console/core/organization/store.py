"""Organization store - folder and tag assignments keyed by document name.

Both maps live in memory and are flushed to durable storage after every
mutation. Renames go through ``reassign`` so that folder and tag entries move
together: new maps are built first, then swapped in and flushed with one
write.
"""

import logging
from collections.abc import Iterable

from kdoc_console.core.models.organization import (
    ALL_FOLDERS,
    DEFAULT_FOLDER,
    FolderState,
    TagState,
)
from kdoc_console.core.organization.folders import (
    is_reserved_folder,
    normalize_folder_state,
    sanitize_folder_name,
)
from kdoc_console.core.organization.tags import (
    derive_tags,
    normalize_tag_list,
    normalize_tag_state,
    sanitize_tag,
)
from kdoc_console.core.storage.records import LocalStateRepository

logger = logging.getLogger(__name__)


class FolderError(ValueError):
    """Folder operation rejected (reserved, default or unknown folder)."""

    pass


class TagError(ValueError):
    """Tag operation rejected (empty tag or missing document name)."""

    pass


def _doc_key(name: str | None) -> str:
    return str(name or "").strip()


class OrganizationStore:
    """Folder/tag assignment maps with rename-safe reassignment."""

    def __init__(
        self,
        repository: LocalStateRepository,
        folder_state: FolderState | None = None,
        tag_state: TagState | None = None,
    ) -> None:
        self._repository = repository
        self._folders = normalize_folder_state(folder_state)
        self._tags = normalize_tag_state(tag_state)
        self.active_folder: str = ALL_FOLDERS

    @classmethod
    def load(cls, repository: LocalStateRepository) -> "OrganizationStore":
        """Initialize from durable storage (corrupt data -> defaults)."""
        return cls(
            repository,
            folder_state=repository.load_folder_state(),
            tag_state=repository.load_tag_state(),
        )

    def _flush(self) -> None:
        self._repository.save_organization(self._folders, self._tags)

    # Read access

    @property
    def folders(self) -> list[str]:
        return list(self._folders.folders)

    @property
    def assignments(self) -> dict[str, str]:
        return dict(self._folders.assignments)

    @property
    def tags(self) -> TagState:
        return {name: list(tags) for name, tags in self._tags.items()}

    def snapshot(self) -> tuple[FolderState, TagState]:
        """Deep copies of both maps, e.g. for export."""
        return self._folders.model_copy(deep=True), self.tags

    # Folders

    def _ensure_folder(self, name: str) -> str:
        folder = sanitize_folder_name(name)
        if not folder or is_reserved_folder(folder):
            return DEFAULT_FOLDER
        if folder not in self._folders.folders:
            self._folders.folders.append(folder)
        return folder

    def add_folder(self, name: str) -> str:
        """Create a folder (no-op if it exists) and return its stored name.

        Raises:
            FolderError: empty name, or a name reserved for "all documents"
        """
        folder = sanitize_folder_name(name)
        if not folder:
            raise FolderError("Folder name is empty.")
        if is_reserved_folder(folder):
            raise FolderError(f'Folder name "{folder}" is reserved.')
        self._ensure_folder(folder)
        self._flush()
        return folder

    def remove_folder(self, name: str) -> int:
        """Delete a folder, moving its documents to the default folder.

        Returns:
            Number of documents reassigned

        Raises:
            FolderError: default folder, reserved name or unknown folder
        """
        folder = sanitize_folder_name(name)
        if not folder or folder == DEFAULT_FOLDER or is_reserved_folder(folder):
            raise FolderError("The default folder cannot be removed.")
        if folder not in self._folders.folders:
            raise FolderError(f'Folder "{folder}" does not exist.')

        moved = 0
        for doc_name, assigned in self._folders.assignments.items():
            if assigned == folder:
                self._folders.assignments[doc_name] = DEFAULT_FOLDER
                moved += 1
        self._folders.folders = [f for f in self._folders.folders if f != folder]
        if self.active_folder == folder:
            self.active_folder = ALL_FOLDERS
        self._flush()
        return moved

    def get_doc_folder(self, doc_name: str) -> str:
        return sanitize_folder_name(self._folders.assignments.get(_doc_key(doc_name), "")) or DEFAULT_FOLDER

    def set_doc_folder(self, doc_name: str, folder: str) -> str:
        name = _doc_key(doc_name)
        if not name:
            raise FolderError("Document name is empty.")
        target = self._ensure_folder(folder)
        self._folders.assignments[name] = target
        self._flush()
        return target

    def set_active_folder(self, folder: str) -> str:
        """Move the listing filter cursor (not persisted)."""
        if folder == ALL_FOLDERS:
            self.active_folder = ALL_FOLDERS
            return self.active_folder
        target = sanitize_folder_name(folder)
        if target not in self._folders.folders:
            raise FolderError(f'Folder "{target}" does not exist.')
        self.active_folder = target
        return target

    def folder_doc_count(self, folder: str, doc_names: Iterable[str]) -> int:
        names = list(doc_names)
        if folder == ALL_FOLDERS:
            return len(names)
        return sum(1 for name in names if self.get_doc_folder(name) == folder)

    # Tags

    def get_doc_tags(
        self,
        doc_name: str,
        fallback_snippet: str | None = None,
        ensure_persist: bool = False,
    ) -> list[str]:
        """Explicit tags, or tags inferred from name/snippet when none are set.

        With ``ensure_persist`` the inferred tags are stored.
        """
        name = _doc_key(doc_name)
        if not name:
            return []
        stored = self._tags.get(name)
        if stored:
            return list(stored)
        inferred = normalize_tag_list(derive_tags(name, fallback_snippet or ""))
        if ensure_persist:
            self._tags[name] = inferred
            self._flush()
        return inferred

    def set_doc_tags(self, doc_name: str, tags: Iterable[str]) -> list[str]:
        name = _doc_key(doc_name)
        if not name:
            raise TagError("Document name is empty.")
        self._tags[name] = normalize_tag_list(list(tags))
        self._flush()
        return list(self._tags[name])

    def add_tag(self, doc_name: str, tag: str) -> list[str]:
        """Append a tag to the document's stored tags.

        Raises:
            TagError: tag empty after sanitizing, or no document name
        """
        candidate = sanitize_tag(tag)
        if not candidate:
            raise TagError("Tag is empty.")
        current = self._tags.get(_doc_key(doc_name), [])
        return self.set_doc_tags(doc_name, [*current, candidate])

    def rename_tag(self, doc_name: str, old_tag: str, new_tag: str) -> list[str]:
        candidate = sanitize_tag(new_tag)
        if not candidate:
            raise TagError("Tag is empty.")
        current = self.get_doc_tags(doc_name)
        return self.set_doc_tags(doc_name, [candidate if t == old_tag else t for t in current])

    def remove_tag(self, doc_name: str, tag: str) -> list[str]:
        current = self.get_doc_tags(doc_name)
        return self.set_doc_tags(doc_name, [t for t in current if t != tag])

    # Bulk operations

    def reassign(self, old_name: str | None, new_name: str, explicit_folder: str | None = None) -> str:
        """Move folder and tag entries from ``old_name`` to ``new_name``.

        Target folder precedence: explicit choice, the previous folder of
        ``old_name``, the active folder filter, then the default folder.
        Tags follow the rename; a brand-new name gets inferred tags. Old keys
        are dropped only when the name actually changed.

        Returns:
            The folder the document ends up in
        """
        old = _doc_key(old_name)
        new = _doc_key(new_name)
        if not new:
            raise FolderError("Document name is empty.")

        explicit = sanitize_folder_name(explicit_folder)
        if explicit and is_reserved_folder(explicit):
            explicit = ""
        previous = sanitize_folder_name(self._folders.assignments.get(old, "")) if old else ""
        active = "" if self.active_folder == ALL_FOLDERS else self.active_folder
        target = explicit or previous or active or DEFAULT_FOLDER

        folders = list(self._folders.folders)
        if target not in folders:
            folders.append(target)
        assignments = dict(self._folders.assignments)
        tags = {name: list(values) for name, values in self._tags.items()}

        assignments[new] = target
        if old and old != new:
            assignments.pop(old, None)
            moved = tags.pop(old, None)
            if moved:
                tags[new] = normalize_tag_list(moved)
        if not tags.get(new):
            tags[new] = normalize_tag_list(derive_tags(new))

        self._folders = FolderState(folders=folders, assignments=assignments)
        self._tags = tags
        self._flush()
        logger.debug(
            "Reassigned organization entries",
            extra={"structured": {"old_name": old, "new_name": new, "folder": target}},
        )
        return target

    def replace_all(self, folder_state: FolderState | dict | None, tag_state: TagState | None) -> None:
        """Swap in imported state wholesale (no merge)."""
        self._folders = normalize_folder_state(folder_state)
        self._tags = normalize_tag_state(tag_state)
        self.active_folder = ALL_FOLDERS
        self._flush()

    def clear_assignments(self) -> None:
        """Forget every assignment and tag; folders themselves are kept."""
        self._folders = FolderState(folders=list(self._folders.folders), assignments={})
        self._tags = {}
        self._flush()
