"""Editor session - the single object that owns all console state.

The session ties together the document store client, the organization
store, dirty tracking and draft autosave. Public async methods are operator
actions: each one ends with exactly one terminal status event. Private
helpers never emit terminal statuses.

Concurrency rules (single asyncio loop):
- A document load suppresses dirty tracking until content and images arrive
- A second ``save`` while one is in flight is ignored
- Bulk actions (import, export, clear) hold ``bulk_busy``; other mutating
  actions refuse with a warning while it is set
- Import and clear also refuse while a save is in flight
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import date
from pathlib import Path

from kdoc_console.core.client.retry import CallResult, RetryingCaller, StoreRequestError
from kdoc_console.core.client.store_client import (
    DocumentStoreClient,
    ImageRejectedError,
    clamp_top_k,
    score_bands,
)
from kdoc_console.core.config import Settings, get_settings
from kdoc_console.core.drafts.autosave import DraftAutosaver, DraftRestorer
from kdoc_console.core.drafts.tracker import ConfirmFn, DirtyTracker, DirtyTransition, can_discard
from kdoc_console.core.kdoc.outline import KdocOutline, build_outline, sync_text_from_fields
from kdoc_console.core.kdoc.parser import is_kdoc
from kdoc_console.core.kdoc.templates import (
    UnknownTemplateError,
    convert_free_text,
    insert_template,
    suggest_document_name,
)
from kdoc_console.core.kdoc.validator import ValidationResult, validate_kdoc
from kdoc_console.core.models.common import ViewMode
from kdoc_console.core.models.documents import DocumentSummary, HostInfo, ImageRecord, ImageUpload, SearchHit
from kdoc_console.core.models.organization import ALL_FOLDERS, DEFAULT_FOLDER
from kdoc_console.core.organization.folders import is_reserved_folder, sanitize_folder_name
from kdoc_console.core.organization.listing import SortOrder, filter_documents, sort_documents
from kdoc_console.core.organization.store import FolderError, OrganizationStore, TagError
from kdoc_console.core.status import StatusReporter
from kdoc_console.core.storage.keyvalue import build_key_value_store
from kdoc_console.core.storage.records import LocalStateRepository
from kdoc_console.core.transfer.codec import (
    ImportPayloadError,
    build_export_payload,
    parse_import_payload,
    write_export_file,
)
from kdoc_console.core.transfer.service import TransferService
from kdoc_console.core.utils.logging import StructuredRequestLogger
from kdoc_console.core.utils.metrics import PrometheusRequestMetrics

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A bulk operation is running. Try again when it finishes."
SAVE_IN_FLIGHT_MESSAGE = "A save is still running. Try again when it finishes."


async def _always_confirm(message: str) -> bool:
    return True


class EditorSession:
    """Console state plus the operator actions that change it."""

    def __init__(
        self,
        client: DocumentStoreClient,
        repository: LocalStateRepository,
        organization: OrganizationStore | None = None,
        settings: Settings | None = None,
        confirm: ConfirmFn | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize session state from durable storage.

        Args:
            client: Document store client
            repository: Durable local records
            organization: Organization store (default: loaded from repository)
            settings: Console settings (default: ``get_settings()``)
            confirm: Async yes/no prompt for destructive or discarding actions
                (default: always yes)
            sleep_fn: Injectable sleep for debounce timers (default: asyncio.sleep)
        """
        self.settings = settings or get_settings()
        self.client = client
        self.repository = repository
        self.organization = organization or OrganizationStore.load(repository)
        self.status = StatusReporter()
        self.tracker = DirtyTracker()
        self.autosaver = DraftAutosaver(
            repository, delay_ms=self.settings.draft_debounce_ms, sleep_fn=sleep_fn
        )
        self.restorer = DraftRestorer(repository)
        self.transfer = TransferService(client, self.organization)
        self._confirm = confirm or _always_confirm
        self._sleep = sleep_fn or asyncio.sleep
        self._image_task: asyncio.Task[None] | None = None

        self.documents: list[DocumentSummary] = []
        self.images: list[ImageRecord] = []
        self.selected_name = ""
        self.buffer_name = ""
        self.buffer_text = ""
        self.updated_at = ""
        self.pending_folder: str | None = None
        self.view_mode = repository.load_view_mode()
        self.is_saving = False
        self.bulk_busy = False
        self.loading = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None, confirm: ConfirmFn | None = None) -> "EditorSession":
        """Wire the production stack: configured storage, Prometheus, logging."""
        settings = settings or get_settings()
        repository = LocalStateRepository(build_key_value_store(settings), settings.storage_namespace)
        caller = RetryingCaller(metrics=PrometheusRequestMetrics(), logger=StructuredRequestLogger())
        client = DocumentStoreClient.from_settings(settings, caller=caller)
        return cls(client, repository, settings=settings, confirm=confirm)

    async def aclose(self) -> None:
        self.autosaver.cancel()
        self._cancel_image_refresh()
        await self.client.aclose()

    # Derived views

    @property
    def dirty(self) -> bool:
        return self.tracker.dirty

    @property
    def tag_doc_name(self) -> str:
        """Document the tag editor applies to: selection, else typed name."""
        return self.selected_name.strip() or self.buffer_name.strip()

    def validation(self) -> ValidationResult:
        return validate_kdoc(self.buffer_text)

    def outline(self, today: date | None = None) -> KdocOutline:
        return build_outline(self.buffer_text, today)

    def visible_documents(
        self,
        keyword: str = "",
        sidebar_keyword: str = "",
        order: SortOrder | str = SortOrder.updated_desc,
    ) -> list[DocumentSummary]:
        rows = filter_documents(self.documents, self.organization, keyword, sidebar_keyword)
        return sort_documents(rows, order)

    def folder_counts(self) -> dict[str, int]:
        names = [doc.name for doc in self.documents]
        counts = {ALL_FOLDERS: len(names)}
        for folder in self.organization.folders:
            counts[folder] = self.organization.folder_doc_count(folder, names)
        return counts

    # Guards

    def _refuse_if_busy(self) -> bool:
        if self.bulk_busy:
            self.status.warn(BUSY_MESSAGE)
            return True
        return False

    def _refuse_bulk_if_busy(self) -> bool:
        """Bulk actions also wait for an in-flight save to settle."""
        if self._refuse_if_busy():
            return True
        if self.is_saving:
            self.status.warn(SAVE_IN_FLIGHT_MESSAGE)
            return True
        return False

    async def _can_discard(self, action: str) -> bool:
        return await can_discard(self.tracker, self._confirm, action)

    def _reset_editor(self) -> None:
        self.autosaver.cancel()
        self._cancel_image_refresh()
        self.selected_name = ""
        self.buffer_name = ""
        self.buffer_text = ""
        self.updated_at = ""
        self.images = []
        self.pending_folder = None
        self.tracker.mark_saved("", "")

    # Quiet helpers

    async def _fetch_documents(self) -> CallResult[list[DocumentSummary]]:
        result = await self.client.list_documents()
        if result.ok:
            self.documents = result.value or []
        return result

    async def _fetch_images(self, doc_name: str) -> CallResult[list[ImageRecord]]:
        if not doc_name.strip():
            self.images = []
            return CallResult(value=[])
        result = await self.client.list_images(doc_name)
        if result.ok:
            self.images = result.value or []
        return result

    async def _load(self, name: str) -> None:
        """Fetch content and images, then make the buffer the clean baseline.

        Raises:
            StoreRequestError: content could not be fetched
        """
        self.loading = True
        self.tracker.suppressed = True
        try:
            document = (await self.client.get_document(name)).unwrap()
            self._cancel_image_refresh()
            self.selected_name = document.name or name
            self.buffer_name = self.selected_name
            self.buffer_text = document.content
            self.updated_at = document.updated_at
            self.pending_folder = self.organization.get_doc_folder(self.selected_name)
            images = await self._fetch_images(self.selected_name)
            if not images.ok:
                self.images = []
        finally:
            self.tracker.suppressed = False
            self.loading = False
        self.tracker.mark_saved(self.buffer_name, self.buffer_text)
        self.autosaver.cancel()
        self.repository.clear_draft()

    def _buffer_changed(self, announce: bool) -> DirtyTransition | None:
        self.autosaver.schedule(self.buffer_name, self.buffer_text)
        transition = self.tracker.update(self.buffer_name, self.buffer_text)
        if not announce or transition is None:
            return transition
        if transition is DirtyTransition.became_dirty and not self.is_saving:
            self.status.info("Editing, not yet saved.")
        elif transition is DirtyTransition.became_clean:
            self.status.ok("Content matches the saved version.")
        return transition

    def _cancel_image_refresh(self) -> None:
        if self._image_task is not None and not self._image_task.done():
            self._image_task.cancel()
        self._image_task = None

    def _schedule_image_refresh(self) -> None:
        """Debounced image list refresh while a new name is being typed."""
        self._cancel_image_refresh()
        name = self.buffer_name.strip()
        delay_s = self.settings.image_fetch_debounce_ms / 1000

        async def refresh() -> None:
            await self._sleep(delay_s)
            await self._fetch_images(name)

        self._image_task = asyncio.get_running_loop().create_task(refresh())

    # Boot and listing

    async def boot(self) -> None:
        """Load the document list and restore an unsaved draft if allowed."""
        self.status.loading("Loading documents...")
        result = await self._fetch_documents()
        draft = self.restorer.restore(self.selected_name, self.buffer_name, self.buffer_text)
        if draft is not None:
            self.buffer_name = draft.name
            self.buffer_text = draft.text
            self.tracker.force_dirty()
            await self._fetch_images(self.buffer_name)

        if not result.ok:
            self.status.warn(f"Could not load documents: {result.error.message}")  # type: ignore[union-attr]
        elif draft is not None:
            self.status.info("Restored the local draft. Save it to update the store.")
        else:
            self.status.ok(f"Ready: {len(self.documents)} documents.")

    async def refresh_documents(self) -> None:
        self.status.loading("Loading documents...")
        result = await self._fetch_documents()
        if result.ok:
            self.status.ok("Document list updated.")
        else:
            self.status.warn(f"Could not load documents: {result.error.message}")  # type: ignore[union-attr]

    async def host_info(self) -> HostInfo:
        """Probe the host; failures read as an unknown state."""
        result = await self.client.host_info()
        return result.value if result.ok and result.value else HostInfo()

    # Editing

    async def load_document(self, name: str) -> None:
        if self._refuse_if_busy():
            return
        if name != self.selected_name and not await self._can_discard(f'open "{name}"'):
            self.status.info("Kept the unsaved changes.")
            return
        self.status.loading("Loading document content...")
        try:
            await self._load(name)
        except StoreRequestError as e:
            self.status.warn(f"Could not read the document: {e.message}")
            return
        self.status.ok(f'Opened "{self.selected_name}".')

    def edit(self, name: str | None = None, text: str | None = None) -> DirtyTransition | None:
        """Apply a keystroke-level change to the buffer.

        Must be called from the running event loop (autosave is scheduled
        on it). Only dirty-state transitions produce a status event.
        """
        name_changed = name is not None and name != self.buffer_name
        if name is not None:
            self.buffer_name = name
        if text is not None:
            self.buffer_text = text
        if name_changed and not self.selected_name:
            self._schedule_image_refresh()
        return self._buffer_changed(announce=True)

    def update_fields(self, fields: Mapping[str, str], key_order: list[str] | None = None) -> DirtyTransition | None:
        """Structured-mode edit: rebuild the text from field values."""
        return self.edit(text=sync_text_from_fields(fields, key_order))

    async def save(self) -> bool:
        """Validate and push the buffer, then carry organization state along.

        Returns:
            True when the document was written
        """
        if self.is_saving:
            return False
        if self._refuse_if_busy():
            return False

        previous_name = self.selected_name
        name = self.buffer_name.strip()
        text = self.buffer_text.strip()
        if not name or not text:
            self.status.warn("Enter a document name and content.")
            return False
        validation = validate_kdoc(text)
        if not validation.ok:
            self.status.warn(f"Content is not valid KDOC v1: {validation.preview()}")
            return False

        self.is_saving = True
        try:
            self.status.loading("Saving document...")
            result = await self.client.write_document(name, text, old_name=previous_name or None)
            if not result.ok:
                self.tracker.force_dirty()
                self.status.warn(f"Save failed: {result.error.message}")  # type: ignore[union-attr]
                return False

            explicit = self.pending_folder if not previous_name else None
            self.organization.reassign(previous_name or None, name, explicit_folder=explicit)
            self.selected_name = name
            self.buffer_name = name
            self.buffer_text = text
            self.tracker.mark_saved(name, text)
            self.autosaver.cancel()
            self.repository.clear_draft()

            await self._fetch_documents()
            try:
                await self._load(name)
            except StoreRequestError as e:
                logger.warning(
                    "Saved document could not be reloaded",
                    extra={"structured": {"name": name, "error": e.message}},
                )
            self.status.ok("Document saved.")
            return True
        finally:
            self.is_saving = False

    async def new_document(self) -> None:
        if self._refuse_if_busy():
            return
        if not await self._can_discard("start a new document"):
            self.status.info("Kept the unsaved changes.")
            return
        self._reset_editor()
        self.status.info("New document: enter a name and content, then save.")

    async def open_file_text(self, file_name: str, text: str) -> None:
        """Load local file content into the buffer (name defaults to file name)."""
        if self._refuse_if_busy():
            return
        self.buffer_text = text
        if not self.buffer_name.strip():
            self.buffer_name = file_name
        self._buffer_changed(announce=False)
        self.status.info(f"Read file: {file_name}")

    async def open_file(self, path: str | Path) -> None:
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.status.warn(f"Could not read file: {e}")
            return
        await self.open_file_text(file_path.name, text)

    async def apply_template(self, key: str) -> None:
        if self._refuse_if_busy():
            return
        try:
            self.buffer_text = insert_template(self.buffer_text, key)
        except UnknownTemplateError:
            self.status.warn(f'Unknown template "{key}".')
            return
        suggested = suggest_document_name(key)
        if suggested and not self.buffer_name.strip():
            self.buffer_name = suggested
        self._buffer_changed(announce=False)
        self.status.info("Template inserted.")

    async def convert_to_kdoc(self) -> None:
        if self._refuse_if_busy():
            return
        if is_kdoc(self.buffer_text):
            self.status.info("The document is already in KDOC format.")
            return
        self.buffer_text = convert_free_text(self.buffer_text)
        self._buffer_changed(announce=False)
        self.status.info("Converted the text to a KDOC skeleton. Fill in the empty sections.")

    async def set_view_mode(self, mode: ViewMode | str) -> None:
        self.view_mode = ViewMode.coerce(mode.value if isinstance(mode, ViewMode) else mode)
        self.repository.save_view_mode(self.view_mode)
        self.status.info(f"View mode: {self.view_mode.value}.")

    # Folders and tags

    async def add_folder(self, name: str) -> None:
        if self._refuse_if_busy():
            return
        try:
            folder = self.organization.add_folder(name)
        except FolderError as e:
            self.status.warn(str(e))
            return
        self.status.ok(f'Created folder "{folder}".')

    async def remove_folder(self, name: str) -> None:
        if self._refuse_if_busy():
            return
        try:
            moved = self.organization.remove_folder(name)
        except FolderError as e:
            self.status.warn(str(e))
            return
        if self.pending_folder == sanitize_folder_name(name):
            self.pending_folder = None
        self.status.ok(f'Removed folder "{name}"; {moved} documents moved to "{DEFAULT_FOLDER}".')

    async def choose_folder(self, folder: str) -> None:
        """Folder picker: files the open document, or sets the folder for a new one."""
        if self._refuse_if_busy():
            return
        target = sanitize_folder_name(folder) or DEFAULT_FOLDER
        if is_reserved_folder(target):
            self.status.warn(f'Folder name "{target}" is reserved.')
            return
        if self.selected_name:
            try:
                target = self.organization.set_doc_folder(self.selected_name, target)
            except FolderError as e:
                self.status.warn(str(e))
                return
            self.pending_folder = target
            self.status.info("Updated the folder of the current document.")
            return
        self.pending_folder = target
        self.status.info("Folder selected for the new document; it applies on save.")

    def set_active_folder(self, folder: str) -> str:
        """Move the listing filter (navigation only, no status)."""
        return self.organization.set_active_folder(folder)

    def current_tags(self) -> list[str]:
        return self.organization.get_doc_tags(self.tag_doc_name)

    async def add_tag(self, tag: str) -> None:
        if self._refuse_if_busy():
            return
        if not self.tag_doc_name:
            self.status.warn("Enter a document name before adding tags.")
            return
        try:
            self.organization.add_tag(self.tag_doc_name, tag)
        except TagError:
            self.status.warn("Enter a valid tag.")
            return
        self.status.ok("Tag added.")

    async def rename_tag(self, old_tag: str, new_tag: str) -> None:
        if self._refuse_if_busy():
            return
        if not self.tag_doc_name:
            self.status.warn("Enter a document name before editing tags.")
            return
        try:
            self.organization.rename_tag(self.tag_doc_name, old_tag, new_tag)
        except TagError:
            self.status.warn("Enter a valid tag.")
            return
        self.status.ok("Tag renamed.")

    async def remove_tag(self, tag: str) -> None:
        if self._refuse_if_busy():
            return
        if not self.tag_doc_name:
            self.status.warn("Enter a document name before editing tags.")
            return
        self.organization.remove_tag(self.tag_doc_name, tag)
        self.status.ok("Tag removed.")

    # Images

    async def upload_images(self, uploads: Iterable[ImageUpload]) -> None:
        if self._refuse_if_busy():
            return
        files = list(uploads)
        if not files:
            self.status.info("No images selected.")
            return
        doc_name = self.tag_doc_name
        if not doc_name:
            self.status.warn("Enter a document name and save before uploading images.")
            return
        for index, upload in enumerate(files, start=1):
            self.status.loading(f"Uploading image {index}/{len(files)}...")
            try:
                result = await self.client.upload_image(doc_name, upload)
            except ImageRejectedError as e:
                self.status.warn(f"Image upload failed: {e}")
                return
            if not result.ok:
                self.status.warn(f"Image upload failed: {result.error.message}")  # type: ignore[union-attr]
                return
        await self._fetch_images(doc_name)
        self.status.ok(f"Uploaded {len(files)} image(s).")

    async def delete_image(self, image_id: str) -> None:
        if self._refuse_if_busy():
            return
        result = await self.client.delete_image(image_id)
        if not result.ok:
            self.status.warn(f"Could not delete the image: {result.error.message}")  # type: ignore[union-attr]
            return
        await self._fetch_images(self.tag_doc_name)
        self.status.ok("Image deleted.")

    async def refresh_images(self) -> list[ImageRecord]:
        """Reload the image list of the current document (no status)."""
        await self._fetch_images(self.tag_doc_name)
        return self.images

    # Search

    async def search(self, query: str, top_k: int | None = None) -> list[tuple[SearchHit, str]]:
        """Ranked hits paired with their relative score band."""
        if not query.strip():
            self.status.warn("Enter a search query.")
            return []
        k = clamp_top_k(top_k if top_k is not None else self.settings.search_top_k_default)
        self.status.loading("Searching...")
        result = await self.client.search(query.strip(), k)
        if not result.ok:
            self.status.warn(f"Search failed: {result.error.message}")  # type: ignore[union-attr]
            return []
        hits = result.value or []
        self.status.ok(f"{len(hits)} results.")
        return list(zip(hits, score_bands(hits), strict=True))

    # Bulk actions

    async def clear_documents(self) -> None:
        """Delete every remote document and reset assignments and tags."""
        if self._refuse_bulk_if_busy():
            return
        if not await self._can_discard("delete all documents"):
            self.status.info("Kept the unsaved changes.")
            return
        if not await self._confirm("Delete all documents?"):
            self.status.info("Nothing was deleted.")
            return
        if self._refuse_bulk_if_busy():
            return
        self.bulk_busy = True
        try:
            self.status.loading("Deleting all documents...")
            result = await self.client.delete_all_documents()
            if not result.ok:
                self.status.warn(f"Delete failed: {result.error.message}")  # type: ignore[union-attr]
                return
            self.documents = []
            self.organization.clear_assignments()
            self._reset_editor()
            self.repository.clear_draft()
            self.status.ok("All documents deleted.")
        finally:
            self.bulk_busy = False

    async def export_all(self, directory: str | Path, include_images: bool = True) -> Path | None:
        """Write every document, optionally every image, and local state to one file."""
        if self._refuse_if_busy():
            return None
        self.bulk_busy = True
        try:
            self.status.loading("Preparing the export...")
            documents = await self.transfer.collect_documents(progress=self.status.loading)
            images = (
                await self.transfer.collect_images(documents, progress=self.status.loading)
                if include_images
                else []
            )
            folder_state, tag_state = self.organization.snapshot()
            payload = build_export_payload(
                documents,
                images,
                folder_state,
                tag_state,
                self.view_mode,
                include_images,
                source=self.settings.export_source,
            )
            path = write_export_file(payload, directory)
        except (StoreRequestError, OSError) as e:
            self.status.warn(f"Export failed: {getattr(e, 'message', e)}")
            return None
        finally:
            self.bulk_busy = False

        suffix = f", {payload.image_count} images." if payload.image_count else "."
        self.status.ok(f"Exported {len(documents)} documents{suffix}")
        return path

    async def import_all(self, raw: str | bytes, include_images: bool = True) -> bool:
        """Replace every remote document and all local organization state.

        The payload is validated before anything is deleted.
        """
        if self._refuse_bulk_if_busy():
            return False
        if not await self._confirm("Importing overwrites every document. Continue?"):
            self.status.info("Import cancelled.")
            return False
        if self._refuse_bulk_if_busy():
            return False
        self.bulk_busy = True
        try:
            self.status.loading("Reading the import file...")
            try:
                bundle = parse_import_payload(raw)
            except ImportPayloadError as e:
                self.status.warn(f"Import failed: {e}")
                return False

            try:
                report = await self.transfer.replay(
                    bundle, include_images=include_images, progress=self.status.loading
                )
            except StoreRequestError as e:
                self.status.warn(f"Import failed: {e.message}")
                return False

            if bundle.view_mode is not None:
                self.view_mode = bundle.view_mode
                self.repository.save_view_mode(self.view_mode)
            self._reset_editor()
            self.repository.clear_draft()
            await self._fetch_documents()
            if self.documents:
                try:
                    await self._load(self.documents[0].name)
                except StoreRequestError as e:
                    logger.warning(
                        "First imported document could not be opened",
                        extra={"structured": {"error": e.message}},
                    )
        finally:
            self.bulk_busy = False

        suffix = f", {report.images} images." if report.images else "."
        self.status.ok(f"Imported {report.documents} documents{suffix}")
        return True
