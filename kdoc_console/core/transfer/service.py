"""Remote side of export/import: gather everything, or replay a bundle."""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass

from kdoc_console.core.client.store_client import DocumentStoreClient
from kdoc_console.core.models.documents import DocumentSummary
from kdoc_console.core.models.transfer import ExportedDocument, ExportedImage, ImportBundle
from kdoc_console.core.organization.store import OrganizationStore

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]


def _no_progress(message: str) -> None:
    pass


@dataclass(frozen=True)
class ImportReport:
    documents: int
    images: int


class TransferService:
    """Export/import sequences against the document store.

    Store failures surface as StoreRequestError (via ``CallResult.unwrap``)
    and stop the sequence at the failing step.
    """

    def __init__(self, client: DocumentStoreClient, organization: OrganizationStore) -> None:
        self._client = client
        self._organization = organization

    async def collect_documents(
        self,
        listing: list[DocumentSummary] | None = None,
        progress: ProgressFn = _no_progress,
    ) -> list[ExportedDocument]:
        """Full content of every document (listing fetched when not given)."""
        rows = listing if listing is not None else (await self._client.list_documents()).unwrap()
        documents = []
        for index, row in enumerate(rows, start=1):
            progress(f"Reading documents ({index}/{len(rows)})...")
            doc = (await self._client.get_document(row.name)).unwrap()
            documents.append(
                ExportedDocument(
                    name=row.name,
                    content=doc.content,
                    updated_at=doc.updated_at or row.updated_at,
                    characters=doc.characters or row.characters,
                )
            )
        return documents

    async def collect_images(
        self,
        documents: list[ExportedDocument],
        progress: ProgressFn = _no_progress,
    ) -> list[ExportedImage]:
        """Every image of the given documents, bytes inlined as base64."""
        images = []
        for index, doc in enumerate(documents, start=1):
            progress(f"Checking images ({index}/{len(documents)})...")
            records = (await self._client.list_images(doc.name)).unwrap()
            for position, record in enumerate(records, start=1):
                progress(f"Exporting image {position}/{len(records)} ({doc.name})...")
                data = (await self._client.get_image_content(record.id)).unwrap()
                images.append(
                    ExportedImage(
                        doc_name=doc.name,
                        file_name=record.file_name.strip() or "image",
                        mime_type=record.mime_type.strip(),
                        bytes=record.bytes,
                        created_at=record.created_at,
                        caption=record.caption or None,
                        data_base64=base64.b64encode(data).decode("ascii"),
                    )
                )
        return images

    async def replay(
        self,
        bundle: ImportBundle,
        include_images: bool = True,
        progress: ProgressFn = _no_progress,
    ) -> ImportReport:
        """Destructive import: clear the store, recreate, then swap local state.

        The organization store is replaced only after every remote step has
        succeeded.
        """
        progress("Deleting existing documents...")
        (await self._client.delete_all_documents()).unwrap()

        progress(f"Importing {len(bundle.documents)} documents...")
        for doc in bundle.documents:
            (await self._client.write_document(doc.name, doc.text)).unwrap()

        image_count = 0
        if include_images and bundle.images:
            for index, image in enumerate(bundle.images, start=1):
                progress(f"Importing image {index}/{len(bundle.images)}...")
                (
                    await self._client.upload_image_base64(
                        image.doc_name,
                        file_name=image.file_name,
                        mime_type=image.mime_type,
                        data_base64=image.data_base64,
                        caption=image.caption,
                    )
                ).unwrap()
                image_count += 1

        self._organization.replace_all(bundle.folder_state, bundle.tag_state)
        logger.info(
            "Import replayed",
            extra={"structured": {"documents": len(bundle.documents), "images": image_count}},
        )
        return ImportReport(documents=len(bundle.documents), images=image_count)
