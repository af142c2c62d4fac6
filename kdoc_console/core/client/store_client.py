"""HTTP client for the remote document store.

Every endpoint goes through ``RetryingCaller`` and returns a ``CallResult``.
Reads and name/id-keyed writes retry once by default; deleting all documents
never retries.
"""

import base64
import logging
import math
from collections.abc import Sequence
from typing import Any

import httpx

from kdoc_console.core.client.retry import (
    NO_RETRY,
    BackoffPolicy,
    CallResult,
    RetryingCaller,
    StoreRequestError,
)
from kdoc_console.core.config import Settings
from kdoc_console.core.models.common import ALLOWED_IMAGE_MIME_TYPES
from kdoc_console.core.models.documents import (
    Document,
    DocumentSummary,
    HostInfo,
    ImageRecord,
    ImageUpload,
    SearchHit,
)

logger = logging.getLogger(__name__)

MIN_TOP_K = 1
MAX_TOP_K = 10


class ImageRejectedError(ValueError):
    """Image failed the local type/size checks; nothing was sent."""

    pass


def clamp_top_k(value: object, default: int = 5) -> int:
    """Coerce a requested result count into 1..10 (invalid -> default)."""
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        number = default
    return max(MIN_TOP_K, min(MAX_TOP_K, number))


def score_bands(hits: Sequence[SearchHit]) -> list[str]:
    """Relative band per hit: high / mid / low, or neutral without a score.

    Bands are relative to the min/max score of the result set; a set where
    every score is equal is all ``high``.
    """
    scores = [h.score for h in hits if h.score is not None and math.isfinite(h.score)]
    if not scores:
        return ["neutral"] * len(hits)
    low, high = min(scores), max(scores)

    bands = []
    for hit in hits:
        if hit.score is None or not math.isfinite(hit.score):
            bands.append("neutral")
        elif high <= low:
            bands.append("high")
        else:
            ratio = (hit.score - low) / (high - low)
            bands.append("high" if ratio >= 0.66 else "mid" if ratio >= 0.33 else "low")
    return bands


def _body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _check(response: httpx.Response, operation: str) -> dict[str, Any]:
    """Decode a JSON response, raising on non-2xx or ``ok: false``."""
    data = _body(response)
    if not response.is_success or data.get("ok") is False:
        message = str(data.get("error") or f"HTTP {response.status_code}")
        raise StoreRequestError(message, status_code=response.status_code, operation=operation)
    return data


class DocumentStoreClient:
    """Typed access to documents, images, search and host info."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        caller: RetryingCaller | None = None,
        policy: BackoffPolicy | None = None,
        max_image_upload_mb: int = 15,
    ) -> None:
        """Initialize client.

        Args:
            http: httpx client with ``base_url`` pointing at the store
            caller: Retry envelope (optional, defaults to no-op metrics/logging)
            policy: Backoff for retried operations (default: one retry, 250ms)
            max_image_upload_mb: Local upload size limit
        """
        self._http = http
        self._caller = caller or RetryingCaller()
        self._policy = policy or BackoffPolicy()
        self.max_image_upload_bytes = max_image_upload_mb * 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Settings, caller: RetryingCaller | None = None) -> "DocumentStoreClient":
        http = httpx.AsyncClient(base_url=settings.store_base_url, timeout=settings.request_timeout_s)
        policy = BackoffPolicy(
            retry_count=settings.retry_count, base_delay_ms=settings.retry_base_delay_ms
        )
        return cls(http, caller=caller, policy=policy, max_image_upload_mb=settings.max_image_upload_mb)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _json(
        self,
        operation: str,
        method: str,
        url: str,
        policy: BackoffPolicy | None = None,
        **kwargs: Any,
    ) -> CallResult[dict[str, Any]]:
        async def attempt() -> dict[str, Any]:
            response = await self._http.request(method, url, **kwargs)
            return _check(response, operation)

        return await self._caller.call(attempt, policy or self._policy, operation=operation)

    # Documents

    async def list_documents(self) -> CallResult[list[DocumentSummary]]:
        result = await self._json("list_documents", "GET", "/api/documents")
        if not result.ok:
            return CallResult(error=result.error, attempts=result.attempts)
        rows = result.value.get("documents") or []  # type: ignore[union-attr]
        documents = [
            DocumentSummary.model_validate(row)
            for row in rows
            if isinstance(row, dict) and str(row.get("name") or "").strip()
        ]
        return CallResult(value=documents, attempts=result.attempts)

    async def get_document(self, name: str) -> CallResult[Document]:
        result = await self._json(
            "get_document", "GET", "/api/documents/content", params={"name": name}
        )
        if not result.ok:
            return CallResult(error=result.error, attempts=result.attempts)
        raw = result.value.get("document") or {}  # type: ignore[union-attr]
        document = Document(
            name=str(raw.get("name") or name),
            content=str(raw.get("content") or ""),
            updated_at=str(raw.get("updated_at") or ""),
            characters=int(raw.get("characters") or 0),
        )
        return CallResult(value=document, attempts=result.attempts)

    async def write_document(
        self, name: str, text: str, old_name: str | None = None
    ) -> CallResult[dict[str, Any]]:
        """Create or replace a document by name; ``old_name`` renames."""
        payload: dict[str, Any] = {"name": name, "text": text}
        if old_name and old_name != name:
            payload["old_name"] = old_name
        return await self._json("write_document", "POST", "/api/documents/text", json=payload)

    async def delete_all_documents(self) -> CallResult[dict[str, Any]]:
        return await self._json("delete_all_documents", "DELETE", "/api/documents", policy=NO_RETRY)

    # Images

    async def list_images(self, doc_name: str) -> CallResult[list[ImageRecord]]:
        result = await self._json(
            "list_images", "GET", "/api/documents/images", params={"name": doc_name}
        )
        if not result.ok:
            return CallResult(error=result.error, attempts=result.attempts)
        rows = result.value.get("images") or []  # type: ignore[union-attr]
        images = []
        for row in rows:
            if not isinstance(row, dict) or not str(row.get("id") or "").strip():
                continue
            images.append(ImageRecord.model_validate({"doc_name": doc_name, **row}))
        return CallResult(value=images, attempts=result.attempts)

    async def get_image_content(self, image_id: str) -> CallResult[bytes]:
        async def attempt() -> bytes:
            response = await self._http.get("/api/documents/image/content", params={"id": image_id})
            if not response.is_success:
                raise StoreRequestError(
                    f"Image download failed (HTTP {response.status_code}).",
                    status_code=response.status_code,
                    operation="get_image_content",
                )
            return response.content

        return await self._caller.call(attempt, self._policy, operation="get_image_content")

    def check_image(self, upload: ImageUpload) -> None:
        """Raise ImageRejectedError unless the file is an allowed type and size."""
        if upload.mime_type not in ALLOWED_IMAGE_MIME_TYPES:
            raise ImageRejectedError(f'Image "{upload.file_name}" must be JPEG, PNG or WEBP.')
        if upload.size > self.max_image_upload_bytes:
            limit_mb = self.max_image_upload_bytes // (1024 * 1024)
            raise ImageRejectedError(f'Image "{upload.file_name}" exceeds the {limit_mb}MB limit.')

    async def upload_image(self, doc_name: str, upload: ImageUpload) -> CallResult[dict[str, Any]]:
        """Attach an image, trying multipart first and JSON/base64 second.

        Raises:
            ImageRejectedError: local type/size check failed
        """
        self.check_image(upload)
        data: dict[str, str] = {"name": doc_name}
        if upload.caption:
            data["caption"] = upload.caption
        result = await self._json(
            "upload_image",
            "POST",
            "/api/documents/image",
            data=data,
            files={"file": (upload.file_name or "image", upload.data, upload.mime_type)},
        )
        if result.ok:
            return result

        logger.info(
            "Multipart image upload failed, retrying as JSON",
            extra={"structured": {"doc_name": doc_name, "error": result.error.message}},  # type: ignore[union-attr]
        )
        return await self.upload_image_base64(
            doc_name,
            file_name=upload.file_name,
            mime_type=upload.mime_type,
            data_base64=base64.b64encode(upload.data).decode("ascii"),
            caption=upload.caption,
        )

    async def upload_image_base64(
        self,
        doc_name: str,
        file_name: str,
        mime_type: str,
        data_base64: str,
        caption: str | None = None,
    ) -> CallResult[dict[str, Any]]:
        payload = {
            "name": doc_name,
            "file_name": file_name or "image",
            "mime_type": mime_type,
            "data_base64": data_base64,
            "caption": caption,
        }
        return await self._json("upload_image", "POST", "/api/documents/image", json=payload)

    async def delete_image(self, image_id: str) -> CallResult[dict[str, Any]]:
        return await self._json(
            "delete_image", "DELETE", "/api/documents/image", params={"id": image_id}
        )

    # Search and host

    async def search(self, query: str, top_k: int | None = None) -> CallResult[list[SearchHit]]:
        payload = {"query": query, "top_k": clamp_top_k(top_k)}
        result = await self._json("search", "POST", "/api/search", json=payload)
        if not result.ok:
            return CallResult(error=result.error, attempts=result.attempts)
        rows = result.value.get("results") or []  # type: ignore[union-attr]
        hits = [SearchHit.model_validate(row) for row in rows if isinstance(row, dict) and row.get("name")]
        return CallResult(value=hits, attempts=result.attempts)

    async def host_info(self) -> CallResult[HostInfo]:
        result = await self._json("host_info", "GET", "/info")
        if not result.ok:
            return CallResult(error=result.error, attempts=result.attempts)
        status = str(result.value.get("status") or "unknown")  # type: ignore[union-attr]
        return CallResult(value=HostInfo(status=status), attempts=result.attempts)
