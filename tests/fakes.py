"""In-memory document store speaking the store's HTTP contract.

``build_store_app`` wraps a ``FakeDocumentStore`` in a FastAPI app so tests
can drive the real client through httpx's ASGI transport.
"""

import asyncio
import base64
import itertools
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from kdoc_console.core.kdoc.parser import serialize_sections


async def instant_sleep(seconds: float) -> None:
    """Yield to the loop without waiting."""
    return None


def kdoc_text(doc_id: str = "lemon_oil", **overrides: str) -> str:
    """A valid KDOC v1 document."""
    sections = {
        "DOC_ID": doc_id,
        "DOC_TYPE": "product",
        "TITLE": "Lemon essential oil",
        "ALIASES": "lemon oil | citrus oil",
        "SUMMARY": "Cold-pressed lemon oil.",
        "CONTENT": "- Benefits: fresh scent",
        "LAST_UPDATED": "2026-02-08",
    }
    sections.update(overrides)
    return serialize_sections(sections)


@dataclass
class StoredImage:
    id: str
    doc_name: str
    file_name: str
    mime_type: str
    data: bytes
    caption: str | None = None
    created_at: str = "2026-02-08T10:00:00"

    def row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "bytes": len(self.data),
            "created_at": self.created_at,
            "caption": self.caption,
        }


@dataclass
class FakeDocumentStore:
    """In-memory document store with per-operation failure injection."""

    documents: dict[str, tuple[str, str]] = field(default_factory=dict)  # name -> (text, updated_at)
    images: dict[str, StoredImage] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    multipart_supported: bool = True
    write_gate: asyncio.Event | None = None
    _clock: Any = field(default_factory=lambda: itertools.count(1))
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    def fail(self, operation: str, times: int = 1) -> None:
        self.failures[operation] = self.failures.get(operation, 0) + times

    def should_fail(self, operation: str) -> bool:
        self.calls.append(operation)
        remaining = self.failures.get(operation, 0)
        if remaining <= 0:
            return False
        self.failures[operation] = remaining - 1
        return True

    def put(self, name: str, text: str) -> None:
        self.documents[name] = (text, f"2026-02-08T10:{next(self._clock):02d}:00")

    def add_image(self, doc_name: str, data: bytes, file_name: str = "a.png", caption: str | None = None) -> str:
        image_id = f"img-{next(self._ids)}"
        self.images[image_id] = StoredImage(image_id, doc_name, file_name, "image/png", data, caption)
        return image_id

    def images_of(self, doc_name: str) -> list[StoredImage]:
        return [image for image in self.images.values() if image.doc_name == doc_name]


def _unavailable() -> JSONResponse:
    return JSONResponse({"ok": False, "error": "Store unavailable"}, status_code=503)


def build_store_app(store: FakeDocumentStore) -> FastAPI:
    app = FastAPI()

    @app.get("/api/documents")
    async def list_documents() -> Any:
        if store.should_fail("list_documents"):
            return _unavailable()
        rows = [
            {"name": name, "updated_at": updated_at, "characters": len(text), "preview": text[:40]}
            for name, (text, updated_at) in store.documents.items()
        ]
        return {"ok": True, "documents": rows}

    @app.delete("/api/documents")
    async def delete_all() -> Any:
        if store.should_fail("delete_all_documents"):
            return _unavailable()
        store.documents.clear()
        store.images.clear()
        return {"ok": True}

    @app.get("/api/documents/content")
    async def get_content(name: str) -> Any:
        if store.should_fail("get_document"):
            return _unavailable()
        if name not in store.documents:
            return JSONResponse({"ok": False, "error": "Document not found"}, status_code=404)
        text, updated_at = store.documents[name]
        return {
            "ok": True,
            "document": {"name": name, "content": text, "updated_at": updated_at, "characters": len(text)},
        }

    @app.post("/api/documents/text")
    async def write_text(request: Request) -> Any:
        if store.should_fail("write_document"):
            return _unavailable()
        if store.write_gate is not None:
            await store.write_gate.wait()
        body = await request.json()
        name = str(body.get("name") or "").strip()
        old_name = body.get("old_name")
        if not name:
            return JSONResponse({"ok": False, "error": "name is required"}, status_code=400)
        if old_name and old_name != name:
            store.documents.pop(old_name, None)
            for image in store.images_of(old_name):
                image.doc_name = name
        store.put(name, str(body.get("text") or ""))
        return {"ok": True}

    @app.get("/api/documents/images")
    async def list_images(name: str) -> Any:
        if store.should_fail("list_images"):
            return _unavailable()
        return {"ok": True, "images": [image.row() for image in store.images_of(name)]}

    @app.get("/api/documents/image/content")
    async def image_content(id: str) -> Any:
        if store.should_fail("get_image_content"):
            return Response(status_code=503)
        image = store.images.get(id)
        if image is None:
            return Response(status_code=404)
        return Response(content=image.data, media_type=image.mime_type)

    @app.post("/api/documents/image")
    async def upload_image(request: Request) -> Any:
        if store.should_fail("upload_image"):
            return _unavailable()
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/"):
            if not store.multipart_supported:
                return JSONResponse({"ok": False, "error": "multipart unsupported"}, status_code=415)
            form = await request.form()
            upload = form["file"]
            data = await upload.read()  # type: ignore[union-attr]
            doc_name = str(form.get("name") or "")
            file_name = upload.filename or "image"  # type: ignore[union-attr]
            caption = form.get("caption")
        else:
            body = await request.json()
            data = base64.b64decode(body["data_base64"])
            doc_name = str(body.get("name") or "")
            file_name = body.get("file_name") or "image"
            caption = body.get("caption")
        if doc_name not in store.documents:
            return JSONResponse({"ok": False, "error": "Document not found"}, status_code=404)
        image_id = store.add_image(doc_name, data, file_name=file_name, caption=caption)  # type: ignore[arg-type]
        return {"ok": True, "image": {"id": image_id}}

    @app.delete("/api/documents/image")
    async def delete_image(id: str) -> Any:
        if store.should_fail("delete_image"):
            return _unavailable()
        if store.images.pop(id, None) is None:
            return JSONResponse({"ok": False, "error": "Image not found"}, status_code=404)
        return {"ok": True}

    @app.post("/api/search")
    async def search(request: Request) -> Any:
        if store.should_fail("search"):
            return _unavailable()
        body = await request.json()
        query = str(body.get("query") or "").lower()
        hits = []
        for name, (text, _) in store.documents.items():
            score = text.lower().count(query) + name.lower().count(query)
            if score:
                hits.append({"name": name, "score": float(score), "snippet": text[:60]})
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return {"ok": True, "results": hits[: int(body.get("top_k") or 5)]}

    @app.get("/info")
    async def info() -> Any:
        return {"ok": True, "status": "running"}

    return app

