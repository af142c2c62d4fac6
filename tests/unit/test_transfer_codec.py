"""Unit tests for export encoding and import validation."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from kdoc_console.core.models.common import ViewMode
from kdoc_console.core.models.organization import DEFAULT_FOLDER, FolderState
from kdoc_console.core.models.transfer import ExportedDocument, ExportedImage
from kdoc_console.core.transfer.codec import (
    ImportPayloadError,
    build_export_payload,
    encode_export,
    export_file_name,
    parse_import_payload,
    write_export_file,
)

EXPORTED_AT = datetime(2026, 2, 8, 9, 30, tzinfo=UTC)


@pytest.fixture
def documents() -> list[ExportedDocument]:
    return [ExportedDocument(name="faq.txt", content="Hello", characters=5)]


@pytest.fixture
def images() -> list[ExportedImage]:
    return [ExportedImage(doc_name="faq.txt", file_name="a.png", mime_type="image/png", data_base64="cG5n")]


class TestExport:
    def test_wire_keys_use_aliases(self, documents: list[ExportedDocument], images: list[ExportedImage]) -> None:
        payload = build_export_payload(
            documents,
            images,
            FolderState(assignments={"faq.txt": DEFAULT_FOLDER}),
            {"faq.txt": ["faq"]},
            ViewMode.kdoc,
            include_images=True,
            exported_at=EXPORTED_AT,
        )

        data = json.loads(encode_export(payload))

        assert data["schema"] == "voicebot_webhost_export_v2"
        assert data["schema_version"] == 2
        assert data["image_count"] == 1
        assert data["include_images"] is True
        assert data["folderState"]["assignments"] == {"faq.txt": DEFAULT_FOLDER}
        assert data["noteTagState"] == {"faq.txt": ["faq"]}
        assert data["uiState"] == {"viewMode": "kdoc"}

    def test_images_dropped_when_not_included(
        self, documents: list[ExportedDocument], images: list[ExportedImage]
    ) -> None:
        payload = build_export_payload(
            documents, images, FolderState(), {}, ViewMode.text, include_images=False
        )

        assert payload.images == []
        assert payload.image_count == 0
        assert payload.include_images is False

    def test_file_name_carries_timestamp(self) -> None:
        assert export_file_name(datetime(2026, 2, 8, 9, 5, 7)) == "voicebot-knowledge-20260208-090507.json"

    def test_write_export_file(self, tmp_path: Path, documents: list[ExportedDocument]) -> None:
        payload = build_export_payload(documents, [], FolderState(), {}, ViewMode.text, include_images=False)

        path = write_export_file(payload, tmp_path / "exports", now=datetime(2026, 2, 8, 9, 5, 7))

        assert path.name == "voicebot-knowledge-20260208-090507.json"
        assert json.loads(path.read_text(encoding="utf-8"))["documents"][0]["name"] == "faq.txt"


class TestImport:
    def test_export_output_is_accepted(
        self, documents: list[ExportedDocument], images: list[ExportedImage]
    ) -> None:
        payload = build_export_payload(
            documents, images, FolderState(), {"faq.txt": ["faq"]}, ViewMode.kdoc, include_images=True
        )

        bundle = parse_import_payload(encode_export(payload))

        assert [(d.name, d.text) for d in bundle.documents] == [("faq.txt", "Hello")]
        assert [i.data_base64 for i in bundle.images] == ["cG5n"]
        assert bundle.tag_state == {"faq.txt": ["faq"]}
        assert bundle.view_mode is ViewMode.kdoc

    def test_documents_accept_text_and_skip_blank_entries(self) -> None:
        bundle = parse_import_payload(
            {
                "documents": [
                    {"name": "a", "text": "alpha"},
                    {"name": "b", "content": "   "},
                    {"name": " ", "content": "orphan"},
                    {"name": "c", "content": "gamma"},
                    "junk",
                ]
            }
        )

        assert [d.name for d in bundle.documents] == ["a", "c"]
        assert bundle.view_mode is None
        assert bundle.folder_state == FolderState()

    def test_unusable_images_are_dropped(self) -> None:
        bundle = parse_import_payload(
            {
                "documents": [{"name": "a", "content": "alpha"}, {"name": "b", "content": "beta"}],
                "images": [
                    {"doc_name": "a", "data_base64": "cG5n"},
                    {"name": "b", "data": "cG5n", "caption": "from b"},
                    {"doc_name": "ghost", "data_base64": "cG5n"},
                    {"doc_name": "a", "data_base64": "not base64!"},
                    {"doc_name": "a"},
                    {"data_base64": "cG5n"},
                ],
            }
        )

        assert [(i.doc_name, i.caption) for i in bundle.images] == [("a", None), ("b", "from b")]

    @pytest.mark.parametrize(
        "raw,message",
        [
            ("{not json", "not valid JSON"),
            ("[1, 2]", "JSON object"),
            ('{"documents": []}', "no valid documents"),
            ({"documents": [{"name": "x", "content": ""}]}, "no valid documents"),
        ],
    )
    def test_invalid_payloads_raise(self, raw: object, message: str) -> None:
        with pytest.raises(ImportPayloadError, match=message):
            parse_import_payload(raw)  # type: ignore[arg-type]

    def test_organization_state_is_normalized(self) -> None:
        bundle = parse_import_payload(
            {
                "documents": [{"name": "a", "content": "alpha"}],
                "folderState": {"folders": ["__ALL__", "Imported"], "assignments": {"a": "Imported"}},
                "noteTagState": {"a": ["FAQ", "faq", ""]},
                "uiState": {"viewMode": "weird"},
            }
        )

        assert bundle.folder_state.folders == [DEFAULT_FOLDER, "Imported"]
        assert bundle.tag_state == {"a": ["FAQ"]}
        assert bundle.view_mode is ViewMode.text
