"""Unit tests for document list filtering and sorting."""

import pytest

from kdoc_console.core.models.documents import DocumentSummary
from kdoc_console.core.models.organization import ALL_FOLDERS
from kdoc_console.core.organization.listing import SortOrder, filter_documents, sort_documents
from kdoc_console.core.organization.store import OrganizationStore
from kdoc_console.core.storage.keyvalue import InMemoryKeyValueStore
from kdoc_console.core.storage.records import LocalStateRepository

DOCS = [
    DocumentSummary(name="faq_shipping.txt", updated_at="2026-02-01T10:00:00", snippet="Delivery times"),
    DocumentSummary(name="Lemon_oil.txt", updated_at="2026-02-03T10:00:00", preview="Cold pressed"),
    DocumentSummary(name="returns.txt", updated_at="2026-01-15T10:00:00", snippet="Refund rules"),
]


@pytest.fixture
def organization() -> OrganizationStore:
    store = OrganizationStore(LocalStateRepository(InMemoryKeyValueStore()))
    store.set_doc_folder("Lemon_oil.txt", "Products")
    store.set_doc_tags("returns.txt", ["policy"])
    return store


def test_preview_alias_fills_snippet() -> None:
    assert DOCS[1].snippet == "Cold pressed"


def test_no_filters_keeps_everything(organization: OrganizationStore) -> None:
    assert filter_documents(DOCS, organization) == DOCS


def test_keyword_matches_name_case_insensitively(organization: OrganizationStore) -> None:
    rows = filter_documents(DOCS, organization, keyword="LEMON")

    assert [d.name for d in rows] == ["Lemon_oil.txt"]


def test_sidebar_keyword_matches_tags_and_snippet(organization: OrganizationStore) -> None:
    by_tag = filter_documents(DOCS, organization, sidebar_keyword="policy")
    by_snippet = filter_documents(DOCS, organization, sidebar_keyword="delivery")

    assert [d.name for d in by_tag] == ["returns.txt"]
    assert [d.name for d in by_snippet] == ["faq_shipping.txt"]


def test_active_folder_filter(organization: OrganizationStore) -> None:
    organization.set_active_folder("Products")

    assert [d.name for d in filter_documents(DOCS, organization)] == ["Lemon_oil.txt"]
    assert len(filter_documents(DOCS, organization, folder=ALL_FOLDERS)) == 3


@pytest.mark.parametrize(
    "order,expected",
    [
        (SortOrder.updated_desc, ["Lemon_oil.txt", "faq_shipping.txt", "returns.txt"]),
        (SortOrder.updated_asc, ["returns.txt", "faq_shipping.txt", "Lemon_oil.txt"]),
        (SortOrder.name_asc, ["faq_shipping.txt", "Lemon_oil.txt", "returns.txt"]),
        (SortOrder.name_desc, ["returns.txt", "Lemon_oil.txt", "faq_shipping.txt"]),
        ("bogus", ["Lemon_oil.txt", "faq_shipping.txt", "returns.txt"]),
    ],
)
def test_sort_documents(order: SortOrder | str, expected: list[str]) -> None:
    assert [d.name for d in sort_documents(DOCS, order)] == expected
