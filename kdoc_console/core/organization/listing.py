"""Document list filtering and sorting."""

from collections.abc import Iterable
from enum import Enum

from kdoc_console.core.models.documents import DocumentSummary
from kdoc_console.core.models.organization import ALL_FOLDERS
from kdoc_console.core.organization.store import OrganizationStore


class SortOrder(str, Enum):
    updated_desc = "updated_desc"
    updated_asc = "updated_asc"
    name_asc = "name_asc"
    name_desc = "name_desc"


def filter_documents(
    documents: Iterable[DocumentSummary],
    organization: OrganizationStore,
    keyword: str = "",
    sidebar_keyword: str = "",
    folder: str | None = None,
) -> list[DocumentSummary]:
    """Keep documents matching every active filter.

    Args:
        documents: Listing rows
        organization: Source of folder and tag assignments
        keyword: Case-insensitive match on the document name
        sidebar_keyword: Case-insensitive match on name, tags or snippet
        folder: Folder filter; defaults to the store's active folder
    """
    needle = keyword.strip().lower()
    sidebar = sidebar_keyword.strip().lower()
    target = organization.active_folder if folder is None else folder

    result = []
    for doc in documents:
        if needle and needle not in doc.name.lower():
            continue
        if target != ALL_FOLDERS and organization.get_doc_folder(doc.name) != target:
            continue
        if sidebar:
            tags = organization.get_doc_tags(doc.name, doc.snippet)
            haystack = " ".join([doc.name, *tags, doc.snippet]).lower()
            if sidebar not in haystack:
                continue
        result.append(doc)
    return result


def sort_documents(
    documents: Iterable[DocumentSummary],
    order: SortOrder | str = SortOrder.updated_desc,
) -> list[DocumentSummary]:
    """Sort rows; ties and unknown orders fall back to newest first.

    Timestamps are ISO-8601 strings from the store and sort lexically.
    """
    try:
        order = SortOrder(order)
    except ValueError:
        order = SortOrder.updated_desc

    rows = list(documents)
    if order is SortOrder.name_asc:
        return sorted(rows, key=lambda d: d.name.lower())
    if order is SortOrder.name_desc:
        return sorted(rows, key=lambda d: d.name.lower(), reverse=True)
    if order is SortOrder.updated_asc:
        return sorted(rows, key=lambda d: d.updated_at)
    return sorted(rows, key=lambda d: d.updated_at, reverse=True)
