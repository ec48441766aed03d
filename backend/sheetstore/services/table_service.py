"""Table persistence: document identity, create-vs-merge writes, reads and search"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sheetstore.services.document_store import DocumentSnapshot, DocumentStore, SERVER_TIMESTAMP
from sheetstore.services.tabular_codec import TabularDataset, cell_text, decode_rows, encode_rows

logger = logging.getLogger(__name__)

# Stored record field names
FILE_NAME = "fileName"
HEADERS = "headers"
ROW_COUNT = "rowCount"
ROWS_DATA = "rowsData"
UPLOADED_AT = "uploadedAt"
UPDATED_AT = "updatedAt"

SPREADSHEET_EXTENSION_PATTERN = re.compile(r"\.(xlsx|xlsm|xls|csv)$", re.IGNORECASE)
UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class PersistResult:
    id: str
    success: bool
    message: str


@dataclass
class TableSummary:
    id: str
    file_name: Optional[str]
    row_count: int
    uploaded_at: Optional[str]
    updated_at: Optional[str]


@dataclass
class TableRecord:
    id: str
    file_name: Optional[str]
    headers: List[str]
    rows: List[List[str]]
    row_count: int
    uploaded_at: Optional[str]
    updated_at: Optional[str]


@dataclass
class SearchMatch:
    id: str
    file_name: Optional[str]
    headers: List[str]
    matching_rows: List[List[str]]

    @property
    def match_count(self) -> int:
        return len(self.matching_rows)


def current_millis() -> int:
    return int(time.time() * 1000)


def resolve_document_id(
    caller_id: Optional[str],
    file_name: Optional[str],
    timestamp_ms: Optional[int] = None
) -> str:
    """
    Pick the document id for an upload.

    A non-empty caller id is used verbatim (a named, overwritable slot).
    Otherwise the id is derived from the file name: spreadsheet extension
    stripped, unsafe characters replaced with ``_``, lower-cased, and a
    millisecond timestamp appended after ``_``.

    Args:
        caller_id: Explicit id supplied with the upload
        file_name: Display name of the uploaded file
        timestamp_ms: Uniqueness suffix; defaults to the current time

    Returns:
        Document id
    """
    if caller_id and caller_id.strip():
        return caller_id

    suffix = str(current_millis() if timestamp_ms is None else timestamp_ms)
    base = SPREADSHEET_EXTENSION_PATTERN.sub("", file_name or "")
    base = UNSAFE_ID_CHARS.sub("_", base).lower()
    return f"{base}_{suffix}" if base else suffix


def build_record(dataset: TabularDataset) -> Dict[str, Any]:
    """Stored fields for a dataset, without ``uploadedAt``"""
    return {
        FILE_NAME: dataset.file_name,
        HEADERS: list(dataset.headers),
        ROW_COUNT: dataset.row_count,
        ROWS_DATA: encode_rows(dataset.headers, dataset.rows),
        UPDATED_AT: SERVER_TIMESTAMP,
    }


def persist_dataset(
    store: DocumentStore,
    dataset: TabularDataset,
    document_id: str,
    is_explicit_id: bool
) -> PersistResult:
    """
    Write a dataset to the store.

    An explicit id merges into the existing document (creating it if needed)
    and leaves any earlier ``uploadedAt`` untouched. A derived id always
    creates a new document; an id collision surfaces as StorageError.
    Failures are not retried.
    """
    record = build_record(dataset)
    if is_explicit_id:
        store.merge(document_id, record, defaults={UPLOADED_AT: SERVER_TIMESTAMP})
        message = f"Data saved to document '{document_id}'"
    else:
        record[UPLOADED_AT] = SERVER_TIMESTAMP
        store.create(document_id, record)
        message = "Data saved as a new document"

    logger.info(
        "Persisted %s (%d rows) as %s [%s]",
        dataset.file_name, dataset.row_count, document_id, "merge" if is_explicit_id else "create"
    )
    return PersistResult(id=document_id, success=True, message=message)


def save_dataset(
    store: DocumentStore,
    dataset: TabularDataset,
    caller_id: Optional[str] = None,
    timestamp_ms: Optional[int] = None
) -> PersistResult:
    """Resolve the document id for a dataset and persist it"""
    is_explicit_id = bool(caller_id and caller_id.strip())
    document_id = resolve_document_id(caller_id, dataset.file_name, timestamp_ms)
    return persist_dataset(store, dataset, document_id, is_explicit_id)


def _decode_snapshot(snapshot: DocumentSnapshot) -> TableRecord:
    data = snapshot.data
    headers = list(data.get(HEADERS) or [])
    rows = decode_rows(headers, data.get(ROWS_DATA))
    row_count = data.get(ROW_COUNT)
    return TableRecord(
        id=snapshot.id,
        file_name=data.get(FILE_NAME),
        headers=headers,
        rows=rows,
        row_count=row_count if row_count is not None else len(rows),
        uploaded_at=data.get(UPLOADED_AT),
        updated_at=data.get(UPDATED_AT),
    )


def fetch_table(store: DocumentStore, document_id: str) -> Optional[TableRecord]:
    """Return the decoded table or None if no document has this id"""
    snapshot = store.get(document_id)
    if snapshot is None:
        return None
    return _decode_snapshot(snapshot)


def list_tables(store: DocumentStore) -> List[TableSummary]:
    """Summaries of every stored table, newest upload first"""
    return [
        TableSummary(
            id=snapshot.id,
            file_name=snapshot.data.get(FILE_NAME),
            row_count=snapshot.data.get(ROW_COUNT) or 0,
            uploaded_at=snapshot.data.get(UPLOADED_AT),
            updated_at=snapshot.data.get(UPDATED_AT),
        )
        for snapshot in store.query(order_by=UPLOADED_AT, descending=True)
    ]


def delete_table(store: DocumentStore, document_id: str) -> None:
    # No existence check: deleting a missing table succeeds
    store.delete(document_id)
    logger.info("Deleted table %s", document_id)


def row_matches(row: List[Any], term: str) -> bool:
    needle = term.lower()
    return any(needle in cell_text(cell).lower() for cell in row)


def search_tables(store: DocumentStore, term: str) -> List[SearchMatch]:
    """
    Case-insensitive substring search across every stored table.

    Loads and decodes the whole collection on each call. Tables without a
    matching row are left out; order follows the store's iteration order.
    """
    results: List[SearchMatch] = []
    for snapshot in store.query():
        table = _decode_snapshot(snapshot)
        matching_rows = [row for row in table.rows if row_matches(row, term)]
        if matching_rows:
            results.append(SearchMatch(
                id=table.id,
                file_name=table.file_name,
                headers=table.headers,
                matching_rows=matching_rows,
            ))
    logger.info("Search for %r matched %d tables", term, len(results))
    return results
