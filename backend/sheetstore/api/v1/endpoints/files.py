import logging

from fastapi import APIRouter, Depends

from sheetstore.schemas.tables import DeleteResponse, FileDetailResponse, FileListResponse, FileSummaryResponse
from sheetstore.services.document_store import DocumentStore, StorageError
from sheetstore.services.table_service import delete_table, list_tables
from sheetstore.utils import get_document_store, get_table_or_404, storage_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=FileListResponse)
def list_files(store: DocumentStore = Depends(get_document_store)) -> FileListResponse:
    """List all stored tables, most recently uploaded first"""
    try:
        tables = list_tables(store)
    except StorageError as e:
        logger.error("Error listing files: %s", e)
        raise storage_http_error(e, "Error retrieving data")

    files = [
        FileSummaryResponse(
            id=table.id,
            file_name=table.file_name,
            row_count=table.row_count,
            uploaded_at=table.uploaded_at,
            updated_at=table.updated_at
        )
        for table in tables
    ]
    return FileListResponse(files=files, count=len(files))


@router.get("/{file_id}", response_model=FileDetailResponse)
def get_file(
    file_id: str,
    store: DocumentStore = Depends(get_document_store)
) -> FileDetailResponse:
    """Get a stored table with all rows"""
    table = get_table_or_404(store, file_id)
    return FileDetailResponse(
        id=table.id,
        file_name=table.file_name,
        headers=table.headers,
        rows=table.rows,
        row_count=table.row_count,
        uploaded_at=table.uploaded_at,
        updated_at=table.updated_at
    )


@router.delete("/{file_id}", response_model=DeleteResponse)
def delete_file(
    file_id: str,
    store: DocumentStore = Depends(get_document_store)
) -> DeleteResponse:
    """Delete a stored table. Unknown ids are reported as deleted."""
    try:
        delete_table(store, file_id)
    except StorageError as e:
        logger.error("Error deleting file %s: %s", file_id, e)
        raise storage_http_error(e, "Error deleting file")
    return DeleteResponse(success=True, message="File deleted")
