"""Common utility functions"""
import logging

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from sheetstore.config import COLLECTION_NAME
from sheetstore.database import get_db
from sheetstore.services.document_store import DocumentStore, SQLDocumentStore, StorageError
from sheetstore.services.table_service import TableRecord, fetch_table

logger = logging.getLogger(__name__)


def get_document_store(db: Session = Depends(get_db)) -> DocumentStore:
    """Dependency to get the table collection for the current request"""
    return SQLDocumentStore(db, COLLECTION_NAME)


def storage_http_error(error: StorageError, detail: str) -> HTTPException:
    """
    Wrap a storage failure as a 500 response.

    Args:
        error: The storage failure
        detail: Generic, client-facing description

    Returns:
        HTTPException carrying the description and the underlying error text
    """
    return HTTPException(status_code=500, detail=f"{detail}: {str(error)}")


def get_table_or_404(store: DocumentStore, document_id: str, detail: str = "File not found") -> TableRecord:
    """
    Get a decoded table by document ID or raise 404.

    Args:
        store: Document store
        document_id: Document ID
        detail: Error message if not found

    Returns:
        Decoded table

    Raises:
        HTTPException: 404 if the document does not exist, 500 on storage failure
    """
    try:
        table = fetch_table(store, document_id)
    except StorageError as e:
        logger.error("Error retrieving file %s: %s", document_id, e)
        raise storage_http_error(e, "Error retrieving data")
    if table is None:
        raise HTTPException(status_code=404, detail=detail)
    return table
