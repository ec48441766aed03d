import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from sheetstore.schemas.tables import SearchRequest, SearchResponse, SearchResultResponse
from sheetstore.services.document_store import DocumentStore, StorageError
from sheetstore.services.table_service import search_tables
from sheetstore.utils import get_document_store, storage_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search", response_model=SearchResponse)
def search(
    request: Optional[SearchRequest] = None,
    store: DocumentStore = Depends(get_document_store)
) -> SearchResponse:
    """Find rows containing the search term (case-insensitive) across all tables"""
    if request is None or not request.search_term:
        raise HTTPException(status_code=400, detail="searchTerm is required")

    try:
        matches = search_tables(store, request.search_term)
    except StorageError as e:
        logger.error("Error searching for %r: %s", request.search_term, e)
        raise storage_http_error(e, "Error searching data")

    results = [
        SearchResultResponse(
            id=match.id,
            file_name=match.file_name,
            headers=match.headers,
            matching_rows=match.matching_rows,
            match_count=match.match_count
        )
        for match in matches
    ]
    return SearchResponse(results=results, total_matches=len(results))
