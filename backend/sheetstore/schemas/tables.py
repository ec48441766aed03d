from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, List, Optional


class CamelModel(BaseModel):
    """Snake-case fields, camelCase JSON"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class StorageResultResponse(CamelModel):
    id: Optional[str] = None
    success: bool
    message: str


class UploadResponse(CamelModel):
    headers: List[str]
    rows: List[List[Any]]
    file_name: str
    row_count: int
    storage: StorageResultResponse


class FileSummaryResponse(CamelModel):
    id: str
    file_name: Optional[str] = None
    row_count: int
    uploaded_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FileListResponse(CamelModel):
    files: List[FileSummaryResponse]
    count: int


class FileDetailResponse(CamelModel):
    id: str
    file_name: Optional[str] = None
    headers: List[str]
    rows: List[List[str]]
    row_count: int
    uploaded_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeleteResponse(CamelModel):
    success: bool
    message: str


class SearchRequest(CamelModel):
    search_term: Optional[str] = None


class SearchResultResponse(CamelModel):
    id: str
    file_name: Optional[str] = None
    headers: List[str]
    matching_rows: List[List[str]]
    match_count: int


class SearchResponse(CamelModel):
    results: List[SearchResultResponse]
    total_matches: int
