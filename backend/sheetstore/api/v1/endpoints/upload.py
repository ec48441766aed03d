import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from sheetstore.config import ALLOWED_EXTENSIONS, MAX_UPLOAD_BYTES
from sheetstore.schemas.tables import StorageResultResponse, UploadResponse
from sheetstore.services.document_store import DocumentStore, StorageError
from sheetstore.services.spreadsheet_parser import SpreadsheetParseError, is_supported_file, parse_spreadsheet
from sheetstore.services.tabular_codec import TabularDataset
from sheetstore.services.table_service import save_dataset
from sheetstore.utils import get_document_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _upload_response(dataset: TabularDataset, storage: StorageResultResponse) -> UploadResponse:
    return UploadResponse(
        headers=dataset.headers,
        rows=dataset.rows,
        file_name=dataset.file_name,
        row_count=dataset.row_count,
        storage=storage
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_spreadsheet(
    file: Optional[UploadFile] = File(None),
    document_id: Optional[str] = Form(None, alias="documentId"),
    file_name: Optional[str] = Form(None, alias="fileName"),
    store: DocumentStore = Depends(get_document_store)
):
    """Parse an uploaded spreadsheet and store its first sheet.

    With ``documentId`` the table is merged into that document; otherwise a new
    document is created under an id derived from the file name.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if not is_supported_file(file.filename):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
        )

    contents = await file.read()
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {MAX_UPLOAD_BYTES} byte upload limit"
        )
    if not contents:
        raise HTTPException(status_code=400, detail="File is empty")

    try:
        dataset = await run_in_threadpool(parse_spreadsheet, contents, file.filename, file_name)
    except SpreadsheetParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = await run_in_threadpool(save_dataset, store, dataset, document_id)
    except StorageError as e:
        logger.error("Error saving %s: %s", dataset.file_name, e)
        # Echo what was parsed so the client can see it even though the save failed
        failed = _upload_response(
            dataset,
            StorageResultResponse(id=e.document_id or document_id or None, success=False, message=str(e))
        )
        content = jsonable_encoder(failed, by_alias=True)
        content["detail"] = f"Error saving file data: {str(e)}"
        return JSONResponse(status_code=500, content=content)

    return _upload_response(
        dataset,
        StorageResultResponse(id=result.id, success=result.success, message=result.message)
    )
