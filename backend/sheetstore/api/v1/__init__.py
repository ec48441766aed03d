# API v1
from fastapi import APIRouter
from sheetstore.api.v1.endpoints import files, search, upload

api_router = APIRouter()
api_router.include_router(upload.router, prefix="", tags=["upload"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(search.router, prefix="", tags=["search"])
