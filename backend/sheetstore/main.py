"""FastAPI application entry point"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sheetstore.api.v1 import api_router
from sheetstore.config import API_PREFIX, CORS_ORIGINS, LOG_LEVEL
from sheetstore.database import init_db
from sheetstore.logging_config import setup_logging

setup_logging(LOG_LEVEL)

# Create the documents table (only creates if it doesn't exist)
init_db()

app = FastAPI(title="Sheetstore API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=API_PREFIX)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Sheetstore API"}
