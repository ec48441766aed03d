"""Configuration settings"""
import os
from typing import List

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sheetstore.db")

# Document store collection holding uploaded tables
COLLECTION_NAME = os.getenv("SHEETSTORE_COLLECTION", "excel_data")

# Application settings
API_PREFIX = "/api"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Upload limits
MAX_UPLOAD_BYTES = int(os.getenv("SHEETSTORE_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_EXTENSIONS = (".xlsx", ".xlsm", ".xls", ".csv")

# CORS configuration
CORS_ORIGINS: List[str] = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# Allow additional origins from environment variable (comma-separated)
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    CORS_ORIGINS.extend([origin.strip() for origin in _extra_origins.split(",") if origin.strip()])
