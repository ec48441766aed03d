"""Helpers for building upload payloads in tests."""

from __future__ import annotations

import io
import zipfile
from typing import Any, Sequence

import openpyxl

from sheetstore.services.document_store import DocumentStore, StorageError

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_xlsx(rows: Sequence[Sequence[Any]], sheet_title: str = "Sheet1") -> bytes:
    """Return the bytes of a single-sheet workbook holding ``rows``."""

    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = sheet_title
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def xlsx_upload(name: str, rows: Sequence[Sequence[Any]]) -> dict[str, tuple[str, bytes, str]]:
    return {"file": (name, build_xlsx(rows), XLSX_CONTENT_TYPE)}


class FailingStore(DocumentStore):
    """Store whose every operation fails like an unreachable backend."""

    def __init__(self, message: str = "backend unavailable") -> None:
        self.message = message

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        raise StorageError(self.message)

    get = set = create = merge = delete = query = _fail


def zip_archive(members: dict[str, str]) -> bytes:
    """Return a zip archive holding ``members`` (name -> text)."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, text in members.items():
            archive.writestr(name, text)
    return buffer.getvalue()


def replace_zip_member(content: bytes, name: str, text: str) -> bytes:
    """Copy an archive, swapping the contents of one member."""

    source = zipfile.ZipFile(io.BytesIO(content))
    members = {
        info.filename: text if info.filename == name else source.read(info.filename).decode("utf-8")
        for info in source.infolist()
    }
    return zip_archive(members)
