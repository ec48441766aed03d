"""Spreadsheet upload parsing"""
import csv
import io
import logging
import os
import zipfile
from datetime import date, datetime, time
from typing import Any, Iterable, List, Optional, Sequence

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from sheetstore.config import ALLOWED_EXTENSIONS
from sheetstore.services.tabular_codec import TabularDataset

logger = logging.getLogger(__name__)


class SpreadsheetParseError(ValueError):
    """Raised when an upload cannot be read as a spreadsheet"""


class UnsupportedFileTypeError(SpreadsheetParseError):
    """Raised for extensions the parser does not handle"""


class EmptySpreadsheetError(SpreadsheetParseError):
    """Raised when the first sheet has no rows at all"""


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_supported_file(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_EXTENSIONS


def parse_spreadsheet(content: bytes, filename: str, display_name: Optional[str] = None) -> TabularDataset:
    """
    Parse the first sheet of an uploaded file.

    The first row becomes the headers and the remaining rows the data.

    Args:
        content: Raw upload bytes
        filename: Uploaded file name, used to pick the reader
        display_name: Optional label overriding ``filename`` on the dataset

    Returns:
        TabularDataset for the first sheet

    Raises:
        UnsupportedFileTypeError: Extension is not one of ALLOWED_EXTENSIONS
        EmptySpreadsheetError: The sheet has no rows
        SpreadsheetParseError: The bytes could not be read
    """
    extension = file_extension(filename)
    if extension == ".csv":
        raw_rows = _read_csv_rows(content)
    elif extension == ".xls":
        raw_rows = _read_legacy_workbook_rows(content)
    elif extension in ALLOWED_EXTENSIONS:
        raw_rows = _read_workbook_rows(content)
    else:
        allowed = ", ".join(ALLOWED_EXTENSIONS)
        raise UnsupportedFileTypeError(f"Unsupported file type '{extension or filename}'. Allowed: {allowed}")

    rows = [row for row in (_trim_row(raw) for raw in raw_rows) if row]
    if not rows:
        raise EmptySpreadsheetError("File is empty")

    headers = ["" if value is None else str(value) for value in rows[0]]
    data_rows = rows[1:]
    logger.info("Parsed %s: %d columns, %d rows", filename, len(headers), len(data_rows))
    return TabularDataset(
        headers=headers,
        rows=data_rows,
        file_name=display_name or filename
    )


# SyntaxError covers both xml.etree and lxml parse errors
WORKBOOK_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    KeyError,
    OSError,
    SyntaxError,
    ValueError,
    TypeError,
)

LEGACY_WORKBOOK_READ_ERRORS = (
    xlrd.XLRDError,
    CompDocError,
    IndexError,
    KeyError,
    OSError,
    ValueError,
    TypeError,
)


def _read_workbook_rows(content: bytes) -> List[Sequence[Any]]:
    try:
        workbook = openpyxl.load_workbook(
            io.BytesIO(content),
            read_only=True,
            data_only=True,
            keep_links=False,
        )
    except WORKBOOK_READ_ERRORS as e:
        raise SpreadsheetParseError(f"Could not read workbook: {str(e)}") from e

    try:
        if not workbook.sheetnames:
            return []
        sheet = workbook[workbook.sheetnames[0]]
        # Read-only sheets parse lazily, so malformed sheet XML fails here
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    except WORKBOOK_READ_ERRORS as e:
        raise SpreadsheetParseError(f"Could not read workbook: {str(e)}") from e
    finally:
        workbook.close()


def _read_legacy_workbook_rows(content: bytes) -> List[Sequence[Any]]:
    """Rows of the first sheet of a BIFF (.xls) workbook"""
    try:
        book = xlrd.open_workbook(file_contents=content)
    except LEGACY_WORKBOOK_READ_ERRORS as e:
        raise SpreadsheetParseError(f"Could not read workbook: {str(e)}") from e

    try:
        if book.nsheets == 0:
            return []
        sheet = book.sheet_by_index(0)
        return [
            tuple(_legacy_cell_value(cell, book.datemode) for cell in sheet.row(index))
            for index in range(sheet.nrows)
        ]
    except LEGACY_WORKBOOK_READ_ERRORS as e:
        raise SpreadsheetParseError(f"Could not read workbook: {str(e)}") from e
    finally:
        book.release_resources()


def _legacy_cell_value(cell: Any, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
        except xlrd.xldate.XLDateError:
            return cell.value
    if cell.ctype == xlrd.XL_CELL_NUMBER:
        # BIFF stores every number as a float
        return int(cell.value) if float(cell.value).is_integer() else cell.value
    return cell.value


def _read_csv_rows(content: bytes) -> List[Sequence[Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SpreadsheetParseError("CSV file must be UTF-8 encoded") from e
    try:
        return list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as e:
        raise SpreadsheetParseError(f"Error reading CSV file: {str(e)}") from e


def _normalize_value(value: Any) -> Any:
    if isinstance(value, str):
        return value if value != "" else None
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _trim_row(values: Iterable[Any]) -> List[Any]:
    """Normalize cells and drop trailing empties; a blank row becomes []"""
    row = [_normalize_value(value) for value in values]
    while row and row[-1] is None:
        row.pop()
    return row
