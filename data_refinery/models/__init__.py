"""Data models."""
from data_refinery.models.parsed_table import (
    CellValue,
    Record,
    UploadedFile,
    ParsedTable,
    FilteredTable,
)
from data_refinery.models.store import StoreType

__all__ = [
    "CellValue",
    "Record",
    "UploadedFile",
    "ParsedTable",
    "FilteredTable",
    "StoreType",
]
