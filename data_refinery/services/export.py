"""Column projection and CSV export.

project -> serialize -> to_csv_bytes -> trigger_download. Exported files are
UTF-8 with a byte-order mark so that Excel, which otherwise assumes the
legacy ANSI code page, shows Korean text correctly.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd
import structlog

from data_refinery.errors.exceptions import ValidationError
from data_refinery.models.parsed_table import FilteredTable, ParsedTable, Record
from data_refinery.models.store import StoreType
from data_refinery.utils.formatting import format_cell

logger = structlog.get_logger(__name__)

UTF8_BOM = "\ufeff"


class DownloadSink(ABC):
    """Destination for exported files (the "save as" side of a download)."""

    @abstractmethod
    def deliver(self, file_name: str, payload: bytes) -> Path:
        """Store ``payload`` under ``file_name`` and return where it went."""
        pass


class DirectorySink(DownloadSink):
    """Saves downloads into a directory, browser style.

    An existing file is never overwritten: "report.csv" becomes
    "report (1).csv", "report (2).csv" and so on.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def deliver(self, file_name: str, payload: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self._unique_path(file_name)
        target.write_bytes(payload)
        logger.info("download_saved", path=str(target), size=len(payload))
        return target

    def _unique_path(self, file_name: str) -> Path:
        target = self.directory / file_name
        counter = 1
        while target.exists():
            target = self.directory / f"{Path(file_name).stem} ({counter}){Path(file_name).suffix}"
            counter += 1
        return target


def project(table: ParsedTable, selected_columns: Sequence[str]) -> FilteredTable:
    """Keep only ``selected_columns``, in the order given.

    Row order is preserved and every output record has exactly the selected
    keys; values missing from a source record become None.
    """
    columns = list(selected_columns)
    rows: List[Record] = [
        {column: row.get(column) for column in columns}
        for row in table.rows
    ]
    return FilteredTable(file_name=table.file_name, columns=columns, rows=rows)


def serialize(filtered: FilteredTable) -> str:
    """Render a filtered table as CSV text (header row, "\\n" line endings)."""
    data = [[format_cell(row.get(column)) for column in filtered.columns] for row in filtered.rows]
    df = pd.DataFrame(data, columns=filtered.columns, dtype=object)
    return df.to_csv(index=False, lineterminator="\n")


def to_csv_bytes(csv_text: str) -> bytes:
    """Encode CSV text as UTF-8 with a leading byte-order mark."""
    return (UTF8_BOM + csv_text).encode("utf-8")


def export_filename(original_file_name: str, store: StoreType) -> str:
    """Derive ``{base}_{suffix}.csv`` from the uploaded file name.

    The final extension is stripped; a name without a dot, or whose only dot
    leads the name, is used whole.
    """
    dot = original_file_name.rfind(".")
    base = original_file_name[:dot] if dot > 0 else original_file_name
    return f"{base}_{store.suffix}.csv"


def trigger_download(payload: bytes, file_name: str, sink: DownloadSink) -> Path:
    """Hand the exported bytes to the download sink."""
    return sink.deliver(file_name, payload)


def export_csv(
    table: ParsedTable,
    selected_columns: Sequence[str],
    store: StoreType,
    sink: DownloadSink,
) -> Path:
    """Project, serialize and download a table.

    Raises:
        ValidationError: If no column is selected (nothing is written)
    """
    if not selected_columns:
        raise ValidationError("Please select at least one column to export.")

    filtered = project(table, selected_columns)
    payload = to_csv_bytes(serialize(filtered))
    file_name = export_filename(table.file_name, store)

    logger.info(
        "csv_export_started",
        file_name=file_name,
        column_count=len(filtered.columns),
        row_count=len(filtered.rows),
    )
    return trigger_download(payload, file_name, sink)
