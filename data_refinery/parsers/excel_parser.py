"""Excel file parser implementation.

Reads the first worksheet of an .xlsx (openpyxl) or .xls (xlrd) workbook and
treats its first non-empty row as the header row. Cell values keep the type
the engine produced (str, int, float, bool, datetime).
"""
import asyncio
import io
from typing import Any, List, Optional, Tuple

import pandas as pd
import structlog

from data_refinery.config import Settings, get_settings
from data_refinery.errors.exceptions import ParseError
from data_refinery.models.parsed_table import ParsedTable, Record, UploadedFile
from data_refinery.parsers.base_parser import ParserInterface, dedupe_headers
from data_refinery.utils.formatting import format_cell, is_missing

logger = structlog.get_logger(__name__)


class ExcelParser(ParserInterface):
    """Parser for Excel workbooks.

    Features:
    - First sheet only
    - Row 0 is the header row; blank header cells become "Unnamed: {i}" and
      duplicates get ".1", ".2" suffixes, matching the CSV parser
    - Missing cells are left out of the row record; whitespace strings are kept
    - Rows with no values at all are skipped
    """

    ENGINES = {
        "xlsx": "openpyxl",
        "xls": "xlrd",
    }

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize Excel parser."""
        self._settings = settings or get_settings()

    @property
    def supported_extensions(self) -> List[str]:
        return list(self.ENGINES.keys())

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "excel"

    async def parse(self, upload: UploadedFile) -> ParsedTable:
        """Parse the first worksheet of a workbook into a ParsedTable.

        Args:
            upload: Uploaded .xlsx or .xls file

        Returns:
            ParsedTable with one record per non-empty data row

        Raises:
            ParseError: If the workbook cannot be read or the sheet holds no
                data rows
        """
        log = logger.bind(file_name=upload.file_name, size=upload.size)
        self.check_file_size(upload, self._settings.max_file_size_bytes)

        engine = self.ENGINES.get(upload.extension)
        if engine is None:
            raise ParseError("Unsupported file format. Please upload CSV or XLSX.")

        sheet_rows = await asyncio.to_thread(self._read_first_sheet, upload.content, engine)
        headers, rows = self._build_records(sheet_rows)

        log.info(
            "excel_parse_completed",
            engine=engine,
            column_count=len(headers),
            row_count=len(rows),
        )
        return ParsedTable(file_name=upload.file_name, headers=headers, rows=rows)

    def _read_first_sheet(self, content: bytes, engine: str) -> List[Tuple[Any, ...]]:
        """Read the first sheet as raw rows (no header interpretation)."""
        try:
            df = pd.read_excel(
                io.BytesIO(content),
                sheet_name=0,
                header=None,
                dtype=object,
                engine=engine,
            )
        except Exception as e:
            raise ParseError(f"Could not read Excel file: {e}") from e

        return list(df.itertuples(index=False, name=None))

    def _build_records(self, sheet_rows: List[Tuple[Any, ...]]) -> Tuple[List[str], List[Record]]:
        """Zip the header row with every later row."""
        non_empty = [row for row in sheet_rows if not all(is_missing(v) for v in row)]
        if len(non_empty) < 2:
            raise ParseError("empty file")

        headers = dedupe_headers([format_cell(v) for v in non_empty[0]])

        rows: List[Record] = []
        for raw in non_empty[1:]:
            record: Record = {}
            for index, header in enumerate(headers):
                if index >= len(raw):
                    break
                value = raw[index]
                if is_missing(value):
                    continue
                if isinstance(value, pd.Timestamp):
                    value = value.to_pydatetime()
                record[header] = value
            rows.append(record)

        return headers, rows
