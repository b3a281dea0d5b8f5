"""CSV file parser implementation."""
import asyncio
import io
from typing import Any, List, Optional, Tuple

import pandas as pd
import structlog

from data_refinery.config import Settings, get_settings
from data_refinery.errors.exceptions import ParseError
from data_refinery.models.parsed_table import ParsedTable, Record, UploadedFile
from data_refinery.parsers.base_parser import ParserInterface, dedupe_headers

logger = structlog.get_logger(__name__)


class CsvParser(ParserInterface):
    """Parser for turning uploaded CSV files into tables.

    The first non-blank line is the header row; every later non-blank line is
    one record. Values are kept as strings (no NA or numeric inference) and
    fields missing at the end of a short line become "".

    Decoding uses the configured primary encoding (UTF-8, BOM tolerated) and
    retries once with the fallback encoding, since department store exports
    are often saved as cp949 by Excel.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize CSV parser."""
        self._settings = settings or get_settings()

    @property
    def supported_extensions(self) -> List[str]:
        return ["csv"]

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "csv"

    async def parse(self, upload: UploadedFile) -> ParsedTable:
        """Parse CSV content into a ParsedTable.

        Args:
            upload: Uploaded CSV file

        Returns:
            ParsedTable whose values are all strings

        Raises:
            ParseError: If the content cannot be decoded, has no header row,
                or is malformed
        """
        log = logger.bind(file_name=upload.file_name, size=upload.size)
        self.check_file_size(upload, self._settings.max_file_size_bytes)

        text, encoding = self._decode(upload.content, log)
        headers, rows = await asyncio.to_thread(self._read_text, text)

        log.info(
            "csv_parse_completed",
            encoding=encoding,
            column_count=len(headers),
            row_count=len(rows),
        )
        return ParsedTable(file_name=upload.file_name, headers=headers, rows=rows)

    def _decode(self, content: bytes, log: Any) -> Tuple[str, str]:
        """Decode raw bytes, trying the fallback encoding on failure."""
        primary = self._settings.csv_encoding
        try:
            return content.decode(primary), primary
        except (UnicodeDecodeError, LookupError) as e:
            fallback = self._settings.csv_fallback_encoding
            if not fallback or fallback == primary:
                raise ParseError(f"Could not decode CSV file as {primary}: {e}") from e
            log.warning("csv_decode_failed_trying_fallback", encoding=primary, fallback=fallback, error=str(e))

        try:
            return content.decode(fallback), fallback
        except (UnicodeDecodeError, LookupError) as e:
            raise ParseError(f"Could not decode CSV file as {primary} or {fallback}: {e}") from e

    def _read_text(self, text: str) -> Tuple[List[str], List[Record]]:
        """Read decoded CSV text with pandas.

        The header line is read as an ordinary row so that it fixes the field
        count: pandas then rejects any longer line instead of turning a wider
        first data row into an implicit index.
        """
        try:
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError as e:
            raise ParseError("Could not parse CSV headers.") from e
        except pd.errors.ParserError as e:
            raise ParseError(f"CSV parsing error: {e}") from e
        except Exception as e:
            raise ParseError(f"Unexpected error during CSV parsing: {e}") from e

        if df.empty:
            raise ParseError("Could not parse CSV headers.")

        headers = dedupe_headers(df.iloc[0].fillna("").tolist())
        df = df.iloc[1:].fillna("")
        df.columns = headers
        rows: List[Record] = df.to_dict(orient="records")
        return headers, rows
