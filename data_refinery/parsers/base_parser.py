"""Abstract parser interface for pluggable upload formats."""
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from data_refinery.errors.exceptions import ParseError
from data_refinery.models.parsed_table import ParsedTable, UploadedFile


class ParserInterface(ABC):
    """Abstract base class for all upload parsers.

    Implementations must provide:
    - parse(): Turn an upload into a ParsedTable
    - get_parser_name(): Return unique parser identifier
    - supported_extensions: File extensions the parser accepts
    """

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Lower-case extensions without the dot (e.g. ["csv"])."""
        pass

    @abstractmethod
    async def parse(self, upload: UploadedFile) -> ParsedTable:
        """Parse an uploaded file into a table.

        Args:
            upload: File name and raw content

        Returns:
            ParsedTable with ordered headers and row records

        Raises:
            ParseError: If the content cannot be decoded or has no header row
        """
        pass

    @abstractmethod
    def get_parser_name(self) -> str:
        """Return unique identifier for this parser type (e.g. "csv")."""
        pass

    def can_handle(self, file_name: str) -> bool:
        """Check whether the file name carries a supported extension."""
        if "." not in file_name:
            return False
        return file_name.rsplit(".", 1)[1].lower() in self.supported_extensions

    def check_file_size(self, upload: UploadedFile, max_bytes: int) -> None:
        """Reject uploads larger than ``max_bytes``.

        Raises:
            ParseError: If the upload is too large
        """
        if upload.size > max_bytes:
            raise ParseError(
                f"File too large: {upload.size} bytes (limit {max_bytes} bytes)"
            )


def dedupe_headers(names: Sequence[str]) -> List[str]:
    """Make header names unique, pandas style.

    Blank names become "Unnamed: {position}"; a repeated name gets ".1", ".2"
    and so on appended.
    """
    seen: Dict[str, int] = {}
    headers: List[str] = []
    for position, name in enumerate(names):
        base = name or f"Unnamed: {position}"
        candidate = base
        while candidate in seen:
            seen[base] += 1
            candidate = f"{base}.{seen[base]}"
        seen[candidate] = 0
        headers.append(candidate)
    return headers
