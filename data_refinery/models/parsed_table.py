"""In-memory table models shared by parsers, export and sessions."""
import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Union

# Whatever the parsing library produced; no cross-row coercion.
CellValue = Union[str, int, float, bool, datetime, date, None]
Record = Dict[str, CellValue]


@dataclass(frozen=True)
class UploadedFile:
    """A file handed to the refinery: its original name and raw bytes."""
    file_name: str
    content: bytes = field(repr=False)

    @property
    def extension(self) -> str:
        """Lower-cased text after the final dot ("" when there is none)."""
        if "." not in self.file_name:
            return ""
        return self.file_name.rsplit(".", 1)[1].lower()

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    async def from_path(cls, path: Union[str, Path]) -> "UploadedFile":
        """Read a file from disk without blocking the event loop."""
        path = Path(path)
        content = await asyncio.to_thread(path.read_bytes)
        return cls(file_name=path.name, content=content)


@dataclass
class ParsedTable:
    """Uniform result of parsing an upload.

    Attributes:
        file_name: Original upload name
        headers: Unique column names in first-seen order
        rows: One record per data row; keys are a subset of ``headers``
    """
    file_name: str
    headers: List[str]
    rows: List[Record] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass
class FilteredTable:
    """Projection of a ParsedTable onto selected columns.

    Every record holds exactly the keys in ``columns``.
    """
    file_name: str
    columns: List[str]
    rows: List[Record] = field(default_factory=list)
