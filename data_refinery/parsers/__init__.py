"""Parser modules for uploaded spreadsheet files."""
from typing import Optional

from data_refinery.config import Settings
from data_refinery.models.parsed_table import ParsedTable, UploadedFile
from data_refinery.parsers.base_parser import ParserInterface
from data_refinery.parsers.parser_registry import (
    register_parser,
    get_parser,
    get_parser_for_file,
    create_parser_instance,
    list_registered_parsers,
)
from data_refinery.parsers.csv_parser import CsvParser
from data_refinery.parsers.excel_parser import ExcelParser

# Register parsers
register_parser("csv", CsvParser)
register_parser("excel", ExcelParser)


async def parse_upload(upload: UploadedFile, settings: Optional[Settings] = None) -> ParsedTable:
    """Parse an upload with the parser registered for its extension.

    Raises:
        ParseError: On unsupported extension, undecodable or empty content
    """
    parser = get_parser_for_file(upload.file_name, settings=settings)
    return await parser.parse(upload)


__all__ = [
    "ParserInterface",
    "register_parser",
    "get_parser",
    "get_parser_for_file",
    "create_parser_instance",
    "list_registered_parsers",
    "parse_upload",
    "CsvParser",
    "ExcelParser",
]
