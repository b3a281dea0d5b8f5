"""Unit tests for parser implementations.

CSV content is built in memory; Excel workbooks are generated with openpyxl.
"""
from datetime import datetime

import pytest

from data_refinery.config import Settings
from data_refinery.errors.exceptions import ParseError
from data_refinery.models.parsed_table import ParsedTable, UploadedFile
from data_refinery.parsers import (
    CsvParser,
    ExcelParser,
    ParserInterface,
    get_parser_for_file,
    list_registered_parsers,
    parse_upload,
    register_parser,
)
from data_refinery.parsers.base_parser import dedupe_headers


def csv_upload(text: str, encoding: str = "utf-8", name: str = "data.csv") -> UploadedFile:
    return UploadedFile(file_name=name, content=text.encode(encoding))


class TestCsvParser:
    """Test CsvParser.parse()."""

    @pytest.fixture
    def parser(self, settings: Settings) -> CsvParser:
        return CsvParser(settings=settings)

    @pytest.mark.asyncio
    async def test_parses_headers_and_rows(self, parser: CsvParser, sample_csv_upload: UploadedFile):
        """Example file yields both headers in order and two records."""
        table = await parser.parse(sample_csv_upload)

        assert isinstance(table, ParsedTable)
        assert table.file_name == "sales.csv"
        assert table.headers == ["name", "qty"]
        assert table.rows == [
            {"name": "Apple", "qty": "5"},
            {"name": "Banana", "qty": ""},
        ]

    @pytest.mark.asyncio
    async def test_values_stay_strings(self, parser: CsvParser):
        """No numeric or NA inference is applied."""
        table = await parser.parse(csv_upload("code,amount,note\n007,1.50,NA\n"))

        assert table.rows == [{"code": "007", "amount": "1.50", "note": "NA"}]

    @pytest.mark.asyncio
    async def test_quoted_fields_with_delimiters_and_newlines(self, parser: CsvParser):
        text = 'product,desc\n"Bag, large","two\nlines"\n"Say ""hi""",x\n'
        table = await parser.parse(csv_upload(text))

        assert table.rows[0] == {"product": "Bag, large", "desc": "two\nlines"}
        assert table.rows[1] == {"product": 'Say "hi"', "desc": "x"}

    @pytest.mark.asyncio
    async def test_blank_lines_are_skipped(self, parser: CsvParser):
        table = await parser.parse(csv_upload("a,b\n1,2\n\n3,4\n\n"))

        assert table.row_count == 2
        assert table.rows[1] == {"a": "3", "b": "4"}

    @pytest.mark.asyncio
    async def test_short_rows_fill_empty_strings(self, parser: CsvParser):
        table = await parser.parse(csv_upload("a,b,c\n1\n"))

        assert table.rows == [{"a": "1", "b": "", "c": ""}]

    @pytest.mark.asyncio
    async def test_row_and_header_counts_match_file(self, parser: CsvParser):
        lines = ["h1,h2,h3"] + [f"{i},{i * 2},{i * 3}" for i in range(25)]
        table = await parser.parse(csv_upload("\n".join(lines) + "\n"))

        assert table.headers == ["h1", "h2", "h3"]
        assert table.row_count == 25

    @pytest.mark.asyncio
    async def test_utf8_bom_is_stripped_from_first_header(self, parser: CsvParser):
        upload = UploadedFile(file_name="bom.csv", content="\ufeff일자,매출\n2024-01-01,100\n".encode("utf-8"))
        table = await parser.parse(upload)

        assert table.headers == ["일자", "매출"]

    @pytest.mark.asyncio
    async def test_header_only_file_has_no_rows(self, parser: CsvParser):
        table = await parser.parse(csv_upload("a,b\n"))

        assert table.headers == ["a", "b"]
        assert table.rows == []

    @pytest.mark.asyncio
    async def test_empty_file_raises(self, parser: CsvParser):
        with pytest.raises(ParseError) as exc_info:
            await parser.parse(csv_upload(""))

        assert "header" in exc_info.value.message.lower()

    @pytest.mark.asyncio
    async def test_whitespace_only_file_raises(self, parser: CsvParser):
        with pytest.raises(ParseError):
            await parser.parse(csv_upload("\n\n\n"))

    @pytest.mark.asyncio
    async def test_row_with_extra_fields_raises(self, parser: CsvParser):
        with pytest.raises(ParseError):
            await parser.parse(csv_upload("a,b\n1,2\n3,4,5,6\n"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "a,b\n1,2,3\n",
        "a,b\n1,2,3\n4,5,6\n",
        "a,b\n1,2,\n",
    ])
    async def test_wide_first_data_row_raises(self, parser: CsvParser, text: str):
        """A first data row wider than the header is not read as an index column."""
        with pytest.raises(ParseError):
            await parser.parse(csv_upload(text))

    @pytest.mark.asyncio
    async def test_blank_and_duplicate_headers_are_made_unique(self, parser: CsvParser):
        table = await parser.parse(csv_upload("name,,name\na,b,c\n"))

        assert table.headers == ["name", "Unnamed: 1", "name.1"]
        assert table.rows == [{"name": "a", "Unnamed: 1": "b", "name.1": "c"}]

    @pytest.mark.asyncio
    async def test_falls_back_to_cp949(self, parser: CsvParser):
        """Excel-on-Windows Korean exports are decoded with the fallback encoding."""
        table = await parser.parse(csv_upload("점포,수량\n본점,3\n", encoding="cp949"))

        assert table.headers == ["점포", "수량"]
        assert table.rows == [{"점포": "본점", "수량": "3"}]

    @pytest.mark.asyncio
    async def test_decode_failure_without_fallback_raises(self):
        parser = CsvParser(settings=Settings(_env_file=None, csv_fallback_encoding=None))
        upload = UploadedFile(file_name="bad.csv", content=b"a,b\n\xff\xfe\xfa,1\n")

        with pytest.raises(ParseError) as exc_info:
            await parser.parse(upload)

        assert "decode" in exc_info.value.message.lower()

    @pytest.mark.asyncio
    async def test_oversized_upload_raises(self):
        parser = CsvParser(settings=Settings(_env_file=None, max_file_size_mb=1))
        upload = UploadedFile(file_name="big.csv", content=b"a\n" + b"x\n" * (600 * 1024))

        with pytest.raises(ParseError) as exc_info:
            await parser.parse(upload)

        assert "too large" in exc_info.value.message.lower()

    def test_parser_metadata(self, parser: CsvParser):
        assert parser.get_parser_name() == "csv"
        assert parser.supported_extensions == ["csv"]
        assert parser.can_handle("REPORT.CSV")
        assert not parser.can_handle("report.xlsx")


class TestExcelParser:
    """Test ExcelParser.parse() with openpyxl-generated workbooks."""

    @pytest.fixture
    def parser(self, settings: Settings) -> ExcelParser:
        return ExcelParser(settings=settings)

    @pytest.mark.asyncio
    async def test_parses_first_row_as_headers(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([
            ["일자", "상품명", "수량", "금액"],
            [datetime(2024, 3, 1), "Coat", 2, 150000.5],
            [datetime(2024, 3, 2), "Scarf", 1, 30000],
        ])
        table = await parser.parse(UploadedFile(file_name="hyundai.xlsx", content=content))

        assert table.headers == ["일자", "상품명", "수량", "금액"]
        assert table.row_count == 2
        assert table.rows[0]["상품명"] == "Coat"
        assert table.rows[0]["수량"] == 2
        assert table.rows[0]["금액"] == 150000.5
        assert table.rows[1]["금액"] == 30000
        assert table.rows[0]["일자"] == datetime(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_keeps_boolean_cells(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["sku", "active"], ["A1", True], ["A2", False]])
        table = await parser.parse(UploadedFile(file_name="flags.xlsx", content=content))

        assert table.rows[0]["active"] == True  # noqa: E712
        assert table.rows[1]["active"] == False  # noqa: E712

    @pytest.mark.asyncio
    async def test_short_rows_leave_trailing_columns_absent(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["a", "b", "c"], ["x"], ["y", "z", "w"]])
        table = await parser.parse(UploadedFile(file_name="short.xlsx", content=content))

        assert table.rows[0] == {"a": "x"}
        assert table.rows[1] == {"a": "y", "b": "z", "c": "w"}

    @pytest.mark.asyncio
    async def test_only_first_sheet_is_read(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["a"], [1]], extra_sheet=[["other"], [2], [3]])
        table = await parser.parse(UploadedFile(file_name="multi.xlsx", content=content))

        assert table.headers == ["a"]
        assert table.rows == [{"a": 1}]

    @pytest.mark.asyncio
    async def test_empty_rows_are_skipped(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["a", "b"], [1, 2], [None, None], [3, 4]])
        table = await parser.parse(UploadedFile(file_name="gaps.xlsx", content=content))

        assert table.rows == [{"a": 1, "b": 2}, {"a": 3, "b": 4}]

    @pytest.mark.asyncio
    async def test_blank_and_duplicate_headers_are_made_unique(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["name", None, "name"], ["a", "b", "c"]])
        table = await parser.parse(UploadedFile(file_name="dupes.xlsx", content=content))

        assert table.headers == ["name", "Unnamed: 1", "name.1"]
        assert table.rows == [{"name": "a", "Unnamed: 1": "b", "name.1": "c"}]

    @pytest.mark.asyncio
    async def test_whitespace_cells_and_headers_are_kept(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([[" code ", "memo"], ["A1", " "], ["A2", None]])
        table = await parser.parse(UploadedFile(file_name="spaces.xlsx", content=content))

        assert table.headers == [" code ", "memo"]
        assert table.rows == [{" code ": "A1", "memo": " "}, {" code ": "A2"}]

    @pytest.mark.asyncio
    async def test_empty_sheet_raises(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([])

        with pytest.raises(ParseError) as exc_info:
            await parser.parse(UploadedFile(file_name="empty.xlsx", content=content))

        assert exc_info.value.message == "empty file"

    @pytest.mark.asyncio
    async def test_header_only_sheet_raises(self, parser: ExcelParser, make_xlsx):
        content = make_xlsx([["a", "b"]])

        with pytest.raises(ParseError) as exc_info:
            await parser.parse(UploadedFile(file_name="header.xlsx", content=content))

        assert exc_info.value.message == "empty file"

    @pytest.mark.asyncio
    async def test_corrupt_workbook_raises(self, parser: ExcelParser):
        upload = UploadedFile(file_name="broken.xlsx", content=b"definitely not a zip archive")

        with pytest.raises(ParseError) as exc_info:
            await parser.parse(upload)

        assert "excel" in exc_info.value.message.lower()

    def test_engine_per_extension(self, parser: ExcelParser):
        assert parser.ENGINES["xlsx"] == "openpyxl"
        assert parser.ENGINES["xls"] == "xlrd"
        assert parser.can_handle("legacy.XLS")
        assert not parser.can_handle("data.csv")


class TestDedupeHeaders:

    def test_unique_names_unchanged(self):
        assert dedupe_headers(["a", "b"]) == ["a", "b"]

    def test_repeated_names_numbered(self):
        assert dedupe_headers(["a", "a", "a"]) == ["a", "a.1", "a.2"]

    def test_existing_suffix_is_skipped(self):
        assert dedupe_headers(["a", "a.1", "a"]) == ["a", "a.1", "a.2"]

    def test_blank_names_use_position(self):
        assert dedupe_headers(["", "x", ""]) == ["Unnamed: 0", "x", "Unnamed: 2"]


class TestParserRegistry:
    """Test registry dispatch by extension."""

    def test_builtin_parsers_registered(self):
        registered = list_registered_parsers()
        assert "csv" in registered
        assert "excel" in registered

    @pytest.mark.parametrize("file_name,expected", [
        ("a.csv", CsvParser),
        ("a.xlsx", ExcelParser),
        ("a.xls", ExcelParser),
        ("archive.2024.XLSX", ExcelParser),
    ])
    def test_get_parser_for_file(self, file_name, expected, settings):
        assert isinstance(get_parser_for_file(file_name, settings=settings), expected)

    @pytest.mark.parametrize("file_name", ["report.pdf", "notes.txt", "noextension", "data.xlsm"])
    def test_unsupported_extension_raises(self, file_name, settings):
        with pytest.raises(ParseError) as exc_info:
            get_parser_for_file(file_name, settings=settings)

        assert "Unsupported file format" in exc_info.value.message

    def test_register_duplicate_type_raises(self):
        with pytest.raises(ValueError):
            register_parser("csv", CsvParser)

    def test_register_non_parser_raises(self):
        with pytest.raises(TypeError):
            register_parser("bogus", dict)

    @pytest.mark.asyncio
    async def test_parse_upload_dispatches(self, sample_csv_upload, settings):
        table = await parse_upload(sample_csv_upload, settings)

        assert table.headers == ["name", "qty"]

    @pytest.mark.asyncio
    async def test_parse_upload_rejects_unknown_extension(self, settings):
        with pytest.raises(ParseError):
            await parse_upload(UploadedFile(file_name="image.png", content=b"\x89PNG"), settings)

    def test_parsers_implement_interface(self, settings):
        assert isinstance(CsvParser(settings=settings), ParserInterface)
        assert isinstance(ExcelParser(settings=settings), ParserInterface)
