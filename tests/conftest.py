"""Pytest configuration and fixtures for test suite.

This is the root-level conftest.py that provides:
- Python path setup (so the package imports without installation)
- A clean LLM environment (no real API key leaks into tests)
- Shared fixtures for uploads, workbooks and settings
"""
import io
import sys
from pathlib import Path
from typing import Any, Callable, List, Sequence

import pytest

# Add project root to Python path so we can import data_refinery
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from data_refinery.config import LLMSettings, Settings  # noqa: E402
from data_refinery.models.parsed_table import UploadedFile  # noqa: E402
from data_refinery.utils.logger import configure_logging  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Configure structlog once for the whole run."""
    configure_logging(Settings(_env_file=None, log_level="DEBUG"))
    yield


@pytest.fixture(autouse=True)
def clean_llm_environment(monkeypatch):
    """Make sure no real credential or LLM override is picked up."""
    for name in ("OPENAI_API_KEY", "LLM_OPENAI_API_KEY", "LLM_BACKEND", "LLM_ENABLED", "LLM_MODEL"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Application settings writing downloads under tmp_path."""
    return Settings(_env_file=None, downloads_dir=str(tmp_path / "downloads"))


@pytest.fixture
def llm_settings_without_key() -> LLMSettings:
    return LLMSettings(_env_file=None)


@pytest.fixture
def llm_settings_with_key() -> LLMSettings:
    return LLMSettings(_env_file=None, openai_api_key="sk-test")


@pytest.fixture
def sample_csv_upload() -> UploadedFile:
    """The canonical two-row example."""
    return UploadedFile(file_name="sales.csv", content="name,qty\nApple,5\nBanana,\n".encode("utf-8"))


@pytest.fixture
def make_xlsx() -> Callable[[Sequence[Sequence[Any]]], bytes]:
    """Build .xlsx bytes whose first sheet holds ``rows``."""
    from openpyxl import Workbook

    def _make(rows: Sequence[Sequence[Any]], extra_sheet: List[List[Any]] = None) -> bytes:
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(list(row))
        if extra_sheet is not None:
            other = wb.create_sheet("Other")
            for row in extra_sheet:
                other.append(row)
        buffer = io.BytesIO()
        wb.save(buffer)
        wb.close()
        return buffer.getvalue()

    return _make
