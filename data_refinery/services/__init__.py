"""Business logic services for the refinery pipeline.

Available Services:
    - llm: Chat API client and AI column advisor
    - export: Column projection, CSV serialization and download sinks
    - session: Per-store selection state controller
"""
from data_refinery.services.export import (
    DownloadSink,
    DirectorySink,
    project,
    serialize,
    to_csv_bytes,
    export_filename,
    trigger_download,
    export_csv,
)
from data_refinery.services.llm import ColumnAdvisor
from data_refinery.services.session import SessionState, StoreSession

__all__: list[str] = [
    # Export
    "DownloadSink",
    "DirectorySink",
    "project",
    "serialize",
    "to_csv_bytes",
    "export_filename",
    "trigger_download",
    "export_csv",
    # LLM
    "ColumnAdvisor",
    # Session
    "SessionState",
    "StoreSession",
]
