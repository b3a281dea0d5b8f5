"""Per-store upload session: file, parsed table and column selection.

One StoreSession backs one store tab. Uploading parses the file, selects every
column and starts an AI suggestion in the background; the user can edit the
selection while the suggestion is pending and export at any time.

Every upload opens a new generation. Async results (parse or suggestion) that
finish after their generation was superseded are discarded, so a slow reply
for an old file never lands on the new table.
"""
import asyncio
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from data_refinery.config import Settings, get_settings
from data_refinery.errors.exceptions import ParseError, SessionStateError, ValidationError
from data_refinery.models.parsed_table import ParsedTable, UploadedFile
from data_refinery.models.store import StoreType
from data_refinery.parsers import parse_upload
from data_refinery.services.export import DirectorySink, DownloadSink, export_csv
from data_refinery.services.llm.column_advisor import ColumnAdvisor

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a store session."""
    EMPTY = "empty"
    PARSING = "parsing"
    READY = "ready"


class StoreSession:
    """Selection state controller for one store.

    Example:
        session = StoreSession(StoreType.HYUNDAI)
        await session.upload(await UploadedFile.from_path("sales.xlsx"))
        await session.wait_for_suggestion()
        session.toggle("고객번호")
        path = session.download()
    """

    def __init__(
        self,
        store: StoreType,
        advisor: Optional[ColumnAdvisor] = None,
        sink: Optional[DownloadSink] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self._settings = settings or get_settings()
        self._advisor = advisor or ColumnAdvisor()
        self._sink = sink or DirectorySink(self._settings.downloads_dir)
        self._log = logger.bind(component="StoreSession", store=store.name)

        self._generation = 0
        self._state = SessionState.EMPTY
        self._file: Optional[UploadedFile] = None
        self._table: Optional[ParsedTable] = None
        # dict keys keep insertion order; values unused
        self._selection: Dict[str, None] = {}
        self._edited_since_parse = False
        self._error: Optional[str] = None
        self._suggestion_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def file_name(self) -> Optional[str]:
        return self._file.file_name if self._file else None

    @property
    def table(self) -> Optional[ParsedTable]:
        return self._table

    @property
    def selected_columns(self) -> List[str]:
        """Selected column names in selection order."""
        return list(self._selection)

    @property
    def selected_count(self) -> int:
        return len(self._selection)

    @property
    def row_count(self) -> int:
        return self._table.row_count if self._table else 0

    @property
    def error(self) -> Optional[str]:
        """Last user-facing error message, if any."""
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._state == SessionState.PARSING

    @property
    def is_suggesting(self) -> bool:
        return self._suggestion_task is not None and not self._suggestion_task.done()

    def is_selected(self, column: str) -> bool:
        return column in self._selection

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upload(self, upload: UploadedFile) -> Optional[ParsedTable]:
        """Parse a new file, replacing whatever the session held.

        On success the session is READY with every column selected and a
        suggestion request running in the background. On a parse failure the
        session returns to EMPTY with ``error`` set.

        Returns:
            The parsed table, or None if parsing failed or a newer upload
            superseded this one
        """
        generation = self._start_generation()
        self._file = upload
        self._state = SessionState.PARSING
        log = self._log.bind(file_name=upload.file_name, generation=generation)
        log.info("upload_started", size=upload.size)

        try:
            table = await parse_upload(upload, self._settings)
        except ParseError as e:
            if generation != self._generation:
                log.info("stale_parse_failure_discarded", error=e.message)
                return None
            log.warning("upload_parse_failed", error=e.message)
            self._state = SessionState.EMPTY
            self._file = None
            self._error = e.message or "Failed to parse file."
            return None

        if generation != self._generation:
            log.info("stale_parse_result_discarded")
            return None

        self._table = table
        self._selection = dict.fromkeys(table.headers)
        self._edited_since_parse = False
        self._state = SessionState.READY
        log.info("upload_ready", column_count=len(table.headers), row_count=table.row_count)

        self._suggestion_task = asyncio.create_task(
            self._apply_suggestion(generation, list(table.headers))
        )
        return table

    def toggle(self, column: str) -> None:
        """Flip one column in or out of the selection (unknown names are ignored)."""
        self._require_ready("toggle")
        if column not in self._table.headers:
            return
        if column in self._selection:
            del self._selection[column]
        else:
            self._selection[column] = None
        self._edited_since_parse = True

    def select_all(self) -> None:
        self._require_ready("select_all")
        self._selection = dict.fromkeys(self._table.headers)
        self._edited_since_parse = True

    def deselect_all(self) -> None:
        self._require_ready("deselect_all")
        self._selection = {}
        self._edited_since_parse = True

    def reset(self) -> None:
        """Drop file, table, selection and error; back to EMPTY."""
        self._start_generation()
        self._file = None
        self._state = SessionState.EMPTY
        self._log.info("session_reset")

    def download(self) -> Optional[Path]:
        """Export the selected columns as CSV through the download sink.

        Returns:
            Where the file was saved, or None when nothing is selected (the
            validation message is stored in ``error``)
        """
        self._require_ready("download")
        try:
            return export_csv(self._table, self.selected_columns, self.store, self._sink)
        except ValidationError as e:
            self._log.info("download_rejected", reason=e.message)
            self._error = e.message
            return None

    async def close(self) -> None:
        """Cancel the pending suggestion and release the advisor's client."""
        task = self._suggestion_task
        self.reset()
        if task is not None:
            await asyncio.wait({task})
        await self._advisor.close()
        self._log.info("session_closed")

    async def wait_for_suggestion(self) -> None:
        """Wait until the pending suggestion (if any) has finished."""
        task = self._suggestion_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_generation(self) -> int:
        """Invalidate in-flight work and clear per-file state."""
        self._generation += 1
        if self._suggestion_task is not None and not self._suggestion_task.done():
            self._suggestion_task.cancel()
        self._suggestion_task = None
        self._table = None
        self._selection = {}
        self._edited_since_parse = False
        self._error = None
        return self._generation

    def _require_ready(self, operation: str) -> None:
        if self._state != SessionState.READY or self._table is None:
            raise SessionStateError(
                f"Cannot {operation} while session is {self._state.value}"
            )

    async def _apply_suggestion(self, generation: int, headers: List[str]) -> None:
        """Overwrite the selection with the advisor's pick for this generation."""
        suggestions = await self._advisor.suggest(self.store, headers)

        if generation != self._generation:
            self._log.info("stale_suggestion_discarded", generation=generation)
            return

        if self._settings.preserve_manual_edits and self._edited_since_parse:
            self._log.info("suggestion_skipped_after_manual_edit", generation=generation)
            return

        known = set(self._table.headers)
        accepted = [name for name in suggestions if name in known]
        if accepted:
            self._selection = dict.fromkeys(accepted)
            self._log.info("suggestion_applied", selected=len(accepted), total=len(known))
