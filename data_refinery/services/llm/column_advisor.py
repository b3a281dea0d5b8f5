"""LLM-based column advisor for store sales exports.

Asks the chat model which columns of an upload are worth keeping. The answer
is advisory: every failure degrades to "keep all columns" and is only logged.

Example:
    advisor = ColumnAdvisor()
    keep = await advisor.suggest(StoreType.LOTTE, table.headers)
"""

import json
from typing import Any, List, Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field

from data_refinery.config import LLMSettings, get_llm_settings
from data_refinery.models.store import StoreType

from .client import LLMClient, LLMConfig, create_llm_client

logger = structlog.get_logger(__name__)


COLUMN_ADVISOR_SYSTEM_PROMPT = """You are a data engineer specializing in Korean department store data processing.
Return a JSON object with the key "recommendedColumns" as an array of column names to KEEP.
Only include columns that exist in the provided list. Prefer dates, branch names, product names,
quantities, sales amounts, customer IDs, and category/category-path information."""

COLUMN_ADVISOR_PROMPT_TEMPLATE = """Store: {store}
Available Columns: {headers_json}"""


class ColumnRecommendation(BaseModel):
    """Expected shape of the model's JSON reply."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    recommended_columns: List[Any] = Field(default_factory=list, alias="recommendedColumns")


class ColumnAdvisor:
    """Suggests which columns to keep for a store's upload.

    Never raises to the caller: a missing credential, a transport error or a
    malformed reply all return the input headers unchanged.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        settings: Optional[LLMSettings] = None,
    ):
        """Initialize advisor.

        Args:
            client: LLM client to use (created from settings if not provided)
            settings: LLM settings (defaults to environment settings)
        """
        self._client = client
        self._owns_client = client is None
        self._settings = settings or get_llm_settings()
        self._log = logger.bind(component="ColumnAdvisor")

    @property
    def client(self) -> LLMClient:
        """Get LLM client (lazy initialization)."""
        if self._client is None:
            self._client = create_llm_client(LLMConfig.from_settings(self._settings))
        return self._client

    async def close(self) -> None:
        """Close the client if this advisor created it; injected clients are left open."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def suggest(self, store: StoreType, headers: Sequence[str]) -> List[str]:
        """Recommend a subset of ``headers`` to keep.

        Args:
            store: Store the upload belongs to
            headers: Column names of the parsed table

        Returns:
            Validated non-empty subset of headers, or all headers on any failure
        """
        all_headers = list(headers)
        if not all_headers:
            return all_headers

        if not self._settings.enabled:
            self._log.info("column_suggestion_disabled")
            return all_headers

        if self._client is None and not self._settings.has_credentials:
            self._log.warning("openai_api_key_not_found_skipping_suggestion")
            return all_headers

        try:
            if not await self.client.is_available():
                self._log.warning("llm_not_available_skipping_suggestion")
                return all_headers

            prompt = COLUMN_ADVISOR_PROMPT_TEMPLATE.format(
                store=store.value,
                headers_json=json.dumps(all_headers, ensure_ascii=False),
            )
            response = await self.client.complete_json(
                prompt=prompt,
                system_prompt=COLUMN_ADVISOR_SYSTEM_PROMPT,
            )
            recommendation = ColumnRecommendation.model_validate(response)

        except Exception as e:
            self._log.error("column_suggestion_failed", store=store.name, error=str(e))
            return all_headers

        validated = self._validate(recommendation.recommended_columns, all_headers)
        if not validated:
            self._log.warning(
                "column_suggestion_empty",
                store=store.name,
                returned=len(recommendation.recommended_columns),
            )
            return all_headers

        self._log.info(
            "column_suggestion_complete",
            store=store.name,
            suggested=len(validated),
            total=len(all_headers),
        )
        return validated

    @staticmethod
    def _validate(candidates: Sequence[Any], headers: Sequence[str]) -> List[str]:
        """Keep only exact (case-sensitive) header matches, first occurrence wins."""
        known = set(headers)
        validated: List[str] = []
        for name in candidates:
            if isinstance(name, str) and name in known and name not in validated:
                validated.append(name)
        return validated
