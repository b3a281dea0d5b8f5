"""LLM service module for AI column suggestions.

Usage:
    from data_refinery.services.llm import ColumnAdvisor

    advisor = ColumnAdvisor()
    keep = await advisor.suggest(StoreType.HYUNDAI, headers)
"""

from .client import (
    LLMBackend,
    LLMClient,
    LLMConfig,
    LLMResponse,
    OpenAIClient,
    MockLLMClient,
    create_llm_client,
    get_llm_client,
    reset_llm_client,
)
from .column_advisor import ColumnAdvisor, ColumnRecommendation

__all__ = [
    "LLMBackend",
    "LLMClient",
    "LLMConfig",
    "LLMResponse",
    "OpenAIClient",
    "MockLLMClient",
    "create_llm_client",
    "get_llm_client",
    "reset_llm_client",
    "ColumnAdvisor",
    "ColumnRecommendation",
]
