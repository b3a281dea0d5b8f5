"""LLM Client abstraction for the column suggestion service.

Supports multiple backends:
- OpenAI-compatible chat completions API (primary)
- Mock client (for tests and offline runs)

Example:
    client = OpenAIClient(LLMConfig(api_key="sk-..."))
    result = await client.complete_json("Which columns matter?")
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
import structlog

from data_refinery.config import LLMSettings
from data_refinery.errors.exceptions import LLMError

logger = structlog.get_logger(__name__)


class LLMBackend(str, Enum):
    """Supported LLM backends."""
    OPENAI = "openai"
    MOCK = "mock"  # For testing


@dataclass
class LLMConfig:
    """Configuration for LLM client."""
    backend: LLMBackend = LLMBackend.OPENAI
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 1
    temperature: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "LLMConfig":
        """Build a client config from environment-driven settings."""
        return cls(
            backend=LLMBackend(settings.backend.value),
            model=settings.model,
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            temperature=settings.temperature,
        )


@dataclass
class LLMResponse:
    """Response from LLM."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def tokens_used(self) -> int:
        """Total tokens used in this response."""
        return self.usage.get("total_tokens", 0)


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self._log = logger.bind(
            component="LLMClient",
            backend=self.config.backend.value,
            model=self.config.model
        )

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion for the given prompt.

        Args:
            prompt: User message
            system_prompt: Optional system instruction
            json_mode: Ask the backend to reply with a JSON object

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    async def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a completion and parse it as a JSON object.

        Raises:
            LLMError: If the reply is empty or not a JSON object
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the LLM backend can be called."""
        pass

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
        return None


class OpenAIClient(LLMClient):
    """Client for the OpenAI chat completions API (or a compatible server).

    Requests carry the key as a bearer token. Failed requests are retried up
    to ``max_retries`` attempts in total with a linear backoff.
    """

    def __init__(self, config: Optional[LLMConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.config.api_key}",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def is_available(self) -> bool:
        """The API is usable once a key is configured."""
        return bool(self.config.api_key and self.config.api_key.strip())

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate completion using the chat completions endpoint."""
        client = await self._get_client()

        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        if self.config.temperature is not None:
            payload["temperature"] = self.config.temperature

        for attempt in range(self.config.max_retries):
            try:
                response = await client.post("/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()
                return self._to_response(data)

            except httpx.HTTPStatusError as e:
                self._log.warning(
                    "openai_request_failed",
                    attempt=attempt + 1,
                    status=e.response.status_code,
                    error=str(e),
                )
                if attempt == self.config.max_retries - 1:
                    raise LLMError(
                        f"OpenAI request failed with status {e.response.status_code}"
                    ) from e
                await asyncio.sleep(1 * (attempt + 1))

            except (httpx.HTTPError, ValueError) as e:
                self._log.warning(
                    "openai_unexpected_error",
                    attempt=attempt + 1,
                    error=str(e),
                )
                if attempt == self.config.max_retries - 1:
                    raise LLMError(f"OpenAI request failed: {e}") from e
                await asyncio.sleep(1 * (attempt + 1))

        raise LLMError("Failed to complete after retries")

    async def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a JSON object completion (response_format=json_object)."""
        response = await self.complete(prompt, system_prompt=system_prompt, json_mode=True)

        if not response.content:
            raise LLMError("OpenAI response did not contain message content.")

        try:
            result = json.loads(response.content)
        except json.JSONDecodeError as e:
            self._log.warning("json_parse_failed", content=response.content[:200], error=str(e))
            raise LLMError(f"OpenAI response is not valid JSON: {e}") from e

        if not isinstance(result, dict):
            raise LLMError("OpenAI response is not a JSON object.")
        return result

    def _to_response(self, data: Dict[str, Any]) -> LLMResponse:
        """Pull the first choice's message content out of a raw reply."""
        choices = data.get("choices") or []
        message = choices[0].get("message", {}) if choices else {}
        usage = data.get("usage") or {}

        return LLMResponse(
            content=message.get("content") or "",
            model=data.get("model", self.config.model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            raw_response=data,
        )


class MockLLMClient(LLMClient):
    """Mock LLM client for testing.

    ``json_response`` is returned by complete_json; an exception instance
    there is raised instead.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        json_response: Any = None,
        available: bool = True,
    ):
        super().__init__(config or LLMConfig(backend=LLMBackend.MOCK))
        self.json_response = json_response if json_response is not None else {}
        self.available = available
        self.calls: List[Dict[str, Any]] = []

    async def is_available(self) -> bool:
        return self.available

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "json_mode": json_mode,
        })
        content = json.dumps(self.json_response, ensure_ascii=False) if json_mode else "Mock response"
        return LLMResponse(content=content, model="mock", usage={"total_tokens": 50})

    async def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "json": True,
        })
        if isinstance(self.json_response, BaseException):
            raise self.json_response
        return self.json_response


# Global client instance
_global_client: Optional[LLMClient] = None


def create_llm_client(config: Optional[LLMConfig] = None) -> LLMClient:
    """Build a new client for the configured backend (caller owns and closes it)."""
    cfg = config or LLMConfig()
    if cfg.backend == LLMBackend.MOCK:
        return MockLLMClient(cfg)
    return OpenAIClient(cfg)


def get_llm_client(config: Optional[LLMConfig] = None) -> LLMClient:
    """Get or create global LLM client.

    Args:
        config: Optional configuration (uses defaults if not provided)

    Returns:
        LLMClient instance
    """
    global _global_client

    if _global_client is None or config is not None:
        _global_client = create_llm_client(config)

    return _global_client


async def reset_llm_client() -> None:
    """Reset the global LLM client (for testing)."""
    global _global_client

    if _global_client:
        await _global_client.close()
        _global_client = None
