"""LLM client wrapper for Anthropic JSON outputs."""

import asyncio
import re
from typing import TypeVar

import structlog
from anthropic import (
    Anthropic,
    APIConnectionError,
    APIError,
    APITimeoutError,
    RateLimitError,
)
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import settings

T = TypeVar("T", bound=BaseModel)

logger = structlog.get_logger()

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

# Transient failures worth retrying with backoff
RETRYABLE_ERRORS = (RateLimitError, APIConnectionError, APITimeoutError)


class LLMClientError(Exception):
    """Raised when the LLM call fails after retries."""

    pass


class ModelOutputParseError(Exception):
    """Raised when model output is not valid JSON for the expected schema."""

    def __init__(self, message: str, raw_output: str = ""):
        self.raw_output = raw_output
        super().__init__(message)


def extract_json(text: str) -> str:
    """Strip markdown code fences and surrounding prose from a JSON reply."""
    cleaned = _FENCE.sub("", text.strip()).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        return cleaned
    return cleaned[start : end + 1]


class LLMClient:
    """Anthropic client wrapper with JSON output parsing.

    The model is asked to reply with a single JSON object, which is
    validated against a Pydantic model. Calls run in a worker thread with
    an explicit timeout and are retried with exponential backoff on rate
    limits, connection errors and timeouts.
    """

    def __init__(
        self,
        client: Anthropic | None = None,
        max_attempts: int | None = None,
    ):
        """Initialize LLM client.

        Args:
            client: Optional Anthropic client for dependency injection.
                   If not provided, creates one from settings.
            max_attempts: Attempts per call including the first
        """
        if client is not None:
            self._client = client
        elif settings.anthropic_api_key:
            self._client = Anthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.llm_timeout_seconds,
                max_retries=0,
            )
        else:
            # Allow initialization without API key for testing
            self._client = None
        self._max_attempts = max_attempts or settings.llm_max_attempts

    async def _create(self, prompt: str, system: str | None, max_tokens: int) -> str:
        if self._client is None:
            raise LLMClientError(
                "Anthropic client not initialized. "
                "Set ANTHROPIC_API_KEY environment variable."
            )

        kwargs = {
            "model": settings.anthropic_model,
            "max_tokens": max_tokens,
            "temperature": 0.3,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await asyncio.to_thread(
                        self._client.messages.create, **kwargs
                    )
        except APIError as e:
            logger.warning("Anthropic API error", error=str(e))
            raise LLMClientError(f"Anthropic API error: {e}") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate free text.

        Raises:
            LLMClientError: If the call fails after retries
        """
        return await self._create(prompt, system, max_tokens or settings.llm_max_tokens)

    async def extract(
        self,
        prompt: str,
        response_model: type[T],
        system: str | None = None,
    ) -> T:
        """Extract structured data from text using LLM.

        Args:
            prompt: The user prompt containing text to extract from
            response_model: Pydantic model defining the output schema
            system: Optional system prompt

        Returns:
            Parsed response matching the response_model type

        Raises:
            LLMClientError: If the call fails after retries
            ModelOutputParseError: If the reply is not valid JSON for the model
        """
        text = await self._create(prompt, system, settings.llm_max_tokens)
        if not text.strip():
            raise ModelOutputParseError("Empty model response")
        try:
            return response_model.model_validate_json(extract_json(text))
        except ValidationError as e:
            logger.warning(
                "Unparseable model output",
                model=response_model.__name__,
                errors=e.error_count(),
            )
            raise ModelOutputParseError(
                f"Invalid {response_model.__name__} output: {e}", raw_output=text
            ) from e
