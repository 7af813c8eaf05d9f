"""LiteLLM-based LLM client for structured and streaming generation."""

import json
import re
import time
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    BadRequestError,
    ContextWindowExceededError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import BaseModel, ValidationError

from repowiki.constants.llm import DEFAULT_TEMPERATURE, JSON_TEMPERATURE, MAX_TOKENS

ModelT = TypeVar("ModelT", bound=BaseModel)

_JSON_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)

# Provider-side failures raised by litellm. Several of them (Timeout,
# BadRequestError, InternalServerError) do not derive from APIError.
PROVIDER_ERRORS = (
    AuthenticationError,
    RateLimitError,
    APIConnectionError,
    Timeout,
    ContextWindowExceededError,
    BadRequestError,
    NotFoundError,
    InternalServerError,
    ServiceUnavailableError,
    APIError,
)


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM provider."""

    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication with the LLM provider fails."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM provider."""

    pass


class LLMResponseError(LLMError):
    """Raised when a structured response does not match its schema."""

    pass


class LLMClient:
    """Unified LLM client supporting multiple providers via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        json_temperature: float = JSON_TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, anthropic, google, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom endpoint (for Ollama).
            log_path: Optional path to JSONL log file for query logging.
            temperature: Default sampling temperature for free text.
            json_temperature: Sampling temperature for structured output.
            max_tokens: Default response token cap.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path
        self.temperature = temperature
        self.json_temperature = json_temperature
        self.max_tokens = max_tokens

    def _log_query(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
        error_details: dict | None = None,
    ) -> None:
        """Append one query record to the JSONL log file.

        Args:
            messages: Chat messages sent to the provider.
            temperature: Temperature setting.
            max_tokens: Max tokens setting.
            response: Response text (None if error).
            duration_ms: Request duration in milliseconds.
            error: Error message (None if success).
            error_details: Optional dict with status_code, headers, etc.
        """
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }

        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError:
            # Don't let logging failures break the application
            pass

    def _extract_error_details(self, e: Exception) -> dict | None:
        """Extract HTTP details from LiteLLM exceptions.

        Returns:
            Dict with status_code, retry headers and provider if available.
        """
        details: dict = {}

        if hasattr(e, "status_code"):
            details["status_code"] = e.status_code

        response = getattr(e, "response", None)
        if response is not None:
            if hasattr(response, "status_code"):
                details["status_code"] = response.status_code
            headers = getattr(response, "headers", None)
            if headers is not None:
                relevant_headers = {
                    k: v
                    for k, v in dict(headers).items()
                    if k.lower() in ("retry-after", "x-request-id", "x-ratelimit-remaining-requests")
                }
                if relevant_headers:
                    details["response_headers"] = relevant_headers

        if hasattr(e, "llm_provider"):
            details["llm_provider"] = e.llm_provider

        return details if details else None

    def _translate_error(self, e: Exception) -> LLMError:
        """Map a LiteLLM exception onto the client's error family."""
        if isinstance(e, AuthenticationError):
            return LLMAuthenticationError(f"Authentication failed: {e}")
        if isinstance(e, RateLimitError):
            return LLMRateLimitError(f"Rate limit exceeded: {e}")
        if isinstance(e, Timeout):
            return LLMConnectionError(f"Request timed out: {e}")
        if isinstance(e, APIConnectionError):
            return LLMConnectionError(f"Connection failed: {e}")
        if isinstance(e, ContextWindowExceededError):
            return LLMError(f"Prompt exceeds the model context window: {e}")
        return LLMError(f"LLM API error: {e}")

    def _get_model_string(self) -> str:
        """Get LiteLLM model string.

        Returns:
            Model string in provider/model format.
        """
        if self.provider == "openai":
            return self.model  # OpenAI is default
        elif self.provider == "ollama":
            return f"ollama/{self.model}"
        else:
            return f"{self.provider}/{self.model}"

    def _build_kwargs(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        **extra,
    ) -> dict:
        kwargs = {
            "model": self._get_model_string(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **extra,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint

        return kwargs

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
        **extra,
    ) -> str:
        """Run one non-streaming chat completion.

        Args:
            messages: Chat messages, system prompt first if any.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.
            **extra: Additional LiteLLM arguments (e.g. response_format).

        Returns:
            Generated text response.
        """
        temperature = self.temperature if temperature is None else temperature
        max_tokens = self.max_tokens if max_tokens is None else max_tokens
        kwargs = self._build_kwargs(messages, temperature, max_tokens, **extra)

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except PROVIDER_ERRORS as e:
            self._log_query(
                messages,
                temperature,
                max_tokens,
                response=None,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                error=str(e),
                error_details=self._extract_error_details(e),
            )
            raise self._translate_error(e) from e

        result: str = str(response.choices[0].message.content or "")
        self._log_query(
            messages,
            temperature,
            max_tokens,
            response=result,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
            error=None,
        )
        return result

    async def generate_structured(
        self,
        schema: type[ModelT],
        system_prompt: str,
        prompt: str,
        max_tokens: int | None = None,
    ) -> ModelT:
        """Generate a response and validate it against a pydantic schema.

        The JSON schema of the model is appended to the system prompt and the
        provider is asked for a JSON object response.

        Args:
            schema: Pydantic model class the response must satisfy.
            system_prompt: System directive.
            prompt: User prompt.
            max_tokens: Maximum response tokens.

        Returns:
            Validated instance of schema.

        Raises:
            LLMResponseError: If the response is not valid JSON for schema.
            LLMError: If the provider call fails.
        """
        json_schema = json.dumps(schema.model_json_schema())
        full_system = (
            f"{system_prompt}\n\n"
            f"Respond with valid JSON only, matching this JSON schema:\n{json_schema}"
        )
        messages = [
            {"role": "system", "content": full_system},
            {"role": "user", "content": prompt},
        ]
        raw = await self.complete(
            messages,
            temperature=self.json_temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        fenced = _JSON_FENCE.match(raw)
        payload = fenced.group(1) if fenced else raw
        try:
            return schema.model_validate_json(payload)
        except ValidationError as e:
            raise LLMResponseError(
                f"Response does not match {schema.__name__}: {e.error_count()} error(s)"
            ) from e

    async def generate_stream(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Generate a free-text completion, yielding fragments as they arrive.

        Args:
            system_prompt: System directive.
            messages: Conversation messages (user/assistant turns).
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Yields:
            Text fragments in arrival order.
        """
        temperature = self.temperature if temperature is None else temperature
        max_tokens = self.max_tokens if max_tokens is None else max_tokens
        full_messages = [{"role": "system", "content": system_prompt}, *messages]
        kwargs = self._build_kwargs(full_messages, temperature, max_tokens, stream=True)

        start_time = time.perf_counter()
        accumulated_tokens: list[str] = []
        error_msg: str | None = None
        error_details: dict | None = None

        try:
            response = await acompletion(**kwargs)
            async for chunk in response:
                content = chunk.choices[0].delta.content
                if content:
                    accumulated_tokens.append(content)
                    yield content
        except PROVIDER_ERRORS as e:
            error_msg = str(e)
            error_details = self._extract_error_details(e)
            raise self._translate_error(e) from e
        finally:
            self._log_query(
                full_messages,
                temperature,
                max_tokens,
                response="".join(accumulated_tokens) if accumulated_tokens else None,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                error=error_msg,
                error_details=error_details,
            )
