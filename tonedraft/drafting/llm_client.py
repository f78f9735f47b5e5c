"""Model-provider abstraction plus the timeout/retry wrapper every call goes through."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Type, TypeVar

from google import generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, ValidationError

from ..config import LLMConfig
from ..errors import JSONContractError, LLMTimeoutError, ProviderError, ProviderErrorKind

LOGGER = logging.getLogger(__name__)

ContractT = TypeVar("ContractT", bound=BaseModel)

JSON_CONTRACT_RETRY_LIMIT = 1


class Deadline:
    """Cancellation token bounding a whole call chain in wall-clock time."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(self.expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def check(self) -> None:
        if self.expired:
            raise LLMTimeoutError("Deadline exceeded")


@dataclass(slots=True)
class GenerationOptions:
    temperature: float = 0.5
    max_output_tokens: int = 2048
    json_mode: bool = False


class ModelProvider(Protocol):
    provider_id: str
    model_name: str

    async def generate(self, prompt: str, options: GenerationOptions) -> str: ...


def classify_provider_error(exc: Exception) -> ProviderError:
    if isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        kind = ProviderErrorKind.INVALID_CREDENTIALS
    elif isinstance(exc, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        kind = ProviderErrorKind.RATE_LIMIT
    elif isinstance(exc, google_exceptions.NotFound):
        kind = ProviderErrorKind.MODEL_NOT_FOUND
    elif isinstance(
        exc,
        (
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_exceptions.InternalServerError,
            ConnectionError,
        ),
    ):
        kind = ProviderErrorKind.CONNECTION_FAILED
    else:
        message = str(exc).lower()
        if "429" in message or "quota" in message or "rate limit" in message:
            kind = ProviderErrorKind.RATE_LIMIT
        elif "api key" in message or "401" in message or "403" in message:
            kind = ProviderErrorKind.INVALID_CREDENTIALS
        elif "not found" in message or "404" in message:
            kind = ProviderErrorKind.MODEL_NOT_FOUND
        else:
            kind = ProviderErrorKind.UNKNOWN
    return ProviderError(kind, str(exc))


class GeminiProvider:
    """Gemini-backed ``ModelProvider``."""

    provider_id = "gemini"

    def __init__(self, config: LLMConfig | None = None, api_key: str | None = None) -> None:
        self.config = config or LLMConfig()
        api_key = api_key or self.config.api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ProviderError(ProviderErrorKind.INVALID_CREDENTIALS, "GEMINI_API_KEY is not set.")
        genai.configure(api_key=api_key)
        self.model_name = self.config.model_name
        self.model = genai.GenerativeModel(self.model_name)

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        config_kwargs = {"temperature": options.temperature, "max_output_tokens": options.max_output_tokens}
        if options.json_mode:
            config_kwargs["response_mime_type"] = "application/json"
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config=genai.GenerationConfig(**config_kwargs),
            )
        except (google_exceptions.GoogleAPIError, ConnectionError) as exc:
            raise classify_provider_error(exc) from exc

        candidates = getattr(response, "candidates", None)
        finish_reason = getattr(candidates[0], "finish_reason", None) if candidates else None
        # finish_reason 3 is SAFETY; accessing .text would raise.
        if finish_reason == 3:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "Gemini blocked output (finish_reason=SAFETY).")
        try:
            return (getattr(response, "text", "") or "").strip()
        except ValueError as exc:
            raise ProviderError(ProviderErrorKind.UNKNOWN, f"Failed to extract response text: {exc}") from exc


def parse_json_contract(payload: str, schema: Type[ContractT]) -> ContractT:
    """Parse model output into ``schema``; anything short of that is a JSONContractError."""
    cleaned = payload.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
        cleaned = cleaned.strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise JSONContractError(f"{schema.__name__}: response is not JSON", raw=payload) from None
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise JSONContractError(f"{schema.__name__}: response is not JSON ({exc})", raw=payload) from exc
    if not isinstance(data, dict):
        raise JSONContractError(f"{schema.__name__}: expected a JSON object", raw=payload)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise JSONContractError(
            f"{schema.__name__}: {exc.error_count()} invalid or missing fields", raw=payload
        ) from exc


@dataclass(slots=True)
class CallStats:
    calls: int = 0
    retries: int = 0
    timeouts: int = 0
    truncations: int = 0


class ResilientModelClient:
    """Wraps a provider with prompt truncation, per-call timeouts and bounded retries.

    Only JSON contract failures (once), rate limits, connection failures and timeouts
    are retried. Credential and model-not-found errors surface immediately.
    """

    def __init__(
        self,
        provider: ModelProvider,
        config: LLMConfig | None = None,
        sleep: Callable[[float], object] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.config = config or LLMConfig()
        self.stats = CallStats()
        self._sleep = sleep

    def default_options(self, json_mode: bool = False) -> GenerationOptions:
        return GenerationOptions(
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            json_mode=json_mode,
        )

    def truncate_prompt(self, prompt: str) -> str:
        model_name = getattr(self.provider, "model_name", None)
        max_chars = int(self.config.input_budget_tokens(model_name) * self.config.chars_per_token)
        if len(prompt) <= max_chars:
            return prompt
        self.stats.truncations += 1
        LOGGER.warning(
            "Prompt truncated from %s to %s chars to fit %s input budget",
            len(prompt),
            max_chars,
            model_name or "model",
        )
        return prompt[:max_chars]

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        deadline: Deadline | None = None,
    ) -> str:
        return await self._call(prompt, options or self.default_options(), deadline, lambda text: text)

    async def generate_json(
        self,
        prompt: str,
        schema: Type[ContractT],
        options: GenerationOptions | None = None,
        deadline: Deadline | None = None,
    ) -> ContractT:
        return await self._call(
            prompt,
            options or self.default_options(json_mode=True),
            deadline,
            lambda text: parse_json_contract(text, schema),
        )

    async def _call(self, prompt, options, deadline, parse):
        prompt = self.truncate_prompt(prompt)
        max_retries = self.config.max_retries
        transient_failures = 0
        json_failures = 0
        last_error: Exception | None = None

        # Contract failures have their own budget on top of the transient one.
        for attempt in range(max_retries + 1 + JSON_CONTRACT_RETRY_LIMIT):
            if deadline is not None and deadline.expired:
                raise LLMTimeoutError(f"Deadline exceeded before attempt {attempt + 1}") from last_error
            timeout = self.config.timeout_seconds
            if deadline is not None:
                timeout = min(timeout, deadline.remaining())

            self.stats.calls += 1
            try:
                text = await asyncio.wait_for(self.provider.generate(prompt, options), timeout=timeout)
                return parse(text)
            except asyncio.TimeoutError as exc:
                self.stats.timeouts += 1
                transient_failures += 1
                error: Exception = LLMTimeoutError(f"Model call exceeded {timeout:.2f}s")
                error.__cause__ = exc
            except JSONContractError as exc:
                json_failures += 1
                if json_failures > JSON_CONTRACT_RETRY_LIMIT:
                    raise
                error = exc
            except ProviderError as exc:
                if not exc.retryable:
                    LOGGER.error("Model provider failed (%s): %s", exc.kind.value, exc)
                    raise
                transient_failures += 1
                error = exc

            last_error = error
            if transient_failures > max_retries:
                break
            self.stats.retries += 1
            LOGGER.warning("Model call attempt %s failed: %s. Retrying...", attempt + 1, error)
            if isinstance(error, ProviderError) and error.kind is ProviderErrorKind.RATE_LIMIT:
                backoff = self.config.retry_backoff_seconds * transient_failures
                if deadline is not None:
                    backoff = min(backoff, deadline.remaining())
                await self._sleep(backoff)

        LOGGER.error("Model call failed after %s attempts: %s", attempt + 1, last_error)
        raise last_error
