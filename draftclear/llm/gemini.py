"""
Gemini Provider — Google Gemini via the google-genai SDK.

The client is created lazily, so the service boots without an API key
and only reports the missing key when a model call is attempted.

- Model chain: configured model first, then FALLBACK_MODEL
- Transient errors (rate limits, 5xx, timeouts) retried with exponential backoff
- Circuit breaker: after repeated failures, calls fail fast for a cool-down
  period so analysis drops straight to local scoring
Every failure surfaces as ExternalServiceError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from google import genai
from google.genai import types

from draftclear.config import settings
from draftclear.errors import ExternalServiceError
from draftclear.llm import LLMProvider

logger = logging.getLogger("draftclear.llm.gemini")

FALLBACK_MODEL = "gemini-2.5-flash"

_TRANSIENT_MARKERS = (
    "429", "500", "503", "rate", "quota", "timeout", "timed out",
    "connection", "unavailable", "overloaded",
)


def _is_transient(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class CircuitOpenError(ExternalServiceError):
    """Raised without calling the model while the breaker is open."""


class CircuitBreaker:
    """
    closed → open after `threshold` consecutive failures;
    open → half-open once `cooldown` seconds have passed;
    any success closes it again.
    """

    def __init__(self, threshold: int = 3, cooldown: float = 60.0):
        self.threshold = threshold
        self.cooldown = cooldown
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return "closed"
        if time.monotonic() - self._opened_at >= self.cooldown:
            return "half-open"
        return "open"

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def record_success(self) -> None:
        self._consecutive_failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.threshold:
            self._opened_at = time.monotonic()
            logger.warning(
                "Gemini circuit open after %d consecutive failures; "
                "pattern-only scoring for %.0fs",
                self._consecutive_failures, self.cooldown,
            )


class GeminiProvider(LLMProvider):
    """Google Gemini provider with retry, model fallback and a circuit breaker."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._model = model or settings.GEMINI_MODEL
        self._client: Optional[genai.Client] = None
        self.circuit_breaker = CircuitBreaker()

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise ExternalServiceError(
                    "GEMINI_API_KEY not set; model scoring and rewriting are unavailable"
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _model_chain(self) -> list[str]:
        if self._model == FALLBACK_MODEL:
            return [self._model]
        return [self._model, FALLBACK_MODEL]

    async def _call(
        self,
        model: str,
        prompt: str,
        config: types.GenerateContentConfig,
        attempts: int,
    ) -> str:
        client = self._get_client()
        for attempt in range(attempts):
            try:
                response = await client.aio.models.generate_content(
                    model=model, contents=prompt, config=config,
                )
                return response.text or ""
            except Exception as e:
                if attempt < attempts - 1 and _is_transient(e):
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise
        return ""

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        if self.circuit_breaker.is_open:
            raise CircuitOpenError(
                "Gemini circuit breaker is open; skipping model call"
            )

        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            response_mime_type="application/json" if json_mode else None,
        )

        last_error: Optional[Exception] = None
        for position, model in enumerate(self._model_chain()):
            try:
                text = await self._call(
                    model, prompt, config, attempts=2 if position == 0 else 1,
                )
            except ExternalServiceError:
                # Missing credentials: no point trying another model
                self.circuit_breaker.record_failure()
                raise
            except Exception as e:
                last_error = e
                logger.warning("Gemini model %s failed: %s", model, e)
                continue
            self.circuit_breaker.record_success()
            return text

        self.circuit_breaker.record_failure()
        raise ExternalServiceError(f"Gemini call failed: {last_error}") from last_error
