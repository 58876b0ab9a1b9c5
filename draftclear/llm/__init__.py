"""
LLM Provider — Abstract Interface

Every language-model call goes through this interface. Swap providers
by changing DRAFTCLEAR_LLM_PROVIDER in env. The model is a best-effort
oracle: callers must always have a local fallback.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Optional

from draftclear.errors import ExternalServiceError


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    name: str = "llm"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Generate a text response from the LLM."""
        ...

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
    ) -> dict:
        """Generate and parse a JSON object response."""
        text = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            json_mode=True,
        )
        if not text:
            raise ExternalServiceError("LLM returned an empty response")

        # Models sometimes wrap JSON in ```json fences
        cleaned = text.strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.split("\n", 1)[-1].rsplit("```", 1)[0].strip()
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                f"LLM returned invalid JSON: {e}. Raw response: {text[:300]}"
            ) from e
        if not isinstance(parsed, dict):
            raise ExternalServiceError(
                f"LLM returned {type(parsed).__name__}, expected a JSON object"
            )
        return parsed
