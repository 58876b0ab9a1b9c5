"""
LLM provider factory.
"""

from __future__ import annotations

from typing import Optional

from draftclear.llm import LLMProvider


def get_provider(provider_name: str = "gemini") -> Optional[LLMProvider]:
    """Return the configured LLM provider, or None when models are disabled."""
    name = (provider_name or "none").strip().lower()
    if name in ("none", "off", "local"):
        return None
    if name == "gemini":
        from draftclear.llm.gemini import GeminiProvider
        return GeminiProvider()
    raise ValueError(f"Unknown LLM provider: {provider_name}")
