"""
DraftClear Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    VERSION: str = "0.4.0"
    API_VERSION: str = "1"

    # --- LLM Provider ---
    LLM_PROVIDER: str = os.getenv("DRAFTCLEAR_LLM_PROVIDER", "gemini")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    LLM_TIMEOUT_SECONDS: float = float(
        os.getenv("DRAFTCLEAR_LLM_TIMEOUT", "8")
    )
    # Share of the blended score taken from the model in "full" mode
    MODEL_SCORE_WEIGHT: float = float(
        os.getenv("DRAFTCLEAR_MODEL_SCORE_WEIGHT", "0.4")
    )

    # --- Input length policy (enforced at the API boundary) ---
    MIN_TEXT_CHARS: int = int(os.getenv("DRAFTCLEAR_MIN_CHARS", "50"))
    MAX_TEXT_CHARS: int = int(os.getenv("DRAFTCLEAR_MAX_CHARS", "10000"))

    # --- Result cache ---
    CACHE_TTL_SECONDS: int = int(os.getenv("DRAFTCLEAR_CACHE_TTL", "3600"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("DRAFTCLEAR_CACHE_MAX", "1000"))

    # --- Usage gate ---
    FREE_DAILY_SCANS: int = int(os.getenv("DRAFTCLEAR_FREE_DAILY_SCANS", "5"))
    PRO_DAILY_SCANS: int = int(os.getenv("DRAFTCLEAR_PRO_DAILY_SCANS", "0"))  # 0 = unlimited
    FREE_TIER_VISIBLE_FLAGS: int = int(
        os.getenv("DRAFTCLEAR_FREE_VISIBLE_FLAGS", "3")
    )
    PRO_KEYS: str = os.getenv("DRAFTCLEAR_PRO_KEYS", "")

    # --- Server ---
    HOST: str = os.getenv("DRAFTCLEAR_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("DRAFTCLEAR_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("DRAFTCLEAR_CORS_ORIGINS", "*")


settings = Settings()
