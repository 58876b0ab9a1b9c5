"""
Caller Identification — API Keys and Tiers

Callers present an optional X-API-Key header. Keys listed in
DRAFTCLEAR_PRO_KEYS (comma-separated) get the "pro" tier; any other key,
or no key at all, is "free". Keys are held only as SHA-256 hashes, and the
identity handed to the rest of the app is a short hash prefix so raw keys
never reach logs.

Anonymous callers are keyed by client host so the free quota still applies.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from draftclear.config import settings

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def _hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


def _load_pro_hashes(raw: str) -> set[str]:
    return {_hash(k.strip()) for k in raw.split(",") if k.strip()}


_PRO_KEY_HASHES: set[str] = _load_pro_hashes(settings.PRO_KEYS)


@dataclass(frozen=True)
class ClientIdentity:
    key_id: str     # Hash prefix or "anon:<host hash>"
    tier: str       # "free" | "pro"


def _is_pro_key(api_key: str) -> bool:
    if not api_key:
        return False
    return _hash(api_key) in _PRO_KEY_HASHES


def identify(api_key: Optional[str], client_host: Optional[str]) -> ClientIdentity:
    """Resolve a caller's identity and tier."""
    if api_key:
        tier = "pro" if _is_pro_key(api_key) else "free"
        return ClientIdentity(key_id=_hash(api_key)[:12], tier=tier)
    host = client_host or "unknown"
    return ClientIdentity(key_id=f"anon:{_hash(host)[:12]}", tier="free")


async def identify_client(
    request: Request,
    api_key: Optional[str] = Security(API_KEY_HEADER),
) -> ClientIdentity:
    """FastAPI dependency: identity and tier for the current request."""
    host = request.client.host if request.client else None
    return identify(api_key, host)


def generate_api_key() -> str:
    """Generate a new API key. Utility for key provisioning."""
    return f"dc_{secrets.token_urlsafe(32)}"
