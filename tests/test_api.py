"""
API Integration Tests — Endpoint Verification

Tests every public API endpoint using FastAPI's TestClient.
No real LLM calls — the lazy provider is swapped for a mock.

These tests catch:
  - Schema mismatches (response model vs actual data)
  - Route registration issues
  - Error mapping (input errors, quota refusals)
  - Free-tier flag truncation at the boundary
"""

from __future__ import annotations

import hashlib
import json

import pytest
from fastapi.testclient import TestClient

from draftclear.cache import result_cache
from draftclear.catalog import catalog
from draftclear.llm import LLMProvider
from draftclear.quota import reset_usage


class MockLLM(LLMProvider):
    async def generate(self, prompt, system_instruction=None, temperature=0.7, json_mode=False):
        if "rewritten" in prompt:
            return json.dumps({
                "rewritten": "We use this tool a lot in class, and it's helped us learn more than we thought.",
                "changes_made": ["Plainer wording"],
            })
        return json.dumps({"ai_likelihood": 70, "explanation": "Stiff vocabulary."})


STIFF = (
    "We utilize cutting-edge tools to facilitate learning. Furthermore, our "
    "strategic plan will foster growth in the realm of science."
)
PRO_KEY = "dc_pro_key_for_tests"


# --- Fixtures ---

@pytest.fixture(scope="module")
def client():
    """Create a test client for the DraftClear API."""
    from api.main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    """Fresh quota and cache per test, mock LLM, generous free limit."""
    from api import main
    from draftclear import auth, quota

    reset_usage()
    result_cache.clear()
    monkeypatch.setattr(main, "_llm", MockLLM())
    monkeypatch.setattr(main, "_llm_loaded", True)
    monkeypatch.setattr(quota, "daily_limit", lambda tier: 0 if tier == "pro" else 100)
    monkeypatch.setattr(
        auth, "_PRO_KEY_HASHES", {hashlib.sha256(PRO_KEY.encode()).hexdigest()},
    )
    yield
    reset_usage()


# ============================================================
# HEALTH & META
# ============================================================

class TestHealth:
    """Verify /health returns correct structure."""

    def test_health_returns_200(self, client):
        assert client.get("/health").status_code == 200

    def test_health_fields(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["patterns"] == len(catalog)
        assert data["catalog_version"] == catalog.version
        assert "llm_provider" in data
        assert "cache_entries" in data

    def test_security_headers(self, client):
        r = client.get("/health")
        assert r.headers["X-Content-Type-Options"] == "nosniff"
        assert r.headers["X-Catalog-Version"] == catalog.version


class TestPatterns:

    def test_lists_catalog(self, client):
        data = client.get("/patterns").json()
        assert data["total_patterns"] == len(catalog)
        ids = {p["id"] for p in data["patterns"]}
        assert "UTILIZE" in ids


# ============================================================
# ANALYZE
# ============================================================

class TestAnalyze:

    def test_local_analysis(self, client):
        r = client.post("/analyze", json={"text": STIFF, "mode": "local"})
        assert r.status_code == 200
        data = r.json()
        assert 5 <= data["score"] <= 95
        assert data["source"] == "pattern"
        assert data["reasoning"]
        assert data["tier"] == "free"

    def test_free_tier_truncates_flags(self, client):
        data = client.post("/analyze", json={"text": STIFF}).json()
        assert data["total_flags"] > 3
        assert len(data["flags"]) == 3
        assert data["visible_flags"] == 3
        assert data["hidden_flags"] == data["total_flags"] - 3

    def test_pro_tier_sees_all_flags(self, client):
        r = client.post("/analyze", json={"text": STIFF}, headers={"X-API-Key": PRO_KEY})
        data = r.json()
        assert data["tier"] == "pro"
        assert len(data["flags"]) == data["total_flags"]
        assert data["hidden_flags"] == 0

    def test_full_mode_blends_model(self, client):
        data = client.post("/analyze", json={"text": STIFF, "mode": "full"}).json()
        assert data["source"] == "model+pattern"
        assert data["model_score"] == 70

    def test_excluded_phrases(self, client):
        data = client.post("/analyze", json={
            "text": STIFF, "excluded_phrases": ["utilize"],
        }, headers={"X-API-Key": PRO_KEY}).json()
        assert "UTILIZE" not in [f["rule_id"] for f in data["flags"]]

    def test_empty_text_is_400(self, client):
        r = client.post("/analyze", json={"text": "   "})
        assert r.status_code == 400
        assert r.json()["error"] == "input_error"

    def test_short_text_is_400(self, client):
        r = client.post("/analyze", json={"text": "We utilize it."})
        assert r.status_code == 400
        assert "too short" in r.json()["detail"]

    def test_invalid_mode_is_422(self, client):
        r = client.post("/analyze", json={"text": STIFF, "mode": "deep"})
        assert r.status_code == 422

    def test_quota_exhausted_is_429(self, client, monkeypatch):
        from draftclear import quota
        monkeypatch.setattr(quota, "daily_limit", lambda tier: 2)
        assert client.post("/analyze", json={"text": STIFF}).status_code == 200
        assert client.post("/analyze", json={"text": STIFF}).status_code == 200
        r = client.post("/analyze", json={"text": STIFF})
        assert r.status_code == 429
        assert r.json()["error"] == "quota_exceeded"

    def test_invalid_text_does_not_use_quota(self, client, monkeypatch):
        from draftclear import quota
        monkeypatch.setattr(quota, "daily_limit", lambda tier: 1)
        client.post("/analyze", json={"text": ""})
        assert client.post("/analyze", json={"text": STIFF}).status_code == 200


# ============================================================
# FIX & REWRITE
# ============================================================

class TestFix:

    def test_fix_all_detected(self, client):
        r = client.post("/fix", json={"text": STIFF})
        assert r.status_code == 200
        data = r.json()
        assert "utilize" not in data["fixed"].lower()
        assert data["score_after"] < data["score_before"]
        assert data["diff_spans"]

    def test_fix_selected_flags(self, client):
        data = client.post("/fix", json={
            "text": STIFF,
            "flags": [{"phrase": "utilize", "suggested_fix": "use"}],
        }).json()
        assert data["fixed"].startswith("We use cutting-edge tools")
        assert data["applied"] == ["utilize"]

    def test_fix_missing_phrase_skipped(self, client):
        data = client.post("/fix", json={
            "text": STIFF,
            "flags": [{"phrase": "delve into", "suggested_fix": "look into"}],
        }).json()
        assert data["fixed"] == STIFF
        assert data["skipped"] == ["delve into"]

    def test_fix_empty_text_is_400(self, client):
        assert client.post("/fix", json={"text": ""}).status_code == 400


class TestRewrite:

    def test_rewrite_with_model(self, client):
        r = client.post("/rewrite", json={"text": STIFF})
        assert r.status_code == 200
        data = r.json()
        assert data["source"] == "model"
        assert data["score_after"] < data["score_before"]

    def test_rewrite_without_model_falls_back(self, client, monkeypatch):
        from api import main
        monkeypatch.setattr(main, "_llm", None)
        data = client.post("/rewrite", json={"text": STIFF}).json()
        assert data["source"] == "pattern_fallback"


# ============================================================
# CACHE
# ============================================================

class TestCacheEndpoints:

    def test_stats_and_clear(self, client):
        client.post("/analyze", json={"text": STIFF})
        stats = client.get("/cache/stats").json()
        assert stats["entries"] >= 1

        cleared = client.delete("/cache").json()
        assert cleared["cleared"] >= 1
        assert client.get("/cache/stats").json()["entries"] == 0

    def test_repeat_analysis_hits_cache(self, client):
        first = client.post("/analyze", json={"text": STIFF}).json()
        second = client.post("/analyze", json={"text": STIFF}).json()
        assert first["score"] == second["score"]
        assert first["flags"] == second["flags"]
        assert client.get("/cache/stats").json()["hits"] >= 1
