"""
DraftClear API — Main Application

POST   /analyze      — Score text for AI-style writing (local or full)
POST   /fix          — Apply pattern fixes and re-score
POST   /rewrite      — Model rewrite, verified by re-scoring
GET    /patterns     — List the detection catalog
GET    /health       — Health check
GET    /cache/stats  — Result cache statistics
DELETE /cache        — Drop every cached result
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from draftclear.analyzer import AnalysisOptions, analyze_full, analyze_local, validate_text
from draftclear.auth import ClientIdentity, identify_client
from draftclear.cache import result_cache
from draftclear.catalog import CATALOG_VERSION, catalog
from draftclear.config import settings
from draftclear.errors import AnalysisNotPermittedError, InputError
from draftclear.fixer import FixInstruction, fix_text, rewrite_text
from draftclear.llm.factory import get_provider
from draftclear.logging import get_logger, setup_logging
from draftclear.quota import consume_scan, get_usage
from draftclear.schemas.analyze import (
    AnalyzeRequest,
    AnalyzeResponse,
    FixRequest,
    FixResponse,
    HealthResponse,
    RewriteRequest,
    RewriteResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup."""
    setup_logging()
    logger.info(
        "DraftClear API starting",
        extra={"source": settings.LLM_PROVIDER},
    )
    yield
    logger.info("DraftClear API shutting down")


app = FastAPI(
    title="DraftClear API",
    description="Detects AI-style phrasing in student writing and suggests natural fixes",
    version=f"{settings.VERSION} (catalog {CATALOG_VERSION})",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["X-API-Key", "Content-Type"],
    allow_credentials=False,
)


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "error": "input_error"},
    )


@app.exception_handler(AnalysisNotPermittedError)
async def quota_error_handler(request: Request, exc: AnalysisNotPermittedError):
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc), "error": "quota_exceeded"},
    )


@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions. Return a structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The analysis could not be completed."},
    )


# Lazy LLM provider
_llm = None
_llm_loaded = False


def _get_llm():
    global _llm, _llm_loaded
    if not _llm_loaded:
        _llm = get_provider(settings.LLM_PROVIDER)
        _llm_loaded = True
    return _llm


def _options(excluded_phrases: list[str]) -> AnalysisOptions:
    return AnalysisOptions.build(
        excluded_phrases=excluded_phrases,
        min_chars=settings.MIN_TEXT_CHARS,
        max_chars=settings.MAX_TEXT_CHARS,
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: AnalyzeRequest,
    client: ClientIdentity = Depends(identify_client),
):
    """Score text and list the phrases that read as machine-written."""
    options = _options(request.excluded_phrases)
    validate_text(request.text, options)
    permitted = consume_scan(client.key_id, client.tier)
    start = time.time()

    if request.mode == "full":
        result = await analyze_full(
            request.text, llm=_get_llm(), options=options, permitted=permitted,
        )
    else:
        result = analyze_local(request.text, options=options, permitted=permitted)

    body = result.to_dict()
    total = len(body["flags"])
    if client.tier == "free" and settings.FREE_TIER_VISIBLE_FLAGS > 0:
        body["flags"] = body["flags"][:settings.FREE_TIER_VISIBLE_FLAGS]
    body.update({
        "tier": client.tier,
        "total_flags": total,
        "visible_flags": len(body["flags"]),
        "hidden_flags": total - len(body["flags"]),
        "usage": get_usage(client.key_id, client.tier),
    })

    logger.info(
        f"Analysis complete: score={result.score} mode={request.mode}",
        extra={
            "ai_score": result.score,
            "model_score": result.model_score,
            "scan_mode": request.mode,
            "source": result.source,
            "flags_count": total,
            "duration_ms": int((time.time() - start) * 1000),
            "key_id": client.key_id,
            "tier": client.tier,
        },
    )
    return body


@app.post("/fix", response_model=FixResponse)
async def fix(request: FixRequest):
    """Replace flagged phrases with their suggested fixes and re-score."""
    options = _options(request.excluded_phrases)
    validate_text(request.text, options)

    instructions = None
    if request.flags is not None:
        instructions = [
            FixInstruction(phrase=f.phrase, suggested_fix=f.suggested_fix)
            for f in request.flags
        ]

    result = fix_text(
        request.text,
        instructions=instructions,
        excluded_phrases=options.excluded_phrases,
    )
    logger.info(
        f"Fix applied: {result.score_before} -> {result.score_after}",
        extra={"ai_score": result.score_after, "flags_count": len(result.applied)},
    )
    return result.to_dict()


@app.post("/rewrite", response_model=RewriteResponse)
async def rewrite(
    request: RewriteRequest,
    client: ClientIdentity = Depends(identify_client),
):
    """Rewrite text with the language model; falls back to pattern fixes."""
    options = _options(request.excluded_phrases)
    validate_text(request.text, options)
    if not consume_scan(client.key_id, client.tier):
        raise AnalysisNotPermittedError("Daily analysis limit reached.")

    result = await rewrite_text(
        request.text, llm=_get_llm(), excluded_phrases=options.excluded_phrases,
    )
    logger.info(
        f"Rewrite complete: {result['score_before']} -> {result['score_after']}",
        extra={
            "ai_score": result["score_after"],
            "source": result["source"],
            "iterations": len(result["iterations"]),
            "key_id": client.key_id,
        },
    )
    return result


@app.get("/patterns")
async def get_patterns():
    """Return every detection rule in the catalog."""
    rules = catalog.describe()
    return {
        "catalog_version": catalog.version,
        "total_patterns": len(rules),
        "patterns": rules,
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check; no key required."""
    return {
        "status": "operational",
        "version": settings.VERSION,
        "catalog_version": catalog.version,
        "patterns": len(catalog),
        "llm_provider": settings.LLM_PROVIDER,
        "cache_entries": result_cache.stats["entries"],
    }


@app.get("/cache/stats")
async def cache_stats():
    return result_cache.stats


@app.delete("/cache")
async def clear_cache():
    removed = result_cache.clear()
    logger.info(f"Result cache cleared: {removed} entries")
    return {"cleared": removed}


# --- Security + Version Headers Middleware ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security and version headers to all responses."""
    response = await call_next(request)
    response.headers["X-DraftClear-Version"] = settings.VERSION
    response.headers["X-Catalog-Version"] = CATALOG_VERSION
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# --- Body Size Limit Middleware ---
_MAX_BODY_BYTES = 1_048_576  # 1 MB


@app.middleware("http")
async def enforce_body_size_limit(request: Request, call_next):
    """Reject requests exceeding 1MB by Content-Length or actual body."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > _MAX_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large."},
                )
        except ValueError:
            pass  # Malformed content-length; let the framework handle it

    if request.method in ("POST", "PUT", "PATCH"):
        body = await request.body()
        if len(body) > _MAX_BODY_BYTES:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large."},
            )

    return await call_next(request)


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} -> {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
