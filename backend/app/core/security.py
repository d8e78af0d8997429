# SPDX-License-Identifier: Apache-2.0
"""Rate limiting helpers, sanitization, hashing, security middleware and error mapping."""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.exceptions import (
    AUTHORIZATION,
    EXTERNAL_CONTRACT_VIOLATION,
    INPUT_INVALID,
    NOT_FOUND,
    STATE_CONFLICT,
    SealedTallyError,
)

_limiter = Limiter(key_func=get_remote_address)

_logger = logging.getLogger("sealedtally")

CATEGORY_STATUS = {
    AUTHORIZATION: 403,
    NOT_FOUND: 404,
    STATE_CONFLICT: 409,
    INPUT_INVALID: 400,
    EXTERNAL_CONTRACT_VIOLATION: 422,
}


def get_limiter() -> Limiter:
    return _limiter


def rate_limit(s: str):
    return _limiter.limit(s)


def add_security_middleware(app: FastAPI) -> None:
    """Register exception handlers, security headers, and CORS. No business logic."""
    app.state.limiter = _limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(SealedTallyError)
    async def tally_error_handler(request: Request, exc: SealedTallyError):
        return JSONResponse(
            status_code=CATEGORY_STATUS.get(exc.category, 400),
            content={"error": exc.code, "category": exc.category, "detail": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())
        _logger.error("Unhandled exception %s: %s", error_id, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "error_id": error_id},
        )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        from app.config import settings
        if settings.production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000"
        return response

    from app.config import settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def sanitize_text(value: str, max_len: int = 2000) -> str:
    """Strip HTML/script tags and enforce max length."""
    if not value:
        return ""
    value = re.sub(r"<[^>]+>", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    return value.strip()[:max_len]


def normalize_address(value: str) -> str:
    """Identities compare case-insensitively, like hex account addresses."""
    return (value or "").strip().lower()


def sha3_256_hex(*parts: bytes | str) -> str:
    """SHA3-256 hash of concatenated parts, hex-encoded."""
    h = hashlib.sha3_256()
    for p in parts:
        h.update(p.encode("utf-8") if isinstance(p, str) else p)
    return h.hexdigest()


def hmac_sha3_hex(key: str, *parts: str) -> str:
    """HMAC-SHA3-256 over '|'-joined parts, hex-encoded."""
    return hmac.new(key.encode("utf-8"), "|".join(parts).encode("utf-8"), hashlib.sha3_256).hexdigest()
