"""Rate limiting using slowapi.

Classification and uploads call Gemini, so they are throttled per client
to stay within the upstream API quotas.
"""

import json
from typing import Any, List

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def _trusted_proxies() -> List[str]:
    from app.config import get_settings

    raw = get_settings().trusted_proxies or ""
    return [ip.strip() for ip in raw.split(",") if ip.strip()]


def get_client_ip(request: Request) -> str:
    """
    Rate-limit key for a request.

    X-Forwarded-For is honoured only when the direct peer is a configured
    trusted proxy; otherwise the header could be used to dodge the limit.
    """
    peer: str = get_remote_address(request)
    if peer not in _trusted_proxies():
        return peer

    forwarded = request.headers.get("X-Forwarded-For", "")
    origin = forwarded.split(",")[0].strip()
    return origin or peer


# In-memory storage, keyed by client IP
limiter = Limiter(key_func=get_client_ip, default_limits=["200/minute"])


RATE_LIMITS = {
    "classify": "30/minute",     # POST /api/classify - may call Gemini
    "documents": "10/minute",    # POST /api/documents - OCR per chunk
    "reads": "100/minute",       # GET endpoints and chunk aggregation
    "matrix_writes": "10/minute",  # PUT /api/keyword-matrix - stores a snapshot
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return 429 Too Many Requests with Retry-After and X-RateLimit-* headers."""
    retry_after = getattr(exc, "retry_after", 60)
    headers = {"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"}
    limit = getattr(exc, "detail", None)
    if limit:
        headers["X-RateLimit-Limit"] = str(limit)

    return Response(
        content=json.dumps({
            "detail": "Rate limit exceeded",
            "message": f"Too many requests. Please retry after {retry_after} seconds.",
            "retry_after": retry_after,
        }),
        status_code=429,
        media_type="application/json",
        headers=headers,
    )


def get_limiter() -> Any:
    """Return the module-level limiter used by route decorators."""
    return limiter
