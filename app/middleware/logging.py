"""Logging middleware for request tracking and structured logging."""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict
from urllib.parse import unquote

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logging.basicConfig(
    level=logging.INFO,
    format='%(message)s',
    stream=sys.stdout
)

logger = logging.getLogger(__name__)

# Response headers copied into the request log line
_OUTCOME_HEADERS = {
    "X-Doc-Type": ("doc_type", unquote),
    "X-Confidence": ("confidence", float),
    "X-Document-ID": ("document_id", str),
}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _outcome_fields(response: Response) -> Dict[str, Any]:
    """Classification outcome advertised by the routers through response headers."""
    fields: Dict[str, Any] = {}
    for header, (key, cast) in _OUTCOME_HEADERS.items():
        raw = response.headers.get(header)
        if raw is None:
            continue
        try:
            fields[key] = cast(raw)
        except ValueError:
            logger.debug("Unparseable %s header: %r", header, raw)
    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one JSON log line per request.

    The line carries the request ID (taken from X-Request-ID or generated),
    method, path, client IP, status, latency, and the document type and
    confidence when the endpoint classified something. Uploaded files, OCR
    text and API keys never reach the log.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        entry: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            entry.update(
                status_code=500,
                processing_time_ms=_elapsed_ms(started),
                error=str(e),
                error_type=type(e).__name__,
            )
            logger.error(json.dumps(entry), exc_info=True)
            raise

        entry.update(status_code=response.status_code, processing_time_ms=_elapsed_ms(started))
        entry.update(_outcome_fields(response))
        logger.info(json.dumps(entry))

        response.headers["X-Request-ID"] = request_id
        return response
