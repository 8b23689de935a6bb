"""Access logging middleware using structlog."""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)


class AccessLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one ``http_request`` event per request.

    Log fields:
        - method, path, query: request line
        - status_code: response status
        - duration_ms: time spent handling the request
        - client_ip: direct peer address; forwarded_for is added when present
        - trace_id/span_id: added by the OTEL structlog processor
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and log access information."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        log_kwargs: dict[str, str | int | float] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        # Section deletions identify the station in the query string
        if query := request.url.query:
            log_kwargs["query"] = query
        # X-Forwarded-For is client controlled; log it alongside the peer address
        if xff_header := request.headers.get("x-forwarded-for"):
            log_kwargs["forwarded_for"] = xff_header.split(",")[0].strip()

        if response.status_code >= 500:
            logger.error("http_request", **log_kwargs)
        else:
            logger.info("http_request", **log_kwargs)

        return response
