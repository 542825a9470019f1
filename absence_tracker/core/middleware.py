"""
Request logging middleware.
Logs method, path, status and elapsed time of every API call.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("absence_tracker.requests")

# Paths not worth a log line
EXEMPT_PATHS = {
    "/", "/docs", "/redoc", "/openapi.json", "/api/health",
}


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %d (%.1f ms)", request.method, path, response.status_code, elapsed_ms)
        return response
