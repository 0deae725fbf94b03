"""
FastAPI middleware for automatic Prometheus metrics collection.

Tracks request counts, latency and requests in progress per endpoint.
"""

import logging
import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from trainsmart.observability.metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
)

logger = logging.getLogger(__name__)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for HTTP requests"""

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        path = normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            logger.error(f"Request failed: {e}", exc_info=True)
            raise
        finally:
            http_requests_in_progress.labels(method=method, endpoint=path).dec()
            duration = time.time() - start_time
            http_requests_total.labels(
                method=method, endpoint=path, status=status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method, endpoint=path
            ).observe(duration)

        return response


def normalize_path(path: str) -> str:
    """
    Replace user ids in paths to keep label cardinality bounded

    /api/v1/users/abc123/xp -> /api/v1/users/{user_id}/xp
    """
    parts = path.strip("/").split("/")
    normalized = []
    previous = None
    for part in parts:
        if previous == "users":
            normalized.append("{user_id}")
        else:
            normalized.append(part)
        previous = part
    return "/" + "/".join(normalized)
