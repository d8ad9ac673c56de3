"""FastAPI middleware for observability: request ids, access logging, latency."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import REQUEST_ID_HEADER, bind_request_id
from .logging_config import get_logger
from .metrics import http_request_duration_seconds

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the request and echo it in X-Request-ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = bind_request_id(request.headers.get(REQUEST_ID_HEADER))

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {str(e)}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True
            )
            raise

        duration = time.time() - start_time
        http_request_duration_seconds.labels(
            method=request.method,
            status_code=str(response.status_code),
        ).observe(duration)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            }
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
