import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from quickai.core.logging import LOGGER_NAME, bind_request_id, latency_bucket_ms, unbind_request_id

REQUEST_ID_HEADER = "x-request-id"

logger = logging.getLogger(LOGGER_NAME)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Correlate everything a request does under one id.

    The id comes from the caller's ``x-request-id`` header when present,
    otherwise a fresh uuid4. It is echoed back on the response and a single
    ``request.complete`` line is logged per request, carrying the resolved
    user (set by the auth dependency) and a latency bucket.
    """

    async def dispatch(self, request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = rid
        token = bind_request_id(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            logger.info(
                "request.complete",
                extra={
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "user_id": getattr(request.state, "user_id", None),
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
                },
            )
            return response
        finally:
            unbind_request_id(token)
