"""
Correlation ID Middleware

Every request runs under one correlation id: the caller's X-Correlation-Id
when supplied, otherwise a generated one. History records written while
serving the request carry the same id.
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ...utils.logger import set_correlation_id, reset_correlation_id
from ...utils.idgen import generate_correlation_id

HEADER = "X-Correlation-Id"
MAX_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind the correlation id for the duration of the request and echo it back"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = (request.headers.get(HEADER) or "").strip()
        correlation_id = supplied[:MAX_LENGTH] or generate_correlation_id()

        token = set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[HEADER] = correlation_id
        return response
