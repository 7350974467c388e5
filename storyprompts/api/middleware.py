"""Middleware for request correlation."""

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storyprompts.core.project_context import clear_project_context, set_project_context, set_request_id

_PROJECT_PATH = re.compile(r"/projects/(\d+)")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id and the path's project id to the logging context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with correlation context.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response carrying an ``X-Request-ID`` header
        """
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        set_request_id(request_id)

        match = _PROJECT_PATH.search(request.url.path)
        set_project_context(int(match.group(1)) if match else None)

        try:
            response = await call_next(request)
        finally:
            clear_project_context()
            set_request_id(None)

        response.headers["X-Request-ID"] = request_id
        return response
