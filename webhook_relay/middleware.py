"""HTTP method gating for the relay's fixed routes."""

import logging
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class MethodGateMiddleware(BaseHTTPMiddleware):
    """
    Reject requests whose method is not the one a path accepts.

    Rejected requests get 405 with an ``Allow`` header naming the accepted
    method and a plain-text body; the route handler is never called. Paths
    not in the map pass through untouched.
    """

    def __init__(self, app, allowed_methods: Dict[str, str]):
        super().__init__(app)
        self.allowed_methods = {path: method.upper() for path, method in allowed_methods.items()}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        expected = self.allowed_methods.get(request.url.path)
        if expected is not None and request.method != expected:
            logger.warning(f"method not allowed: expected {expected}, got {request.method}")
            return PlainTextResponse(
                f"method {request.method} is not allowed\n",
                status_code=405,
                headers={"Allow": expected},
            )
        return await call_next(request)
