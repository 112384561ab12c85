from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"
_GAME_PATH = re.compile(r"^/api/games/([^/]+)")


def _game_id(path: str) -> Optional[str]:
    m = _GAME_PATH.match(path)
    return m.group(1) if m else None


class RequestIDLoggingMiddleware(BaseHTTPMiddleware):
    """Assign (or propagate) a request ID, log request/response, and attach header.

    A client-supplied ``x-request-id`` is reused so AI turns can be traced
    across services; otherwise a UUID4 is generated. Game routes also log
    the game id.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        game_id = _game_id(request.url.path)

        logger.info(
            "request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "game_id": game_id,
            },
        )

        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers[REQUEST_ID_HEADER] = request_id

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "response",
            extra={
                "request_id": request_id,
                "game_id": game_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
