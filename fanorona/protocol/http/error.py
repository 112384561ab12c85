from __future__ import annotations

import logging
from typing import Any, Dict, Optional, cast

from fastapi import HTTPException as FastAPIHTTPException
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


logger = logging.getLogger(__name__)


class GameError(Exception):
    """Rule-level rejection raised by route handlers."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IllegalMoveError(GameError):
    code = "illegal_move"


class NoChainError(GameError):
    code = "no_capture_chain"


class GameOverError(GameError):
    status_code = status.HTTP_409_CONFLICT
    code = "game_over"


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: Optional[list[dict[str, str]]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    return payload


def _err_type(status_code: int) -> str:
    return "client_error" if 400 <= status_code < 500 else "server_error"


def _render(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    payload = error_envelope(
        code=code,
        message=message,
        err_type=_err_type(status_code),
        request_id=getattr(request.state, "request_id", ""),
    )
    return JSONResponse(status_code=status_code, content=payload)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, FastAPIHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _render(request, exc.status_code, _status_to_code(exc.status_code), detail)
    return await exception_handler(request, exc)


async def game_error_handler(request: Request, exc: Exception) -> JSONResponse:
    err = cast(GameError, exc)
    logger.info(
        "rejected: %s",
        err.message,
        extra={"request_id": getattr(request.state, "request_id", ""), "code": err.code},
    )
    return _render(request, err.status_code, err.code, err.message)


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, FastAPIHTTPException):
        return await http_exception_handler(request, exc)
    if isinstance(exc, GameError):
        return await game_error_handler(request, exc)
    request_id = getattr(request.state, "request_id", "")
    logger.exception("Unhandled exception", extra={"request_id": request_id})
    return _render(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal Server Error"
    )


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    # Pydantic/FastAPI validation errors keep the 422 status inside the envelope
    rve = cast(RequestValidationError, exc)
    errors = []
    for e in rve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        errors.append(
            {
                "field": loc,
                "code": e.get("type", "value_error"),
                "message": e.get("msg", "invalid value"),
            }
        )
    payload = error_envelope(
        code="unprocessable_entity",
        message="Validation error",
        err_type="client_error",
        request_id=getattr(request.state, "request_id", ""),
        field_errors=errors or None,
    )
    return JSONResponse(status_code=422, content=payload)


_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "unprocessable_entity",
}


def _status_to_code(status_code: int) -> str:
    if status_code in _CODES:
        return _CODES[status_code]
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
