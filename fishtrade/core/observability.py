"""
Request context, structured log lines and the JSON error envelope.

Every log record under the ``fishtrade`` logger is one JSON object per line.
Handlers render all failures as ``{"error": {...}}`` so clients branch on
``code`` and ``retryable`` rather than on HTTP status alone.
"""

import json
import logging
import time
import traceback
from contextvars import ContextVar
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fishtrade.core.config import settings
from fishtrade.core.errors import FishtradeError

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
actor_id_ctx: ContextVar[str | None] = ContextVar("actor_id", default=None)

root_logger = logging.getLogger("fishtrade")
logger = logging.getLogger("fishtrade.api")


def setup_observability(level: str | None = None) -> None:
    root_logger.setLevel((level or settings.log_level).upper())
    if root_logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def _request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("x-request-id")
        or get_request_id()
    )


def _error_response(
    *,
    status_code: int,
    request: Request,
    code: str,
    message: str,
    details: list[dict] | None = None,
    retryable: bool = False,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "error": {
                "code": code,
                "message": message,
                "request_id": _request_id_for(request),
                "path": request.url.path,
                "retryable": retryable,
                "details": details,
            }
        },
    )


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid4())
    actor_id = request.headers.get("x-actor-id")
    request.state.request_id = request_id
    request_token = request_id_ctx.set(request_id)
    actor_token = actor_id_ctx.set(actor_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        logger.info(
            json.dumps(
                {
                    "event": "request",
                    "request_id": request_id,
                    "actor_id": actor_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                }
            )
        )
        actor_id_ctx.reset(actor_token)
        request_id_ctx.reset(request_token)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-API-Timeout-Hint-Ms"] = str(settings.api_timeout_hint_ms)
    return response


async def domain_exception_handler(request: Request, exc: FishtradeError):
    # 4xx domain errors are expected outcomes; the rollback was already logged.
    if exc.status_code >= 500:
        logger.error(
            json.dumps(
                {
                    "event": "domain_error",
                    "request_id": _request_id_for(request),
                    "actor_id": actor_id_ctx.get(),
                    "path": request.url.path,
                    "code": exc.code,
                    "error": exc.message,
                }
            )
        )
    return _error_response(
        status_code=exc.status_code,
        request=request,
        code=exc.code,
        message=exc.message,
        details=exc.to_details(),
        retryable=exc.retryable,
        headers={"Retry-After": "1"} if exc.retryable else None,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        json.dumps(
            {
                "event": "unhandled_exception",
                "request_id": _request_id_for(request),
                "actor_id": actor_id_ctx.get(),
                "path": request.url.path,
                "error": str(exc),
                "traceback": traceback.format_exc(limit=10),
            }
        )
    )
    return _error_response(
        status_code=500,
        request=request,
        code="internal_error",
        message="Internal server error",
    )


_HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
}


async def http_exception_handler(request: Request, exc: HTTPException):
    plain = isinstance(exc.detail, str)
    return _error_response(
        status_code=exc.status_code,
        request=request,
        code=_HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        message=exc.detail if plain else "HTTP error",
        details=None if plain else exc.detail,
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", []) if part != "body"]
        details.append(
            {
                "field": ".".join(location) if location else "body",
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return _error_response(
        status_code=422,
        request=request,
        code="validation_error",
        message="Validation failed",
        details=details,
    )
