import logging
from typing import Dict

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.request_id import request_id_ctx
from app.core.results import ErrorKind, FlowResult


logger = logging.getLogger(__name__)


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.INVALID_OR_EXPIRED: 400,
    ErrorKind.INCORRECT_CREDENTIALS: 401,
    ErrorKind.EMAIL_NOT_VERIFIED: 403,
    ErrorKind.INCORRECT_ONE_TIME_CODE: 401,
    ErrorKind.ALREADY_AUTHENTICATED: 409,
    ErrorKind.ALREADY_VERIFIED: 409,
    ErrorKind.TRANSPORT_FAILURE: 502,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
}


def _get_request_id(request: Request) -> str:
    header_request_id = request.headers.get("X-Request-ID")
    if header_request_id:
        return header_request_id
    ctx_request_id = request_id_ctx.get()
    return ctx_request_id or ""


def flow_response(request: Request, result: FlowResult, success_status: int = 200) -> JSONResponse:
    """Serializar un FlowResult con el status HTTP que corresponde a su tipo de error"""
    status_code = STATUS_BY_KIND.get(result.kind, 400) if result.error else success_status
    content = jsonable_encoder(result)
    content["request_id"] = _get_request_id(request)
    return JSONResponse(status_code=status_code, content=content)


def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "code": "HTTP_EXCEPTION",
            "request_id": _get_request_id(request),
        },
        headers=getattr(exc, "headers", None),
    )


def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "code": "HTTP_EXCEPTION",
            "request_id": _get_request_id(request),
        },
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: Dict[str, str] = {}
    for issue in exc.errors():
        loc = [part for part in issue.get("loc", ()) if part != "body"]
        field = str(loc[-1]) if loc else "__root__"
        field_errors.setdefault(field, issue.get("msg", "Invalid value"))

    result = FlowResult.fail(
        ErrorKind.INVALID_INPUT,
        next(iter(field_errors.values()), "Invalid input"),
        field_errors=field_errors,
    )
    content = jsonable_encoder(result)
    content["request_id"] = _get_request_id(request)
    return JSONResponse(status_code=422, content=content)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
            "request_id": _get_request_id(request),
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", ""))} if getattr(exc, "retry_after", None) else None,
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"request_id": _get_request_id(request)})
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "code": "INTERNAL_ERROR",
            "request_id": _get_request_id(request),
        },
    )
