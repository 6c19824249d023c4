"""
Response envelope builders
Every /api/v1 response goes through here so clients can parse success,
error and pagination the same way regardless of the route.

    Success: {"success": true, "data": <T>, "meta"?: {...pagination...}}
    Error:   {"success": false, "error": {"code", "message", "details"?}}
"""
import logging
import math
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import DEFAULT_PAGE, DEFAULT_PER_PAGE, MAX_PAGE, MAX_PER_PAGE, RATE_LIMIT_RETRY_AFTER_SECONDS, is_production
from ..errors import ApiError, ErrorCode, STATUS_TO_CODE
from ..security import redact_headers

logger = logging.getLogger("siteapi.api")

NO_STORE = {"Cache-Control": "no-store"}


def _headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers = dict(NO_STORE)
    if extra:
        headers.update(extra)
    return headers


def success_response(data: Any, meta: Optional[Dict[str, Any]] = None, status_code: int = 200) -> JSONResponse:
    """Build a success envelope"""
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if meta:
        body["meta"] = meta
    return JSONResponse(status_code=status_code, content=body, headers=_headers())


def created_response(data: Any) -> JSONResponse:
    return success_response(data, status_code=201)


def no_content_response() -> Response:
    return Response(status_code=204, headers=_headers())


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build an error envelope; details never leave a production build"""
    error: Dict[str, Any] = {"code": str(getattr(code, "value", code)), "message": message}
    if details and not is_production():
        error["details"] = jsonable_encoder(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=_headers(headers),
    )


def unauthorized_response(message: Optional[str] = None) -> JSONResponse:
    return error_response(ErrorCode.UNAUTHORIZED, message or "Invalid or missing API key", 401)


def forbidden_response(message: Optional[str] = None) -> JSONResponse:
    return error_response(ErrorCode.FORBIDDEN, message or "You do not have permission for this action", 403)


def not_found_response(resource: str = "Resource") -> JSONResponse:
    return error_response(ErrorCode.NOT_FOUND, f"{resource} not found", 404)


def validation_error_response(message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return error_response(ErrorCode.VALIDATION_ERROR, message, 400, details)


def bad_request_response(message: str, details: Any = None) -> JSONResponse:
    return error_response(ErrorCode.BAD_REQUEST, message, 400, details)


def rate_limit_response(retry_after: int = RATE_LIMIT_RETRY_AFTER_SECONDS) -> JSONResponse:
    return error_response(
        ErrorCode.RATE_LIMIT_EXCEEDED,
        "Rate limit exceeded. Please wait before making more requests.",
        429,
        headers={"Retry-After": str(retry_after)},
    )


def server_error_response(message: str = "An internal server error occurred", details: Any = None) -> JSONResponse:
    return error_response(ErrorCode.INTERNAL_ERROR, message, 500, details)


def method_not_allowed_response(allowed: Iterable[str]) -> JSONResponse:
    allow = ", ".join(allowed)
    return error_response(
        ErrorCode.METHOD_NOT_ALLOWED,
        f"Method not allowed. Allowed methods: {allow}",
        405,
        headers={"Allow": allow},
    )


# ----- Pagination -----

def calculate_pagination(total: int, page: int, per_page: int) -> Dict[str, Any]:
    """Pagination meta for a 1-indexed page"""
    total_pages = math.ceil(total / per_page) if per_page > 0 else 0
    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }


def _parse_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def parse_pagination_params(query: Mapping[str, str]) -> Tuple[int, int]:
    """Read ?page= and ?per_page=; page within [1, MAX_PAGE], per_page within [1, MAX_PER_PAGE]"""
    page = min(MAX_PAGE, max(1, _parse_int(query.get("page"), DEFAULT_PAGE)))
    per_page = min(MAX_PER_PAGE, max(1, _parse_int(query.get("per_page"), DEFAULT_PER_PAGE)))
    return page, per_page


# ----- Exception handlers -----

async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.code, exc.message, exc.status_code, exc.details, exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Router-level 404/405 and any stray HTTPException"""
    if exc.status_code == 405:
        allow = (exc.headers or {}).get("Allow", "")
        return method_not_allowed_response([m.strip() for m in allow.split(",") if m.strip()])
    code = STATUS_TO_CODE.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(code, message, exc.status_code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return validation_error_response("Request validation failed", {"errors": exc.errors()})


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return server_error_response(details=str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc,
                 extra={"headers": redact_headers(dict(request.headers))})
    return server_error_response("An unexpected error occurred", details=str(exc))


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
