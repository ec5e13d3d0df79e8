"""Application error type and its mapping to HTTP.

Services raise ``AppError`` with one of the ``ErrorKind`` values; the
exception handler installed by ``main.create_app`` turns it into a JSON
response. Internal details stay in ``detail`` and in the logs, never in
the response body.
"""

from __future__ import annotations

import enum
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

GENERIC_RETRY_MESSAGE = "Please try again later."


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM = "upstream"
    STORAGE = "storage"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.QUOTA_EXCEEDED: 402,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.STORAGE: 500,
}

_RETRYABLE_KINDS = {ErrorKind.UPSTREAM, ErrorKind.STORAGE}


class AppError(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str = "",
        detail: str | None = None,
    ) -> None:
        self.kind = kind
        self.code = code
        self.message = message
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_body(self) -> dict[str, Any]:
        if self.kind in _RETRYABLE_KINDS:
            return {"code": self.code, "message": GENERIC_RETRY_MESSAGE}
        return {"code": self.code, "message": self.message}


def storage_error(exc: Exception, code: str = "database_error") -> AppError:
    return AppError(ErrorKind.STORAGE, code, detail=str(exc))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and params as a VALIDATION ``AppError``."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg", "invalid request"))
    return await app_error_handler(request, AppError(ErrorKind.VALIDATION, "invalid_request", message))
