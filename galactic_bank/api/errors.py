"""
Error responses

Every error leaves the API as {"error": {"name": ..., "message": ...}}.
"""

from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..accounts import AccountError, AccountValidationError, AccountNotFoundError, AccountAccessDenied
from ..logging_config import get_logger
from ..transactions import TransactionFailure


logger = get_logger("galactic_bank.api")


class ApiError(Exception):
    """An error with a machine-readable name and HTTP status"""

    def __init__(self, status_code: int, name: str, message: str,
                 headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.name = name
        self.message = message
        self.headers = headers
        super().__init__(message)

    @classmethod
    def from_failure(cls, failure: TransactionFailure) -> 'ApiError':
        return cls(failure.http_status, failure.error_name, failure.message)


ACCOUNT_ERROR_STATUS = {
    AccountValidationError: (400, "validationError"),
    AccountNotFoundError: (404, "notFoundError"),
    AccountAccessDenied: (403, "forbiddenError"),
}


def error_body(name: str, message: str) -> dict:
    return {"error": {"name": name, "message": message}}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.name, exc.message),
        headers=exc.headers
    )


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    status_code, name = ACCOUNT_ERROR_STATUS.get(type(exc), (400, "validationError"))
    return JSONResponse(status_code=status_code, content=error_body(name, str(exc)))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=error_body("validationError", message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("serverError", "Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
