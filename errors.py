"""
Response envelope and error kinds.

Every response body has the shape ``{"success": bool, "message"?: str, "data"?: ...}``.
Errors are raised as HTTPException subclasses and rendered by the handlers
registered in ``register_exception_handlers``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_FAULT_MESSAGE = "Internal server error."


def envelope(success: bool = True, message: Optional[str] = None, data: Any = None) -> dict:
    body = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


# ----------------------- Error kinds -----------------------

class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation failed."):
        super().__init__(status_code=400, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Authentication required."):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Access denied."):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found."):
        super().__init__(status_code=404, detail=detail)


class InvalidOperation(HTTPException):
    def __init__(self, detail: str = "Operation not allowed."):
        super().__init__(status_code=400, detail=detail)


class InternalFault(HTTPException):
    def __init__(self, detail: str = GENERIC_FAULT_MESSAGE):
        super().__init__(status_code=500, detail=detail)


# ----------------------- Handlers -----------------------

def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        message = GENERIC_FAULT_MESSAGE
    elif exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found."
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(False, message=message),
        headers=getattr(exc, "headers", None),
    )


def _validation_error(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    body = envelope(False, message="Validation failed.")
    body["errors"] = errors
    return JSONResponse(status_code=400, content=body)


def _store_error(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=envelope(False, message=GENERIC_FAULT_MESSAGE))


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the envelope-rendering handlers on ``app``.

    Starlette runs the catch-all ``Exception`` handler from its
    ServerErrorMiddleware, which sends our 500 response and then re-raises, so
    the server also logs the traceback. Expect unexpected faults to appear
    twice in the logs.
    """
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(PyMongoError, _store_error)
    app.add_exception_handler(Exception, _store_error)
