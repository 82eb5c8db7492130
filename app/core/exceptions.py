from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

logger = logging.getLogger(__name__)


class CombinationServiceError(Exception):
    """Base error for the option combination component."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(CombinationServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateCombinationError(CombinationServiceError):
    pass


class InvalidInputError(CombinationServiceError):
    pass


class InsufficientStockError(CombinationServiceError):
    def __init__(self, combination_id: int, available: int, requested: int):
        super().__init__(
            "Insufficient stock",
            {
                "combination_id": combination_id,
                "available": available,
                "requested": requested,
            },
        )
        self.combination_id = combination_id
        self.available = available
        self.requested = requested


async def service_error_handler(request: Request, exc: CombinationServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    content = {"success": False, "message": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(CombinationServiceError, service_error_handler)
    # Also catches fastapi.HTTPException and the router's own 404/405
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
