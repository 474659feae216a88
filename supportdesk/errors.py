"""Error taxonomy and FastAPI exception handlers.

Every failure that reaches the HTTP boundary is rendered with the same
envelope::

    {"success": false, "error": "<message>", "code": "<CODE>"}

Domain code raises :class:`SupportDeskError` subclasses; validation errors and
plain ``HTTPException`` instances raised by FastAPI are mapped onto the same
shape so clients only ever parse one error format.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .config import get_settings

logger = logging.getLogger(__name__)


class SupportDeskError(Exception):
    """Base class for errors that map onto an HTTP status and error code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.headers = dict(headers or {})

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class ConversationNotFoundError(SupportDeskError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, conversation_id: object) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ProviderUnavailableError(SupportDeskError):
    """Raised when the reasoning provider cannot produce a reply."""

    status_code = 503
    code = "AI_UNAVAILABLE"

    def __init__(self, message: str = "AI service temporarily unavailable") -> None:
        super().__init__(message)


class RateLimitExceededError(SupportDeskError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        message: str = "Too many messages. Please wait a moment.",
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, headers=headers)


def error_body(message: str, code: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message, "code": code}
    body.update(extra)
    return body


def _validation_message(exc: RequestValidationError) -> tuple[str, str]:
    errors = exc.errors()
    for err in errors:
        if err.get("type") == "json_invalid":
            return "Invalid JSON in request body", "INVALID_JSON"
    if not errors:
        return "Invalid request", "VALIDATION_ERROR"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid request"))
    if location:
        message = f"{location}: {message}"
    return message, "VALIDATION_ERROR"


def install_error_handlers(app: FastAPI) -> None:
    """Register exception handlers producing the shared error envelope."""

    @app.exception_handler(SupportDeskError)
    async def _handle_domain_error(request: Request, exc: SupportDeskError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed with %s: %s",
                request.method,
                request.url.path,
                exc.code,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError):
        message, code = _validation_message(exc)
        return JSONResponse(status_code=400, content=error_body(message, code))

    @app.exception_handler(HTTPException)
    async def _handle_http_error(request: Request, exc: HTTPException):
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        detail = exc.detail if isinstance(exc.detail, str) else json.dumps(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(detail, code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        extra: dict[str, Any] = {}
        if get_settings().is_development:
            extra["detail"] = str(exc)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "INTERNAL_ERROR", **extra),
        )


__all__ = [
    "ConversationNotFoundError",
    "ProviderUnavailableError",
    "RateLimitExceededError",
    "SupportDeskError",
    "error_body",
    "install_error_handlers",
]
