"""Application-wide error handling and typed exceptions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from flask import Flask, Response, current_app, g, jsonify
from werkzeug.exceptions import HTTPException


@dataclass(eq=False)
class AppError(Exception):
    """Base exception carrying the user-facing message and envelope extras."""

    user_msg: str
    code: str = "APP_ERROR"
    http_status: int = 500
    detail: str | None = None
    extra: Dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.user_msg

    def payload(self, *, include_detail: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": False,
            "error": self.user_msg,
            "code": self.code,
            "request_id": getattr(g, "request_id", None),
        }
        if include_detail and self.detail:
            data["detail"] = self.detail
        if self.extra:
            data.update(self.extra)
        return data

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        include_detail = current_app.debug
        return self.payload(include_detail=include_detail), self.http_status


@dataclass(eq=False)
class ValidationError(AppError):
    code: str = "VALIDATION"
    http_status: int = 400
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def payload(self, *, include_detail: bool = False) -> Dict[str, Any]:
        data = super().payload(include_detail=include_detail)
        if self.errors:
            data["errors"] = self.errors
        return data


@dataclass(eq=False)
class AuthError(AppError):
    code: str = "AUTH"
    http_status: int = 401


@dataclass(eq=False)
class ForbiddenError(AppError):
    code: str = "FORBIDDEN"
    http_status: int = 403


@dataclass(eq=False)
class NotFoundError(AppError):
    code: str = "NOT_FOUND"
    http_status: int = 404


@dataclass(eq=False)
class AlreadyProcessedError(AppError):
    code: str = "ALREADY_PROCESSED"
    http_status: int = 400


@dataclass(eq=False)
class RateLimitError(AppError):
    code: str = "RATE_LIMIT"
    http_status: int = 429
    retry_after: int | None = None

    def payload(self, *, include_detail: bool = False) -> Dict[str, Any]:
        data = super().payload(include_detail=include_detail)
        data["rateLimited"] = True
        return data


@dataclass(eq=False)
class UpstreamError(AppError):
    code: str = "UPSTREAM"
    http_status: int = 500


def init_app(app: Flask) -> None:
    """Attach global error handlers to the Flask application."""

    app.register_error_handler(AppError, _handle_app_error)
    app.register_error_handler(HTTPException, _handle_http_exception)
    app.register_error_handler(Exception, _handle_unexpected)


def _handle_app_error(error: AppError):
    if isinstance(error, UpstreamError):
        current_app.logger.error(
            "Upstream failure",
            extra={"component": "errors", "context": {"code": error.code, "detail": error.detail}},
        )
    return _format_error(error)


def _handle_http_exception(error: HTTPException):
    app_error = AppError(
        user_msg=error.description or error.name,
        code=error.name.upper().replace(" ", "_"),
        http_status=error.code or 500,
    )
    return _format_error(app_error)


def _handle_unexpected(error: Exception):
    current_app.logger.exception("Unhandled exception", exc_info=error)
    app_error = AppError(
        user_msg="Internal server error. Please try again later.",
        code="INTERNAL",
        http_status=500,
        detail=str(error) if current_app.debug else None,
    )
    return _format_error(app_error)


def _format_error(error: AppError):
    payload, status = error.to_response()
    resp = jsonify(payload)
    resp.status_code = status
    if isinstance(error, RateLimitError) and error.retry_after:
        resp.headers["Retry-After"] = str(error.retry_after)
    return _attach_request_id(resp, status)


def _attach_request_id(response: Response, status: int | None = None):
    request_id = getattr(g, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    status_code = status or getattr(response, "status_code", 500)
    if status_code == 429 and "Retry-After" not in response.headers:
        response.headers["Retry-After"] = "60"
    return response
