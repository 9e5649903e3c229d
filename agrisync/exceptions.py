from __future__ import annotations
from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


# ── Typed domain exceptions ───────────────────────────────────────────────────

class AppError(Exception):
    """Base for all application-level errors."""
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)


class AuthenticationError(AppError):
    """The outsource login failed or returned an unusable credential."""
    status_code = 502
    error_code = "UPSTREAM_AUTH_FAILED"


class FetchError(AppError):
    """The outsource API answered but flagged the request as failed."""
    status_code = 502
    error_code = "UPSTREAM_FETCH_FAILED"


class RetryExhaustedError(FetchError):
    error_code = "UPSTREAM_RATE_LIMITED"


class SyncError(AppError):
    """Raised by routes when an entity fetch loop could not complete."""
    status_code = 500
    error_code = "SYNC_FAILED"


class SchedulerBusyError(AppError):
    status_code = 409
    error_code = "SYNC_ALREADY_RUNNING"


# ── FastAPI exception handlers ────────────────────────────────────────────────
# Existing API clients expect `{error, details}` bodies.

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "details": exc.context.get("details", exc.error_code),
        },
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "details": exc.detail,
        },
    )
