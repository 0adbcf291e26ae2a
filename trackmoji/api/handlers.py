"""
Boundary Error Translation

DESIGN DECISION: Flows raise; this module decides what the client sees.

| Raised                                   | Status | Message                                        |
|------------------------------------------|--------|------------------------------------------------|
| TrackmojiError                           | own    | own                                            |
| DuplicateError / IntegrityError          | 409    | Unique constraint failed on the field(s): ...  |
| RecordNotFoundError                      | 404    | Resource not found.                            |
| other StorageError / SQLAlchemyError     | 400    | Database request error. Check input data.      |
| malformed request body                   | 400    | Validation error: Invalid input data provided. |
| unknown route                            | 404    | Not Found - Cannot METHOD PATH                 |
| anything else                            | 500    | Internal Server Error                          |

Outside production, boundary-mapped errors also carry `stack`, plus
`code` and `meta` when the underlying error has them. A raw model or
service exception is never shown to the client.
"""

import re
import traceback
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from trackmoji.api.responses import failure
from trackmoji.audit import AuditLogger
from trackmoji.config import AppSettings
from trackmoji.errors import (
    ConflictError,
    InternalError,
    TrackmojiError,
    UnprocessableAnalysisError,
)
from trackmoji.services.storage import (
    DuplicateError,
    RecordNotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

_UNIQUE_TARGET = re.compile(r"UNIQUE constraint failed: ([\w., ]+)", re.IGNORECASE)
_PG_UNIQUE_TARGET = re.compile(r"Key \(([\w, ]+)\)=")


def unique_fields(exc: IntegrityError) -> list[str]:
    """Best-effort column names from a driver's unique-violation message."""
    text = str(exc.orig) if exc.orig is not None else str(exc)

    match = _UNIQUE_TARGET.search(text)
    if match:
        return [part.strip().split(".")[-1] for part in match.group(1).split(",")]

    match = _PG_UNIQUE_TARGET.search(text)
    if match:
        return [part.strip() for part in match.group(1).split(",")]

    return []


def register_exception_handlers(
    app: FastAPI,
    settings: AppSettings,
    audit_logger: Optional[AuditLogger] = None,
) -> None:
    """Attach every boundary translator to `app`."""

    def debug_detail(exc: Exception, code: Any = None, meta: Any = None) -> dict:
        if settings.is_production:
            return {}
        extra: dict[str, Any] = {
            "stack": "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        }
        if code is not None:
            extra["code"] = code
        if meta is not None:
            extra["meta"] = meta
        return extra

    @app.exception_handler(TrackmojiError)
    async def handle_domain_error(request: Request, exc: TrackmojiError):
        extra = dict(exc.details)
        if isinstance(exc, UnprocessableAnalysisError):
            extra["partialAnalysis"] = exc.partial_analysis
        return failure(exc.status_code, exc.message, extra)

    @app.exception_handler(DuplicateError)
    async def handle_duplicate(request: Request, exc: DuplicateError):
        logger.warning("unique_constraint_failed", fields=exc.fields, path=request.url.path)
        return failure(
            ConflictError.status_code,
            f"Unique constraint failed on the field(s): {', '.join(exc.fields)}",
            debug_detail(exc, meta={"target": exc.fields}),
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        fields = unique_fields(exc)
        logger.warning("integrity_error", fields=fields, path=request.url.path)
        return failure(
            ConflictError.status_code,
            f"Unique constraint failed on the field(s): {', '.join(fields)}",
            debug_detail(exc, code=exc.code, meta={"target": fields}),
        )

    @app.exception_handler(RecordNotFoundError)
    async def handle_record_not_found(request: Request, exc: RecordNotFoundError):
        return failure(404, "Resource not found.", debug_detail(exc))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("storage_error", error=str(exc), path=request.url.path)
        return failure(400, "Database request error. Check input data.", debug_detail(exc))

    @app.exception_handler(SQLAlchemyError)
    async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
        logger.error("database_error", error=str(exc), path=request.url.path)
        return failure(
            400,
            "Database request error. Check input data.",
            debug_detail(exc, code=getattr(exc, "code", None)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return failure(
            400,
            "Validation error: Invalid input data provided.",
            {} if settings.is_production else {"meta": exc.errors()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Unmatched routes and unsupported methods both read as "cannot"
        if exc.status_code in (404, 405):
            target = request.url.path
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return failure(404, f"Not Found - Cannot {request.method} {target}")
        return failure(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        if audit_logger:
            audit_logger.log_error(
                error_type=type(exc).__name__,
                error_message=str(exc),
                details={"path": request.url.path, "method": request.method},
            )
        return failure(InternalError.status_code, "Internal Server Error", debug_detail(exc))
