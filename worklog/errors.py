"""
Domain error taxonomy and the FastAPI handlers that render it.

Every error leaves the service as JSON of the form
``{"kind": <name>, "message": <text>, ...extra}`` so clients can branch on
``kind`` without parsing messages.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError


logger = structlog.get_logger(__name__)


class DomainError(Exception):
    kind = "DomainError"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = {k: v for k, v in extra.items() if v is not None}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.extra}


class ValidationError(DomainError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        errors: Union[Mapping[str, str], Iterable[Dict[str, str]], None] = None,
        message: Optional[str] = None,
    ):
        if isinstance(errors, Mapping):
            items = [{"field": f, "message": m} for f, m in errors.items()]
        else:
            items = list(errors or [])
        self.errors: List[Dict[str, str]] = items
        if message is None and len(items) == 1:
            message = items[0]["message"]
        super().__init__(message, errors=items)


class Unauthenticated(DomainError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404
    default_message = "Resource not found"


class DuplicateLog(DomainError):
    kind = "DuplicateLog"
    status_code = 409
    default_message = "A log already exists for this date and project"


class InvalidTransition(DomainError):
    kind = "InvalidTransition"
    status_code = 409
    default_message = "Status transition not allowed"


class LogLocked(DomainError):
    kind = "LogLocked"
    status_code = 409
    default_message = "Approved logs cannot be modified"


class StoreUnavailable(DomainError):
    kind = "StoreUnavailable"
    status_code = 503
    default_message = "Something went wrong on the server"


def _field_name(loc: Iterable[Any]) -> str:
    # ("body", "employees", 0) -> "employees.0"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts) or "request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError):
        logger.info("domain_error", kind=exc.kind, status=exc.status_code, message=exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        err = ValidationError([
            {"field": _field_name(e.get("loc", ())), "message": e.get("msg", "Invalid value")}
            for e in exc.errors()
        ])
        logger.info("request_validation_failed", errors=err.errors)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError):
        logger.error("store_unavailable", error=str(exc), exc_info=exc)
        err = StoreUnavailable()
        return JSONResponse(status_code=err.status_code, content=err.to_dict())
