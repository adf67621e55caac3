"""
edubridge/middleware/error_handler.py

Maps domain errors and uncaught exceptions to structured JSON responses.
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.encoders import jsonable_encoder
from typing import Optional
import logging
import traceback
import uuid
from datetime import datetime

from edubridge.errors import EduBridgeError, ErrorCode

logger = logging.getLogger(__name__)

TRANSIENT_MESSAGE = "The service is temporarily unavailable. Please try again."
INTERNAL_MESSAGE = "An internal error occurred. Please try again or contact support."


def _request_context(request: Request, log_id: Optional[str]) -> dict:
    context = {
        "log_id": log_id,
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else None,
    }
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        context["user_id"] = user_id
        context["user_role"] = getattr(request.state, "user_role", None)
    return context


def _error_body(error_code: str, code: str, message: str, details: dict, log_id: str) -> dict:
    return {
        "success": False,
        "error_code": error_code,
        "code": code,
        "message": message,
        "details": details,
        "log_id": log_id,
        "timestamp": datetime.utcnow().isoformat()
    }


def setup_error_handlers(app, debug: bool = False):
    """
    Setup error handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Include exception text and tracebacks in 5xx responses
    """

    @app.exception_handler(EduBridgeError)
    async def domain_error_handler(request: Request, exc: EduBridgeError):
        status_code = exc.status_code
        content = exc.to_dict()

        if status_code >= 500:
            # Cause is logged, never returned
            logger.error(
                f"Service error [{exc.log_id}]: {exc.message} {exc.details} | "
                f"Context: {_request_context(request, exc.log_id)}"
            )
            if not debug:
                content["message"] = TRANSIENT_MESSAGE if status_code == 503 else INTERNAL_MESSAGE
                content["details"] = {}
        else:
            logger.warning(
                f"Handled error [{exc.log_id}]: {exc.message} | "
                f"Context: {_request_context(request, exc.log_id)}"
            )

        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors (422)."""
        log_id = str(uuid.uuid4())[:8]
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "message": error.get("msg", ""),
                "type": error.get("type", "")
            })
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "VALIDATION_ERROR",
                ErrorCode.VALIDATION_ERROR,
                "Request validation failed",
                {"errors": jsonable_encoder(errors)},
                log_id
            )
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        log_id = str(uuid.uuid4())[:8]
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        code = ErrorCode.FORBIDDEN if exc.status_code == 403 else "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("HTTP_ERROR", code, detail, {}, log_id),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        log_id = str(uuid.uuid4())[:8]
        logger.error(
            f"Unexpected error [{log_id}]: {str(exc)}\n"
            f"Context: {_request_context(request, log_id)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )

        return JSONResponse(
            status_code=500,
            content=_error_body(
                "SERVER_ERROR",
                "INTERNAL_ERROR",
                str(exc) if debug else INTERNAL_MESSAGE,
                {"traceback": traceback.format_exc()} if debug else {},
                log_id
            )
        )

    logger.info("Error handlers configured")
