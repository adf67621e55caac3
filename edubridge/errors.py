"""
edubridge/errors.py
Domain error taxonomy

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error_code": "CONFLICT_ERROR",
    "code": "MATERIAL_ALREADY_DECIDED",
    "message": "Human-readable description",
    "details": {},
    "log_id": "3f9c1a2b",
    "timestamp": "2026-01-01T00:00:00"
}

HTTP STATUS CODE DISCIPLINE:
- 400: ValidationError (bad input, checked before any write)
- 403: AuthorizationError (role / scope / ownership)
- 404: NotFoundError
- 409: ConflictError (state already changed, duplicates)
- 503: TransientError (storage unavailable after retries)
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FORMAT = "INVALID_FORMAT"
    FILE_REJECTED = "FILE_REJECTED"
    COMMENTS_NOT_ALLOWED = "COMMENTS_NOT_ALLOWED"

    FORBIDDEN = "FORBIDDEN"
    ROLE_NOT_ALLOWED = "ROLE_NOT_ALLOWED"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"
    SCOPE_VIOLATION = "SCOPE_VIOLATION"
    SELF_REVIEW = "SELF_REVIEW"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PROGRAMME_NOT_FOUND = "PROGRAMME_NOT_FOUND"
    SUBJECT_NOT_FOUND = "SUBJECT_NOT_FOUND"
    MATERIAL_NOT_FOUND = "MATERIAL_NOT_FOUND"
    COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"

    CONFLICT = "CONFLICT"
    DUPLICATE = "DUPLICATE"
    MATERIAL_ALREADY_DECIDED = "MATERIAL_ALREADY_DECIDED"
    REGISTRATION_ALREADY_DECIDED = "REGISTRATION_ALREADY_DECIDED"

    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorCategory:
    """Error categories with corresponding HTTP status codes."""
    VALIDATION_ERROR = ("VALIDATION_ERROR", 400)
    AUTHORIZATION_ERROR = ("AUTHORIZATION_ERROR", 403)
    NOT_FOUND_ERROR = ("NOT_FOUND_ERROR", 404)
    CONFLICT_ERROR = ("CONFLICT_ERROR", 409)
    TRANSIENT_ERROR = ("TRANSIENT_ERROR", 503)
    SERVER_ERROR = ("SERVER_ERROR", 500)


class EduBridgeError(Exception):
    """Base exception for domain errors."""

    default_code = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        message: str,
        category: tuple = ErrorCategory.SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        log_id: Optional[str] = None
    ):
        self.message = message
        self.category = category
        self.details = details or {}
        self.code = code or self.default_code
        self.log_id = log_id or str(uuid.uuid4())[:8]
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.category[1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "success": False,
            "error_code": self.category[0],
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "log_id": self.log_id,
            "timestamp": self.timestamp
        }


class ValidationError(EduBridgeError):
    """Invalid input data (400). `field` names the offending input."""

    default_code = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: Optional[str] = None
    ):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        self.field = field
        super().__init__(message, ErrorCategory.VALIDATION_ERROR, details, code)


class AuthorizationError(EduBridgeError):
    """Insufficient permissions (403)."""

    default_code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Permission denied", details: Optional[Dict] = None, code: Optional[str] = None):
        super().__init__(message, ErrorCategory.AUTHORIZATION_ERROR, details, code)


class NotFoundError(EduBridgeError):
    """Resource not found (404)."""

    default_code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None, code: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message += f": {resource_id}"
        self.resource = resource
        super().__init__(
            message,
            ErrorCategory.NOT_FOUND_ERROR,
            {"resource": resource, "id": resource_id},
            code
        )


class ConflictError(EduBridgeError):
    """State already changed or duplicate (409)."""

    default_code = ErrorCode.CONFLICT

    def __init__(self, message: str, details: Optional[Dict] = None, code: Optional[str] = None):
        super().__init__(message, ErrorCategory.CONFLICT_ERROR, details, code)


class TransientError(EduBridgeError):
    """Storage unreachable or timed out after retries (503)."""

    default_code = ErrorCode.SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        cause: Optional[BaseException] = None,
        details: Optional[Dict] = None
    ):
        self.cause = cause
        details = dict(details or {})
        if cause is not None:
            details.setdefault("cause", type(cause).__name__)
        super().__init__(message, ErrorCategory.TRANSIENT_ERROR, details)
