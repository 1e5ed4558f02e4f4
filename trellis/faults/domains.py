"""
Trellis Faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults (boot time, fatal)
- ROUTING faults
- FLOW faults (classified handler errors)
- IO faults (request body)
- SYSTEM faults (unclassified errors)
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigurationError(Fault):
    """
    Invalid or duplicate metadata, or invalid settings.

    Raised during definition and boot; the application must not serve.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "CONFIGURATION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            public=False,
            details=details,
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RouteNotFoundError(Fault):
    """No mounted route matches the request."""

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message="Not Found",
            status_code=404,
            domain=FaultDomain.ROUTING,
            severity=Severity.WARN,
            public=True,
            details={"method": method, "path": path},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class ClassifiedHandlerError(Fault):
    """
    Business or validation error carrying its intended status and payload.

    Example:
        raise ClassifiedHandlerError(404, "not found", details={"id": user_id})
    """

    code = "API_ERROR"
    message = "Request failed"
    domain = FaultDomain.FLOW
    public = True

    def __init__(
        self,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        status = status_code if status_code is not None else type(self).status_code
        super().__init__(
            code=code,
            message=message,
            status_code=status,
            severity=Severity.ERROR if status >= 500 else Severity.INFO,
            details=details,
        )


ApiError = ClassifiedHandlerError


class BadRequest(ClassifiedHandlerError):
    code = "BAD_REQUEST"
    message = "Bad Request"
    status_code = 400

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class Unauthorized(ClassifiedHandlerError):
    code = "UNAUTHORIZED"
    message = "Unauthorized"
    status_code = 401

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class Forbidden(ClassifiedHandlerError):
    code = "FORBIDDEN"
    message = "Forbidden"
    status_code = 403

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class NotFound(ClassifiedHandlerError):
    code = "NOT_FOUND"
    message = "Not Found"
    status_code = 404

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class Conflict(ClassifiedHandlerError):
    code = "CONFLICT"
    message = "Conflict"
    status_code = 409

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class ValidationError(ClassifiedHandlerError):
    """Request data rejected by a context transformer."""

    code = "VALIDATION_ERROR"
    message = "Request validation failed"
    status_code = 400

    def __init__(self, message: Optional[str] = None, *, errors: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if errors:
            details["errors"] = list(errors)
        super().__init__(message=message, details=details, **kwargs)


# ============================================================================
# IO Faults
# ============================================================================

class RequestFault(ClassifiedHandlerError):
    """Base class for request body faults."""
    domain = FaultDomain.IO


class InvalidJSON(RequestFault):
    code = "INVALID_JSON"
    message = "Malformed JSON body"
    status_code = 400

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class PayloadTooLarge(RequestFault):
    code = "PAYLOAD_TOO_LARGE"
    message = "Request body too large"
    status_code = 413

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)


class ClientDisconnect(Exception):
    """
    The client went away while the request body was being read.

    Not a fault: the response is abandoned instead of formatted.
    """


# ============================================================================
# SYSTEM Faults
# ============================================================================

class UnclassifiedError(Fault):
    """
    Any other exception, treated as a server defect.

    The original exception is kept on ``cause`` for logging only.
    """

    def __init__(self, cause: Optional[BaseException] = None, *, trace_id: Optional[str] = None):
        self.cause = cause
        self.trace_id = trace_id
        super().__init__(
            code="INTERNAL_ERROR",
            message="Internal Server Error",
            status_code=500,
            domain=FaultDomain.SYSTEM,
            severity=Severity.ERROR,
            public=False,
        )

    @classmethod
    def from_exception(cls, exc: BaseException, *, trace_id: Optional[str] = None) -> "UnclassifiedError":
        return cls(exc, trace_id=trace_id)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.trace_id:
            data["trace_id"] = self.trace_id
        return data
