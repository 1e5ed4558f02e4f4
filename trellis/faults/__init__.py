"""
Trellis Faults - structured error handling.

Faults are exceptions that carry a code, an HTTP status, a domain and a
payload. The :class:`ErrorPipeline` turns them (and everything else) into
error envelopes.
"""

from .core import Fault, FaultDomain, Severity
from .domains import (
    ConfigurationError,
    RouteNotFoundError,
    ClassifiedHandlerError,
    ApiError,
    BadRequest,
    Unauthorized,
    Forbidden,
    NotFound,
    Conflict,
    ValidationError,
    RequestFault,
    InvalidJSON,
    PayloadTooLarge,
    ClientDisconnect,
    UnclassifiedError,
)
from .pipeline import ErrorPipeline, ExceptionMapping

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigurationError",
    "RouteNotFoundError",
    "ClassifiedHandlerError",
    "ApiError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "ValidationError",
    "RequestFault",
    "InvalidJSON",
    "PayloadTooLarge",
    "ClientDisconnect",
    "UnclassifiedError",
    "ErrorPipeline",
    "ExceptionMapping",
]
