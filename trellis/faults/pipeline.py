"""
Trellis Faults - Terminal error pipeline.

Two stages, evaluated for every request that does not end in a success
response:

1. No route matched: "not found" envelope, warning log with method and path.
2. Handler raised: classified faults keep their status and payload; any
   other exception becomes an UnclassifiedError whose original message is
   logged but never returned to the caller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Type

from .core import Fault, Severity
from .domains import RouteNotFoundError, UnclassifiedError
from ..log import LoggerService
from ..response import Envelope, Response, format_response

if TYPE_CHECKING:
    from ..request import Request


TAG = "ErrorHandler"

ExceptionMapper = Callable[[BaseException], Fault]


@dataclass
class ExceptionMapping:
    """Classifies a third-party exception type into a fault."""
    exception_type: Type[BaseException]
    mapper: ExceptionMapper


class ErrorPipeline:
    """
    Converts unmatched requests and raised exceptions into envelopes.

    Usage:
        ```python
        pipeline = ErrorPipeline()
        pipeline.register(KeyError, lambda e: NotFound(f"Missing key {e}"))
        ```
    """

    def __init__(self, logger: Optional[LoggerService] = None):
        self.logger = logger or LoggerService("trellis.faults")
        self._mappings: List[ExceptionMapping] = []

    def register(self, exception_type: Type[BaseException], mapper: ExceptionMapper) -> None:
        """
        Register a mapper turning ``exception_type`` into a fault.

        Mappings are checked in registration order; the first
        ``isinstance`` match wins.
        """
        self._mappings.append(ExceptionMapping(exception_type, mapper))

    # ========================================================================
    # Stage 1: no route matched
    # ========================================================================

    def not_found(self, request: "Request") -> Response:
        self.logger.warn(TAG, f"404 Not Found: {request.method} {request.path}")
        fault = RouteNotFoundError(request.method, request.path)
        return self._render(fault)

    # ========================================================================
    # Stage 2: handler raised
    # ========================================================================

    def handle(self, exc: BaseException, request: Optional["Request"] = None) -> Response:
        fault = self.classify(exc)
        where = f" ({request.method} {request.path})" if request is not None else ""

        if isinstance(fault, UnclassifiedError):
            cause = fault.cause if fault.cause is not None else exc
            self.logger.error(
                TAG,
                f"Unhandled error{where} trace_id={fault.trace_id}: "
                f"{type(cause).__name__}: {cause}",
                exc_info=(type(cause), cause, cause.__traceback__),
            )
        else:
            self._log_fault(fault, where)

        return self._render(fault)

    def classify(self, exc: BaseException) -> Fault:
        """Map an exception to the fault used for its envelope."""
        if isinstance(exc, Fault):
            return exc

        for mapping in self._mappings:
            if isinstance(exc, mapping.exception_type):
                fault = mapping.mapper(exc)
                if isinstance(fault, Fault):
                    return fault
                break

        return UnclassifiedError.from_exception(exc, trace_id=os.urandom(8).hex())

    def _log_fault(self, fault: Fault, where: str) -> None:
        message = f"{fault.status_code} {fault.code}{where}: {fault.message}"
        if fault.severity in (Severity.ERROR, Severity.FATAL):
            self.logger.error(TAG, message)
        elif fault.severity == Severity.WARN:
            self.logger.warn(TAG, message)
        else:
            self.logger.debug(TAG, message)

    @staticmethod
    def _render(fault: Fault) -> Response:
        message = fault.message if fault.public else "Internal Server Error"
        return format_response(Envelope.error(message, fault.to_dict()), fault.status_code)
