"""
Trellis Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain Enums
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level used by the error pipeline.
    """
    INFO = "info"       # Expected client-side outcome
    WARN = "warn"       # Should be reviewed
    ERROR = "error"     # Server defect
    FATAL = "fatal"     # Unrecoverable, abort boot


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration and boot errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route matching errors")
FaultDomain.FLOW = FaultDomain("flow", "Handler execution errors")
FaultDomain.IO = FaultDomain("io", "Request I/O errors")
FaultDomain.SYSTEM = FaultDomain("system", "Unclassified server errors")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.ROUTING: Severity.WARN,
    FaultDomain.FLOW: Severity.WARN,
    FaultDomain.IO: Severity.WARN,
    FaultDomain.SYSTEM: Severity.ERROR,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault carries everything the error pipeline needs to build a
    response envelope without inspecting the exception type:

    Attributes:
        code: Stable machine-readable identifier (e.g., "USER_NOT_FOUND")
        message: Human-readable summary
        status_code: HTTP status used for the envelope
        domain: Fault domain (CONFIG, ROUTING, FLOW, ...)
        severity: Fault severity (drives the log level)
        public: Whether the message and details are safe to expose
        details: Structured payload returned to the caller

    Subclasses may declare ``code``, ``message``, ``status_code`` and
    ``domain`` as class attributes and omit them at construction.

    Example:
        ```python
        raise Fault(
            code="USER_NOT_FOUND",
            message="User with ID 123 not found",
            status_code=404,
            domain=FaultDomain.FLOW,
            public=True,
        )
        ```
    """

    code: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 500
    domain: Optional[FaultDomain] = None
    public: bool = False

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        status_code: Optional[int] = None,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        public: Optional[bool] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else type(self).code
        self.message = message if message is not None else type(self).message
        self.domain = domain if domain is not None else type(self).domain

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        if status_code is not None:
            self.status_code = status_code
        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        if public is not None:
            self.public = public
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, status_code={self.status_code}, "
            f"domain={self.domain.value}, severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to the payload placed in an error envelope.

        Non-public faults expose only their code and status.
        """
        data: dict[str, Any] = {
            "code": self.code,
            "status_code": self.status_code,
        }
        if self.public:
            data["message"] = self.message
            if self.details:
                data["details"] = self.details
        return data
