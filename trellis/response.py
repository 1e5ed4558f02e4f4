"""
Response - HTTP response builder and the envelope formatter.

Every body the framework produces on its own is an envelope:

    {"status": "success", "data": ...}
    {"status": "error", "message": "...", "data": {...}}

:func:`format_response` is the single place envelopes become responses,
and :meth:`Response.send_asgi` the single place bytes reach the network.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
from uuid import UUID


logger = logging.getLogger("trellis.response")


def _json_default_serializer(o: Any) -> Any:
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, (UUID, Decimal)):
        return str(o)
    if isinstance(o, Enum):
        return o.value
    if isinstance(o, (set, frozenset, tuple)):
        return list(o)
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "__dataclass_fields__"):
        from dataclasses import asdict
        return asdict(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


class Response:
    """
    HTTP response with ASGI 3 sending.

    Content may be bytes, str, or a JSON-serializable object.
    """

    def __init__(
        self,
        content: Union[bytes, str, Any] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
    ):
        self.status = status
        self._headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

        if isinstance(content, bytes):
            body = content
            default_type = "application/octet-stream"
        elif isinstance(content, str):
            body = content.encode("utf-8")
            default_type = "text/plain; charset=utf-8"
        else:
            body = json.dumps(content, default=_json_default_serializer).encode("utf-8")
            default_type = "application/json; charset=utf-8"

        self.body = body
        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = default_type

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @classmethod
    def json(cls, obj: Any, status: int = 200, *, headers: Optional[Mapping[str, str]] = None) -> "Response":
        """Create JSON response."""
        content = json.dumps(obj, default=_json_default_serializer).encode("utf-8")
        return cls(content=content, status=status, headers=headers, media_type="application/json; charset=utf-8")

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        return cls(content=content, status=status, media_type="text/plain; charset=utf-8", **kwargs)

    def set_header(self, name: str, value: str) -> None:
        self._headers[name.lower()] = value

    def _prepare_headers(self) -> List[tuple]:
        headers = dict(self._headers)
        headers["content-length"] = str(len(self.body))
        return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """
        Send response via ASGI.

        Cancellation propagates untouched so a disconnected client
        aborts the write.
        """
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self._headers.get('content-type')} {len(self.body)}B>"


# ============================================================================
# Envelope
# ============================================================================

@dataclass(frozen=True)
class Envelope:
    """Uniform response shape."""

    status: str  # "success" | "error"
    message: Optional[str] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"status": self.status}
        if self.message is not None:
            out["message"] = self.message
        if self.status == "success" or self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "Envelope":
        return cls(status="success", message=message, data=data)

    @classmethod
    def error(cls, message: str, data: Any = None) -> "Envelope":
        return cls(status="error", message=message, data=data)


def format_response(
    envelope: Envelope,
    status_code: Optional[int] = None,
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Build the JSON response for an envelope.

    Without an explicit status code, success maps to 200 and error to 500.
    """
    if status_code is None:
        status_code = 200 if envelope.status == "success" else 500
    return Response.json(envelope.to_dict(), status=status_code, headers=headers)
