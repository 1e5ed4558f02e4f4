"""
Request - ASGI request wrapper.

Provides:
- Typed access to method, path, query string and headers
- Body reading with idempotent caching and a size limit
- JSON parsing with depth limit
- Path parameters filled in by the router
- Client disconnect detection
"""

from __future__ import annotations

import asyncio
import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qs

from .faults import ClientDisconnect, InvalidJSON, PayloadTooLarge


class Request:
    """
    Request object handed to middlewares and context transformers.

    Attributes:
        scope: ASGI scope dict
        state: Per-request scratch space shared by middlewares
        path_params: Parameters extracted from the matched path template
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
        json_max_depth: int = 64,
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size
        self.json_max_depth = json_max_depth

        self.state: Dict[str, Any] = {}
        self.path_params: Dict[str, str] = {}

        self._body: Optional[bytes] = None
        self._json: Any = None
        self._json_loaded = False
        self._query_params: Optional[Dict[str, List[str]]] = None
        self._headers: Optional[Dict[str, str]] = None
        self._disconnected = False

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET").upper()

    @property
    def path(self) -> str:
        """Request path (decoded)."""
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        """Raw query string."""
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def client(self) -> Optional[tuple]:
        """Client address (host, port)."""
        return self.scope.get("client")

    # ========================================================================
    # Query Parameters & Headers
    # ========================================================================

    @property
    def query_params(self) -> Dict[str, List[str]]:
        """Parsed query parameters, every value kept in order."""
        if self._query_params is None:
            self._query_params = parse_qs(self.query_string, keep_blank_values=True)
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name)
        return values[0] if values else default

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lower-cased names (last value wins)."""
        if self._headers is None:
            self._headers = {
                name.decode("latin-1").lower(): value.decode("latin-1")
                for name, value in self.scope.get("headers", ())
            }
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    def is_json(self) -> bool:
        ct = (self.content_type() or "").split(";")[0].strip().lower()
        return ct == "application/json" or ct.endswith("+json")

    # ========================================================================
    # Body
    # ========================================================================

    async def _receive_message(self) -> dict:
        try:
            message = await self._receive()
        except asyncio.CancelledError:
            self._disconnected = True
            raise
        if message["type"] == "http.disconnect":
            self._disconnected = True
            raise ClientDisconnect("Client disconnected")
        return message

    def is_disconnected(self) -> bool:
        return self._disconnected

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            ClientDisconnect: If client disconnects
            PayloadTooLarge: If body exceeds max_body_size
        """
        if self._body is not None:
            return self._body

        chunks = []
        total_size = 0
        while True:
            message = await self._receive_message()
            chunk = message.get("body", b"")
            if chunk:
                total_size += len(chunk)
                if total_size > self.max_body_size:
                    raise PayloadTooLarge(details={"max_allowed": self.max_body_size})
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        self._body = b"".join(chunks)
        return self._body

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.body()).decode(encoding)

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        An empty body parses to None.

        Raises:
            InvalidJSON: If JSON is malformed or nested too deeply
        """
        if self._json_loaded:
            return self._json

        body_bytes = await self.body()
        if not body_bytes.strip():
            data = None
        else:
            try:
                data = stdlib_json.loads(body_bytes.decode("utf-8"))
            except UnicodeDecodeError:
                raise InvalidJSON("Invalid UTF-8 in JSON payload")
            except stdlib_json.JSONDecodeError as e:
                raise InvalidJSON(f"Invalid JSON: {e.msg} at line {e.lineno} column {e.colno}")

            if not self._check_json_depth(data, self.json_max_depth):
                raise InvalidJSON("JSON nesting exceeds maximum depth", details={"max_depth": self.json_max_depth})

        self._json = data
        self._json_loaded = True
        return data

    def _check_json_depth(self, obj: Any, max_depth: int, current_depth: int = 0) -> bool:
        if current_depth > max_depth:
            return False
        if isinstance(obj, dict):
            return all(self._check_json_depth(v, max_depth, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            return all(self._check_json_depth(v, max_depth, current_depth + 1) for v in obj)
        return True

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
