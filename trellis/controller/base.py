"""
Controller Base

RequestCtx (what handlers receive), TransformedContext (what context
transformers return) and the default transformer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Union

if TYPE_CHECKING:
    from trellis.request import Request


@dataclass
class TransformedContext:
    """Typed request data extracted by a context transformer."""
    body: Any = None
    query: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)


ContextTransformer = Callable[
    ["Request"],
    Union[TransformedContext, Awaitable[TransformedContext]],
]


@dataclass
class RequestCtx:
    """
    Request context provided to middlewares and controller methods.

    Middlewares see raw path and query parameters; by the time the
    handler runs, ``body``, ``query`` and ``params`` hold the output of
    the route's context transformer.

    Attributes:
        request: The HTTP request
        body: Transformed body
        query: Transformed query parameters
        params: Transformed path parameters
        state: Per-request state shared with middlewares
    """

    request: "Request"
    body: Any = None
    query: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def method(self) -> str:
        return self.request.method

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.header(name, default)

    def apply(self, transformed: TransformedContext) -> None:
        self.body = transformed.body
        self.query = transformed.query
        self.params = transformed.params


async def default_transformer(request: "Request") -> TransformedContext:
    """
    Extract body, query and path parameters without validation.

    JSON bodies are parsed, other non-empty bodies are returned as text,
    and repeated query parameters keep only their first value.
    """
    if request.is_json():
        body = await request.json()
    else:
        raw = await request.body()
        body = raw.decode("utf-8", errors="replace") if raw else None

    query = {name: values[0] for name, values in request.query_params.items() if values}
    return TransformedContext(body=body, query=query, params=dict(request.path_params))
