"""
Middleware system - composable, async-first middleware.

A middleware is ``async (request, ctx, next) -> Response``. It may
short-circuit by returning a response without calling ``next``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence

from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .controller.base import RequestCtx

# Type alias for middleware - use string annotation to avoid circular import
Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]
Middleware = Callable[[Request, "RequestCtx", Handler], Awaitable[Response]]


@dataclass
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Ordered middleware stack.

    Lower priority runs first (outermost); equal priorities keep their
    insertion order.
    """

    def __init__(self, middlewares: Sequence[Middleware] = ()):
        self.middlewares: List[MiddlewareDescriptor] = []
        for middleware in middlewares:
            self.add(middleware)

    def add(
        self,
        middleware: Middleware,
        priority: int = 50,
        name: Optional[str] = None,
    ) -> None:
        """Add middleware to stack."""
        if name is None:
            name = getattr(middleware, "__name__", type(middleware).__name__)

        self.middlewares.append(MiddlewareDescriptor(
            middleware=middleware,
            priority=priority,
            name=name,
        ))

    def build_handler(self, final_handler: Handler) -> Handler:
        """Build middleware chain wrapping the final handler."""
        ordered = sorted(self.middlewares, key=lambda d: d.priority)
        return chain(final_handler, [d.middleware for d in ordered])

    def __len__(self) -> int:
        return len(self.middlewares)


def chain(final_handler: Handler, middlewares: Sequence[Middleware]) -> Handler:
    """Wrap ``final_handler`` so the first middleware is outermost."""
    handler = final_handler
    for middleware in reversed(middlewares):
        handler = _wrap_middleware(middleware, handler)
    return handler


def _wrap_middleware(middleware: Middleware, next_handler: Handler) -> Handler:
    async def wrapped(request: Request, ctx: "RequestCtx") -> Response:
        return await middleware(request, ctx, next_handler)

    return wrapped


# Default middleware implementations

class RequestIdMiddleware:
    """
    Adds a unique request ID to each request.

    Reuses an incoming ``X-Request-ID`` header when present.
    """

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name

    async def __call__(self, request: Request, ctx: "RequestCtx", next: Handler) -> Response:
        request_id = request.header(self.header_name) or os.urandom(16).hex()

        request.state["request_id"] = request_id
        ctx.state["request_id"] = request_id

        response = await next(request, ctx)
        response.set_header(self.header_name, request_id)
        return response
