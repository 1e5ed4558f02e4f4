"""
ASGI adapter - Bridges the ASGI protocol to Trellis's request/response system.

Per HTTP request:

    match route -> global middleware chain -> controller endpoint
                                           -> ErrorPipeline.not_found

The global chain is built once and wraps matched and unmatched requests
alike. Cancellation and client disconnects abort without a response.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional

from .controller.base import RequestCtx
from .faults import ClientDisconnect
from .middleware import Handler
from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .app import Application


class ASGIAdapter:
    """
    ASGI application adapter.
    Converts ASGI events to Trellis Request/Response.
    """

    __slots__ = ("server", "logger", "_cached_middleware_chain")

    def __init__(self, server: "Application"):
        self.server = server
        self.logger = logging.getLogger("trellis.asgi")
        self._cached_middleware_chain: Optional[Handler] = None

    # ------------------------------------------------------------------
    # Middleware chain building (cached)
    # ------------------------------------------------------------------

    def _build_cached_chain(self) -> Handler:
        """Build the middleware chain once. The final handler dispatches
        to the endpoint matched before the chain started."""
        if self._cached_middleware_chain is not None:
            return self._cached_middleware_chain

        error_pipeline = self.server.error_pipeline

        async def _final_handler(request: Request, ctx: RequestCtx) -> Response:
            endpoint = request.state.get("_endpoint")
            if endpoint is None:
                return error_pipeline.not_found(request)
            return await endpoint(request, ctx)

        self._cached_middleware_chain = self.server.middleware_stack.build_handler(_final_handler)
        return self._cached_middleware_chain

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            raise RuntimeError(f"Unsupported ASGI scope type: {scope_type!r}")

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        router = self.server.router
        if router is None:
            router = self.server.build()
        chain = self._build_cached_chain()
        request = Request(scope, receive)

        match = router.match(request.method, request.path)
        if match is not None:
            request.path_params = dict(match.params)
            request.state["_endpoint"] = match.route.endpoint
            request.state["route_pattern"] = match.route.path

        ctx = RequestCtx(
            request=request,
            query={name: values[0] for name, values in request.query_params.items() if values},
            params=dict(request.path_params),
        )

        try:
            response = await chain(request, ctx)
        except asyncio.CancelledError:
            self.logger.debug(f"Request cancelled: {request.method} {request.path}")
            raise
        except ClientDisconnect:
            self.logger.debug(f"Client disconnected: {request.method} {request.path}")
            return
        except Exception as exc:
            response = self.server.error_pipeline.handle(exc, request)

        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.server.startup()
                    self.logger.debug("Server startup complete")
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.server.shutdown()
                    self.logger.debug("Server shutdown complete")
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error(f"Shutdown error: {e}", exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                return
