"""
Controller Dispatcher - mounts controller routes onto a Router.

For every module (in order), every controller of the module (in order)
and every route of the controller (in declaration order), the dispatcher
resolves the controller instance from the container and registers an
endpoint that runs:

    controller middlewares -> route middlewares -> transformer -> handler

The handler's return value becomes a success envelope unless it already
is a Response. Errors are forwarded to the ErrorPipeline, except
cancellation and client disconnects, which abort the response.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Set, Type

from ..di import Container, token_for
from ..faults import ClientDisconnect, ConfigurationError, ErrorPipeline, ValidationError
from ..middleware import Handler, chain
from ..response import Envelope, Response, format_response
from .base import RequestCtx, TransformedContext, default_transformer
from .metadata import ControllerMetadata, MetadataStore, RouteDescriptor, default_store
from .module import module_metadata
from .router import MountedRoute, Router

if TYPE_CHECKING:
    from ..request import Request


logger = logging.getLogger("trellis.controller")


class Dispatcher:
    """
    Builds endpoints for controller routes and mounts them.

    The container and store are passed in explicitly; nothing is read from
    ambient state except the default store when none is given.
    """

    def __init__(
        self,
        container: Container,
        store: Optional[MetadataStore] = None,
        error_pipeline: Optional[ErrorPipeline] = None,
    ):
        self.container = container
        self.store = store if store is not None else default_store
        self.error_pipeline = error_pipeline or ErrorPipeline()

    def mount(self, router: Router, modules: Iterable[Type]) -> List[MountedRoute]:
        """
        Mount every controller of ``modules`` onto ``router``.

        A controller listed more than once (in one module or across
        modules) is mounted at its first listing only.

        Raises:
            ConfigurationError: On undefined modules/controllers or a route
                whose handler is not a method of the controller
        """
        mounted: List[MountedRoute] = []
        seen: Set[Type] = set()
        for module in modules:
            metadata = module_metadata(module, self.store)
            if metadata is None:
                raise ConfigurationError(
                    f"{getattr(module, '__qualname__', module)!r} is not an API module; "
                    f"decorate it with @api_module(...)",
                    code="MODULE_NOT_DEFINED",
                )
            for controller_cls in metadata.modules:
                if controller_cls in seen:
                    logger.warning(
                        f"{controller_cls.__qualname__} listed again in {module.__qualname__}; "
                        f"keeping its first mount"
                    )
                    continue
                seen.add(controller_cls)
                mounted.extend(self.mount_controller(router, controller_cls))
        return mounted

    def mount_controller(self, router: Router, controller_cls: Type) -> List[MountedRoute]:
        metadata = self.store.get_controller(controller_cls)
        if metadata is None:
            raise ConfigurationError(
                f"{controller_cls.__qualname__} is not a controller; decorate it with @controller(...)",
                code="CONTROLLER_NOT_DEFINED",
            )

        instance = self.container.resolve(token_for(controller_cls))
        mounted = []
        for route in metadata.routes:
            handler = getattr(instance, route.handler_name, None)
            if handler is None or not callable(handler):
                raise ConfigurationError(
                    f"{controller_cls.__qualname__} has no method '{route.handler_name}' "
                    f"for {route.http_method.value} {route.path}",
                    code="HANDLER_NOT_FOUND",
                    details={"controller": controller_cls.__qualname__, "handler": route.handler_name},
                )

            full_path = metadata.full_path(route)
            endpoint = self._build_endpoint(controller_cls, metadata, route, handler)
            mounted.append(router.add(
                route.http_method.value,
                full_path,
                endpoint,
                controller=controller_cls.__qualname__,
                handler_name=route.handler_name,
            ))
            logger.debug(
                f"Mounted {route.http_method.value} {full_path} -> "
                f"{controller_cls.__qualname__}.{route.handler_name}"
            )
        return mounted

    def _build_endpoint(
        self,
        controller_cls: Type,
        metadata: ControllerMetadata,
        route: RouteDescriptor,
        handler: Callable[..., Any],
    ) -> Handler:
        transformer = route.transformer or route.options.transformer or default_transformer
        status_code = route.options.status_code

        async def invoke(request: "Request", ctx: RequestCtx) -> Response:
            ctx.apply(await self._transform(transformer, request))
            result = await self._safe_call(handler, ctx)
            if isinstance(result, Response):
                return result
            return format_response(Envelope.success(result), status_code)

        pipeline = chain(invoke, [*metadata.middlewares, *route.options.middlewares])
        error_pipeline = self.error_pipeline

        async def endpoint(request: "Request", ctx: RequestCtx) -> Response:
            try:
                return await pipeline(request, ctx)
            except (asyncio.CancelledError, ClientDisconnect):
                raise
            except Exception as exc:
                return error_pipeline.handle(exc, request)

        endpoint.__qualname__ = f"{controller_cls.__qualname__}.{route.handler_name}"
        return endpoint

    async def _transform(self, transformer: Callable[..., Any], request: "Request") -> TransformedContext:
        try:
            transformed = await self._safe_call(transformer, request)
        except ValueError as exc:
            raise ValidationError(str(exc) or "Invalid request") from exc

        if not isinstance(transformed, TransformedContext):
            raise TypeError(
                f"Context transformer {getattr(transformer, '__name__', transformer)!r} "
                f"returned {type(transformed).__name__}, expected TransformedContext"
            )
        return transformed

    async def _safe_call(self, func: Any, *args, **kwargs) -> Any:
        """Safely call function (sync or async)."""
        if inspect.iscoroutinefunction(func):
            return await func(*args, **kwargs)
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        return result
