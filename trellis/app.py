"""
Application - the composition root.

Boot sequence (``Application.build``):

1. Configure logging from ``config.logger``
2. Bind ``Config`` and ``LoggerService`` as constant values
3. Bind every controller of every module, in declaration order
4. Mount all routes onto a fresh Router through the Dispatcher
5. Expose the router

Any error raised during boot propagates and leaves the application
without a router, so no partially mounted route table ever serves traffic.
"""

from __future__ import annotations

import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type

from .asgi import ASGIAdapter
from .config import Config
from .controller.dispatcher import Dispatcher
from .controller.metadata import MetadataStore, default_store
from .controller.module import module_metadata
from .controller.registrar import ControllerRegistrar
from .controller.router import Router
from .di import Container
from .faults import ConfigurationError, ErrorPipeline
from .log import LoggerService, configure_logging
from .middleware import Middleware, MiddlewareStack


TAG = "Application"

LifecycleHook = Callable[[], Awaitable[None]]


class Application:
    """
    ASGI 3 application built from API modules.

    Example:
        app = create_app([ApiV1], config=Config.from_env())

        # or lazily, built on first request / lifespan startup
        app = Application([ApiV1], middlewares=[RequestIdMiddleware()])
    """

    def __init__(
        self,
        modules: Sequence[Type],
        *,
        container: Optional[Container] = None,
        store: Optional[MetadataStore] = None,
        config: Optional[Config] = None,
        middlewares: Sequence[Middleware] = (),
        error_pipeline: Optional[ErrorPipeline] = None,
        on_startup: Sequence[LifecycleHook] = (),
        on_shutdown: Sequence[LifecycleHook] = (),
    ):
        self.modules = tuple(modules)
        self.container = container if container is not None else Container()
        self.store = store if store is not None else default_store
        self.config = config if config is not None else Config()
        self.logger = LoggerService()
        self.error_pipeline = error_pipeline or ErrorPipeline()
        self.middleware_stack = MiddlewareStack(middlewares)
        self.registrar = ControllerRegistrar(self.store)
        self.on_startup: List[LifecycleHook] = list(on_startup)
        self.on_shutdown: List[LifecycleHook] = list(on_shutdown)

        self.router: Optional[Router] = None
        self._adapter = ASGIAdapter(self)
        self._build_lock = threading.Lock()

    # ========================================================================
    # Boot
    # ========================================================================

    def build(self) -> Router:
        """
        Run the boot sequence once and return the mounted router.

        Raises:
            ConfigurationError: On invalid modules, controllers or routes
            DIError: When a controller or one of its dependencies cannot
                be resolved
        """
        with self._build_lock:
            if self.router is not None:
                return self.router

            configure_logging(self.config.logger)
            self._bind_ambient()

            controllers = self._controllers()
            for cls in controllers:
                self.registrar.bind(self.container, cls)

            router = Router()
            Dispatcher(self.container, self.store, self.error_pipeline).mount(router, self.modules)

            self.router = router
            self.logger.info(
                TAG,
                f"Mounted {len(router)} routes from {len(controllers)} controllers "
                f"({self.config.environment})",
            )
            return router

    def _bind_ambient(self) -> None:
        if not self.container.is_bound(Config):
            self.container.bind(Config).to_constant_value(self.config)
        if not self.container.is_bound(LoggerService):
            self.container.bind(LoggerService).to_constant_value(self.logger)

    def _controllers(self) -> List[Type]:
        controllers: List[Type] = []
        for module in self.modules:
            metadata = module_metadata(module, self.store)
            if metadata is None:
                raise ConfigurationError(
                    f"{getattr(module, '__qualname__', module)!r} is not an API module; "
                    f"decorate it with @api_module(...)",
                    code="MODULE_NOT_DEFINED",
                )
            for cls in metadata.modules:
                if cls not in controllers:
                    controllers.append(cls)
        return controllers

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def startup(self) -> None:
        self.build()
        for hook in self.on_startup:
            await hook()

    async def shutdown(self) -> None:
        for hook in self.on_shutdown:
            await hook()

    # ========================================================================
    # Introspection
    # ========================================================================

    def routes(self) -> List[Dict[str, Any]]:
        """Mounted routes in match order (builds the app if needed)."""
        router = self.router if self.router is not None else self.build()
        return router.describe()

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        await self._adapter(scope, receive, send)

    def __repr__(self) -> str:
        state = f"{len(self.router)} routes" if self.router is not None else "not built"
        return f"<Application modules={[m.__name__ for m in self.modules]} {state}>"


def create_app(modules: Sequence[Type], **kwargs: Any) -> Application:
    """Create an Application and run its boot sequence immediately."""
    app = Application(modules, **kwargs)
    app.build()
    return app
