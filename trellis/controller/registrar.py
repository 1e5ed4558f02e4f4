"""
Controller Registrar

Turns a class and its declared routes into frozen ControllerMetadata and,
at boot, binds the class as a singleton in a DI container.

Re-defining an already defined class overwrites it: base path, middlewares
and routes are recomputed from the new definition, so routes are never
recorded twice. Binding it again into the same container reuses the
existing binding.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from ..di import Container, injectable, token_for
from ..faults import ConfigurationError
from .decorators import RouteTable, declared_routes
from .metadata import ControllerMetadata, MetadataStore, RouteDescriptor, default_store, normalize_base_path


T = TypeVar("T")

logger = logging.getLogger("trellis.controller")


class ControllerRegistrar:
    """
    Defines controllers in a MetadataStore and binds them into containers.
    """

    def __init__(self, store: Optional[MetadataStore] = None):
        self.store = store if store is not None else default_store

    def define(
        self,
        cls: Type,
        base_path: str = "/",
        middlewares: Sequence[Callable[..., Any]] = (),
        routes: Optional[RouteTable | Sequence[RouteDescriptor]] = None,
    ) -> ControllerMetadata:
        """
        Record controller metadata for ``cls``.

        Steps: mark the class injectable, normalize the base path, replace
        the class's routes in the store with the declared ones and store
        the frozen ControllerMetadata.

        Raises:
            ConfigurationError: If two routes match the same (method, path)
        """
        if not isinstance(cls, type):
            raise ConfigurationError(f"@controller must decorate a class, got {cls!r}")

        injectable(cls)
        normalized = normalize_base_path(base_path)
        logger.debug(f"Registering {cls.__name__} at path {normalized}")

        if self.store.get_controller(cls) is not None:
            logger.debug(f"{cls.__name__} already defined; overwriting controller metadata")

        collected = self._collect_routes(cls, routes)
        self._check_duplicates(cls, collected)
        self.store.replace_routes(cls, collected)

        recorded = self.store.get_routes(cls)
        for route in recorded:
            logger.debug(
                f"Registered route {route.http_method.value} {route.path} "
                f"for {cls.__name__}.{route.handler_name}"
            )

        metadata = ControllerMetadata(
            base_path=normalized,
            middlewares=tuple(middlewares),
            routes=recorded,
        )
        self.store.record_controller(cls, metadata)
        return metadata

    def bind(self, container: Container, cls: Type) -> Any:
        """
        Bind ``cls`` as a singleton under the token derived from it.

        Returns:
            The token
        """
        if self.store.get_controller(cls) is None:
            raise ConfigurationError(
                f"{cls.__qualname__} is not a controller; decorate it with @controller(...)",
                code="CONTROLLER_NOT_DEFINED",
            )
        token = token_for(cls)
        container.bind(token).to(cls).in_singleton_scope()
        return token

    @staticmethod
    def _collect_routes(
        cls: Type,
        table: Optional[RouteTable | Sequence[RouteDescriptor]],
    ) -> List[RouteDescriptor]:
        """
        Gather decorated methods from the MRO, base classes first.

        A subclass that re-decorates a method replaces the inherited routes
        for that name in place; an undecorated override keeps them.
        """
        by_name: Dict[str, List[RouteDescriptor]] = {}
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            for name, attr in vars(klass).items():
                func = attr.__func__ if isinstance(attr, (staticmethod, classmethod)) else attr
                descriptors = declared_routes(func)
                if descriptors:
                    by_name[name] = list(descriptors)

        collected = [d for descriptors in by_name.values() for d in descriptors]
        if table is not None:
            collected.extend(table)
        return collected

    @staticmethod
    def _check_duplicates(cls: Type, routes: Sequence[RouteDescriptor]) -> None:
        seen: Dict[tuple, RouteDescriptor] = {}
        for route in routes:
            other = seen.get(route.key)
            if other is not None:
                raise ConfigurationError(
                    f"Duplicate route {route.http_method.value} {route.path} in "
                    f"{cls.__qualname__}: {other.handler_name} ({other.path}) and {route.handler_name}",
                    code="DUPLICATE_ROUTE",
                    details={"controller": cls.__qualname__, "method": route.http_method.value, "path": route.path},
                )
            seen[route.key] = route


def controller(
    base_path: str = "/",
    *,
    middlewares: Optional[Sequence[Callable[..., Any]]] = None,
    routes: Optional[RouteTable | Sequence[RouteDescriptor]] = None,
    store: Optional[MetadataStore] = None,
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator defining a controller.

    Example:
        @controller("/users", middlewares=[require_auth])
        class UsersController:
            def __init__(self, users: UserService):
                self.users = users

            @GET("/:id")
            async def show(self, ctx):
                return await self.users.get(ctx.params["id"])
    """
    def decorator(cls: Type[T]) -> Type[T]:
        ControllerRegistrar(store).define(cls, base_path, middlewares or (), routes)
        return cls

    return decorator
