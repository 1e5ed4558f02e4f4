"""
Trellis Controller System

Class-based controllers declared with decorators (or a RouteTable),
grouped into API modules and mounted at boot through the Dispatcher.

Key Features:
- Metadata-first: decorators record descriptors, boot consumes them
- DI-first: controllers are container-resolved singletons
- Ordered: declaration order decides route precedence
- Zero import-time side effects outside the MetadataStore

Example:
    from trellis.controller import GET, POST, api_module, controller

    @controller("/users")
    class UsersController:
        def __init__(self, users: UsersService):
            self.users = users

        @GET("/:id")
        async def show(self, ctx):
            return await self.users.get(ctx.params["id"])

        @POST("/", status_code=201)
        async def create(self, ctx):
            return await self.users.create(ctx.body)

    @api_module(controllers=[UsersController])
    class ApiV1:
        pass
"""

from .base import ContextTransformer, RequestCtx, TransformedContext, default_transformer
from .decorators import (
    GET, POST, PUT, PATCH, DELETE,
    RouteDecorator,
    RouteTable,
    route,
)
from .metadata import (
    ControllerMetadata,
    HttpMethod,
    MetadataStore,
    ModuleMetadata,
    RouteDescriptor,
    RouteOptions,
    default_store,
    join_paths,
    normalize_base_path,
)
from .registrar import ControllerRegistrar, controller
from .module import api_module, module_metadata
from .router import MountedRoute, RouteMatch, Router, compile_path
from .dispatcher import Dispatcher

__all__ = [
    # Context
    "RequestCtx",
    "TransformedContext",
    "ContextTransformer",
    "default_transformer",
    # Decorators
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "RouteDecorator",
    "RouteTable",
    "route",
    # Metadata
    "ControllerMetadata",
    "HttpMethod",
    "MetadataStore",
    "ModuleMetadata",
    "RouteDescriptor",
    "RouteOptions",
    "default_store",
    "join_paths",
    "normalize_base_path",
    # Registration
    "ControllerRegistrar",
    "controller",
    "api_module",
    "module_metadata",
    # Mounting
    "Router",
    "MountedRoute",
    "RouteMatch",
    "compile_path",
    "Dispatcher",
]
