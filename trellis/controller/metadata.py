"""
Controller Metadata

Immutable descriptors for routes, controllers and API modules, and the
MetadataStore that owns them for the lifetime of the process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from .router import path_signature


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod":
        if isinstance(value, HttpMethod):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(
                f"Unsupported HTTP method {value!r} (expected one of "
                f"{', '.join(m.value for m in cls)})"
            ) from None


@dataclass(frozen=True)
class RouteOptions:
    """
    Per-route configuration.

    Attributes:
        transformer: Context transformer ``(request) -> TransformedContext``;
                     the default one is used when None
        status_code: Status of the success envelope
        middlewares: Route-level middlewares, run after controller-level ones
        summary: Short human description
        description: Long description (defaults to the handler docstring)
        tags: Free-form tags
        deprecated: Route is kept for compatibility only
    """
    transformer: Optional[Callable[..., Any]] = None
    status_code: int = 200
    middlewares: Tuple[Callable[..., Any], ...] = ()
    summary: str = ""
    description: str = ""
    tags: Tuple[str, ...] = ()
    deprecated: bool = False


@dataclass(frozen=True)
class RouteDescriptor:
    """
    Metadata for one handler method.

    Attributes:
        http_method: GET, POST, PUT, DELETE or PATCH
        path: Path template relative to the controller base path
              (e.g. "/:id" or "/{id}")
        handler_name: Name of the method on the controller
        transformer: Optional context transformer (mirrors options.transformer)
        options: Typed route options
    """
    http_method: HttpMethod
    path: str
    handler_name: str
    transformer: Optional[Callable[..., Any]] = None
    options: RouteOptions = field(default_factory=RouteOptions)

    @property
    def key(self) -> Tuple[str, str]:
        """
        Identity within a controller.

        Slashes and parameter names are ignored, so ``/list`` and ``/list/``,
        or ``/:id`` and ``/{id}``, are the same route.
        """
        return (self.http_method.value, path_signature(self.path))


@dataclass(frozen=True)
class ControllerMetadata:
    """
    Complete metadata for a controller class.

    Attributes:
        base_path: Normalized URL prefix for all routes
        middlewares: Controller-level middlewares, in declared order
        routes: Route descriptors, in declaration order
    """
    base_path: str
    middlewares: Tuple[Callable[..., Any], ...] = ()
    routes: Tuple[RouteDescriptor, ...] = ()

    def full_path(self, route: RouteDescriptor) -> str:
        return join_paths(self.base_path, route.path)


@dataclass(frozen=True)
class ModuleMetadata:
    """Controllers grouped under one API module, in mount order."""
    modules: Tuple[Type, ...] = ()


def normalize_base_path(path: str) -> str:
    """
    Strip one trailing slash unless the path is the root.

    Runs of slashes are squeezed and a leading slash is added first, so
    normalizing a normalized path returns it unchanged.
    """
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    while "//" in path:
        path = path.replace("//", "/")
    if path.endswith("/") and path != "/":
        path = path[:-1]
    return path


def join_paths(base_path: str, route_path: str) -> str:
    """Combine a controller base path with a route path template."""
    full_path = f"{base_path.rstrip('/')}/{route_path.lstrip('/')}"
    return full_path.rstrip("/") or "/"


class MetadataStore:
    """
    Process-wide store of routing metadata.

    Keys are the class objects themselves. There is no removal; metadata
    lives as long as the process (or the store, for isolated test stores).
    """

    def __init__(self):
        self._routes: Dict[Type, List[RouteDescriptor]] = {}
        self._controllers: Dict[Type, ControllerMetadata] = {}
        self._modules: Dict[Type, ModuleMetadata] = {}

    # -- Routes -------------------------------------------------------------

    def record_route(self, owner: Type, descriptor: RouteDescriptor) -> None:
        """Append a route descriptor to the owner's list."""
        self._routes.setdefault(owner, []).append(descriptor)

    def replace_routes(self, owner: Type, descriptors: Sequence[RouteDescriptor]) -> None:
        """Set the owner's route list, discarding whatever was recorded before."""
        self._routes[owner] = list(descriptors)

    def get_routes(self, owner: Type) -> Tuple[RouteDescriptor, ...]:
        return tuple(self._routes.get(owner, ()))

    # -- Controllers --------------------------------------------------------

    def record_controller(self, owner: Type, metadata: ControllerMetadata) -> None:
        """Store (or overwrite) controller metadata for a class."""
        self._controllers[owner] = metadata

    def get_controller(self, owner: Type) -> Optional[ControllerMetadata]:
        return self._controllers.get(owner)

    # -- Modules ------------------------------------------------------------

    def record_module(self, owner: Type, metadata: ModuleMetadata) -> None:
        self._modules[owner] = metadata

    def get_module(self, owner: Type) -> Optional[ModuleMetadata]:
        return self._modules.get(owner)

    def __repr__(self) -> str:
        return (
            f"<MetadataStore controllers={len(self._controllers)} "
            f"modules={len(self._modules)}>"
        )


default_store = MetadataStore()
