"""
Controller Method Decorators

HTTP verb decorators for controller methods, and RouteTable, the
declarative alternative. Both produce RouteDescriptors; decorators attach
them to the function without import-time side effects and the controller
definition flushes them into the MetadataStore.
"""

from typing import Any, Callable, List, Optional, Sequence, TypeVar, Union
import inspect

from .metadata import HttpMethod, RouteDescriptor, RouteOptions


F = TypeVar('F', bound=Callable[..., Any])

ROUTES_ATTR = "__trellis_routes__"


def build_descriptor(
    method: Union[str, HttpMethod],
    path: str,
    handler_name: str,
    *,
    transformer: Optional[Callable[..., Any]] = None,
    status_code: int = 200,
    middlewares: Sequence[Callable[..., Any]] = (),
    summary: str = "",
    description: str = "",
    tags: Sequence[str] = (),
    deprecated: bool = False,
) -> RouteDescriptor:
    options = RouteOptions(
        transformer=transformer,
        status_code=status_code,
        middlewares=tuple(middlewares),
        summary=summary,
        description=description,
        tags=tuple(tags),
        deprecated=deprecated,
    )
    return RouteDescriptor(
        http_method=HttpMethod.parse(method),
        path=path or "/",
        handler_name=handler_name,
        transformer=transformer,
        options=options,
    )


class RouteDecorator:
    """
    Base route decorator.

    Attaches a RouteDescriptor to the decorated function. Stacking several
    decorators on one method yields one descriptor each, in application
    order (bottom-most first).
    """

    method: Optional[HttpMethod] = None

    def __init__(
        self,
        path: str = "/",
        *,
        transformer: Optional[Callable[..., Any]] = None,
        status_code: int = 200,
        middlewares: Optional[Sequence[Callable[..., Any]]] = None,
        summary: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        deprecated: bool = False,
    ):
        """
        Initialize route decorator.

        Args:
            path: Path template relative to the controller base path
                  ("/", "/:id", "/{id}/posts")
            transformer: Context transformer for this route
            status_code: Status of the success envelope
            middlewares: Route-level middlewares
            summary: Short description (defaults to the method name)
            description: Long description (defaults to the docstring)
            tags: Free-form tags
            deprecated: Mark the route as deprecated
        """
        if self.method is None:
            raise TypeError("RouteDecorator is abstract; use GET, POST, PUT, DELETE or PATCH")
        self.path = path
        self.transformer = transformer
        self.status_code = status_code
        self.middlewares = tuple(middlewares or ())
        self.summary = summary
        self.description = description
        self.tags = tuple(tags or ())
        self.deprecated = deprecated

    def __call__(self, func: F) -> F:
        if not callable(func):
            raise TypeError(f"@{self.method.value} must decorate a method, got {func!r}")

        descriptor = build_descriptor(
            self.method,
            self.path,
            func.__name__,
            transformer=self.transformer,
            status_code=self.status_code,
            middlewares=self.middlewares,
            summary=self.summary or func.__name__.replace('_', ' ').title(),
            description=self.description or inspect.getdoc(func) or '',
            tags=self.tags,
            deprecated=self.deprecated,
        )

        routes: List[RouteDescriptor] = list(getattr(func, ROUTES_ATTR, ()))
        routes.append(descriptor)
        setattr(func, ROUTES_ATTR, tuple(routes))
        return func


class GET(RouteDecorator):
    """GET request decorator."""
    method = HttpMethod.GET


class POST(RouteDecorator):
    """POST request decorator."""
    method = HttpMethod.POST


class PUT(RouteDecorator):
    """PUT request decorator."""
    method = HttpMethod.PUT


class DELETE(RouteDecorator):
    """DELETE request decorator."""
    method = HttpMethod.DELETE


class PATCH(RouteDecorator):
    """PATCH request decorator."""
    method = HttpMethod.PATCH


_VERB_DECORATORS = {
    HttpMethod.GET: GET,
    HttpMethod.POST: POST,
    HttpMethod.PUT: PUT,
    HttpMethod.DELETE: DELETE,
    HttpMethod.PATCH: PATCH,
}


def route(
    method: Union[str, HttpMethod, Sequence[Union[str, HttpMethod]]],
    path: str = "/",
    **kwargs
) -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route("GET", "/users")
        async def get_users(self, ctx):
            ...

        @route(["PUT", "PATCH"], "/:id")
        async def update(self, ctx):
            ...
    """
    methods = [method] if isinstance(method, (str, HttpMethod)) else list(method)

    def decorator(func: F) -> F:
        for http_method in methods:
            func = _VERB_DECORATORS[HttpMethod.parse(http_method)](path, **kwargs)(func)
        return func

    return decorator


def declared_routes(func: Any) -> tuple:
    """Route descriptors attached to a function by the verb decorators."""
    return tuple(getattr(func, ROUTES_ATTR, ()))


class RouteTable:
    """
    Declarative route table, built explicitly instead of decorating methods.

    Example:
        routes = (
            RouteTable()
            .get("/", "list_users")
            .get("/:id", "get_user")
            .post("/", "create_user", status_code=201)
        )

        @controller("/users", routes=routes)
        class UsersController:
            ...
    """

    def __init__(self):
        self._routes: List[RouteDescriptor] = []

    def add(self, method: Union[str, HttpMethod], path: str, handler_name: str, **kwargs) -> "RouteTable":
        self._routes.append(build_descriptor(method, path, handler_name, **kwargs))
        return self

    def get(self, path: str, handler_name: str, **kwargs) -> "RouteTable":
        return self.add(HttpMethod.GET, path, handler_name, **kwargs)

    def post(self, path: str, handler_name: str, **kwargs) -> "RouteTable":
        return self.add(HttpMethod.POST, path, handler_name, **kwargs)

    def put(self, path: str, handler_name: str, **kwargs) -> "RouteTable":
        return self.add(HttpMethod.PUT, path, handler_name, **kwargs)

    def delete(self, path: str, handler_name: str, **kwargs) -> "RouteTable":
        return self.add(HttpMethod.DELETE, path, handler_name, **kwargs)

    def patch(self, path: str, handler_name: str, **kwargs) -> "RouteTable":
        return self.add(HttpMethod.PATCH, path, handler_name, **kwargs)

    @property
    def routes(self) -> tuple:
        return tuple(self._routes)

    def __iter__(self):
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
