"""
Provider implementations for different instantiation strategies.
"""

from __future__ import annotations

import inspect
import types
import typing
from typing import TYPE_CHECKING, Annotated, Any, Callable, Dict, Optional, Type, Union, get_args, get_origin

from .decorators import Inject
from .errors import DIError

if TYPE_CHECKING:
    from .core import Container


class Dependency:
    """One constructor/factory parameter to be injected."""

    __slots__ = ("name", "token", "optional", "has_default")

    def __init__(self, name: str, token: Any, optional: bool, has_default: bool):
        self.name = name
        self.token = token
        self.optional = optional
        self.has_default = has_default

    def __repr__(self) -> str:
        return f"Dependency({self.name}={self.token!r}, optional={self.optional})"


def extract_dependencies(func: Callable, owner: str) -> Dict[str, Dependency]:
    """
    Extract dependencies from a callable's signature.

    Plain annotations use the annotated type as token, ``Annotated[T,
    Inject(token)]`` overrides it, and ``Optional[T]`` or a default value
    makes the dependency optional.
    """
    deps: Dict[str, Dependency] = {}

    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins and C types that do not support signature inspection
        return deps

    try:
        type_hints = typing.get_type_hints(func, include_extras=True)
    except Exception:
        type_hints = {}

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        has_default = param.default is not inspect.Parameter.empty
        annotation = type_hints.get(param_name, param.annotation)

        if annotation is inspect.Parameter.empty:
            if has_default:
                continue
            raise DIError(
                f"Missing type annotation for parameter '{param_name}' in {owner}; "
                f"the container cannot tell what to inject"
            )

        token, optional = _parse_annotation(annotation)
        deps[param_name] = Dependency(param_name, token, optional or has_default, has_default)

    return deps


def _parse_annotation(annotation: Any) -> tuple:
    """Return (token, optional) for a parameter annotation."""
    optional = False

    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        for meta in metadata:
            if isinstance(meta, Inject):
                token = meta.token if meta.token is not None else _strip_optional(base)[0]
                return token, meta.optional or _strip_optional(base)[1]
        annotation = base

    token, optional = _strip_optional(annotation)
    return token, optional


def _strip_optional(annotation: Any) -> tuple:
    origin = get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


def _describe(obj: Any) -> str:
    module = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None)
    if module and qualname:
        return f"{module}.{qualname}"
    return repr(obj)


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.

    Dependencies are read on first instantiation so annotations may refer
    to names defined after the binding was made.
    """

    __slots__ = ("_cls", "_dependencies")

    def __init__(self, cls: Type):
        if not isinstance(cls, type):
            raise DIError(f"ClassProvider needs a class, got {cls!r}")
        self._cls = cls
        self._dependencies: Optional[Dict[str, Dependency]] = None

    @property
    def target(self) -> Type:
        return self._cls

    @property
    def name(self) -> str:
        label = vars(self._cls).get("__di_name__")
        described = _describe(self._cls)
        return f"{described} ({label})" if label else described

    @property
    def dependencies(self) -> Dict[str, Dependency]:
        if self._dependencies is None:
            if self._cls.__init__ is object.__init__:
                self._dependencies = {}
            else:
                self._dependencies = extract_dependencies(self._cls.__init__, f"{_describe(self._cls)}.__init__")
        return self._dependencies

    def same_target(self, other: Any) -> bool:
        return isinstance(other, ClassProvider) and other._cls is self._cls

    def instantiate(self, container: "Container") -> Any:
        kwargs = _resolve_all(container, self.dependencies, self.name)
        return self._cls(**kwargs)


class FactoryProvider:
    """Provider that calls a factory function to produce the instance."""

    __slots__ = ("_factory", "_dependencies")

    def __init__(self, factory: Callable[..., Any]):
        if not callable(factory):
            raise DIError(f"FactoryProvider needs a callable, got {factory!r}")
        if inspect.iscoroutinefunction(factory):
            raise DIError(
                f"Async factory {_describe(factory)} is not supported; "
                f"bindings are resolved synchronously at boot"
            )
        self._factory = factory
        self._dependencies: Optional[Dict[str, Dependency]] = None

    @property
    def target(self) -> Callable[..., Any]:
        return self._factory

    @property
    def name(self) -> str:
        return _describe(self._factory)

    @property
    def dependencies(self) -> Dict[str, Dependency]:
        if self._dependencies is None:
            self._dependencies = extract_dependencies(self._factory, self.name)
        return self._dependencies

    def same_target(self, other: Any) -> bool:
        return isinstance(other, FactoryProvider) and other._factory is self._factory

    def instantiate(self, container: "Container") -> Any:
        kwargs = _resolve_all(container, self.dependencies, self.name)
        return self._factory(**kwargs)


class ValueProvider:
    """Provider for a pre-built value."""

    __slots__ = ("_value",)

    def __init__(self, value: Any):
        self._value = value

    @property
    def target(self) -> Any:
        return self._value

    @property
    def name(self) -> str:
        return f"<value {type(self._value).__name__}>"

    @property
    def dependencies(self) -> Dict[str, Dependency]:
        return {}

    def same_target(self, other: Any) -> bool:
        return isinstance(other, ValueProvider) and other._value is self._value

    def instantiate(self, container: "Container") -> Any:
        return self._value


def _resolve_all(container: "Container", deps: Dict[str, Dependency], owner: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for dep in deps.values():
        if dep.has_default and not container.is_bound(dep.token):
            # Leave the parameter to its default
            continue
        kwargs[dep.name] = container.resolve_dependency(dep.token, owner=owner, optional=dep.optional)
    return kwargs
