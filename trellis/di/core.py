"""
Core DI types: tokens, bindings and the container.

One container is created per application at process start and passed
explicitly to whoever needs it; there is no ambient global container.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

from .errors import (
    BindingLockedError,
    CircularDependencyError,
    DIError,
    DuplicateBindingError,
    UnboundTokenError,
)
from .decorators import is_injectable
from .providers import ClassProvider, FactoryProvider, ValueProvider


T = TypeVar("T")

logger = logging.getLogger("trellis.di")

class Token:
    """
    Opaque identifier for a binding.

    Two tokens are equal only if they are the same object, even when they
    share a name.

    Example:
        USER_REPO = Token("UserRepository")
        container.bind(USER_REPO).to(SqlUserRepository).in_singleton_scope()
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Token({self.name!r})"


def token_name(token: Any) -> str:
    """Readable name of a token for logs and error messages."""
    if isinstance(token, type):
        return f"{token.__module__}.{token.__qualname__}"
    if isinstance(token, Token):
        return repr(token)
    return str(token)


def token_for(cls: Type) -> Type:
    """Token derived from a class identity (the class object itself)."""
    return cls


@dataclass
class Binding:
    """A token bound to a provider, owned by the container."""
    token: Any
    provider: Any

    @property
    def target_name(self) -> str:
        return self.provider.name


class BindingBuilder:
    """
    Fluent binding API returned by :meth:`Container.bind`.

    Example:
        container.bind(UserService).to_self().in_singleton_scope()
        container.bind("db.url").to_constant_value("postgres://...")
    """

    __slots__ = ("_container", "_token", "_replace", "_binding")

    def __init__(self, container: "Container", token: Any, replace: bool = False):
        self._container = container
        self._token = token
        self._replace = replace
        self._binding: Optional[Binding] = None

    def to(self, cls: Type) -> "BindingBuilder":
        provider = ClassProvider(cls)
        if self._container.strict and not is_injectable(cls):
            raise DIError(
                f"{token_name(cls)} is not marked @injectable; "
                f"strict container {self._container.name!r} refuses to bind it"
            )
        self._binding = self._container._register(self._token, provider, replace=self._replace)
        return self

    def to_self(self) -> "BindingBuilder":
        if not isinstance(self._token, type):
            raise DIError(f"to_self() needs a class token, got {token_name(self._token)}")
        return self.to(self._token)

    def to_constant_value(self, value: Any) -> "BindingBuilder":
        self._binding = self._container._register(self._token, ValueProvider(value), replace=self._replace)
        return self

    def to_factory(self, factory: Callable[..., Any]) -> "BindingBuilder":
        self._binding = self._container._register(self._token, FactoryProvider(factory), replace=self._replace)
        return self

    def in_singleton_scope(self) -> "BindingBuilder":
        """Every binding is singleton-scoped; this checks a target was given."""
        if self._binding is None:
            raise DIError(
                f"bind({token_name(self._token)}) has no target; "
                f"call .to(...) before .in_singleton_scope()"
            )
        return self


class Container:
    """
    DI Container - binds tokens to providers and caches singletons.

    Resolution runs under a re-entrant lock, so a token resolved from
    several threads at once is still constructed exactly once, and a
    per-resolution stack detects cycles instead of recursing forever.

    A ``strict`` container only binds classes marked with @injectable.
    """

    __slots__ = ("name", "strict", "_bindings", "_cache", "_lock", "_resolving")

    def __init__(self, name: str = "app", *, strict: bool = False):
        self.name = name
        self.strict = strict
        self._bindings: Dict[Any, Binding] = {}
        self._cache: Dict[Any, Any] = {}
        self._lock = threading.RLock()
        self._resolving: List[Any] = []

    # ========================================================================
    # Registration
    # ========================================================================

    def bind(self, token: Any) -> BindingBuilder:
        """Start a binding for ``token``."""
        return BindingBuilder(self, token)

    def rebind(self, token: Any) -> BindingBuilder:
        """Start a binding that replaces an existing, unresolved one."""
        return BindingBuilder(self, token, replace=True)

    def _register(self, token: Any, provider: Any, *, replace: bool = False) -> Binding:
        with self._lock:
            existing = self._bindings.get(token)
            if existing is not None:
                # Idempotency: same target is a no-op
                if existing.provider.same_target(provider):
                    return existing
                if token in self._cache:
                    raise BindingLockedError(token_name(token))
                if not replace:
                    raise DuplicateBindingError(token_name(token), existing.target_name, provider.name)
            elif replace:
                logger.debug(f"rebind({token_name(token)}) on unbound token; binding it")

            binding = Binding(token=token, provider=provider)
            self._bindings[token] = binding
            logger.debug(f"Bound {token_name(token)} -> {provider.name}")
            return binding

    # ========================================================================
    # Lookup
    # ========================================================================

    def is_bound(self, token: Any) -> bool:
        return token in self._bindings

    def is_resolved(self, token: Any) -> bool:
        return token in self._cache

    def get_binding(self, token: Any) -> Optional[Binding]:
        return self._bindings.get(token)

    def tokens(self) -> Iterator[Any]:
        return iter(list(self._bindings))

    # ========================================================================
    # Resolution
    # ========================================================================

    def resolve(self, token: Any, *, optional: bool = False) -> Any:
        """
        Resolve a token to its instance.

        Raises:
            UnboundTokenError: If nothing is bound and ``optional`` is False
            CircularDependencyError: If resolving the token requires itself
        """
        return self._resolve(token, optional=optional, requested_by=None)

    def resolve_dependency(self, token: Any, *, owner: str, optional: bool = False) -> Any:
        """Resolve a constructor/factory dependency on behalf of ``owner``."""
        return self._resolve(token, optional=optional, requested_by=owner)

    def _resolve(self, token: Any, *, optional: bool, requested_by: Optional[str]) -> Any:
        # Fast path, no lock: cached singletons never change
        try:
            return self._cache[token]
        except KeyError:
            pass
        except TypeError:
            raise DIError(f"Unhashable token {token!r}")

        with self._lock:
            if token in self._cache:
                return self._cache[token]

            binding = self._bindings.get(token)
            if binding is None:
                if optional:
                    return None
                raise UnboundTokenError(token_name(token), requested_by, self._candidates(token))

            if token in self._resolving:
                start = self._resolving.index(token)
                cycle = [token_name(t) for t in self._resolving[start:]] + [token_name(token)]
                raise CircularDependencyError(cycle)

            self._resolving.append(token)
            try:
                instance = binding.provider.instantiate(self)
            finally:
                self._resolving.pop()

            self._cache[token] = instance
            logger.debug(f"Resolved {token_name(token)} ({binding.target_name})")
            return instance

    def _candidates(self, token: Any) -> List[str]:
        wanted = token_name(token).rsplit(".", 1)[-1].lower()
        return [
            token_name(t) for t in self._bindings
            if token_name(t).rsplit(".", 1)[-1].lower() == wanted
        ]

    def __contains__(self, token: Any) -> bool:
        return self.is_bound(token)

    def __repr__(self) -> str:
        return f"<Container {self.name!r} bindings={len(self._bindings)} resolved={len(self._cache)}>"
