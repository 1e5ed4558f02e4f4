"""
Trellis DI - explicit, singleton-scoped dependency injection.

Example:
    from typing import Annotated
    from trellis.di import Container, Inject, Token

    CLOCK = Token("Clock")

    class UserService:
        def __init__(self, repo: UserRepository, clock: Annotated[Clock, Inject(CLOCK)]):
            ...

    container = Container()
    container.bind(UserRepository).to(SqlUserRepository).in_singleton_scope()
    container.bind(CLOCK).to_constant_value(SystemClock())
    container.bind(UserService).to_self().in_singleton_scope()
    service = container.resolve(UserService)
"""

from .core import Binding, BindingBuilder, Container, Token, token_for, token_name
from .providers import ClassProvider, FactoryProvider, ValueProvider, Dependency
from .decorators import Inject, inject, injectable, is_injectable
from .errors import (
    DIError,
    UnboundTokenError,
    CircularDependencyError,
    DuplicateBindingError,
    BindingLockedError,
)

__all__ = [
    "Container",
    "Binding",
    "BindingBuilder",
    "Token",
    "token_for",
    "token_name",
    "ClassProvider",
    "FactoryProvider",
    "ValueProvider",
    "Dependency",
    "Inject",
    "inject",
    "injectable",
    "is_injectable",
    "DIError",
    "UnboundTokenError",
    "CircularDependencyError",
    "DuplicateBindingError",
    "BindingLockedError",
]
