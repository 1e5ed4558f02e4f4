"""
Decorators and injection helpers for ergonomic DI usage.
"""

from typing import Any, Callable, Optional, Type, TypeVar
from dataclasses import dataclass


T = TypeVar("T")


@dataclass(frozen=True)
class Inject:
    """
    Injection metadata marker.

    Usage:
        def __init__(self, repo: Annotated[UserRepo, Inject(USER_REPO)]):
            ...
    """

    token: Optional[Any] = None
    optional: bool = False


def inject(token: Optional[Any] = None, *, optional: bool = False) -> Inject:
    """
    Create injection metadata.

    Args:
        token: Explicit token (inferred from the type hint if None)
        optional: If True, inject None when the token is unbound

    Example:
        def __init__(
            self,
            cache: Annotated[Cache, inject(optional=True)],
        ):
            ...
    """
    return Inject(token=token, optional=optional)


def injectable(cls: Optional[Type[T]] = None, *, name: Optional[str] = None) -> Any:
    """
    Mark a class as constructible by the container.

    Works bare (``@injectable``) or with arguments (``@injectable(name=...)``).
    A strict container only binds marked classes; ``name`` labels the
    class in binding logs and DI error messages.
    """
    def decorator(target: Type[T]) -> Type[T]:
        target.__di_injectable__ = True  # type: ignore
        if name is not None:
            target.__di_name__ = name  # type: ignore
        return target

    if cls is not None:
        return decorator(cls)
    return decorator


def is_injectable(cls: Any) -> bool:
    return bool(getattr(cls, "__di_injectable__", False))
