"""
API Modules

Groups controller classes under one unit so an application can mount
them in bulk, in the declared order.
"""

import logging
from typing import Callable, Optional, Sequence, Type, TypeVar

from .metadata import MetadataStore, ModuleMetadata, default_store


T = TypeVar("T")

logger = logging.getLogger("trellis.controller")


def api_module(
    controllers: Sequence[Type],
    *,
    store: Optional[MetadataStore] = None,
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator declaring an API module.

    Example:
        @api_module(controllers=[UsersController, AuthController])
        class ApiV1:
            pass
    """
    target_store = store if store is not None else default_store

    def decorator(cls: Type[T]) -> Type[T]:
        logger.debug(f"Registering API module {cls.__name__}")
        if not controllers:
            logger.warning(f"API module {cls.__name__} declares no controllers")
        target_store.record_module(cls, ModuleMetadata(modules=tuple(controllers)))
        return cls

    return decorator


def module_metadata(module: Type, store: Optional[MetadataStore] = None) -> Optional[ModuleMetadata]:
    target_store = store if store is not None else default_store
    return target_store.get_module(module)
