"""
Trellis - metadata-driven controllers on an explicit DI container.

Complete integration of:
- Controllers: decorator- or table-declared routes grouped in API modules
- DI: singleton-scoped container resolving constructor dependencies
- Dispatcher: ordered mounting of controller routes at boot
- Faults: structured errors and one uniform response envelope
- Middleware: composable async middleware, global and per controller
"""

__version__ = "0.3.0"

# ============================================================================
# Core Framework
# ============================================================================

from .config import Config, LoggerConfig, ServerConfig
from .request import Request
from .response import Envelope, Response, format_response
from .log import LoggerService, configure_logging
from .middleware import Handler, Middleware, MiddlewareStack, RequestIdMiddleware
from .app import Application, create_app

# ============================================================================
# Controller System
# ============================================================================

from .controller import (
    GET, POST, PUT, PATCH, DELETE,
    route,
    RouteTable,
    RouteOptions,
    RequestCtx,
    TransformedContext,
    default_transformer,
    controller,
    api_module,
    ControllerRegistrar,
    Dispatcher,
    MetadataStore,
    default_store,
    Router,
)

# ============================================================================
# Dependency Injection
# ============================================================================

from .di import Container, Inject, Token, inject, injectable

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    ErrorPipeline,
    ConfigurationError,
    RouteNotFoundError,
    ClassifiedHandlerError,
    ApiError,
    BadRequest,
    Unauthorized,
    Forbidden,
    NotFound,
    Conflict,
    ValidationError,
    UnclassifiedError,
)

__all__ = [
    "__version__",
    # Core
    "Application",
    "create_app",
    "Config",
    "LoggerConfig",
    "ServerConfig",
    "Request",
    "Response",
    "Envelope",
    "format_response",
    "LoggerService",
    "configure_logging",
    "Handler",
    "Middleware",
    "MiddlewareStack",
    "RequestIdMiddleware",
    # Controllers
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "route",
    "RouteTable",
    "RouteOptions",
    "RequestCtx",
    "TransformedContext",
    "default_transformer",
    "controller",
    "api_module",
    "ControllerRegistrar",
    "Dispatcher",
    "MetadataStore",
    "default_store",
    "Router",
    # DI
    "Container",
    "Inject",
    "Token",
    "inject",
    "injectable",
    # Faults
    "Fault",
    "ErrorPipeline",
    "ConfigurationError",
    "RouteNotFoundError",
    "ClassifiedHandlerError",
    "ApiError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "ValidationError",
    "UnclassifiedError",
]
